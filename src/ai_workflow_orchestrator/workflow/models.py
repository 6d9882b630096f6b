"""Workflow data models: templates, bound steps and running instances."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ai_workflow_orchestrator.llm.dispatcher import TaskHint


class StepKind(str, Enum):
    PROVIDER_CALL = "provider_call"
    DATA_TRANSFORM = "data_transform"
    VALIDATE = "validate"
    NOTIFY = "notify"


class WorkflowStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowStatus.COMPLETED, WorkflowStatus.FAILED)


class ProviderCallConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["provider_call"] = "provider_call"
    prompt: str = ""
    system_prompt: str | None = None
    provider: str | None = None
    model: str | None = None
    max_tokens: int | None = Field(default=None, gt=0)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    task_hint: TaskHint | None = None


class DataTransformConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["data_transform"] = "data_transform"
    transform: str
    input: str = ""
    sources: tuple[str, ...] = ()
    options: dict[str, Any] = Field(default_factory=dict)


class ValidateConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["validate"] = "validate"
    checks: tuple[str, ...] = ()
    source: str = ""
    banned_terms: tuple[str, ...] = ()


class NotifyConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["notify"] = "notify"
    channel: str = "default"
    message: str = ""
    include_results: tuple[str, ...] = ()


StepConfig = Annotated[
    ProviderCallConfig | DataTransformConfig | ValidateConfig | NotifyConfig,
    Field(discriminator="kind"),
]


def _inject_kind(data: Any) -> Any:
    # A dict config may omit ``kind``; take it from the enclosing step.
    if not isinstance(data, dict):
        return data
    kind = data.get("kind")
    config = data.get("config")
    if kind is None or not isinstance(config, dict):
        return data
    kind_value = kind.value if isinstance(kind, StepKind) else str(kind)
    if "kind" not in config:
        return {**data, "config": {**config, "kind": kind_value}}
    return data


class StepDescriptor(BaseModel):
    """A step as declared by a template, before variable substitution."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    kind: StepKind
    config: StepConfig
    depends_on: frozenset[str] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def _fill_config_kind(cls, data: Any) -> Any:
        return _inject_kind(data)

    @model_validator(mode="after")
    def _check_kind_matches(self) -> StepDescriptor:
        if StepKind(self.config.kind) != self.kind:
            raise ValueError(
                f"Step {self.name!r} has kind {self.kind.value!r} but its config is {self.config.kind!r}"
            )
        return self


class WorkflowTemplate(BaseModel):
    """Immutable description of a workflow. Registered once, never updated."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    category: str = "general"
    steps: tuple[StepDescriptor, ...]
    declared_variables: frozenset[str] = frozenset()

    def step_names(self) -> list[str]:
        return [step.name for step in self.steps]


class WorkflowStep(BaseModel):
    """A template step bound to one workflow instance."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    kind: StepKind
    config: StepConfig
    depends_on: frozenset[str] = frozenset()
    # Unbound config from the template. Text fields render from it at execution
    # so variables and step references resolve in a single pass.
    template_config: StepConfig | None = Field(default=None, exclude=True, repr=False)

    @model_validator(mode="before")
    @classmethod
    def _fill_config_kind(cls, data: Any) -> Any:
        return _inject_kind(data)


class WorkflowInstance(BaseModel):
    """One execution of a template.

    Created ``pending`` by the instantiator. Only the scheduler mutates it, and
    it is terminal once ``completed`` or ``failed``.
    """

    id: str
    template_id: str
    name: str
    description: str = ""
    steps: list[WorkflowStep]
    variables: dict[str, Any] = Field(default_factory=dict)
    status: WorkflowStatus = WorkflowStatus.PENDING
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    results: dict[str, dict[str, Any]] = Field(default_factory=dict)
    error: str | None = None
    failed_step: str | None = None
