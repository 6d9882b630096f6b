"""Per-kind step executors.

Each executor turns one bound :class:`WorkflowStep` plus the results of the
steps that already ran into a result dict. Executors raise on failure; the
scheduler wraps those errors into ``StepExecutionFailed``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ai_workflow_orchestrator.errors import NotificationRejected, UnknownStepKind
from ai_workflow_orchestrator.llm.dispatcher import GenerateOptions, ProviderDispatcher
from ai_workflow_orchestrator.workflow.models import (
    DataTransformConfig,
    NotifyConfig,
    ProviderCallConfig,
    StepKind,
    ValidateConfig,
    WorkflowStep,
)
from ai_workflow_orchestrator.workflow.notifications import (
    LoggingNotificationSink,
    NotificationSink,
)
from ai_workflow_orchestrator.workflow.placeholders import render_results
from ai_workflow_orchestrator.workflow.transforms import TransformRegistry

logger = logging.getLogger(__name__)

VALIDATION_CHECKS = ("accuracy", "tone", "compliance")

# Text that is mostly capital letters reads as shouting.
_SHOUTING_RATIO = 0.7
_SHOUTING_MIN_LETTERS = 20


@dataclass(slots=True)
class StepContext:
    """What an executor may see of its workflow."""

    workflow_id: str
    results: Mapping[str, Any] = field(default_factory=dict)
    variables: Mapping[str, Any] = field(default_factory=dict)


StepExecutor = Callable[[WorkflowStep, StepContext], Awaitable[dict[str, Any]]]


def _render(step: WorkflowStep, field_name: str, context: StepContext) -> str | None:
    # Render from the template text so variable values are not rendered twice.
    source = step.template_config if step.template_config is not None else step.config
    return render_results(getattr(source, field_name), context.results, context.variables)


def _check_accuracy(text: str) -> bool:
    return bool(text.strip())


def _check_tone(text: str) -> bool:
    letters = [c for c in text if c.isalpha()]
    if len(letters) < _SHOUTING_MIN_LETTERS:
        return True
    upper = sum(1 for c in letters if c.isupper())
    return upper / len(letters) <= _SHOUTING_RATIO


def _check_compliance(text: str, banned_terms: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return not any(term.lower() in lowered for term in banned_terms if term)


class StepExecutors:
    """Dispatches steps to the executor registered for their kind.

    Args:
        dispatcher: Used by ``provider_call`` steps.
        transforms: Named functions for ``data_transform`` steps.
        notification_sink: Destination for ``notify`` steps (logs by default).
    """

    def __init__(
        self,
        dispatcher: ProviderDispatcher,
        *,
        transforms: TransformRegistry | None = None,
        notification_sink: NotificationSink | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._transforms = transforms or TransformRegistry()
        self._sink = notification_sink or LoggingNotificationSink()
        self._executors: dict[StepKind, StepExecutor] = {
            StepKind.PROVIDER_CALL: self._provider_call,
            StepKind.DATA_TRANSFORM: self._data_transform,
            StepKind.VALIDATE: self._validate,
            StepKind.NOTIFY: self._notify,
        }

    def register(self, kind: StepKind, executor: StepExecutor) -> None:
        self._executors[kind] = executor

    def unregister(self, kind: StepKind) -> None:
        self._executors.pop(kind, None)

    async def execute(self, step: WorkflowStep, context: StepContext) -> dict[str, Any]:
        executor = self._executors.get(step.kind)
        if executor is None:
            raise UnknownStepKind(step.kind.value)
        logger.debug(
            "Executing step",
            extra={"workflow_id": context.workflow_id, "step": step.name, "kind": step.kind.value},
        )
        return await executor(step, context)

    async def _provider_call(self, step: WorkflowStep, context: StepContext) -> dict[str, Any]:
        config = step.config
        assert isinstance(config, ProviderCallConfig)

        prompt = _render(step, "prompt", context) or ""
        options = GenerateOptions(
            preferred_provider=config.provider,
            model=config.model,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            system_prompt=_render(step, "system_prompt", context),
            task_hint=config.task_hint,
        )
        response = await self._dispatcher.generate(prompt, options)
        return response.model_dump()

    async def _data_transform(self, step: WorkflowStep, context: StepContext) -> dict[str, Any]:
        config = step.config
        assert isinstance(config, DataTransformConfig)

        missing = [name for name in config.sources if name not in context.results]
        if missing:
            raise ValueError(f"Transform sources have no results yet: {', '.join(missing)}")
        sources = {name: context.results[name] for name in config.sources}
        text = _render(step, "input", context) or ""
        return self._transforms.apply(config.transform, text, sources, config.options)

    async def _validate(self, step: WorkflowStep, context: StepContext) -> dict[str, Any]:
        config = step.config
        assert isinstance(config, ValidateConfig)

        text = _render(step, "source", context) or ""
        requested = set(config.checks)
        checks: dict[str, str] = {}
        for name in VALIDATION_CHECKS:
            if name not in requested:
                checks[name] = "skip"
            elif name == "accuracy":
                checks[name] = "pass" if _check_accuracy(text) else "fail"
            elif name == "tone":
                checks[name] = "pass" if _check_tone(text) else "fail"
            else:
                checks[name] = "pass" if _check_compliance(text, config.banned_terms) else "fail"
        for name in sorted(requested - set(VALIDATION_CHECKS)):
            logger.warning(
                "Unknown validation check; skipping",
                extra={"workflow_id": context.workflow_id, "step": step.name, "check": name},
            )
            checks[name] = "skip"

        failed = [name for name, outcome in checks.items() if outcome == "fail"]
        return {"checks": checks, "overall": "fail" if failed else "pass", "failed": failed}

    async def _notify(self, step: WorkflowStep, context: StepContext) -> dict[str, Any]:
        config = step.config
        assert isinstance(config, NotifyConfig)

        payload = {
            "workflow_id": context.workflow_id,
            "step": step.name,
            "channel": config.channel,
            "message": _render(step, "message", context) or "",
            "results": {
                name: context.results[name]
                for name in config.include_results
                if name in context.results
            },
        }
        receipt = await self._sink.send(payload)
        if not receipt.accepted:
            raise NotificationRejected(config.channel, receipt.detail)
        return {
            "accepted": True,
            "timestamp": receipt.timestamp.isoformat(),
            "channel": config.channel,
        }
