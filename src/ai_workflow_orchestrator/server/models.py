"""Pydantic models for the REST server."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from ai_workflow_orchestrator.workflow.models import (
    StepKind,
    WorkflowInstance,
    WorkflowStatus,
    WorkflowTemplate,
)


class ApiTemplateStep(BaseModel):
    name: str
    kind: StepKind
    depends_on: list[str] = Field(default_factory=list)


class ApiTemplate(BaseModel):
    id: str
    name: str
    description: str
    category: str
    variables: list[str]
    steps: list[ApiTemplateStep]

    @classmethod
    def from_template(cls, template: WorkflowTemplate) -> ApiTemplate:
        return cls(
            id=template.id,
            name=template.name,
            description=template.description,
            category=template.category,
            variables=sorted(template.declared_variables),
            steps=[
                ApiTemplateStep(name=s.name, kind=s.kind, depends_on=sorted(s.depends_on))
                for s in template.steps
            ],
        )


class ApiWorkflow(BaseModel):
    id: str
    template_id: str
    name: str
    status: WorkflowStatus
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    completed_steps: list[str] = Field(default_factory=list)
    failed_step: str | None = None
    error: str | None = None

    @classmethod
    def from_instance(cls, instance: WorkflowInstance) -> ApiWorkflow:
        return cls(
            id=instance.id,
            template_id=instance.template_id,
            name=instance.name,
            status=instance.status,
            created_at=instance.created_at,
            started_at=instance.started_at,
            completed_at=instance.completed_at,
            completed_steps=list(instance.results),
            failed_step=instance.failed_step,
            error=instance.error,
        )
