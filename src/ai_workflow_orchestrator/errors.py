"""Error taxonomy for the workflow orchestration engine.

All errors derive from :class:`OrchestratorError` so callers (CLI, HTTP adapter)
can catch the whole family at one boundary.
"""

from __future__ import annotations

from collections.abc import Iterable


class OrchestratorError(Exception):
    """Base class for all orchestrator errors."""


class TemplateNotFound(OrchestratorError, LookupError):
    def __init__(self, template_id: str) -> None:
        super().__init__(f"Workflow template not found: {template_id!r}")
        self.template_id = template_id


class DuplicateTemplate(OrchestratorError):
    def __init__(self, template_id: str) -> None:
        super().__init__(f"Workflow template already registered: {template_id!r}")
        self.template_id = template_id


class DuplicateStepName(OrchestratorError):
    def __init__(self, template_id: str, step_name: str) -> None:
        super().__init__(f"Template {template_id!r} defines step {step_name!r} more than once")
        self.template_id = template_id
        self.step_name = step_name


class InvalidTemplate(OrchestratorError, ValueError):
    """A template violates a structural invariant (self-dependency, unknown dependency)."""


class UnresolvedVariable(OrchestratorError, ValueError):
    def __init__(self, template_id: str, names: Iterable[str]) -> None:
        self.names = sorted(set(names))
        super().__init__(
            f"Unresolved variables for template {template_id!r}: {', '.join(self.names)}"
        )
        self.template_id = template_id


class WorkflowNotFound(OrchestratorError, LookupError):
    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow not found: {workflow_id!r}")
        self.workflow_id = workflow_id


class IllegalWorkflowState(OrchestratorError):
    """Raised when executing a workflow that is not pending."""


class CircularOrUnsatisfiedDependency(OrchestratorError):
    def __init__(self, workflow_id: str, blocked_steps: Iterable[str]) -> None:
        self.blocked_steps = sorted(blocked_steps)
        super().__init__(
            f"Workflow {workflow_id!r} has circular or unsatisfied dependencies; "
            f"blocked steps: {', '.join(self.blocked_steps)}"
        )
        self.workflow_id = workflow_id


class NoProviderAvailable(OrchestratorError):
    def __init__(self, message: str, attempted: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.attempted = list(attempted)


class StepExecutionFailed(OrchestratorError):
    """A step raised while executing. Carries the step name and the underlying cause."""

    def __init__(self, step_name: str, cause: BaseException) -> None:
        super().__init__(f"Step {step_name!r} failed: {cause}")
        self.step_name = step_name
        self.cause = cause


class UnknownStepKind(OrchestratorError):
    def __init__(self, kind: object) -> None:
        super().__init__(f"No executor registered for step kind: {kind!r}")
        self.kind = kind


class NotificationRejected(OrchestratorError):
    def __init__(self, channel: str, reason: str = "") -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(f"Notification sink rejected message on channel {channel!r}{detail}")
        self.channel = channel
