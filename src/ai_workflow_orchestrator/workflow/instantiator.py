"""Binds templates to caller variables, producing pending workflow instances."""

from __future__ import annotations

import itertools
import logging
import threading
import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from ai_workflow_orchestrator.errors import UnresolvedVariable
from ai_workflow_orchestrator.workflow.models import (
    WorkflowInstance,
    WorkflowStep,
    WorkflowTemplate,
)
from ai_workflow_orchestrator.workflow.placeholders import (
    find_placeholders,
    is_step_reference,
    substitute,
)
from ai_workflow_orchestrator.workflow.templates import TemplateRegistry

logger = logging.getLogger(__name__)


class WorkflowInstantiator:
    """Creates :class:`WorkflowInstance` objects from registered templates.

    Args:
        registry: Source of templates.
        strict_variables: Reject placeholders that are neither a supplied
            variable nor a reference to a step of the same template, and
            declared variables that were not supplied.
        clock: Returns the current time (UTC). Injectable for tests.
    """

    def __init__(
        self,
        registry: TemplateRegistry,
        *,
        strict_variables: bool = False,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._registry = registry
        self.strict_variables = strict_variables
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._sequence = itertools.count(1)
        self._sequence_lock = threading.Lock()

    def _next_workflow_id(self, template_id: str) -> str:
        with self._sequence_lock:
            sequence = next(self._sequence)
        return f"{template_id}-{time.time_ns()}-{sequence}"

    def instantiate(
        self,
        template_id: str,
        variables: Mapping[str, Any] | None = None,
        *,
        strict: bool | None = None,
    ) -> WorkflowInstance:
        """Bind ``variables`` into a fresh, pending instance of ``template_id``.

        Raises:
            TemplateNotFound: If the template is not registered.
            UnresolvedVariable: In strict mode, for placeholders that resolve to
                neither a variable nor a step result, or for missing declared
                variables.
        """
        template = self._registry.get(template_id)
        variables = dict(variables or {})
        strict = self.strict_variables if strict is None else strict

        if strict:
            self._check_unresolved(template, variables)

        workflow_id = self._next_workflow_id(template.id)
        steps = [
            WorkflowStep.model_validate(
                {
                    "id": f"{workflow_id}-step-{index}",
                    "name": descriptor.name,
                    "kind": descriptor.kind,
                    "config": substitute(descriptor.config.model_dump(), variables),
                    "template_config": descriptor.config.model_dump(),
                    "depends_on": descriptor.depends_on,
                }
            )
            for index, descriptor in enumerate(template.steps)
        ]

        instance = WorkflowInstance(
            id=workflow_id,
            template_id=template.id,
            name=template.name,
            description=template.description,
            steps=steps,
            variables=variables,
            created_at=self._clock(),
        )
        logger.info(
            "Instantiated workflow",
            extra={"workflow_id": workflow_id, "template_id": template.id, "steps": len(steps)},
        )
        return instance

    def _check_unresolved(self, template: WorkflowTemplate, variables: Mapping[str, Any]) -> None:
        step_names = set(template.step_names())
        unresolved: set[str] = set(template.declared_variables) - set(variables)
        for descriptor in template.steps:
            for name in find_placeholders(descriptor.config.model_dump()):
                if name in variables or is_step_reference(name, step_names):
                    continue
                unresolved.add(name)
        if unresolved:
            raise UnresolvedVariable(template.id, unresolved)
