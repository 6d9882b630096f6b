"""In-memory tracking of workflow instances.

Instances live only for the lifetime of the process; nothing is persisted.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from ai_workflow_orchestrator.errors import WorkflowNotFound
from ai_workflow_orchestrator.workflow.models import WorkflowInstance, WorkflowStatus


@dataclass
class WorkflowStore:
    _instances: dict[str, WorkflowInstance] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def add(self, instance: WorkflowInstance) -> None:
        with self._lock:
            if instance.id in self._instances:
                raise ValueError(f"Workflow already tracked: {instance.id}")
            self._instances[instance.id] = instance

    def get(self, workflow_id: str) -> WorkflowInstance:
        """Return the live instance (mutated by the scheduler while it runs)."""
        with self._lock:
            instance = self._instances.get(workflow_id)
        if instance is None:
            raise WorkflowNotFound(workflow_id)
        return instance

    def snapshot(self, workflow_id: str) -> WorkflowInstance:
        """Return a deep copy that later execution will not change."""
        with self._lock:
            instance = self._instances.get(workflow_id)
            if instance is None:
                raise WorkflowNotFound(workflow_id)
            return instance.model_copy(deep=True)

    def list(self, status: WorkflowStatus | None = None) -> list[WorkflowInstance]:
        with self._lock:
            return [
                instance.model_copy(deep=True)
                for instance in self._instances.values()
                if status is None or instance.status == status
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._instances)
