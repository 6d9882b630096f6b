"""Dependency-aware execution of a workflow instance.

Steps run in rounds. Each round executes every step whose dependencies are all
satisfied, concurrently; the next round starts only after the whole batch has
settled. The first failing step fails the workflow and cancels its unfinished
siblings.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from ai_workflow_orchestrator.errors import (
    CircularOrUnsatisfiedDependency,
    IllegalWorkflowState,
    StepExecutionFailed,
)
from ai_workflow_orchestrator.workflow.executors import StepContext, StepExecutors
from ai_workflow_orchestrator.workflow.models import WorkflowInstance, WorkflowStatus, WorkflowStep

logger = logging.getLogger(__name__)


class DependencyScheduler:
    """Runs workflow instances to completion.

    Args:
        executors: Executes individual steps.
        max_concurrent_steps: Upper bound on steps running at once within a
            workflow. ``None`` means a whole ready batch runs at once.
        clock: Returns the current time (UTC). Injectable for tests.
    """

    def __init__(
        self,
        executors: StepExecutors,
        *,
        max_concurrent_steps: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if max_concurrent_steps is not None and max_concurrent_steps < 1:
            raise ValueError("max_concurrent_steps must be >= 1")
        self._executors = executors
        self.max_concurrent_steps = max_concurrent_steps
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    @staticmethod
    def ready_steps(instance: WorkflowInstance, executed: set[str]) -> list[WorkflowStep]:
        """Unexecuted steps whose every dependency has a result."""
        done_names = {step.name for step in instance.steps if step.id in executed}
        return [
            step
            for step in instance.steps
            if step.id not in executed and step.depends_on <= done_names
        ]

    async def execute(self, instance: WorkflowInstance) -> dict[str, Any]:
        """Execute every step of ``instance`` in dependency order.

        A cancelled execution leaves the instance failed rather than running.

        Returns:
            The results map, keyed by step name.

        Raises:
            IllegalWorkflowState: If the instance is not pending.
            CircularOrUnsatisfiedDependency: If no remaining step can become ready.
            StepExecutionFailed: On the first step that raises.
        """
        if instance.status != WorkflowStatus.PENDING:
            raise IllegalWorkflowState(
                f"Workflow {instance.id!r} is {instance.status.value}; only pending workflows can run"
            )

        instance.status = WorkflowStatus.RUNNING
        instance.started_at = self._clock()
        logger.info(
            "Workflow started",
            extra={"workflow_id": instance.id, "template_id": instance.template_id},
        )

        semaphore = (
            asyncio.Semaphore(self.max_concurrent_steps) if self.max_concurrent_steps else None
        )
        executed: set[str] = set()
        round_number = 0

        try:
            while len(executed) < len(instance.steps):
                ready = self.ready_steps(instance, executed)
                if not ready:
                    blocked = [step.name for step in instance.steps if step.id not in executed]
                    error = CircularOrUnsatisfiedDependency(instance.id, blocked)
                    logger.error(
                        "Workflow blocked",
                        extra={"workflow_id": instance.id, "blocked_steps": error.blocked_steps},
                    )
                    self._fail(instance, str(error), failed_step=None)
                    raise error

                round_number += 1
                logger.debug(
                    "Running step batch",
                    extra={
                        "workflow_id": instance.id,
                        "round": round_number,
                        "steps": [step.name for step in ready],
                    },
                )
                await self._run_batch(instance, ready, executed, semaphore)
        except asyncio.CancelledError:
            logger.warning("Workflow cancelled", extra={"workflow_id": instance.id})
            self._fail(instance, "Workflow execution was cancelled", failed_step=None)
            raise

        instance.status = WorkflowStatus.COMPLETED
        instance.completed_at = self._clock()
        logger.info(
            "Workflow completed",
            extra={
                "workflow_id": instance.id,
                "steps": len(instance.steps),
                "rounds": round_number,
            },
        )
        return instance.results

    async def _run_batch(
        self,
        instance: WorkflowInstance,
        ready: list[WorkflowStep],
        executed: set[str],
        semaphore: asyncio.Semaphore | None,
    ) -> None:
        # Every step in the batch sees the same snapshot of prior results.
        context = StepContext(
            workflow_id=instance.id,
            results=dict(instance.results),
            variables=dict(instance.variables),
        )
        tasks = [
            asyncio.create_task(
                self._run_step(step, context, semaphore), name=f"{instance.id}:{step.name}"
            )
            for step in ready
        ]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        failure: tuple[WorkflowStep, BaseException] | None = None
        for step, task in zip(ready, tasks, strict=True):
            if task.cancelled():
                continue
            exc = task.exception()
            if exc is not None:
                if failure is None:
                    failure = (step, exc)
                continue
            instance.results[step.name] = task.result()
            executed.add(step.id)

        if failure is not None:
            step, exc = failure
            logger.error(
                "Step failed",
                extra={"workflow_id": instance.id, "step": step.name, "error": str(exc)},
                exc_info=exc,
            )
            self._fail(instance, str(exc), failed_step=step.name)
            raise StepExecutionFailed(step.name, exc) from exc

    async def _run_step(
        self,
        step: WorkflowStep,
        context: StepContext,
        semaphore: asyncio.Semaphore | None,
    ) -> dict[str, Any]:
        if semaphore is None:
            return await self._timed(step, context)
        async with semaphore:
            return await self._timed(step, context)

    async def _timed(self, step: WorkflowStep, context: StepContext) -> dict[str, Any]:
        start = time.perf_counter()
        result = await self._executors.execute(step, context)
        logger.info(
            "Step completed",
            extra={
                "workflow_id": context.workflow_id,
                "step": step.name,
                "kind": step.kind.value,
                "duration_ms": round((time.perf_counter() - start) * 1000, 1),
            },
        )
        return result

    def _fail(self, instance: WorkflowInstance, error: str, *, failed_step: str | None) -> None:
        instance.status = WorkflowStatus.FAILED
        instance.error = error
        instance.failed_step = failed_step
        instance.completed_at = self._clock()
