"""Main orchestrator implementation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import timedelta
from typing import Any

from pydantic import BaseModel

from ai_workflow_orchestrator.core.config import OrchestratorConfig
from ai_workflow_orchestrator.llm.dispatcher import ProviderDispatcher
from ai_workflow_orchestrator.llm.factory import LLMFactory
from ai_workflow_orchestrator.llm.provider import LLMProvider
from ai_workflow_orchestrator.metrics.recorder import (
    AlertHandler,
    HealthSnapshot,
    HealthStatus,
    MetricsRecorder,
    MetricsSummary,
    UsageReport,
)
from ai_workflow_orchestrator.metrics.sampler import ResourceSampler
from ai_workflow_orchestrator.workflow.executors import StepExecutors
from ai_workflow_orchestrator.workflow.instantiator import WorkflowInstantiator
from ai_workflow_orchestrator.workflow.models import (
    WorkflowInstance,
    WorkflowStatus,
    WorkflowTemplate,
)
from ai_workflow_orchestrator.workflow.notifications import (
    LoggingNotificationSink,
    NotificationSink,
    WebhookNotificationSink,
)
from ai_workflow_orchestrator.workflow.scheduler import DependencyScheduler
from ai_workflow_orchestrator.workflow.store import WorkflowStore
from ai_workflow_orchestrator.workflow.templates import TemplateRegistry, builtin_templates

logger = logging.getLogger(__name__)


class HealthReport(BaseModel):
    status: HealthStatus
    providers: dict[str, bool]
    templates: int
    running_workflows: int
    metrics: HealthSnapshot
    background_tasks: bool


class Orchestrator:
    """Control surface for templates, workflow execution and metrics.

    Wires the template registry, instantiator, scheduler, step executors,
    provider dispatcher and metrics recorder together. Components are built from
    ``config`` unless injected.

    Args:
        config: Configuration object. If None, loads from environment.
        providers: Provider backends keyed by id. If None, built from ``config.llm``.
        notification_sink: Destination for ``notify`` steps. If None, a webhook
            sink when ``config.notifications.webhook_url`` is set, else the log.
        recorder: Metrics recorder. If None, built from ``config.metrics``.
        alert_handler: Receives critical call metrics (ignored with ``recorder``).
        resource_sampler_factory: Builds the sampler used by :meth:`start` when
            resource sampling is enabled.
    """

    def __init__(
        self,
        config: OrchestratorConfig | None = None,
        *,
        providers: Mapping[str, LLMProvider] | None = None,
        notification_sink: NotificationSink | None = None,
        recorder: MetricsRecorder | None = None,
        alert_handler: AlertHandler | None = None,
        resource_sampler_factory: Callable[[], ResourceSampler] | None = None,
    ) -> None:
        self.config = config or OrchestratorConfig()

        logger.info("Initializing AI workflow orchestrator")

        self.recorder = recorder or MetricsRecorder.from_config(
            self.config.metrics, alert_handler=alert_handler
        )
        if providers is None:
            providers = LLMFactory.create_configured(self.config.llm)
        self.dispatcher = ProviderDispatcher(self.recorder, providers)

        self.templates = TemplateRegistry()
        if self.config.workflow.load_builtin_templates:
            for template in builtin_templates():
                self.templates.register(template)

        self.instantiator = WorkflowInstantiator(
            self.templates, strict_variables=self.config.workflow.strict_variables
        )

        self._webhook_sink: WebhookNotificationSink | None = None
        if notification_sink is None:
            if self.config.notifications.webhook_url:
                self._webhook_sink = WebhookNotificationSink(
                    self.config.notifications.webhook_url,
                    timeout_seconds=self.config.notifications.timeout_seconds,
                )
                notification_sink = self._webhook_sink
            else:
                notification_sink = LoggingNotificationSink()

        self.executors = StepExecutors(self.dispatcher, notification_sink=notification_sink)
        self.scheduler = DependencyScheduler(
            self.executors, max_concurrent_steps=self.config.workflow.max_concurrent_steps
        )
        self.store = WorkflowStore()

        self._resource_sampler_factory = resource_sampler_factory or ResourceSampler
        self._background: list[asyncio.Task[None]] = []

        logger.info(
            "Orchestrator initialized",
            extra={
                "providers": self.dispatcher.provider_ids,
                "templates": len(self.templates),
            },
        )

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def register_template(self, template: WorkflowTemplate) -> None:
        self.templates.register(template)

    def get_template(self, template_id: str) -> WorkflowTemplate:
        return self.templates.get(template_id)

    def list_templates(self) -> list[WorkflowTemplate]:
        return self.templates.list()

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def instantiate(
        self,
        template_id: str,
        variables: Mapping[str, Any] | None = None,
        *,
        strict: bool | None = None,
    ) -> WorkflowInstance:
        """Create a pending workflow and start tracking it.

        Returns:
            A snapshot of the new instance; use its ``id`` with :meth:`execute`.
        """
        instance = self.instantiator.instantiate(template_id, variables, strict=strict)
        self.store.add(instance)
        return instance.model_copy(deep=True)

    async def execute(self, workflow_id: str) -> dict[str, Any]:
        """Run a pending workflow to completion and return its results.

        The workflow remains queryable through :meth:`get_status` after a failure.
        """
        instance = self.store.get(workflow_id)
        results = await self.scheduler.execute(instance)
        return dict(results)

    async def run(
        self,
        template_id: str,
        variables: Mapping[str, Any] | None = None,
        *,
        strict: bool | None = None,
    ) -> WorkflowInstance:
        """Instantiate and execute in one call; returns the finished instance."""
        instance = self.instantiate(template_id, variables, strict=strict)
        await self.execute(instance.id)
        return self.get_status(instance.id)

    def get_status(self, workflow_id: str) -> WorkflowInstance:
        return self.store.snapshot(workflow_id)

    def list_workflows(self, status: WorkflowStatus | None = None) -> list[WorkflowInstance]:
        return self.store.list(status)

    def list_running(self) -> list[WorkflowInstance]:
        return self.store.list(WorkflowStatus.RUNNING)

    # ------------------------------------------------------------------
    # Metrics and health
    # ------------------------------------------------------------------

    def metrics_summary(self, window: timedelta | None = None) -> MetricsSummary:
        return self.recorder.summary(window)

    def usage_report(self, window: timedelta = timedelta(days=1)) -> UsageReport:
        return self.recorder.usage_report(window)

    def provider_status(self) -> dict[str, bool]:
        return self.dispatcher.provider_status()

    def health_check(self) -> HealthReport:
        snapshot = self.recorder.health_snapshot()
        return HealthReport(
            status=snapshot.status,
            providers=self.provider_status(),
            templates=len(self.templates),
            running_workflows=len(self.list_running()),
            metrics=snapshot,
            background_tasks=self.is_started,
        )

    # ------------------------------------------------------------------
    # Background maintenance
    # ------------------------------------------------------------------

    @property
    def is_started(self) -> bool:
        return any(not task.done() for task in self._background)

    async def start(self) -> None:
        """Start periodic metric pruning and, when enabled, resource sampling."""
        if self.is_started:
            logger.warning("Orchestrator background tasks already running")
            return

        metrics_config = self.config.metrics
        self._background = [
            asyncio.create_task(
                self._periodic("prune", metrics_config.prune_interval_seconds, self.recorder.prune),
                name="metrics-prune",
            )
        ]

        if metrics_config.resource_sampling_enabled:
            sampler = self._resource_sampler_factory()
            self.recorder.record_resource_sample(sampler.sample())
            self._background.append(
                asyncio.create_task(
                    self._periodic(
                        "resource-sample",
                        metrics_config.sample_interval_seconds,
                        lambda: self.recorder.record_resource_sample(sampler.sample()),
                    ),
                    name="resource-sampler",
                )
            )

        logger.info(
            "Orchestrator background tasks started",
            extra={"tasks": [task.get_name() for task in self._background]},
        )

    async def stop(self) -> None:
        tasks, self._background = self._background, []
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Orchestrator background tasks stopped")

    async def aclose(self) -> None:
        await self.stop()
        await self.dispatcher.aclose()
        if self._webhook_sink is not None:
            self._webhook_sink.close()

    async def __aenter__(self) -> Orchestrator:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @staticmethod
    async def _periodic(name: str, interval_seconds: float, action: Callable[[], object]) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                action()
            except Exception:
                # Keep the loop alive; the next tick retries.
                logger.exception("Background task failed", extra={"task": name})
