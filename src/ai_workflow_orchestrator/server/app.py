"""FastAPI app factory.

Read-only: endpoints report health, metrics, templates and workflow status.
Workflows are started through the Python API or the CLI.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, HTTPException, Query

from ai_workflow_orchestrator import __version__
from ai_workflow_orchestrator.core.orchestrator import HealthReport, Orchestrator
from ai_workflow_orchestrator.errors import WorkflowNotFound
from ai_workflow_orchestrator.metrics.recorder import MetricsSummary, UsageReport
from ai_workflow_orchestrator.server.models import ApiTemplate, ApiWorkflow
from ai_workflow_orchestrator.workflow.models import WorkflowInstance

logger = logging.getLogger(__name__)


def create_app(orchestrator: Orchestrator | None = None) -> FastAPI:
    orchestrator = orchestrator or Orchestrator()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        await orchestrator.start()
        try:
            yield
        finally:
            await orchestrator.stop()

    app = FastAPI(
        title="AI Workflow Orchestrator",
        version=__version__,
        description="Read-only REST API over workflow status and provider metrics.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    # Expose the orchestrator for request handlers that want to read it.
    app.state.orchestrator = orchestrator

    @app.get("/api/health", response_model=HealthReport)
    def health() -> HealthReport:
        return orchestrator.health_check()

    @app.get("/api/metrics/summary", response_model=MetricsSummary)
    def metrics_summary(
        window_seconds: float | None = Query(default=None, gt=0, le=31 * 24 * 3600),
    ) -> MetricsSummary:
        window = timedelta(seconds=window_seconds) if window_seconds is not None else None
        return orchestrator.metrics_summary(window)

    @app.get("/api/metrics/usage", response_model=UsageReport)
    def metrics_usage(
        window_seconds: float = Query(default=24 * 3600, gt=0, le=31 * 24 * 3600),
    ) -> UsageReport:
        return orchestrator.usage_report(timedelta(seconds=window_seconds))

    @app.get("/api/templates", response_model=list[ApiTemplate])
    def list_templates() -> list[ApiTemplate]:
        return [ApiTemplate.from_template(t) for t in orchestrator.list_templates()]

    @app.get("/api/workflows", response_model=list[ApiWorkflow])
    def list_running_workflows() -> list[ApiWorkflow]:
        return [ApiWorkflow.from_instance(w) for w in orchestrator.list_running()]

    @app.get("/api/workflows/{workflow_id}", response_model=WorkflowInstance)
    def get_workflow(workflow_id: str) -> WorkflowInstance:
        try:
            return orchestrator.get_status(workflow_id)
        except WorkflowNotFound as e:
            raise HTTPException(status_code=404, detail="Workflow not found") from e

    return app
