"""FastAPI server adapter for ai-workflow-orchestrator.

Exposes the health-check and reporting surface of
:class:`~ai_workflow_orchestrator.core.orchestrator.Orchestrator` over HTTP.
"""

from __future__ import annotations

__all__ = ["create_app"]

from ai_workflow_orchestrator.server.app import create_app
