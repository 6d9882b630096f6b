"""Core package initialization."""

from ai_workflow_orchestrator.core.config import OrchestratorConfig
from ai_workflow_orchestrator.core.orchestrator import HealthReport, Orchestrator

__all__ = [
    "HealthReport",
    "Orchestrator",
    "OrchestratorConfig",
]
