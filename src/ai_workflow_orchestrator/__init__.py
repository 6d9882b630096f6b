"""AI Workflow Orchestrator.

Runs multi-step workflows whose steps call pluggable language-model providers,
transform data, validate results or send notifications. Steps execute in
dependency order, with independent steps running concurrently, and every
provider call is recorded for latency, token and cost reporting.
"""

__version__ = "0.1.0"

from ai_workflow_orchestrator.core.config import OrchestratorConfig
from ai_workflow_orchestrator.core.orchestrator import Orchestrator

__all__ = ["__version__", "Orchestrator", "OrchestratorConfig"]
