"""Metrics package initialization."""

from ai_workflow_orchestrator.metrics.recorder import (
    CallMetric,
    HealthSnapshot,
    HealthStatus,
    MetricsRecorder,
    MetricsSummary,
    ResourceSample,
)
from ai_workflow_orchestrator.metrics.sampler import ResourceSampler

__all__ = [
    "CallMetric",
    "HealthSnapshot",
    "HealthStatus",
    "MetricsRecorder",
    "MetricsSummary",
    "ResourceSample",
    "ResourceSampler",
]
