"""Process resource sampling for health classification."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

import psutil

from ai_workflow_orchestrator.metrics.recorder import ResourceSample

logger = logging.getLogger(__name__)

_BYTES_PER_MB = 1048576


class ResourceSampler:
    """Samples CPU and memory usage of a process (the current one by default)."""

    def __init__(
        self,
        process: psutil.Process | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._process = process or psutil.Process()
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        # The first non-blocking cpu_percent() call always reports 0.0; prime it.
        self._process.cpu_percent(interval=None)

    def sample(self) -> ResourceSample:
        cpu = self._process.cpu_percent(interval=None)
        memory_mb = self._process.memory_info().rss / _BYTES_PER_MB
        logger.debug("Sampled process resources", extra={"cpu_percent": cpu, "memory_mb": memory_mb})
        return ResourceSample(timestamp=self._clock(), cpu_percent=cpu, memory_mb=memory_mb)
