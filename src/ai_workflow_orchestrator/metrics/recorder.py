"""Per-call metrics, cost accounting and health classification.

The recorder is the single owner of the call-metric list. Provider calls from
many concurrently running workflows report here, so every read and write goes
through one lock. Samples are append-only and time-bounded: :meth:`prune` is
expected to run on a fixed period rather than on every append.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field

from ai_workflow_orchestrator.core.config import MetricsConfig
from ai_workflow_orchestrator.metrics.pricing import MODEL_RATES, TokenRate, estimate_cost

logger = logging.getLogger(__name__)

# Health is classified from the most recent samples only (one minute at the
# default 10 s sampling period).
HEALTH_SAMPLE_COUNT = 6


class HealthStatus(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class CallMetric:
    """One provider call, successful or not."""

    timestamp: datetime
    provider_id: str
    model_id: str
    tokens_used: int
    latency_ms: float
    cost_estimate: float
    success: bool = True
    critical: bool = False


@dataclass(frozen=True, slots=True)
class ResourceSample:
    """Process resource usage at a point in time."""

    timestamp: datetime
    cpu_percent: float
    memory_mb: float


class MetricsSummary(BaseModel):
    total_calls: int
    avg_latency_ms: float
    total_tokens: int
    total_cost: float
    error_rate: float
    health: HealthStatus
    window_seconds: float
    last_updated: datetime


class HealthSnapshot(BaseModel):
    status: HealthStatus
    avg_cpu_percent: float | None = None
    avg_memory_mb: float | None = None
    sample_count: int = 0
    recent_error_rate: float = 0.0
    recent_avg_latency_ms: float = 0.0
    computed_at: datetime


class ProviderUsage(BaseModel):
    requests: int = 0
    failures: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    avg_latency_ms: float = 0.0


class UsageReport(BaseModel):
    start: datetime
    end: datetime
    total_requests: int
    total_tokens: int
    total_cost: float
    providers: dict[str, ProviderUsage] = Field(default_factory=dict)


AlertHandler = Callable[[CallMetric, str], None]


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def classify_health(samples: Sequence[ResourceSample]) -> HealthStatus:
    """Map averaged resource usage onto the four health levels.

    No samples at all is treated as ``warning``: health is unknown, not good.
    """
    if not samples:
        return HealthStatus.WARNING

    avg_memory = sum(s.memory_mb for s in samples) / len(samples)
    avg_cpu = sum(s.cpu_percent for s in samples) / len(samples)

    if avg_memory > 2000 or avg_cpu > 90:
        return HealthStatus.CRITICAL
    if avg_memory > 1000 or avg_cpu > 75:
        return HealthStatus.WARNING
    if avg_memory > 500 or avg_cpu > 50:
        return HealthStatus.GOOD
    return HealthStatus.EXCELLENT


def _error_rate(metrics: Iterable[CallMetric]) -> float:
    items = list(metrics)
    if not items:
        return 0.0
    return sum(1 for m in items if not m.success) / len(items)


class MetricsRecorder:
    """Records provider calls and resource samples; answers summaries.

    Args:
        retention: Default horizon used by :meth:`prune`.
        summary_window: Default window for :meth:`summary`; also the window the
            error rate is computed over when flagging critical calls.
        critical_latency_ms: Latency above which a call is flagged critical.
        critical_error_rate: Window error rate above which a call is flagged critical.
        alert_handler: Called with ``(metric, reason)`` for every critical call.
        rates: Pricing table override.
        clock: Returns the current time (UTC). Injectable for tests.
    """

    def __init__(
        self,
        *,
        retention: timedelta = timedelta(days=7),
        summary_window: timedelta = timedelta(hours=1),
        critical_latency_ms: float = 10_000.0,
        critical_error_rate: float = 0.05,
        alert_handler: AlertHandler | None = None,
        rates: dict[str, TokenRate] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.retention = retention
        self.summary_window = summary_window
        self.critical_latency_ms = critical_latency_ms
        self.critical_error_rate = critical_error_rate
        self._alert_handler = alert_handler
        self._rates = dict(MODEL_RATES if rates is None else rates)
        self._clock = clock or _utc_now

        self._lock = threading.Lock()
        self._calls: list[CallMetric] = []
        self._samples: list[ResourceSample] = []
        self._critical: list[CallMetric] = []

    @classmethod
    def from_config(
        cls, config: MetricsConfig, *, alert_handler: AlertHandler | None = None
    ) -> MetricsRecorder:
        return cls(
            retention=timedelta(days=config.retention_days),
            summary_window=timedelta(seconds=config.summary_window_seconds),
            critical_latency_ms=config.critical_latency_ms,
            critical_error_rate=config.critical_error_rate,
            alert_handler=alert_handler,
        )

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_call(
        self,
        provider_id: str,
        model_id: str,
        tokens_used: int,
        latency_ms: float,
        *,
        success: bool = True,
        timestamp: datetime | None = None,
    ) -> CallMetric:
        """Append a call metric and return it.

        Never raises for an unpriced model: the cost is recorded as 0 and a
        warning is logged.
        """
        cost = estimate_cost(model_id, tokens_used, self._rates)
        if cost is None:
            logger.warning(
                "Unknown model cost; recording zero",
                extra={"provider_id": provider_id, "model_id": model_id},
            )
            cost = 0.0

        ts = timestamp or self._clock()
        with self._lock:
            window_start = ts - self.summary_window
            recent = [m for m in self._calls if m.timestamp > window_start]
            failures = sum(1 for m in recent if not m.success) + (0 if success else 1)
            error_rate = failures / (len(recent) + 1)

            reason = ""
            if latency_ms > self.critical_latency_ms:
                reason = f"latency {latency_ms:.0f}ms exceeds {self.critical_latency_ms:.0f}ms"
            elif error_rate > self.critical_error_rate:
                reason = f"error rate {error_rate:.1%} exceeds {self.critical_error_rate:.1%}"

            metric = CallMetric(
                timestamp=ts,
                provider_id=provider_id,
                model_id=model_id,
                tokens_used=tokens_used,
                latency_ms=latency_ms,
                cost_estimate=cost,
                success=success,
                critical=bool(reason),
            )
            self._calls.append(metric)
            if metric.critical:
                self._critical.append(metric)

        logger.info(
            "Recorded provider call",
            extra={
                "provider_id": provider_id,
                "model_id": model_id,
                "tokens_used": tokens_used,
                "latency_ms": round(latency_ms, 1),
                "cost_estimate": round(cost, 6),
                "success": success,
            },
        )

        if metric.critical:
            self._raise_alert(metric, reason)

        return metric

    def record_resource_sample(self, sample: ResourceSample) -> None:
        with self._lock:
            self._samples.append(sample)
        if sample.memory_mb > 1000:
            logger.warning(
                "High memory usage sampled",
                extra={"memory_mb": round(sample.memory_mb, 1), "cpu_percent": sample.cpu_percent},
            )

    def _raise_alert(self, metric: CallMetric, reason: str) -> None:
        logger.warning(
            "Critical provider call metric",
            extra={"provider_id": metric.provider_id, "model_id": metric.model_id, "reason": reason},
        )
        if self._alert_handler is None:
            return
        try:
            self._alert_handler(metric, reason)
        except Exception:
            logger.exception("Metrics alert handler failed")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def calls(self, since: datetime | None = None) -> list[CallMetric]:
        """Return a copy of recorded calls, optionally only those newer than ``since``."""
        with self._lock:
            if since is None:
                return list(self._calls)
            return [m for m in self._calls if m.timestamp > since]

    def critical_calls(self) -> list[CallMetric]:
        with self._lock:
            return list(self._critical)

    def resource_samples(self) -> list[ResourceSample]:
        with self._lock:
            return list(self._samples)

    def summary(self, window: timedelta | None = None) -> MetricsSummary:
        """Aggregate calls newer than ``now - window``."""
        if window is None:
            window = self.summary_window
        now = self._clock()
        recent = self.calls(since=now - window)

        total = len(recent)
        return MetricsSummary(
            total_calls=total,
            avg_latency_ms=(sum(m.latency_ms for m in recent) / total) if total else 0.0,
            total_tokens=sum(m.tokens_used for m in recent),
            total_cost=sum(m.cost_estimate for m in recent),
            error_rate=_error_rate(recent),
            health=self.health(),
            window_seconds=window.total_seconds(),
            last_updated=now,
        )

    def health(self) -> HealthStatus:
        with self._lock:
            samples = self._samples[-HEALTH_SAMPLE_COUNT:]
        return classify_health(samples)

    def health_snapshot(self, window: timedelta | None = None) -> HealthSnapshot:
        """Derived view of recent load; computed on demand, never stored."""
        if window is None:
            window = self.summary_window
        now = self._clock()
        with self._lock:
            samples = self._samples[-HEALTH_SAMPLE_COUNT:]
        recent = self.calls(since=now - window)

        count = len(samples)
        return HealthSnapshot(
            status=classify_health(samples),
            avg_cpu_percent=(sum(s.cpu_percent for s in samples) / count) if count else None,
            avg_memory_mb=(sum(s.memory_mb for s in samples) / count) if count else None,
            sample_count=count,
            recent_error_rate=_error_rate(recent),
            recent_avg_latency_ms=(
                sum(m.latency_ms for m in recent) / len(recent) if recent else 0.0
            ),
            computed_at=now,
        )

    def usage_report(self, window: timedelta = timedelta(days=1)) -> UsageReport:
        """Per-provider request, token and cost totals over ``window``."""
        end = self._clock()
        start = end - window
        recent = [m for m in self.calls() if m.timestamp >= start]

        providers: dict[str, ProviderUsage] = {}
        latency_totals: dict[str, float] = {}
        for m in recent:
            usage = providers.setdefault(m.provider_id, ProviderUsage())
            usage.requests += 1
            usage.failures += 0 if m.success else 1
            usage.total_tokens += m.tokens_used
            usage.total_cost += m.cost_estimate
            latency_totals[m.provider_id] = latency_totals.get(m.provider_id, 0.0) + m.latency_ms

        for provider_id, usage in providers.items():
            usage.avg_latency_ms = latency_totals[provider_id] / usage.requests

        return UsageReport(
            start=start,
            end=end,
            total_requests=len(recent),
            total_tokens=sum(m.tokens_used for m in recent),
            total_cost=sum(m.cost_estimate for m in recent),
            providers=providers,
        )

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    def prune(self, retention: timedelta | None = None) -> int:
        """Drop calls and samples older than the retention horizon.

        Returns:
            Number of entries removed.
        """
        if retention is None:
            retention = self.retention
        cutoff = self._clock() - retention
        with self._lock:
            before = len(self._calls) + len(self._samples)
            self._calls = [m for m in self._calls if m.timestamp >= cutoff]
            self._samples = [s for s in self._samples if s.timestamp >= cutoff]
            self._critical = [m for m in self._critical if m.timestamp >= cutoff]
            removed = before - (len(self._calls) + len(self._samples))

        if removed:
            logger.info("Pruned old metrics", extra={"removed": removed, "cutoff": cutoff.isoformat()})
        return removed

