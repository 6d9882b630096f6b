"""Test configuration and fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from ai_workflow_orchestrator.core.config import (
    LLMConfig,
    MetricsConfig,
    OrchestratorConfig,
    WorkflowConfig,
)
from ai_workflow_orchestrator.core.orchestrator import Orchestrator
from ai_workflow_orchestrator.llm.dispatcher import ProviderDispatcher
from ai_workflow_orchestrator.llm.provider import LLMProvider, ProviderCompletion
from ai_workflow_orchestrator.metrics.recorder import MetricsRecorder
from ai_workflow_orchestrator.workflow.notifications import NotificationReceipt


class FakeClock:
    """Settable UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeProvider(LLMProvider):
    """In-memory provider that records every call."""

    def __init__(
        self,
        provider_id: str,
        *,
        model_id: str = "gpt-4",
        tokens: int = 100,
        fail: bool = False,
        available: bool = True,
        delay: float = 0.0,
        reply: Callable[[str], str] | None = None,
    ) -> None:
        self.provider_id = provider_id
        self.default_model = model_id
        self.tokens = tokens
        self.fail = fail
        self.available = available
        self.delay = delay
        self.reply = reply
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def is_available(self) -> bool:
        return self.available

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        model: str | None = None,
    ) -> ProviderCompletion:
        self.calls.append(
            {
                "prompt": prompt,
                "system_prompt": system_prompt,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "model": model,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError(f"{self.provider_id} backend error")
        text = self.reply(prompt) if self.reply else f"{self.provider_id} reply"
        return ProviderCompletion(
            text=text, model_id=model or self.default_model, tokens_used=self.tokens
        )

    def count_tokens(self, text: str) -> int:
        return len(text) // 4

    async def aclose(self) -> None:
        self.closed = True


class RecordingSink:
    """Notification sink that keeps payloads in memory."""

    def __init__(self, *, accept: bool = True, clock: FakeClock | None = None) -> None:
        self.accept = accept
        self.clock = clock
        self.payloads: list[Mapping[str, Any]] = []

    async def send(self, payload: Mapping[str, Any]) -> NotificationReceipt:
        self.payloads.append(payload)
        timestamp = self.clock() if self.clock else datetime.now(tz=UTC)
        return NotificationReceipt(
            accepted=self.accept, timestamp=timestamp, detail="" if self.accept else "queue full"
        )


@pytest.fixture
def clock() -> FakeClock:
    """Provide a controllable clock starting at a fixed instant."""
    return FakeClock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def recorder(clock: FakeClock) -> MetricsRecorder:
    """Provide a metrics recorder driven by the test clock."""
    return MetricsRecorder(clock=clock)


@pytest.fixture
def make_provider() -> type[FakeProvider]:
    """Provide the fake provider class for tests that need custom behavior."""
    return FakeProvider


@pytest.fixture
def make_sink() -> type[RecordingSink]:
    """Provide the recording sink class."""
    return RecordingSink


@pytest.fixture
def fake_providers() -> dict[str, FakeProvider]:
    """Provide an OpenAI-like and an Anthropic-like fake, in that order."""
    return {
        "openai": FakeProvider("openai", model_id="gpt-4", tokens=100),
        "anthropic": FakeProvider("anthropic", model_id="claude-3-sonnet-20240229", tokens=200),
    }


@pytest.fixture
def dispatcher(
    recorder: MetricsRecorder, fake_providers: dict[str, FakeProvider]
) -> ProviderDispatcher:
    """Provide a dispatcher over the fake providers."""
    return ProviderDispatcher(recorder, fake_providers)


@pytest.fixture
def orchestrator_config() -> OrchestratorConfig:
    """Provide a test orchestrator configuration."""
    return OrchestratorConfig(
        log_level="DEBUG",
        debug=True,
        json_logs=False,
        llm=LLMConfig(providers="openai,anthropic"),
        metrics=MetricsConfig(prune_interval_seconds=0.01, sample_interval_seconds=0.01),
        workflow=WorkflowConfig(),
    )


@pytest.fixture
def notification_sink(clock: FakeClock) -> RecordingSink:
    """Provide a sink that accepts every notification."""
    return RecordingSink(clock=clock)


@pytest.fixture
def orchestrator(
    orchestrator_config: OrchestratorConfig,
    fake_providers: dict[str, FakeProvider],
    recorder: MetricsRecorder,
    notification_sink: RecordingSink,
) -> Orchestrator:
    """Provide an orchestrator wired to fakes."""
    return Orchestrator(
        orchestrator_config,
        providers=fake_providers,
        notification_sink=notification_sink,
        recorder=recorder,
    )
