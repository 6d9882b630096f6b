"""Provider selection, single fallback and response normalization.

Selection order for a call:

1. ``options.preferred_provider`` when it is registered and available
2. the static default for ``options.task_hint``
3. the first available provider in registration order

If the selected provider raises, exactly one fallback is attempted on the next
available provider (registration order, wrapping around). There are no retries
of the same backend and no backoff. Every attempt is reported to the
:class:`~ai_workflow_orchestrator.metrics.recorder.MetricsRecorder`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from enum import Enum

from pydantic import BaseModel

from ai_workflow_orchestrator.errors import NoProviderAvailable
from ai_workflow_orchestrator.llm.provider import LLMProvider
from ai_workflow_orchestrator.metrics.recorder import MetricsRecorder

logger = logging.getLogger(__name__)


class TaskHint(str, Enum):
    GENERAL = "general"
    CREATIVE = "creative"
    ANALYTICAL = "analytical"
    CODING = "coding"


TASK_HINT_DEFAULTS: dict[TaskHint, str] = {
    TaskHint.CREATIVE: "anthropic",
    TaskHint.ANALYTICAL: "openai",
    TaskHint.CODING: "openai",
    TaskHint.GENERAL: "openai",
}


class GenerateOptions(BaseModel):
    preferred_provider: str | None = None
    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    system_prompt: str | None = None
    task_hint: TaskHint | None = None


class NormalizedResponse(BaseModel):
    content: str
    provider_id: str
    model_id: str
    tokens_used: int
    latency_ms: float


class ProviderDispatcher:
    """Uniform ``generate`` over any number of registered provider backends.

    Holds no per-call state; the only mutable state is the provider registry.
    """

    def __init__(
        self,
        recorder: MetricsRecorder,
        providers: Mapping[str, LLMProvider] | None = None,
        task_hint_defaults: Mapping[TaskHint, str] | None = None,
    ) -> None:
        self._recorder = recorder
        self._providers: dict[str, LLMProvider] = dict(providers or {})
        self._task_hint_defaults = dict(task_hint_defaults or TASK_HINT_DEFAULTS)

    @property
    def provider_ids(self) -> list[str]:
        return list(self._providers)

    def register(self, provider_id: str, provider: LLMProvider) -> None:
        """Add a backend. Registration order drives the default and fallback choice."""
        if provider_id in self._providers:
            raise ValueError(f"Provider already registered: {provider_id}")
        self._providers[provider_id] = provider
        logger.info("Registered LLM provider", extra={"provider_id": provider_id})

    def provider_status(self) -> dict[str, bool]:
        return {pid: self._is_available(pid) for pid in self._providers}

    def _is_available(self, provider_id: str) -> bool:
        provider = self._providers.get(provider_id)
        if provider is None:
            return False
        try:
            return provider.is_available()
        except Exception:
            logger.exception("Provider availability check failed", extra={"provider_id": provider_id})
            return False

    def select(self, options: GenerateOptions) -> str | None:
        """Choose the provider for a call, or None if nothing is available."""
        preferred = options.preferred_provider
        if preferred and self._is_available(preferred):
            return preferred
        if preferred:
            logger.info(
                "Preferred provider unavailable; using default selection",
                extra={"provider_id": preferred},
            )

        if options.task_hint is not None:
            hinted = self._task_hint_defaults.get(options.task_hint)
            if hinted and self._is_available(hinted):
                return hinted

        for provider_id in self._providers:
            if self._is_available(provider_id):
                return provider_id
        return None

    def _fallback_for(self, selected: str) -> str | None:
        order = list(self._providers)
        start = order.index(selected) if selected in order else -1
        for offset in range(1, len(order)):
            candidate = order[(start + offset) % len(order)]
            if candidate != selected and self._is_available(candidate):
                return candidate
        return None

    async def generate(self, prompt: str, options: GenerateOptions | None = None) -> NormalizedResponse:
        """Run one generation, with at most one fallback.

        Raises:
            NoProviderAvailable: If nothing is configured, or both the selected
                provider and its fallback failed.
        """
        options = options or GenerateOptions()
        selected = self.select(options)
        if selected is None:
            raise NoProviderAvailable("No LLM provider is configured or available")

        try:
            return await self._call(selected, prompt, options, model=options.model)
        except Exception as e:
            primary_error: Exception = e

        fallback = self._fallback_for(selected)
        logger.warning(
            "Provider call failed",
            extra={"provider_id": selected, "fallback": fallback, "error": str(primary_error)},
        )
        if fallback is None:
            raise NoProviderAvailable(
                f"Provider {selected!r} failed and no fallback provider is available",
                attempted=[selected],
            ) from primary_error

        try:
            # The requested model belongs to the primary provider; the fallback uses its own.
            return await self._call(fallback, prompt, options, model=None)
        except Exception as fallback_error:
            raise NoProviderAvailable(
                f"Providers {selected!r} and {fallback!r} both failed",
                attempted=[selected, fallback],
            ) from fallback_error

    async def _call(
        self, provider_id: str, prompt: str, options: GenerateOptions, *, model: str | None
    ) -> NormalizedResponse:
        provider = self._providers[provider_id]
        requested_model = model or provider.default_model or provider_id

        start = time.perf_counter()
        try:
            completion = await provider.generate(
                prompt,
                system_prompt=options.system_prompt,
                max_tokens=options.max_tokens,
                temperature=options.temperature,
                model=model,
            )
        except (Exception, asyncio.CancelledError):
            # Cancelled calls still count as failed attempts.
            latency_ms = (time.perf_counter() - start) * 1000
            self._recorder.record_call(
                provider_id, requested_model, 0, latency_ms, success=False
            )
            raise

        latency_ms = (time.perf_counter() - start) * 1000
        model_id = completion.model_id or requested_model
        self._recorder.record_call(provider_id, model_id, completion.tokens_used, latency_ms)

        return NormalizedResponse(
            content=completion.text,
            provider_id=provider_id,
            model_id=model_id,
            tokens_used=completion.tokens_used,
            latency_ms=latency_ms,
        )

    async def aclose(self) -> None:
        for provider in self._providers.values():
            await provider.aclose()
