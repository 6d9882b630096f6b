"""Abstract base class for LLM providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ProviderCompletion:
    """Raw result of a single provider call."""

    text: str
    model_id: str
    tokens_used: int


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    This interface allows pluggable LLM backends (OpenAI, Anthropic, LLaMA, etc.)
    behind the :class:`~ai_workflow_orchestrator.llm.dispatcher.ProviderDispatcher`.
    """

    provider_id: str = ""
    default_model: str = ""

    def is_available(self) -> bool:
        """Whether the backend is configured and may be selected.

        Providers that can detect an unusable client cheaply should override this.
        """
        return True

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        model: str | None = None,
    ) -> ProviderCompletion:
        """Generate a completion for a prompt.

        Args:
            prompt: The user prompt.
            system_prompt: Optional system instructions.
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature.
            model: Override for the provider's configured model.

        Returns:
            The generated text, the model that produced it, and total tokens used.
        """
        pass

    @abstractmethod
    def count_tokens(self, text: str) -> int:
        """Count the number of tokens in text.

        Args:
            text: Text to count tokens for.

        Returns:
            Number of tokens.
        """
        pass

    async def aclose(self) -> None:
        """Release client resources. Default is a no-op."""
        return None
