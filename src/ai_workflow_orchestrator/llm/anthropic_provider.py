"""Anthropic LLM provider implementation."""

import logging
import os

from anthropic import AsyncAnthropic

from ai_workflow_orchestrator.core.config import ProviderConfig
from ai_workflow_orchestrator.llm.provider import LLMProvider, ProviderCompletion

logger = logging.getLogger(__name__)

# The Messages API accepts temperatures in [0, 1].
MAX_TEMPERATURE = 1.0


class AnthropicProvider(LLMProvider):
    """Anthropic Messages API provider implementation."""

    provider_id = "anthropic"

    def __init__(self, config: ProviderConfig, temperature: float = 0.7) -> None:
        """Initialize the Anthropic provider.

        Args:
            config: Provider configuration. ``api_key_ref`` names the environment
                variable that holds the key.
            temperature: Default sampling temperature.

        Raises:
            ValueError: If the API key is not available.
        """
        api_key = os.environ.get(config.api_key_ref or "", "")
        if not api_key:
            raise ValueError(f"Anthropic API key is required (set {config.api_key_ref})")

        self.config = config
        self.client = AsyncAnthropic(api_key=api_key)
        self.default_model = config.model_id
        self.temperature = temperature

        logger.info(f"Anthropic provider initialized with model: {self.default_model}")

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        model: str | None = None,
    ) -> ProviderCompletion:
        temp = temperature if temperature is not None else self.temperature
        temp = min(temp, MAX_TEMPERATURE)

        kwargs: dict[str, object] = {
            "model": model or self.default_model,
            "max_tokens": max_tokens or self.config.max_tokens,
            "temperature": temp,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        logger.debug(f"Generating completion for prompt: {prompt[:100]}...")

        message = await self.client.messages.create(**kwargs)  # type: ignore[arg-type]

        text = "".join(block.text for block in message.content if hasattr(block, "text"))
        tokens = message.usage.input_tokens + message.usage.output_tokens
        logger.debug(f"Generated {len(text)} characters")

        return ProviderCompletion(text=text, model_id=message.model, tokens_used=tokens)

    def count_tokens(self, text: str) -> int:
        # Same rough approximation as the OpenAI provider.
        return len(text) // 4

    async def aclose(self) -> None:
        await self.client.close()
