"""OpenAI LLM provider implementation."""

import logging
import os

from openai import AsyncOpenAI

from ai_workflow_orchestrator.core.config import ProviderConfig
from ai_workflow_orchestrator.llm.provider import LLMProvider, ProviderCompletion

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """OpenAI API provider implementation."""

    provider_id = "openai"

    def __init__(self, config: ProviderConfig, temperature: float = 0.7) -> None:
        """Initialize the OpenAI provider.

        Args:
            config: Provider configuration. ``api_key_ref`` names the environment
                variable that holds the key.
            temperature: Default sampling temperature.

        Raises:
            ValueError: If the API key is not available.
        """
        api_key = os.environ.get(config.api_key_ref or "", "")
        if not api_key:
            raise ValueError(f"OpenAI API key is required (set {config.api_key_ref})")

        self.config = config
        self.client = AsyncOpenAI(api_key=api_key)
        self.default_model = config.model_id
        self.temperature = temperature

        logger.info(f"OpenAI provider initialized with model: {self.default_model}")

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        model: str | None = None,
    ) -> ProviderCompletion:
        """Generate a chat completion using the OpenAI API.

        Args:
            prompt: The user prompt.
            system_prompt: Optional system message.
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature.
            model: Model override.

        Returns:
            Normalized completion.
        """
        temp = temperature if temperature is not None else self.temperature

        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        logger.debug(f"Generating completion for prompt: {prompt[:100]}...")

        response = await self.client.chat.completions.create(
            model=model or self.default_model,
            messages=messages,  # type: ignore
            max_tokens=max_tokens or self.config.max_tokens,
            temperature=temp,
        )

        content = response.choices[0].message.content or ""
        tokens = response.usage.total_tokens if response.usage else 0
        logger.debug(f"Generated {len(content)} characters")

        return ProviderCompletion(text=content, model_id=response.model, tokens_used=tokens)

    def count_tokens(self, text: str) -> int:
        """Count tokens using a simple approximation.

        Note:
            This is a rough approximation. For accurate counts,
            use tiktoken library with the specific model's encoding.
        """
        # Rough approximation: 1 token ≈ 4 characters
        return len(text) // 4

    async def aclose(self) -> None:
        await self.client.close()
