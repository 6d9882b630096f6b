"""Local LLaMA LLM provider implementation."""

import asyncio
import logging
from pathlib import Path
from typing import Any

from ai_workflow_orchestrator.core.config import ProviderConfig
from ai_workflow_orchestrator.llm.provider import LLMProvider, ProviderCompletion

logger = logging.getLogger(__name__)


class LLaMAProvider(LLMProvider):
    """Local LLaMA model provider implementation.

    Requires llama-cpp-python to be installed:
        pip install "ai-workflow-orchestrator[llama]"

    llama.cpp inference is blocking, so calls run in a worker thread to keep the
    event loop free for other steps of the same batch.
    """

    provider_id = "llama"

    def __init__(
        self,
        config: ProviderConfig,
        model_path: Path | None,
        n_ctx: int = 4096,
        n_threads: int | None = None,
        temperature: float = 0.7,
    ) -> None:
        """Initialize the LLaMA provider.

        Args:
            config: Provider configuration.
            model_path: Path to the GGUF model file.
            n_ctx: Context window size.
            n_threads: Number of threads (None = auto).
            temperature: Default sampling temperature.

        Raises:
            ValueError: If model path is not provided.
            ImportError: If llama-cpp-python is not installed.
        """
        if not model_path:
            raise ValueError("LLaMA model path is required")

        try:
            from llama_cpp import Llama
        except ImportError as e:
            raise ImportError(
                "llama-cpp-python is required for LLaMA provider. "
                'Install it with: pip install "ai-workflow-orchestrator[llama]"'
            ) from e

        self.config = config
        self.default_model = config.model_id
        self.temperature = temperature

        logger.info(f"Loading LLaMA model from: {model_path}")

        self.llm = Llama(
            model_path=str(model_path),
            n_ctx=n_ctx,
            n_threads=n_threads,
            verbose=False,
        )

        logger.info("LLaMA model loaded successfully")

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        model: str | None = None,
    ) -> ProviderCompletion:
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        logger.debug(f"Generating chat completion with {len(messages)} messages")

        # The local model is fixed at load time; ``model`` overrides are ignored.
        result: dict[str, Any] = await asyncio.to_thread(
            self.llm.create_chat_completion,
            messages=messages,
            max_tokens=max_tokens or self.config.max_tokens,
            temperature=temperature if temperature is not None else self.temperature,
        )

        content = result["choices"][0]["message"]["content"] or ""
        usage = result.get("usage") or {}
        tokens = int(usage.get("total_tokens", 0))
        logger.debug(f"Generated {len(content)} characters")

        return ProviderCompletion(text=content, model_id=self.default_model, tokens_used=tokens)

    def count_tokens(self, text: str) -> int:
        """Count tokens using LLaMA tokenizer."""
        tokens = self.llm.tokenize(text.encode("utf-8"))
        return len(tokens)
