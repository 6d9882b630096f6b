"""Factory for creating LLM providers."""

import logging

from ai_workflow_orchestrator.core.config import LLMConfig
from ai_workflow_orchestrator.llm.anthropic_provider import AnthropicProvider
from ai_workflow_orchestrator.llm.llama_provider import LLaMAProvider
from ai_workflow_orchestrator.llm.openai_provider import OpenAIProvider
from ai_workflow_orchestrator.llm.provider import LLMProvider

logger = logging.getLogger(__name__)


class LLMFactory:
    """Factory for creating LLM provider instances."""

    @staticmethod
    def create(provider_id: str, config: LLMConfig) -> LLMProvider:
        """Create an LLM provider based on configuration.

        Args:
            provider_id: One of ``openai``, ``anthropic`` or ``llama``.
            config: LLM configuration.

        Returns:
            Configured LLM provider instance.

        Raises:
            ValueError: If provider type is not supported or not configured.
            ImportError: If the provider's optional dependency is missing.
        """
        logger.info(f"Creating LLM provider: {provider_id}")

        provider_config = config.provider_config(provider_id)
        if provider_id == "openai":
            return OpenAIProvider(provider_config, temperature=config.default_temperature)
        elif provider_id == "anthropic":
            return AnthropicProvider(provider_config, temperature=config.default_temperature)
        elif provider_id == "llama":
            return LLaMAProvider(
                provider_config,
                model_path=config.llama_model_path,
                n_ctx=config.llama_n_ctx,
                n_threads=config.llama_n_threads,
                temperature=config.default_temperature,
            )
        else:
            raise ValueError(f"Unsupported LLM provider: {provider_id}")

    @staticmethod
    def create_configured(config: LLMConfig) -> dict[str, LLMProvider]:
        """Create every provider listed in ``config.providers`` that can be built.

        Providers missing credentials or optional dependencies are skipped, so a
        deployment with only one API key still gets a working dispatcher.

        Returns:
            Providers keyed by id, in registration order.
        """
        providers: dict[str, LLMProvider] = {}
        for provider_id in config.provider_order():
            try:
                providers[provider_id] = LLMFactory.create(provider_id, config)
            except (ValueError, ImportError) as e:
                logger.info(
                    "Skipping LLM provider",
                    extra={"provider_id": provider_id, "reason": str(e)},
                )
        if not providers:
            logger.warning("No LLM providers configured; provider-call steps will fail")
        return providers
