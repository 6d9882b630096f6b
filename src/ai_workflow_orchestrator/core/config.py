"""Core configuration for the orchestrator."""

import logging
from pathlib import Path
from typing import TextIO

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ai_workflow_orchestrator.core.logging import configure_logging

KNOWN_PROVIDERS: tuple[str, ...] = ("openai", "anthropic", "llama")


class ProviderConfig(BaseModel):
    """Resolved settings for a single provider backend.

    ``api_key_ref`` names the environment variable holding the key; the secret
    itself is only read while the SDK client is being constructed.
    """

    provider_id: str
    model_id: str
    max_tokens: int = 4096
    api_key_ref: str | None = None


class LLMConfig(BaseSettings):
    """Configuration for LLM providers."""

    providers: str = Field(
        default="openai,anthropic,llama",
        description="Comma-separated provider registration order",
    )
    default_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature used when a step does not set one",
    )

    # OpenAI settings
    openai_model: str = Field(
        default="gpt-4",
        description="OpenAI model to use",
    )
    openai_max_tokens: int = Field(
        default=4096,
        gt=0,
        description="Default completion budget for OpenAI",
    )
    openai_api_key_ref: str = Field(
        default="OPENAI_API_KEY",
        description="Environment variable holding the OpenAI API key",
    )

    # Anthropic settings
    anthropic_model: str = Field(
        default="claude-3-sonnet-20240229",
        description="Anthropic model to use",
    )
    anthropic_max_tokens: int = Field(
        default=4096,
        gt=0,
        description="Default completion budget for Anthropic",
    )
    anthropic_api_key_ref: str = Field(
        default="ANTHROPIC_API_KEY",
        description="Environment variable holding the Anthropic API key",
    )

    # LLaMA settings
    llama_model_path: Path | None = Field(
        default=None,
        description="Path to LLaMA model file",
    )
    llama_n_ctx: int = Field(
        default=4096,
        gt=0,
        description="Context window size for LLaMA",
    )
    llama_n_threads: int | None = Field(
        default=None,
        description="Number of threads for LLaMA (None = auto)",
    )

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_LLM_",
        env_file=".env",
        extra="ignore",
    )

    def provider_order(self) -> list[str]:
        return [p.strip().lower() for p in self.providers.split(",") if p.strip()]

    def provider_config(self, provider_id: str) -> ProviderConfig:
        """Build the :class:`ProviderConfig` for one of the known providers.

        Raises:
            ValueError: If the provider is not supported.
        """
        if provider_id == "openai":
            return ProviderConfig(
                provider_id="openai",
                model_id=self.openai_model,
                max_tokens=self.openai_max_tokens,
                api_key_ref=self.openai_api_key_ref,
            )
        if provider_id == "anthropic":
            return ProviderConfig(
                provider_id="anthropic",
                model_id=self.anthropic_model,
                max_tokens=self.anthropic_max_tokens,
                api_key_ref=self.anthropic_api_key_ref,
            )
        if provider_id == "llama":
            model_id = self.llama_model_path.stem if self.llama_model_path else "llama"
            return ProviderConfig(provider_id="llama", model_id=model_id, max_tokens=512)
        raise ValueError(f"Unsupported LLM provider: {provider_id}")


class MetricsConfig(BaseSettings):
    """Configuration for call metrics and health sampling."""

    retention_days: float = Field(
        default=7.0,
        gt=0,
        description="How long call metrics are kept before pruning",
    )
    prune_interval_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Period of the background pruning task",
    )
    resource_sampling_enabled: bool = Field(
        default=False,
        description="Periodically sample process CPU/memory for health classification",
    )
    sample_interval_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Period of the resource sampler",
    )
    summary_window_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Default window for metrics summaries",
    )
    critical_latency_ms: float = Field(
        default=10_000.0,
        gt=0,
        description="Calls slower than this are flagged critical",
    )
    critical_error_rate: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Window error rate above which calls are flagged critical",
    )

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_METRICS_",
        env_file=".env",
        extra="ignore",
    )


class WorkflowConfig(BaseSettings):
    """Configuration for template instantiation and scheduling."""

    max_concurrent_steps: int | None = Field(
        default=None,
        gt=0,
        description="Upper bound on concurrently running steps per workflow (None = unbounded)",
    )
    strict_variables: bool = Field(
        default=False,
        description="Fail instantiation when a placeholder cannot be resolved",
    )
    load_builtin_templates: bool = Field(
        default=True,
        description="Register the bundled workflow templates at startup",
    )

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_WORKFLOW_",
        env_file=".env",
        extra="ignore",
    )


class NotificationConfig(BaseSettings):
    """Configuration for the notification sink used by notify steps."""

    webhook_url: str | None = Field(
        default=None,
        description="POST notifications here; log-only sink when unset",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for webhook delivery",
    )

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_NOTIFY_",
        env_file=".env",
        extra="ignore",
    )


class OrchestratorConfig(BaseSettings):
    """Main configuration for the orchestrator."""

    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    json_logs: bool = Field(
        default=True,
        description="Emit structured JSON log lines",
    )

    llm: LLMConfig = Field(
        default_factory=LLMConfig,
        description="LLM configuration",
    )
    metrics: MetricsConfig = Field(
        default_factory=MetricsConfig,
        description="Metrics configuration",
    )
    workflow: WorkflowConfig = Field(
        default_factory=WorkflowConfig,
        description="Workflow configuration",
    )
    notifications: NotificationConfig = Field(
        default_factory=NotificationConfig,
        description="Notification configuration",
    )

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_",
        env_file=".env",
        extra="ignore",
    )

    def setup_logging(self, stream: TextIO | None = None) -> None:
        """Configure logging based on settings."""
        level = "DEBUG" if self.debug else self.log_level
        configure_logging(level, json_output=self.json_logs, stream=stream)

        if self.debug:
            logging.getLogger("ai_workflow_orchestrator").setLevel(logging.DEBUG)
