"""Unit tests for LLM providers and the provider factory."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

import ai_workflow_orchestrator.llm.anthropic_provider as anthropic_module
import ai_workflow_orchestrator.llm.openai_provider as openai_module
from ai_workflow_orchestrator.core.config import LLMConfig, ProviderConfig
from ai_workflow_orchestrator.llm.anthropic_provider import AnthropicProvider
from ai_workflow_orchestrator.llm.factory import LLMFactory
from ai_workflow_orchestrator.llm.openai_provider import OpenAIProvider


@pytest.fixture
def openai_client(monkeypatch: pytest.MonkeyPatch) -> Mock:
    client = Mock()
    client.chat.completions.create = AsyncMock(
        return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="hello"))],
            usage=SimpleNamespace(total_tokens=42),
            model="gpt-4-0613",
        )
    )
    client.close = AsyncMock()
    monkeypatch.setattr(openai_module, "AsyncOpenAI", Mock(return_value=client))
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    return client


@pytest.fixture
def anthropic_client(monkeypatch: pytest.MonkeyPatch) -> Mock:
    client = Mock()
    client.messages.create = AsyncMock(
        return_value=SimpleNamespace(
            content=[SimpleNamespace(text="Hi "), SimpleNamespace(type="tool_use"), SimpleNamespace(text="there")],
            usage=SimpleNamespace(input_tokens=10, output_tokens=5),
            model="claude-3-haiku-20240307",
        )
    )
    client.close = AsyncMock()
    monkeypatch.setattr(anthropic_module, "AsyncAnthropic", Mock(return_value=client))
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    return client


def test_openai_provider_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        OpenAIProvider(LLMConfig().provider_config("openai"))


@pytest.mark.asyncio
async def test_openai_provider_generate(openai_client: Mock) -> None:
    provider = OpenAIProvider(
        ProviderConfig(provider_id="openai", model_id="gpt-4", max_tokens=256, api_key_ref="OPENAI_API_KEY")
    )

    completion = await provider.generate("Say hello", system_prompt="Be brief")

    assert completion.text == "hello"
    assert completion.tokens_used == 42
    assert completion.model_id == "gpt-4-0613"

    kwargs = openai_client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "gpt-4"
    assert kwargs["max_tokens"] == 256
    assert kwargs["temperature"] == 0.7
    assert kwargs["messages"] == [
        {"role": "system", "content": "Be brief"},
        {"role": "user", "content": "Say hello"},
    ]

    await provider.aclose()
    openai_client.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_openai_provider_honours_overrides(openai_client: Mock) -> None:
    provider = OpenAIProvider(LLMConfig().provider_config("openai"))

    await provider.generate("x", model="gpt-4o", max_tokens=10, temperature=0.0)

    kwargs = openai_client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "gpt-4o"
    assert kwargs["max_tokens"] == 10
    assert kwargs["temperature"] == 0.0
    assert kwargs["messages"] == [{"role": "user", "content": "x"}]


@pytest.mark.asyncio
async def test_anthropic_provider_generate(anthropic_client: Mock) -> None:
    provider = AnthropicProvider(LLMConfig().provider_config("anthropic"))

    completion = await provider.generate("Hello", system_prompt="Be warm")

    assert completion.text == "Hi there"
    assert completion.tokens_used == 15
    assert completion.model_id == "claude-3-haiku-20240307"

    kwargs = anthropic_client.messages.create.await_args.kwargs
    assert kwargs["system"] == "Be warm"
    assert kwargs["model"] == "claude-3-sonnet-20240229"
    assert kwargs["messages"] == [{"role": "user", "content": "Hello"}]


@pytest.mark.asyncio
async def test_anthropic_provider_caps_temperature(anthropic_client: Mock) -> None:
    provider = AnthropicProvider(LLMConfig().provider_config("anthropic"))

    await provider.generate("Hello", temperature=1.6)
    assert anthropic_client.messages.create.await_args.kwargs["temperature"] == 1.0

    await provider.generate("Hello", temperature=0.3)
    assert anthropic_client.messages.create.await_args.kwargs["temperature"] == 0.3


def test_count_tokens_approximation(openai_client: Mock) -> None:
    provider = OpenAIProvider(LLMConfig().provider_config("openai"))

    assert provider.count_tokens("a" * 40) == 10


def test_factory_rejects_unknown_provider() -> None:
    with pytest.raises(ValueError, match="Unsupported LLM provider"):
        LLMFactory.create("mistral", LLMConfig())


def test_factory_builds_configured_providers_and_skips_unusable(
    openai_client: Mock, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    providers = LLMFactory.create_configured(LLMConfig(providers="openai,anthropic,llama"))

    # anthropic has no key and llama has no model path
    assert list(providers) == ["openai"]
    assert isinstance(providers["openai"], OpenAIProvider)


def test_factory_preserves_configured_order(
    openai_client: Mock, anthropic_client: Mock
) -> None:
    providers = LLMFactory.create_configured(LLMConfig(providers="anthropic,openai"))

    assert list(providers) == ["anthropic", "openai"]
