"""LLM package initialization."""

from ai_workflow_orchestrator.llm.dispatcher import (
    GenerateOptions,
    NormalizedResponse,
    ProviderDispatcher,
    TaskHint,
)
from ai_workflow_orchestrator.llm.factory import LLMFactory
from ai_workflow_orchestrator.llm.provider import LLMProvider, ProviderCompletion

__all__ = [
    "GenerateOptions",
    "LLMFactory",
    "LLMProvider",
    "NormalizedResponse",
    "ProviderCompletion",
    "ProviderDispatcher",
    "TaskHint",
]
