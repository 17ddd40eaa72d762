"""LLM provider abstraction for log analysis."""

from logwatch_ai.services.llm_providers.base import (
    Analysis,
    BaseLLMProvider,
    ModelInfo,
    ProviderConfig,
    Stats,
    SystemStatus,
)
from logwatch_ai.services.llm_providers.claude_provider import ClaudeLLMProvider
from logwatch_ai.services.llm_providers.factory import LLMProviderFactory
from logwatch_ai.services.llm_providers.lmstudio_provider import LMStudioLLMProvider
from logwatch_ai.services.llm_providers.ollama_provider import OllamaLLMProvider
from logwatch_ai.services.llm_providers.response_parser import parse_analysis

__all__ = [
    "Analysis",
    "BaseLLMProvider",
    "ModelInfo",
    "ProviderConfig",
    "Stats",
    "SystemStatus",
    "ClaudeLLMProvider",
    "LMStudioLLMProvider",
    "OllamaLLMProvider",
    "LLMProviderFactory",
    "parse_analysis",
]
