"""Factory for creating LLM providers."""

from typing import Optional

from logwatch_ai.config import Settings, get_settings
from logwatch_ai.core.exceptions import ConfigurationError
from logwatch_ai.core.http_client import HttpClientPool, get_http_client_pool
from logwatch_ai.services.llm_providers.base import BaseLLMProvider
from logwatch_ai.services.llm_providers.claude_provider import (
    ClaudeLLMProvider,
    validate_proxy_url,
)
from logwatch_ai.services.llm_providers.lmstudio_provider import LMStudioLLMProvider
from logwatch_ai.services.llm_providers.ollama_provider import OllamaLLMProvider


class LLMProviderFactory:
    """Factory for creating LLM provider instances."""

    @staticmethod
    def get_provider(
        provider_type: str,
        settings: Optional[Settings] = None,
        pool: Optional[HttpClientPool] = None,
        **kwargs,
    ) -> BaseLLMProvider:
        """Get an LLM provider instance.

        Args:
            provider_type: "anthropic", "ollama" or "lmstudio".
            settings: Settings to build from. Defaults to the cached settings.
            pool: HTTP client pool owning the connections.
            **kwargs: Provider constructor overrides.

        Returns:
            An LLM provider instance.

        Raises:
            ConfigurationError: If provider_type is not supported.
        """
        settings = settings or get_settings()
        pool = pool or get_http_client_pool()
        provider_str = provider_type.lower()

        if provider_str == "anthropic":
            proxy = settings.proxy_url
            provider_kwargs = {
                "api_key": settings.anthropic_api_key,
                "model": settings.claude_model,
                "timeout_seconds": settings.ai_timeout_seconds,
                "max_tokens": settings.ai_max_tokens,
                "enable_cache": settings.llm_cache_enabled,
                "http_client": pool.get_client(
                    "anthropic",
                    timeout=settings.ai_timeout_seconds,
                    proxy=validate_proxy_url(proxy) if proxy else None,
                ),
            }
            provider_kwargs.update(kwargs)
            return ClaudeLLMProvider(**provider_kwargs)

        elif provider_str == "ollama":
            provider_kwargs = {
                "model": settings.ollama_model,
                "url": settings.ollama_base_url,
                "timeout_seconds": settings.ollama_timeout_seconds,
                "max_tokens": settings.ai_max_tokens,
                "http_client": pool.get_client(
                    "ollama", timeout=settings.ollama_timeout_seconds
                ),
            }
            provider_kwargs.update(kwargs)
            return OllamaLLMProvider(**provider_kwargs)

        elif provider_str == "lmstudio":
            provider_kwargs = {
                "model": settings.lmstudio_model,
                "url": settings.lmstudio_base_url,
                "timeout_seconds": settings.lmstudio_timeout_seconds,
                "max_tokens": settings.ai_max_tokens,
                "http_client": pool.get_client(
                    "lmstudio", timeout=settings.lmstudio_timeout_seconds
                ),
            }
            provider_kwargs.update(kwargs)
            return LMStudioLLMProvider(**provider_kwargs)

        else:
            raise ConfigurationError(f"Unknown LLM provider type: {provider_type}")

    @staticmethod
    def from_settings(
        settings: Optional[Settings] = None,
        pool: Optional[HttpClientPool] = None,
    ) -> BaseLLMProvider:
        """Validate settings and build the configured provider."""
        settings = settings or get_settings()
        settings.validate_llm_provider()
        return LLMProviderFactory.get_provider(settings.llm_provider, settings, pool)
