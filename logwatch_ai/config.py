"""Application configuration using Pydantic Settings."""

import hmac
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from logwatch_ai.core.exceptions import ConfigurationError

VALID_LLM_PROVIDERS = ("anthropic", "ollama", "lmstudio")
ANTHROPIC_KEY_PREFIX = "sk-ant-"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Logwatch AI"
    debug: bool = False
    log_level: str = "INFO"

    # LLM provider selection: "anthropic", "ollama" or "lmstudio"
    llm_provider: str = "anthropic"

    # Anthropic (Claude)
    anthropic_api_key: str = ""
    claude_model: str = "claude-sonnet-4-5-20250929"
    llm_cache_enabled: bool = False  # Send the system prompt as a cacheable block
    ai_timeout_seconds: int = 120
    ai_max_tokens: int = 8000

    # Outbound proxy for the Anthropic API
    http_proxy: str = ""
    https_proxy: str = ""

    # Ollama (local native API)
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.3:latest"
    ollama_timeout_seconds: int = 300  # Large local models can be slow

    # LM Studio (local OpenAI-compatible API)
    lmstudio_base_url: str = "http://localhost:1234"
    lmstudio_model: str = "local-model"
    lmstudio_timeout_seconds: int = 300

    # HTTP Client Settings
    http_max_connections: int = 20
    http_keepalive_expiry: int = 30  # Seconds to keep idle connections

    @property
    def proxy_url(self) -> str:
        """Proxy for HTTPS requests, falling back to the HTTP proxy."""
        return self.https_proxy or self.http_proxy

    def validate_llm_provider(self) -> None:
        """Check that the selected provider has everything it needs.

        Raises:
            ConfigurationError: If the provider settings are incomplete.
        """
        provider = self.llm_provider.lower()
        if provider not in VALID_LLM_PROVIDERS:
            raise ConfigurationError(
                f"LLM_PROVIDER must be 'anthropic', 'ollama', or 'lmstudio' (got: {self.llm_provider})"
            )

        if provider == "anthropic":
            if not self.anthropic_api_key:
                raise ConfigurationError("ANTHROPIC_API_KEY is required when LLM_PROVIDER=anthropic")
            # Constant-time so the comparison does not leak key content
            prefix = self.anthropic_api_key[: len(ANTHROPIC_KEY_PREFIX)]
            if not hmac.compare_digest(prefix.encode(), ANTHROPIC_KEY_PREFIX.encode()):
                raise ConfigurationError("ANTHROPIC_API_KEY must start with 'sk-ant-'")
            if not self.claude_model:
                raise ConfigurationError("CLAUDE_MODEL is required when LLM_PROVIDER=anthropic")

        elif provider == "ollama":
            if not self.ollama_model:
                raise ConfigurationError("OLLAMA_MODEL is required when LLM_PROVIDER=ollama")
            _require_http_url("OLLAMA_BASE_URL", self.ollama_base_url)

        elif provider == "lmstudio":
            # Model is optional, LM Studio falls back to "local-model"
            _require_http_url("LMSTUDIO_BASE_URL", self.lmstudio_base_url)


def _require_http_url(name: str, value: str) -> None:
    if not value:
        raise ConfigurationError(f"{name} is required")
    if not value.startswith(("http://", "https://")):
        raise ConfigurationError(f"{name} must start with 'http://' or 'https://'")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
