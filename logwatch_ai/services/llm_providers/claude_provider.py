"""Claude (Anthropic) LLM provider for log analysis."""

import time
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
import structlog
from anthropic import AsyncAnthropic
from anthropic.types import Message

from logwatch_ai.core.exceptions import ConfigurationError, EmptyResponseError
from logwatch_ai.services.llm_providers.base import (
    ANTHROPIC_PRICING,
    Analysis,
    BaseLLMProvider,
    ModelInfo,
    ProviderConfig,
    Stats,
)
from logwatch_ai.services.llm_providers.response_parser import parse_provider_response
from logwatch_ai.services.llm_providers.retry import DEFAULT_MAX_ATTEMPTS, retry_with_backoff
from logwatch_ai.services.llm_providers.transport import usage_count

logger = structlog.get_logger()

DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_CLAUDE_TIMEOUT_SECONDS = 120
CLAUDE_CONTEXT_LIMIT = 200000


def validate_proxy_url(proxy_url: str) -> str:
    """Reject proxy URLs that are not plain http(s)."""
    parsed = urlparse(proxy_url)
    if parsed.scheme not in ("http", "https"):
        raise ConfigurationError(
            f"proxy URL must use http or https scheme, got: {parsed.scheme or 'none'}"
        )
    if not parsed.netloc:
        raise ConfigurationError("invalid proxy URL: missing host")
    return proxy_url


class ClaudeLLMProvider(BaseLLMProvider):
    """LLM provider using Anthropic's Claude API."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_CLAUDE_MODEL,
        timeout_seconds: int = DEFAULT_CLAUDE_TIMEOUT_SECONDS,
        max_tokens: int = 8000,
        enable_cache: bool = False,
        proxy_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        client: Optional[AsyncAnthropic] = None,
    ):
        """Initialize the Claude provider.

        Args:
            api_key: Anthropic API key.
            model: Model to use.
            timeout_seconds: Request timeout.
            max_tokens: Maximum response tokens.
            enable_cache: Send the system prompt as a cacheable block.
            proxy_url: Optional http(s) proxy, used when no client is given.
            http_client: Optional shared httpx client for the SDK.
            client: Optional preconfigured Anthropic client.
        """
        if client is None and not api_key:
            raise ConfigurationError("Anthropic API key not configured")

        self._config = ProviderConfig(
            model=model or DEFAULT_CLAUDE_MODEL,
            timeout_seconds=timeout_seconds,
            max_tokens=max_tokens,
        )
        self._enable_cache = enable_cache
        # The SDK builds and owns its transport only when given none
        self._sdk_owns_transport = client is None and http_client is None and not proxy_url

        if client is None:
            if http_client is None and proxy_url:
                http_client = httpx.AsyncClient(
                    proxy=validate_proxy_url(proxy_url),
                    timeout=self._config.timeout_seconds,
                )
                self._owned_http_client = http_client
            # Retries are handled by retry_with_backoff, not the SDK
            client = AsyncAnthropic(
                api_key=api_key,
                timeout=float(self._config.timeout_seconds),
                max_retries=0,
                http_client=http_client,
            )
        self._client = client

    async def aclose(self) -> None:
        """Close the SDK client and proxy client built by this provider.

        An SDK client constructed around an injected ``http_client`` leaves
        that client open; the pool that supplied it closes it.
        """
        if self._sdk_owns_transport and not self._client.is_closed():
            await self._client.close()
        await super().aclose()

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def provider_name(self) -> str:
        return "Anthropic"

    def get_model_info(self) -> ModelInfo:
        return ModelInfo(
            model=self._config.model,
            provider=self.provider_name,
            max_tokens=self._config.max_tokens,
            context_limit=CLAUDE_CONTEXT_LIMIT,
        )

    def _build_system(self, system_prompt: str) -> Any:
        if self._enable_cache:
            return [
                {
                    "type": "text",
                    "text": system_prompt,
                    "cache_control": {"type": "ephemeral"},
                }
            ]
        return system_prompt

    async def _call_api(self, system_prompt: str, user_prompt: str) -> Message:
        return await self._client.messages.create(
            model=self._config.model,
            max_tokens=self._config.max_tokens,
            system=self._build_system(system_prompt),
            messages=[{"role": "user", "content": user_prompt}],
        )

    async def analyze(self, system_prompt: str, user_prompt: str) -> tuple[Analysis, Stats]:
        """Analyze logs using Claude.

        Args:
            system_prompt: Analysis instructions.
            user_prompt: Sanitized log content.

        Returns:
            The validated analysis and usage statistics.
        """
        start_time = time.monotonic()

        response = await retry_with_backoff(
            lambda: self._call_api(system_prompt, user_prompt),
            max_attempts=DEFAULT_MAX_ATTEMPTS,
            operation_name="claude_messages_create",
        )

        if not response.content:
            raise EmptyResponseError("empty response from Claude")

        # Only text blocks carry the answer
        response_text = "".join(
            block.text for block in response.content if block.type == "text"
        )
        if not response_text:
            raise EmptyResponseError("empty text in response from Claude")

        analysis = parse_provider_response(response_text, self.provider_name)
        stats = self._calculate_stats(response, time.monotonic() - start_time)

        logger.debug(
            "claude_analysis_complete",
            model=self._config.model,
            input_tokens=stats.input_tokens,
            output_tokens=stats.output_tokens,
            cache_read_tokens=stats.cache_read_tokens,
            cache_creation_tokens=stats.cache_creation_tokens,
            cost_usd=round(stats.cost_usd, 6),
            status=analysis.system_status.value,
        )

        return analysis, stats

    def _calculate_stats(self, response: Message, duration_seconds: float) -> Stats:
        usage = response.usage
        input_tokens = usage_count(getattr(usage, "input_tokens", 0))
        output_tokens = usage_count(getattr(usage, "output_tokens", 0))
        # Cache fields are None when prompt caching was not involved
        cache_creation = usage_count(getattr(usage, "cache_creation_input_tokens", 0))
        cache_read = usage_count(getattr(usage, "cache_read_input_tokens", 0))

        return Stats(
            provider=self.provider_name,
            model=self._config.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cache_creation_tokens=cache_creation,
            cache_read_tokens=cache_read,
            cost_usd=ANTHROPIC_PRICING.cost(
                input_tokens, output_tokens, cache_creation, cache_read
            ),
            duration_seconds=duration_seconds,
        )
