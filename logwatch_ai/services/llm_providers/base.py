"""Base class and result types for LLM providers used in log analysis."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import httpx
import structlog

from logwatch_ai.services.prompts.logwatch import LogwatchPromptBuilder

logger = structlog.get_logger()

DEFAULT_MAX_TOKENS = 8000
DEFAULT_LOCAL_TIMEOUT_SECONDS = 300
LOCAL_CONTEXT_LIMIT = 128000  # Varies by model, common default


class SystemStatus(str, Enum):
    """Overall health verdict returned by the model."""

    EXCELLENT = "Excellent"
    GOOD = "Good"
    SATISFACTORY = "Satisfactory"
    BAD = "Bad"
    AWFUL = "Awful"

    @property
    def emoji(self) -> str:
        return _STATUS_EMOJI[self]

    @property
    def triggers_alert(self) -> bool:
        """Whether this status should be sent to the alerts channel."""
        return self in (SystemStatus.SATISFACTORY, SystemStatus.BAD, SystemStatus.AWFUL)


_STATUS_EMOJI = {
    SystemStatus.EXCELLENT: "✅",
    SystemStatus.GOOD: "🟢",
    SystemStatus.SATISFACTORY: "🟡",
    SystemStatus.BAD: "🟠",
    SystemStatus.AWFUL: "🔴",
}

UNKNOWN_STATUS_EMOJI = "⚪"


def status_emoji(status: str) -> str:
    """Emoji for a raw status string, or a neutral marker if unknown."""
    try:
        return SystemStatus(status).emoji
    except ValueError:
        return UNKNOWN_STATUS_EMOJI


@dataclass(frozen=True)
class Analysis:
    """Validated structured analysis of a log excerpt."""

    system_status: SystemStatus
    summary: str
    critical_issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    metrics: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Render the analysis in the model's JSON wire shape."""
        return {
            "systemStatus": self.system_status.value,
            "summary": self.summary,
            "criticalIssues": list(self.critical_issues),
            "warnings": list(self.warnings),
            "recommendations": list(self.recommendations),
            "metrics": dict(self.metrics),
        }


@dataclass(frozen=True)
class Stats:
    """Token usage and cost of one successful analysis call."""

    provider: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    cost_usd: float = 0.0
    duration_seconds: float = 0.0

    @property
    def total_tokens(self) -> int:
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_tokens
            + self.cache_read_tokens
        )


@dataclass(frozen=True)
class PricingTable:
    """USD price per million tokens."""

    input_per_mtok: float
    output_per_mtok: float
    cache_write_per_mtok: float = 0.0
    cache_read_per_mtok: float = 0.0

    def cost(
        self,
        input_tokens: int,
        output_tokens: int,
        cache_creation_tokens: int = 0,
        cache_read_tokens: int = 0,
    ) -> float:
        return (
            input_tokens / 1_000_000 * self.input_per_mtok
            + output_tokens / 1_000_000 * self.output_per_mtok
            + cache_creation_tokens / 1_000_000 * self.cache_write_per_mtok
            + cache_read_tokens / 1_000_000 * self.cache_read_per_mtok
        )


# Claude Sonnet 4.5 pricing
ANTHROPIC_PRICING = PricingTable(
    input_per_mtok=3.0,
    output_per_mtok=15.0,
    cache_write_per_mtok=3.75,
    cache_read_per_mtok=0.30,
)


@dataclass(frozen=True)
class ProviderConfig:
    """Connection settings of one adapter, fixed at construction."""

    model: str
    base_url: str = ""
    timeout_seconds: int = DEFAULT_LOCAL_TIMEOUT_SECONDS
    max_tokens: int = DEFAULT_MAX_TOKENS

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        if self.timeout_seconds <= 0:
            object.__setattr__(self, "timeout_seconds", DEFAULT_LOCAL_TIMEOUT_SECONDS)
        if self.max_tokens <= 0:
            object.__setattr__(self, "max_tokens", DEFAULT_MAX_TOKENS)


@dataclass(frozen=True)
class ModelInfo:
    """Descriptive information about a configured model."""

    model: str
    provider: str
    max_tokens: int
    context_limit: int
    base_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "model": self.model,
            "provider": self.provider,
            "max_tokens": self.max_tokens,
            "context_limit": self.context_limit,
        }
        if self.base_url is not None:
            data["base_url"] = self.base_url
        return data


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers used in log analysis."""

    @abstractmethod
    async def analyze(self, system_prompt: str, user_prompt: str) -> tuple[Analysis, Stats]:
        """Analyze log content with the given prompts.

        Args:
            system_prompt: Fixed analysis instructions.
            user_prompt: Per-request content (already sanitized).

        Returns:
            The validated analysis and the usage statistics of the call.

        Raises:
            RetryExhaustedError: If the network call failed on every attempt.
            ProviderError: If the backend returned no usable text.
            ResponseParseError: If the text could not be turned into an analysis.
        """
        pass

    @abstractmethod
    def get_model_info(self) -> ModelInfo:
        """Get information about the configured model."""
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get the name of this provider."""
        pass

    # Clients the provider built itself; injected clients belong to the caller
    _owned_http_client: Optional[httpx.AsyncClient] = None

    async def analyze_logwatch(
        self, log_content: str, historical_context: str = ""
    ) -> tuple[Analysis, Stats]:
        """Analyze a logwatch report with the built-in logwatch prompts."""
        builder = LogwatchPromptBuilder()
        return await self.analyze(
            builder.get_system_prompt(),
            builder.get_user_prompt(log_content, historical_context),
        )

    async def aclose(self) -> None:
        """Close the HTTP client this provider created, if any."""
        client = self._owned_http_client
        self._owned_http_client = None
        if client is not None and not client.is_closed:
            await client.aclose()
            logger.debug("provider_http_client_closed", provider=self.provider_name)

    async def __aenter__(self) -> "BaseLLMProvider":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
