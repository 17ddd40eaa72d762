"""Core utilities for Logwatch AI."""

from logwatch_ai.core.exceptions import (
    AnalysisValidationError,
    ConfigurationError,
    LogwatchAIError,
    ProviderError,
    ResponseParseError,
    RetryExhaustedError,
)
from logwatch_ai.core.logging import get_logger, setup_logging
from logwatch_ai.core.redaction import redact_error, redact_secrets

__all__ = [
    "get_logger",
    "setup_logging",
    "redact_error",
    "redact_secrets",
    "LogwatchAIError",
    "ConfigurationError",
    "ProviderError",
    "RetryExhaustedError",
    "ResponseParseError",
    "AnalysisValidationError",
]
