"""Custom exceptions for Logwatch AI."""

from typing import Any, Dict, Optional

from logwatch_ai.core.redaction import redact_error


class LogwatchAIError(Exception):
    """Base exception for all Logwatch AI errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(LogwatchAIError):
    """Raised when settings are missing or inconsistent."""


# ---------------------------------------------------------------------------
# Provider (transport) errors
# ---------------------------------------------------------------------------


class ProviderError(LogwatchAIError):
    """Raised when an LLM backend call fails."""

    def __init__(
        self,
        message: str = "LLM provider error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)


class ProviderHTTPError(ProviderError):
    """Raised when a backend answers with a non-success HTTP status."""

    def __init__(
        self,
        status_code: int,
        body: str = "",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"API returned status {status_code}: {body}", details)


class ProviderConnectionError(ProviderError):
    """Raised when a local backend is unreachable or the model is missing."""


class EmptyResponseError(ProviderError):
    """Raised when the backend returns no usable text."""


class IncompleteResponseError(ProviderError):
    """Raised when the backend reports that generation did not finish."""


class RetryExhaustedError(ProviderError):
    """Raised when every retry attempt failed.

    The last underlying exception is kept in ``last_error`` and as ``__cause__``.
    """

    def __init__(self, last_error: Exception, attempts: int) -> None:
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(
            f"all retry attempts failed: {redact_error(last_error)}",
            {"attempts": attempts, "error_type": type(last_error).__name__},
        )


# ---------------------------------------------------------------------------
# Response content errors (never retried)
# ---------------------------------------------------------------------------


class ResponseParseError(LogwatchAIError):
    """Raised when the model output cannot be turned into an analysis."""


class JSONExtractionError(ResponseParseError):
    """Raised when no balanced JSON object is found in the model output."""

    def __init__(self, message: str = "no JSON object found in response") -> None:
        super().__init__(message)


class ResponseTooLargeError(ResponseParseError):
    """Raised when the extracted JSON exceeds the size ceiling."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(
            f"JSON response too large: {size} bytes (max: {limit})",
            {"size": size, "limit": limit},
        )


class MalformedJSONError(ResponseParseError):
    """Raised when the repaired JSON still fails to decode."""


class AnalysisValidationError(ResponseParseError):
    """Raised when decoded JSON does not match the analysis schema."""
