"""Error classification and retry with backoff for LLM backend calls.

Provides:
- Classification of failures into rate-limited, overloaded or generic
- Backoff durations per classification
- An async retry loop with a fixed attempt budget
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

import anthropic
import httpx
import structlog

from logwatch_ai.core.exceptions import (
    ConfigurationError,
    EmptyResponseError,
    ProviderHTTPError,
    ResponseParseError,
    RetryExhaustedError,
)
from logwatch_ai.core.redaction import redact_error

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3

# Anthropic token rate limits reset per minute
RATE_LIMIT_BASE_BACKOFF = 60.0  # seconds
RATE_LIMIT_MAX_BACKOFF = 120.0  # seconds

RATE_LIMIT_STATUS_CODES = frozenset({429})
OVERLOADED_STATUS_CODES = frozenset({503, 529})

# Fallback substrings, matched against the lowercased error message
RATE_LIMIT_MARKERS = ("rate_limit_error", "rate limit", "429", "too many requests")
OVERLOADED_MARKERS = ("overloaded", "503")


class ErrorClass(str, Enum):
    """Classification of a failed backend call."""

    RATE_LIMITED = "rate_limited"
    OVERLOADED = "overloaded"
    GENERIC = "generic"


def _structured_status(error: BaseException) -> Optional[int]:
    """Return the HTTP status carried by a structured API error, if any."""
    if isinstance(error, anthropic.APIStatusError):
        return error.status_code
    if isinstance(error, ProviderHTTPError):
        return error.status_code
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


def _anthropic_error_type(error: anthropic.APIStatusError) -> Optional[str]:
    body = error.body
    if isinstance(body, dict):
        inner = body.get("error")
        if isinstance(inner, dict):
            return inner.get("type")
        return body.get("type")
    return None


def classify_error(error: BaseException) -> ErrorClass:
    """Classify a failure to pick a backoff policy.

    Structured status codes win; the message-substring fallback is only
    consulted for errors that carry no status at all, and is best-effort.
    """
    if isinstance(error, anthropic.RateLimitError):
        return ErrorClass.RATE_LIMITED

    if isinstance(error, anthropic.APIStatusError):
        error_type = _anthropic_error_type(error)
        if error_type == "rate_limit_error":
            return ErrorClass.RATE_LIMITED
        if error_type == "overloaded_error":
            return ErrorClass.OVERLOADED

    status = _structured_status(error)
    if status is not None:
        if status in RATE_LIMIT_STATUS_CODES:
            return ErrorClass.RATE_LIMITED
        if status in OVERLOADED_STATUS_CODES:
            return ErrorClass.OVERLOADED
        return ErrorClass.GENERIC

    message = str(error).lower()
    if any(marker in message for marker in RATE_LIMIT_MARKERS):
        return ErrorClass.RATE_LIMITED
    if any(marker in message for marker in OVERLOADED_MARKERS):
        return ErrorClass.OVERLOADED
    return ErrorClass.GENERIC


def is_retryable(error: BaseException) -> bool:
    """Content failures are surfaced at once; transport failures are retried."""
    return not isinstance(
        error, (EmptyResponseError, ResponseParseError, ConfigurationError)
    )


def backoff_for(error_class: ErrorClass, attempt: int) -> float:
    """Seconds to wait after failed attempt number ``attempt`` (1-based).

    Rate limits and overloads wait for the token window to reset
    (60s, 120s, capped at 120s); other errors back off as 2^attempt seconds.
    """
    if error_class in (ErrorClass.RATE_LIMITED, ErrorClass.OVERLOADED):
        return min(RATE_LIMIT_BASE_BACKOFF * attempt, RATE_LIMIT_MAX_BACKOFF)
    return float(2**attempt)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    operation_name: str = "llm_call",
) -> T:
    """Await ``operation`` until it succeeds or the attempts run out.

    The backoff wait is an ``asyncio.sleep``, so cancelling the calling task
    interrupts it immediately.

    Args:
        operation: Zero-argument coroutine factory performing the call.
        max_attempts: Total number of attempts.
        operation_name: Name used in log events.

    Returns:
        Result of the first successful attempt.

    Raises:
        RetryExhaustedError: Wrapping the last error after every attempt failed.
        Exception: A non-retryable failure, re-raised unwrapped at once.
    """
    last_error: Optional[Exception] = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            error_class = classify_error(e)
            retryable = is_retryable(e)

            logger.warning(
                "llm_operation_failed",
                operation=operation_name,
                attempt=attempt,
                max_attempts=max_attempts,
                error_class=error_class.value,
                retryable=retryable,
                error=redact_error(e),
            )

            # Don't retry content failures
            if not retryable:
                raise

            if attempt < max_attempts:
                delay = backoff_for(error_class, attempt)
                logger.debug(
                    "llm_retry_scheduled",
                    operation=operation_name,
                    attempt=attempt,
                    delay=delay,
                )
                await asyncio.sleep(delay)

    if last_error is None:
        raise ValueError("max_attempts must be at least 1")

    logger.error(
        "llm_operation_failed_permanently",
        operation=operation_name,
        total_attempts=max_attempts,
        error=redact_error(last_error),
    )
    raise RetryExhaustedError(last_error, max_attempts) from last_error
