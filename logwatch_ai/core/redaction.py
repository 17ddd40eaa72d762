"""Credential redaction for error messages and log events.

Error text from HTTP backends can echo request or response bodies. Anything
that looks like an API key or token is replaced before it is logged or put
into an exception message.
"""

import re
from typing import Any

REDACTED_PLACEHOLDER = "[REDACTED]"

CREDENTIAL_PATTERNS = [
    # Anthropic API key: sk-ant-api03-...
    re.compile(r"sk-ant-[a-zA-Z0-9_-]{10,}"),
    # OpenAI-style keys
    re.compile(r"sk-[a-zA-Z0-9_-]{32,}"),
    # Telegram bot token: 123456789:ABC-DEF...
    re.compile(r"\d{8,12}:[a-zA-Z0-9_-]{30,}"),
    re.compile(r"Bearer\s+[a-zA-Z0-9_.-]+"),
    re.compile(r"(?i)authorization[:\s]+[^\s]+"),
    re.compile(r"(?i)api[_-]?key[=:][^\s&\"']+"),
    re.compile(r"(?i)x-api-key[:\s]+[^\s]+"),
]


def redact_secrets(value: str) -> str:
    """Replace credential-shaped substrings with a placeholder.

    Args:
        value: Text that may contain credentials.

    Returns:
        The text with every match replaced by ``[REDACTED]``.
    """
    if not value:
        return value
    for pattern in CREDENTIAL_PATTERNS:
        value = pattern.sub(REDACTED_PLACEHOLDER, value)
    return value


def redact_error(error: BaseException) -> str:
    """Render an exception message with credentials removed."""
    return redact_secrets(str(error))


def redact_processor(logger: Any, method_name: str, event_dict: dict) -> dict:
    """structlog processor that scrubs string values of an event."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = redact_secrets(value)
        elif isinstance(value, BaseException):
            event_dict[key] = redact_error(value)
    return event_dict
