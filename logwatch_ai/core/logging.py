"""structlog setup for logwatch-ai.

Events go to stderr, either as JSON lines or, with ``DEBUG=true``, as
coloured console output. Every event passes through the credential
redaction processor before it is rendered.
"""

import logging
import sys
from typing import TYPE_CHECKING, Any, Optional, cast

import structlog

from logwatch_ai.core.redaction import redact_processor

if TYPE_CHECKING:
    from logwatch_ai.config import Settings

# Libraries whose INFO/DEBUG output would bury our own events
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic")


def build_processors(debug: bool) -> list[Any]:
    """Processor chain ending in the console or JSON renderer."""
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        redact_processor,
    ]
    if debug:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    return processors


def setup_logging(settings: Optional["Settings"] = None) -> None:
    """Configure structlog and the stdlib root logger from settings."""
    if settings is None:
        from logwatch_ai.config import get_settings

        settings = get_settings()

    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=build_processors(settings.debug),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Return a structlog logger, optionally named."""
    return cast(structlog.BoundLogger, structlog.get_logger(name))
