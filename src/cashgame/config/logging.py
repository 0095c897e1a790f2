"""Structured logging for the cash game ledger.

Log lines go to stderr so ``cashgame`` can print its JSON report on stdout.
Session-scoped work binds ``session_id`` once with ``session_context`` and
every event logged inside carries it.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Literal

import structlog

from cashgame.config.settings import get_settings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

# SDK loggers that narrate every HTTP round trip at INFO
NOISY_LOGGERS = ("openai", "httpx", "httpcore")


def configure_logging(
    level: LogLevel | None = None,
    format: Literal["json", "console"] | None = None,
) -> None:
    """Route stdlib and structlog output through one renderer.

    Args:
        level: Overrides LOG_LEVEL from settings.
        format: Overrides LOG_FORMAT from settings. ``json`` emits one object
            per line for log shipping; ``console`` is for people.
    """
    settings = get_settings()
    log_level = level or settings.log_level
    log_format = format or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level),
        force=True,
    )
    sdk_level = logging.DEBUG if log_level == "DEBUG" else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)

    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def session_context(session_id: str) -> Iterator[None]:
    """Tag every log event in the block with ``session_id``."""
    with structlog.contextvars.bound_contextvars(session_id=session_id):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance bound to the given name."""
    return structlog.get_logger(name)
