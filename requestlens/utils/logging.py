"""
Structured logging configuration using structlog.

Log lines go to stderr so that drivers printing report output on stdout
(the CLI script) produce clean, parseable JSON. Request-scoped context
(request_id) is merged in from contextvars by the API middleware.
"""

import logging
import sys
from typing import IO, Any, Optional

import structlog
from structlog.types import EventDict, Processor

from requestlens.config import get_settings


def add_severity(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add severity level for structured logging."""
    event_dict["severity"] = method_name.upper()
    return event_dict


def _choose_renderer(fmt: Optional[str], stream: IO[str]) -> Processor:
    settings = get_settings()
    if fmt is None:
        fmt = "json" if settings.log_format == "json" and not settings.dev_mode else "console"
    if fmt == "json":
        return structlog.processors.JSONRenderer()
    if fmt == "console":
        return structlog.dev.ConsoleRenderer(colors=stream.isatty())
    raise ValueError(f"Unknown log format: {fmt!r} (expected json or console)")


def configure_logging(
    level: Optional[str] = None,
    fmt: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Log level name (default: settings.log_level)
        fmt: "json" or "console" (default: JSON in production, console in dev mode)
        stream: Output stream (default: stderr)
    """
    settings = get_settings()
    stream = stream or sys.stderr
    level_name = (level or settings.log_level).upper()

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=getattr(logging, level_name, logging.INFO),
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            add_severity,
            structlog.processors.UnicodeDecoder(),
            _choose_renderer(fmt, stream),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """Get a structured logger instance, typically named after the module."""
    return structlog.get_logger(name)
