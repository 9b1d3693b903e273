"""Structured logging configuration using structlog."""

import sys

import structlog
from clarity.config import settings

_LEVELS = {"debug": 10, "info": 20, "warning": 30, "warn": 30, "error": 40, "critical": 50}


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog for Clarity.

    Args:
        level: Overrides ``settings.log_level`` ("debug", "info", ...).
        fmt:   Overrides ``settings.log_format``: "console" or "json".

    Console output is for people at a terminal, JSON lines for log shippers.
    Either way logs go to stderr; stdout belongs to the CLI.
    """
    fmt = (fmt or settings.log_format).lower()
    threshold = _LEVELS.get((level or settings.log_level).lower(), 20)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if fmt == "json":
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
