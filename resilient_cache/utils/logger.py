"""
Structured logging configuration using structlog.

Provides JSON-formatted logging with context processors for
timestamps, log levels, and cache operation tracking.
"""
import logging
import os
import sys
from typing import Any, TextIO

import structlog


def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """
    Configure structured logging with structlog.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Output stream (stdout if None)

    Sets up:
        - JSON output format for production
        - Console output with colors for development
        - Context processors for timestamps and metadata
        - Integration with standard library logging
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    stream = stream or sys.stdout

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=log_level,
    )

    is_dev = os.getenv("ENVIRONMENT", "production") == "development"

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if is_dev:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of calling module)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("cache_flushed", backend="redis")
    """
    return structlog.get_logger(name)


def redact_url(url: str | None) -> str | None:
    """
    Strip credentials from a connection URL before it is logged.

    Example:
        >>> redact_url("redis://:secret@cache.internal:6379/0")
        'redis://cache.internal:6379/0'
    """
    if not url:
        return url

    scheme, sep, rest = url.partition("://")
    if not sep:
        return url.split("@")[-1]

    return f"{scheme}://{rest.split('@')[-1]}"
