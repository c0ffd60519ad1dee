"""Structured logging for Scabbard.

This module provides structured logging using structlog, enabling:
- JSON-formatted logs for CI log collectors (machine-readable)
- Pretty console logs for local runs (human-readable)
- Automatic context binding (run_id, task)
- Level names shared with the standard library (DEBUG, INFO, ...)

Usage:
    from scabbard.logging import configure_logging, get_logger

    # Configure once at startup
    configure_logging(json_format=True)

    # Get a logger
    logger = get_logger("my.module")
    logger.info("task_started", task="tests")

Context binding:
    logger = get_logger("scheduler").bind(run_id="01J...")
    logger.info("run_started")  # run_id automatically included
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

_configured = False


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # Resolve sys.stderr per logger so redirected streams are honored
    return structlog.PrintLogger(sys.stderr)


def configure_logging(
    json_format: bool = False,
    level: int | str = logging.INFO,
    logger_factory: Any = None,
) -> None:
    """Configure structured logging for Scabbard.

    Safe to call more than once; the last call wins.

    Args:
        json_format: If True, output JSON logs (for CI log collectors).
                    If False, output pretty console logs.
        level: Minimum log level, as an int or a level name (default: INFO)
        logger_factory: Custom logger factory (for testing)
    """
    global _configured

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=logger_factory or _stderr_logger,
        cache_logger_on_first_use=False,
    )

    _configured = True


def get_logger(name: str) -> Any:
    """Get a structured logger for the given name.

    Args:
        name: Logger name (typically __name__ or module path)

    Returns:
        A bound logger that supports structured logging.
    """
    if not _configured:
        # Auto-configure with defaults if not explicitly configured
        configure_logging()

    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables that will be included in all subsequent logs.

    Args:
        **kwargs: Context key-value pairs to bind

    Example:
        bind_context(run_id="01J...")
        logger.info("processing")  # Includes run_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


def unbind_context(*keys: str) -> None:
    """Remove specific context variables.

    Args:
        *keys: Context keys to remove
    """
    structlog.contextvars.unbind_contextvars(*keys)


def task_logger(task_name: str) -> Any:
    """Get a logger pre-bound with task context.

    Args:
        task_name: Name the task was enqueued under

    Returns:
        Logger with task bound
    """
    return get_logger("scabbard.task").bind(task=task_name)
