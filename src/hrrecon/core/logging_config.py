"""Structured logging configuration.

Every module logs through ``get_logger(__name__)`` and emits snake_case
events with keyword fields, rendered as one JSON object per line.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

_configured = False


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # Looked up per logger so a redirected stderr is honoured.
    return structlog.PrintLogger(sys.stderr)


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog for JSON output at the given level.

    Args:
        level: Standard logging level name.
    """
    global _configured
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog bound logger.
    """
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)
