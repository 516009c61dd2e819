"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from edsbackend.config.settings import ObservabilitySettings

DEBUG_LOGGER_NAME = "edsbackend.debug"


def setup_logging(settings: ObservabilitySettings | None = None) -> None:
    """Configure structured logging for edsbackend.

    Args:
        settings: Observability settings. Uses defaults if None.
    """
    log_level = getattr(settings, "log_level", "info").upper() if settings else "INFO"
    log_format = getattr(settings, "log_format", "json") if settings else "json"

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level, logging.INFO),
    )


def get_debug_logger(settings: ObservabilitySettings | None = None) -> structlog.stdlib.BoundLogger | None:
    """Return the tracing logger for token values and request parameters.

    Tracing is opt-in: without ``debug_tracing`` enabled this returns None and
    the backend writes no traces at all.
    """
    if settings is None or not settings.debug_tracing:
        return None
    return structlog.stdlib.get_logger(DEBUG_LOGGER_NAME)
