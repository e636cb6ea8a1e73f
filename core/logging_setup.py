"""Structured logging configuration with structlog.

Production emits one JSON object per line; development uses the coloured
console renderer. Request-scoped values (request id, principal) are bound
through ``structlog.contextvars`` by the request middleware and merged into
every entry.

Usage::

    configure_logging(environment="production", level="INFO")

    log = structlog.get_logger(__name__)
    log.info("task_created", task_id=str(task.id))
"""

from __future__ import annotations

import logging

import structlog
from structlog.typing import Processor


def configure_logging(environment: str = "development", level: str = "INFO") -> None:
    """Configure structlog. Call once at application startup."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if environment == "production":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        # cached loggers ignore later reconfiguration
        cache_logger_on_first_use=environment == "production",
    )
