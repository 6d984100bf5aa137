"""
Structured logging for tessera.

Thin configuration layer over structlog so that every component (executor,
drivers, mutation pipeline) logs key/value events in one format.

Architecture:
    ::

        configure_logging(level="DEBUG", json_format=False)
            │
            ▼
        structlog processor chain:
            1. TimeStamper (iso)
            2. merge_contextvars
            3. add_log_level / add_logger_name
            4. service metadata
            5. JSONRenderer or ConsoleRenderer

        logger = get_logger(__name__)
        logger.debug("query_executed", entity="order", rows=2)

Examples:
    >>> from tessera.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=True)
    >>> logger = get_logger(__name__)
    >>> logger.debug("relationship_hydrated", relationship="items", keys=3)

Tags:
    logging, structlog, observability, tessera
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "tessera"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "tessera",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(entity="order", operation="bulk_delete"):
            executor.delete(spec)
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        structlog.contextvars.bind_contextvars(**self._context)
        return self

    def __exit__(self, *args) -> None:
        structlog.contextvars.unbind_contextvars(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "LogContext",
]
