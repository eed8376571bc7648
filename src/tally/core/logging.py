"""
Tally logging - structured logging built on structlog.

Manifesto:
    A counter service is only debuggable through its logs: which site was
    created, which submission was rejected and why, which storage call
    failed. This module gives every module the same structured output:

    - **Structures:** JSON output for log aggregation (ELK, Loki, etc.)
    - **Correlates:** request_id propagation through contextvars
    - **Flexes:** Console output for development, JSON for production

Architecture:
    ::

        configure_logging(level="INFO", json_format=True, service="tally")
            ↓
        structlog processor chain:
          1. TimeStamper (iso)
          2. merge_contextvars (request_id, caller, ...)
          3. add_log_level / add_logger_name
          4. _add_service_metadata
          5. _elasticsearch_compatible
          6. JSONRenderer (or ConsoleRenderer for dev)

Examples:
    >>> from tally.core.logging import configure_logging, get_logger
    >>> configure_logging(level="INFO", json_format=True, service="tally")
    >>> logger = get_logger(__name__)
    >>> logger.info("counter_record_created", site="blog", keys=2)

Tags:
    logging, structlog, observability, ecs, json-logging, tally
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Store service name for metadata
_SERVICE_NAME = "tally"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Make field names Elasticsearch/ECS compatible."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")

    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")

    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "tally",
    add_timestamp: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
        stream: Where log lines go (stdout by default; the CLI uses stderr)
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if json_format is None:
        json_format = not (stream or sys.stdout).isatty()

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
        shared_processors.append(_elasticsearch_compatible)
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    # structlog renders the line; the stdlib handler only writes it out
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=numeric_level,
    )
    logging.getLogger().setLevel(numeric_level)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


class LogContext:
    """Bind log context for the duration of a block.

    Example:
        async with LogContext(request_id="abc123"):
            logger.info("submission_received")  # includes request_id
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        structlog.contextvars.bind_contextvars(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self._context.keys())

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


__all__ = [
    "configure_logging",
    "get_logger",
    "LogContext",
]
