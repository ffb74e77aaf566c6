"""
Ingest Logging - Structured logging for the ingestion pipeline.

Every module in bandmate-ingest logs through this module so the API process,
the Celery worker, and the in-process fallback runner all emit the same
event shapes.

Manifesto:
    Ingestion runs unattended. When a song silently fails to appear in the
    library the logs are the only record of what happened, so every event
    is structured:

    - **Standardizes:** Same event names in broker and fallback mode
    - **Structures:** JSON output for log aggregation
    - **Correlates:** task_kind, recording_id, artist_name propagation
    - **Flexes:** Console output for development, JSON for production

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service="bandmate-ingest")
            ↓
        structlog processor chain:
          1. TimeStamper (iso)
          2. merge_contextvars  (LogContext / bind_context)
          3. add_log_level
          4. service metadata
          5. ECS field names (JSON only)
          6. JSONRenderer or ConsoleRenderer

Examples:
    >>> from bandmate_ingest.core.logging import configure_logging, get_logger
    >>> configure_logging(level="INFO", json_format=True)
    >>> logger = get_logger(__name__)
    >>> logger.info("task_enqueued", task_kind="ingest-artist")

    Scoped context for a handler run:

    >>> async with LogContext(task_kind="ingest-single-song", recording_id="abc"):
    ...     logger.info("song_ingest_started")

Tags:
    logging, structlog, observability, ecs, json-logging
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Store service name for metadata
_SERVICE_NAME = "bandmate-ingest"
_LOG_FILE: TextIO | None = None


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
    service: str = "bandmate-ingest",
    log_file: str | Path | None = None,
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        log_file: Append logs to this file instead of stdout
        add_timestamp: Include ISO timestamp in logs

    Example:
        # Worker process (JSON for log aggregation)
        configure_logging(level="INFO", json_format=True, service="bandmate-worker")

        # Development, also keeping an ingestion.log around
        configure_logging(level="DEBUG", log_file="ingestion.log")
    """
    global _SERVICE_NAME, _LOG_FILE
    _SERVICE_NAME = service

    if _LOG_FILE is not None:
        _LOG_FILE.close()
        _LOG_FILE = None

    if log_file is not None:
        _LOG_FILE = open(log_file, "a", encoding="utf-8")  # noqa: SIM115
        stream: TextIO = _LOG_FILE
    else:
        stream = sys.stdout

    # Auto-detect format if not specified
    if json_format is None:
        json_format = log_file is not None or not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        shared_processors.append(_elasticsearch_compatible)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=log_file is None)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=stream),
        # A cached logger keeps its stream; a later call closes the log file.
        cache_logger_on_first_use=log_file is None,
    )

    # Celery and httpx log through the standard library
    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=getattr(logging, level.upper()),
        force=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Context variables are copied into each ``asyncio.Task`` when it is
    created, so binding inside a handler does not leak into handlers
    scheduled alongside it.

    Example:
        async with LogContext(task_kind="ingest-artist", artist_name="Queen"):
            logger.info("artist_ingest_started")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self._context.keys())

    async def __aenter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    async def __aexit__(self, *args: Any) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
