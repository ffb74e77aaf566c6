"""Submission API — the only surface the rest of the application uses.

::

    configure(collaborators)          once, at process start
    await submit_artist(name, user)   from a route handler
    await submit_song(mbid, user)
    await shutdown()                  on application shutdown

Submitting never raises and never returns a result. Callers that need the
outcome read the persisted Works/Arrangements through their own store.
"""

from __future__ import annotations

import importlib
from collections.abc import Callable
from typing import Any

from bandmate_ingest.core.errors import (
    InvalidConfigError,
    NotConfiguredError,
    TaskValidationError,
)
from bandmate_ingest.core.logging import configure_logging, get_logger
from bandmate_ingest.core.settings import IngestSettings, get_settings
from bandmate_ingest.execution.best_effort import FailureSink
from bandmate_ingest.execution.celery_app import create_celery_app
from bandmate_ingest.execution.dispatcher import Dispatcher
from bandmate_ingest.execution.monitor import BrokerMonitor
from bandmate_ingest.execution.spec import Task
from bandmate_ingest.ingestion.collaborators import Collaborators

logger = get_logger(__name__)

_dispatcher: Dispatcher | None = None
_monitor: BrokerMonitor | None = None


def configure(
    collaborators: Collaborators,
    settings: IngestSettings | None = None,
    *,
    sink: FailureSink | None = None,
    app_factory: Callable[[IngestSettings], Any] = create_celery_app,
) -> Dispatcher:
    """Build the broker monitor and dispatcher and install them process-wide.

    Called from a running event loop, this also starts the monitor's
    background connection probe.
    """
    global _dispatcher, _monitor

    settings = settings or get_settings()
    monitor = BrokerMonitor(settings, app_factory=app_factory)
    monitor.start()
    monitor.start_watching()

    dispatcher = Dispatcher(
        mode=monitor.mode,
        collaborators=collaborators,
        settings=settings,
        broker=monitor.executor(),
        on_broker_error=monitor.report_error,
        sink=sink,
    )
    _dispatcher, _monitor = dispatcher, monitor
    logger.info("ingestion_configured", mode=monitor.mode.mode.value)
    return dispatcher


def load_collaborators_factory(path: str) -> Callable[[IngestSettings], Collaborators]:
    """Resolve a ``"module:callable"`` path."""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise InvalidConfigError("collaborators_factory", path, "Expected 'module:callable'")
    try:
        factory = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as exc:
        raise InvalidConfigError("collaborators_factory", path, cause=exc) from exc
    if not callable(factory):
        raise InvalidConfigError("collaborators_factory", path, "Factory is not callable")
    return factory


def configure_from_settings(settings: IngestSettings | None = None) -> Dispatcher:
    """Configure logging and the pipeline entirely from settings (worker start-up)."""
    settings = settings or get_settings()
    json_format = None if settings.log_format is None else settings.log_format == "json"
    configure_logging(
        level=settings.log_level,
        json_format=json_format,
        log_file=settings.log_file,
    )
    if not settings.collaborators_factory:
        raise NotConfiguredError("INGEST_COLLABORATORS_FACTORY is not set")

    factory = load_collaborators_factory(settings.collaborators_factory)
    return configure(factory(settings), settings)


def is_configured() -> bool:
    return _dispatcher is not None


def get_dispatcher() -> Dispatcher:
    if _dispatcher is None:
        raise NotConfiguredError()
    return _dispatcher


def get_monitor() -> BrokerMonitor:
    if _monitor is None:
        raise NotConfiguredError()
    return _monitor


async def submit(task: Task) -> None:
    """Submit a task. Fire-and-forget; never raises."""
    if _dispatcher is None:
        fields = task.log_fields() if isinstance(task, Task) else {"task": repr(task)}
        logger.error("task_dropped_not_configured", **fields)
        return
    await _dispatcher.submit(task)


async def submit_artist(artist_name: str, submitter_id: str) -> None:
    """Discover an artist's recordings and ingest each of them."""
    try:
        task = Task.artist(artist_name, submitter_id)
    except TaskValidationError as exc:
        logger.error("task_rejected", error=exc.to_dict())
        return
    await submit(task)


async def submit_song(recording_id: str, submitter_id: str, force: bool = False) -> None:
    """Ingest a single recording by its external id."""
    try:
        task = Task.song(recording_id, submitter_id, force=force)
    except TaskValidationError as exc:
        logger.error("task_rejected", error=exc.to_dict())
        return
    await submit(task)


async def shutdown() -> None:
    """Drain in-process work, close the broker client and forget the dispatcher."""
    global _dispatcher, _monitor
    if _dispatcher is not None:
        await _dispatcher.drain()
    if _monitor is not None:
        await _monitor.stop_watching()
        _monitor.close()
    _dispatcher, _monitor = None, None


def reset() -> None:
    """Forget the configured dispatcher without draining (for testing)."""
    global _dispatcher, _monitor
    if _monitor is not None:
        _monitor.close()
    _dispatcher, _monitor = None, None
