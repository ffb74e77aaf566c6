"""Celery worker — runs broker-mode tasks.

Start a worker with::

    INGEST_BROKER_URL=redis://localhost:6379/0 \\
    INGEST_COLLABORATORS_FACTORY=myapp.ingest:build_collaborators \\
    celery -A bandmate_ingest.execution.worker worker --loglevel=info -Q ingestion-queue

Each worker process configures its own dispatcher on start-up (see
``worker_process_init``). Fan-out from an artist task therefore goes back
through a dispatcher in the worker: onto the broker while it is healthy,
in-process once it is not. Fallback work scheduled during a task is drained
before the Celery task returns.

Each worker process runs every task on one long-lived event loop, so clients
built by the collaborators factory (an ``httpx.AsyncClient`` pool, say) stay
bound to the loop they were created on.

Celery does not retry (``max_retries=0``); the ``task_failure`` signal is
the failure callback and only logs.
"""

from __future__ import annotations

import asyncio
from typing import Any

from celery import Celery
from celery.signals import task_failure, task_success, worker_process_init, worker_process_shutdown

from bandmate_ingest.core.logging import get_logger
from bandmate_ingest.core.settings import get_settings
from bandmate_ingest.execution.celery_app import create_celery_app
from bandmate_ingest.execution.executors.celery import RUN_TASK_NAME
from bandmate_ingest.execution.spec import task_from_dict

logger = get_logger(__name__)

_loop: asyncio.AbstractEventLoop | None = None


def worker_loop() -> asyncio.AbstractEventLoop:
    """Return this process's event loop, creating it on first use."""
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop


def close_worker_loop() -> None:
    global _loop
    loop, _loop = _loop, None
    if loop is not None and not loop.is_closed():
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.close()


async def execute(payload: dict[str, Any]) -> dict[str, Any]:
    """Run one broker message through the configured dispatcher's handlers."""
    from bandmate_ingest import api
    from bandmate_ingest.ingestion.handlers import run_task

    dispatcher = api.get_dispatcher() if api.is_configured() else api.configure_from_settings()
    task = task_from_dict(payload)
    try:
        return await run_task(dispatcher.context, task)
    finally:
        await dispatcher.drain()


def register_tasks(app: Celery) -> None:
    """Register the ingestion task on ``app``."""

    @app.task(bind=True, name=RUN_TASK_NAME, max_retries=0, acks_late=True)
    def run_ingest_task(self, payload: dict[str, Any]) -> dict[str, Any]:
        logger.info("worker_task_started", task_id=self.request.id, task_kind=payload.get("type"))
        return worker_loop().run_until_complete(execute(payload))


@worker_process_init.connect
def _configure_worker_process(**_: Any) -> None:
    from bandmate_ingest import api

    worker_loop()
    api.configure_from_settings()


@worker_process_shutdown.connect
def _close_worker_process(**_: Any) -> None:
    close_worker_loop()


@task_success.connect
def _log_task_success(sender=None, result=None, **_: Any) -> None:
    if sender is None or sender.name != RUN_TASK_NAME:
        return
    logger.info("worker_task_completed", task_id=sender.request.id, result=result)


@task_failure.connect
def _log_task_failure(sender=None, task_id=None, exception=None, **_: Any) -> None:
    if sender is None or sender.name != RUN_TASK_NAME:
        return
    logger.error("worker_task_failed", task_id=task_id, error=str(exception))


app = create_celery_app(get_settings())
register_tasks(app)
