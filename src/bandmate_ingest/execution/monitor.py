"""Broker Connection Monitor — owns the broker client and the execution mode.

Start-up:

::

    broker_url unset ─────────────────────────▶ FALLBACK  (info log)
    broker_url set ── create_celery_app() ok ─▶ BROKER
                   └─ construction raises ────▶ FALLBACK  (error log)

After start-up the only way out of BROKER is a connection error, reported
through :meth:`BrokerMonitor.report_error` by the dispatcher (failed
enqueue) or by :meth:`BrokerMonitor.probe`, which :meth:`BrokerMonitor.watch`
runs periodically once :meth:`BrokerMonitor.start_watching` is called.
The first error flips the mode and is logged; later errors are not.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING

from bandmate_ingest.core.logging import get_logger
from bandmate_ingest.core.settings import IngestSettings
from bandmate_ingest.execution.celery_app import create_celery_app
from bandmate_ingest.execution.executors.celery import CeleryExecutor
from bandmate_ingest.execution.mode import ModeState

if TYPE_CHECKING:
    from celery import Celery

logger = get_logger(__name__)


class BrokerMonitor:
    """Broker client lifecycle plus the Broker → Fallback transition."""

    def __init__(
        self,
        settings: IngestSettings,
        app_factory: Callable[[IngestSettings], Celery] = create_celery_app,
    ) -> None:
        self.settings = settings
        self._app_factory = app_factory
        self._app: Celery | None = None
        self._executor: CeleryExecutor | None = None
        self._watch_task: asyncio.Task[None] | None = None
        self.mode = ModeState.for_broker(settings.broker_configured)

    @property
    def app(self) -> Celery | None:
        return self._app

    @property
    def watch_task(self) -> asyncio.Task[None] | None:
        return self._watch_task

    def start(self) -> ModeState:
        """Construct the broker client and settle the initial mode."""
        if not self.settings.broker_configured:
            logger.info("broker_not_configured", mode=self.mode.mode.value)
            return self.mode

        try:
            self._app = self._app_factory(self.settings)
        except Exception as exc:
            logger.error("broker_client_init_failed", error=str(exc))
            self.mode.degrade(f"broker client construction failed: {exc}")
            return self.mode

        self._executor = CeleryExecutor(self._app, queue=self.settings.queue_name)
        logger.info("broker_client_initialized", queue=self.settings.queue_name)
        return self.mode

    def executor(self) -> CeleryExecutor | None:
        """The broker executor, or None once the mode is FALLBACK."""
        if self.mode.is_fallback:
            return None
        return self._executor

    def report_error(self, error: BaseException) -> bool:
        """Connection error event. Returns True if it triggered the transition."""
        transitioned = self.mode.degrade(str(error))
        if transitioned:
            logger.error(
                "broker_unavailable_fallback_enabled",
                error=str(error),
                error_type=type(error).__name__,
            )
        return transitioned

    def probe(self) -> bool:
        """Check the broker connection once. Blocking.

        Returns False without probing when already in FALLBACK, since the
        transition is terminal.
        """
        if self._app is None or self.mode.is_fallback:
            return False
        try:
            with self._app.connection_for_write() as conn:
                conn.ensure_connection(
                    max_retries=1,
                    timeout=self.settings.broker_connect_timeout,
                )
        except Exception as exc:
            self.report_error(exc)
            return False
        return True

    async def watch(self, interval: float = 30.0) -> None:
        """Probe periodically until the mode degrades."""
        while self.mode.is_broker:
            healthy = await asyncio.to_thread(self.probe)
            if not healthy:
                return
            await asyncio.sleep(interval)

    def start_watching(self) -> asyncio.Task[None] | None:
        """Run :meth:`watch` in the background on the running event loop.

        Returns None when already in FALLBACK or when called outside an
        event loop; enqueue failures still report errors in that case.
        """
        if self.mode.is_fallback or self._app is None:
            return None
        if self._watch_task is not None and not self._watch_task.done():
            return self._watch_task
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return None
        self._watch_task = loop.create_task(
            self.watch(self.settings.broker_probe_interval), name="broker-watch"
        )
        logger.debug("broker_watch_started", interval=self.settings.broker_probe_interval)
        return self._watch_task

    async def stop_watching(self) -> None:
        """Cancel the background watch and wait for it to finish."""
        task, self._watch_task = self._watch_task, None
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    def close(self) -> None:
        task, self._watch_task = self._watch_task, None
        if task is not None and not task.done() and not task.get_loop().is_closed():
            task.cancel()
        if self._app is not None:
            self._app.close()
            logger.info("broker_client_closed")
