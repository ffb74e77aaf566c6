"""Dispatcher — the single place tasks are routed.

::

    submit(task)
      │
      ├─ mode BROKER ──▶ CeleryExecutor.submit ── ok ──▶ return
      │                        │
      │                        └─ raises ──▶ on_broker_error(exc)   (BROKER → FALLBACK)
      │                                         │
      └─ mode FALLBACK ◀────────────────────────┘
              │
              ▼
         AsyncLocalExecutor.submit ──▶ asyncio task: best_effort(handler)

``submit`` never raises. Enqueue and execute-now are collapsed into one call
so callers, including the fan-out loop in the artist handler, never look at
the current mode themselves.

Fan-out submits through this dispatcher rather than calling the song
handler directly, so every follow-up task obeys the mode current *at
fan-out time*. Keep it that way.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from bandmate_ingest.core.logging import get_logger
from bandmate_ingest.core.settings import IngestSettings
from bandmate_ingest.execution.best_effort import FailureSink
from bandmate_ingest.execution.executors.async_local import AsyncLocalExecutor
from bandmate_ingest.execution.executors.protocol import Executor
from bandmate_ingest.execution.mode import ModeState
from bandmate_ingest.execution.spec import Task
from bandmate_ingest.ingestion.collaborators import Collaborators
from bandmate_ingest.ingestion.handlers import HandlerContext, run_task

logger = get_logger(__name__)


def _task_fields(task: Any) -> dict[str, Any]:
    if isinstance(task, Task):
        return task.log_fields()
    return {"task": repr(task)}


class Dispatcher:
    """Routes tasks to the broker or to the in-process runner.

    Args:
        mode: Shared execution mode, owned by the broker monitor.
        collaborators: Metadata, generation and persistence collaborators.
        settings: Handler settings (fan-out delay, search limit).
        broker: Broker executor; None when no broker client exists.
        on_broker_error: Called with the exception when an enqueue fails.
            Defaults to degrading ``mode`` directly.
        sink: Where failed fallback tasks are recorded.
    """

    def __init__(
        self,
        mode: ModeState,
        collaborators: Collaborators,
        settings: IngestSettings,
        broker: Executor | None = None,
        on_broker_error: Callable[[BaseException], Any] | None = None,
        sink: FailureSink | None = None,
    ) -> None:
        self.mode = mode
        self._broker = broker
        self._on_broker_error = on_broker_error or (lambda exc: mode.degrade(str(exc)))
        self.context = HandlerContext(
            metadata=collaborators.metadata,
            generator=collaborators.generator,
            store=collaborators.store,
            mode=mode,
            submit=self.submit,
            settings=settings,
        )
        self._local = AsyncLocalExecutor(self._run, sink=sink)

    async def _run(self, task: Task) -> Any:
        return await run_task(self.context, task)

    async def submit(self, task: Task) -> None:
        """Submit a task; returns once it is enqueued or scheduled."""
        try:
            if self.mode.is_broker and self._broker is not None:
                try:
                    ref = await self._broker.submit(task)
                except Exception as exc:
                    logger.info("task_rerouted_to_fallback", **task.log_fields())
                    self._on_broker_error(exc)
                else:
                    logger.info(
                        "task_enqueued", executor=self._broker.name, ref=ref, **task.log_fields()
                    )
                    return

            ref = await self._local.submit(task)
            logger.info("task_scheduled_locally", ref=ref, **task.log_fields())
        except Exception as exc:
            logger.error("task_submission_failed", error=str(exc), **_task_fields(task))

    async def drain(self) -> None:
        """Wait for every locally scheduled handler to finish."""
        await self._local.drain()

    @property
    def pending_count(self) -> int:
        return self._local.active_count
