"""Async Local Executor — in-process fallback runner.

When no broker is reachable, tasks run on the caller's event loop. Each
``submit`` wraps the handler in :func:`~bandmate_ingest.execution.best_effort.best_effort`,
schedules it with ``asyncio.create_task`` and returns at once; the caller
never waits for the handler and never sees its errors.

Tasks start in submission order on a single event loop (one logical
worker). There is no mutex, so handlers that suspend on I/O overlap.

::

    AsyncLocalExecutor(runner)
      ├── .submit(task)   ─ schedule runner(task), return ref
      ├── .drain()        ─ await everything scheduled so far
      └── .active_count   ─ handlers still running
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from bandmate_ingest.core.logging import get_logger
from bandmate_ingest.execution.best_effort import FailureSink, best_effort
from bandmate_ingest.execution.spec import Task

logger = get_logger(__name__)

TaskRunner = Callable[[Task], Awaitable[Any]]


class AsyncLocalExecutor:
    """asyncio-native executor for fallback mode.

    Parameters
    ----------
    runner : callable
        ``async (task) -> result``; resolves and runs the task's handler.
    sink : FailureSink, optional
        Where failed tasks are recorded (defaults to logging).
    """

    name = "async_local"

    def __init__(self, runner: TaskRunner, sink: FailureSink | None = None) -> None:
        self._runner = runner
        self._sink = sink
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    async def submit(self, task: Task) -> str:
        ref = f"local-{uuid.uuid4().hex[:12]}"

        async def _run() -> Any:
            logger.debug("local_task_started", ref=ref, **task.log_fields())
            result = await best_effort(self._runner(task), task, self._sink)
            logger.debug("local_task_finished", ref=ref, **task.log_fields())
            return result

        handle = asyncio.get_running_loop().create_task(_run(), name=ref)
        self._tasks[ref] = handle
        handle.add_done_callback(lambda _: self._tasks.pop(ref, None))
        return ref

    async def drain(self) -> None:
        """Wait for scheduled handlers, including any they fan out to."""
        while True:
            pending = [t for t in self._tasks.values() if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    @property
    def active_count(self) -> int:
        return sum(1 for t in self._tasks.values() if not t.done())
