"""Best-effort execution - catch, log, drop.

Fallback-mode handlers run detached from whoever submitted them, so their
failures have nowhere to propagate. ``best_effort()`` names that policy at
the call site: the wrapped coroutine runs once, its result is returned, and
any exception is handed to a ``FailureSink`` instead of escaping.

The default sink only logs. Swapping in a dead-letter sink later needs no
change to handler code.

Example::

    result = await best_effort(handle_song(ctx, task), task)
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import Any, Protocol, TypeVar, runtime_checkable

from bandmate_ingest.core.errors import IngestError
from bandmate_ingest.core.logging import get_logger
from bandmate_ingest.execution.spec import Task

logger = get_logger(__name__)

T = TypeVar("T")


@runtime_checkable
class FailureSink(Protocol):
    """Receives tasks whose single execution attempt failed."""

    def record(self, task: Task, error: BaseException) -> None: ...


class LoggingFailureSink:
    """Writes one structured error line per failed task."""

    def record(self, task: Task, error: BaseException) -> None:
        details: dict[str, Any]
        if isinstance(error, IngestError):
            details = error.to_dict()
        else:
            details = {"error_type": type(error).__name__, "message": str(error)}
        logger.error("task_failed", **task.log_fields(), error=details)


_default_sink = LoggingFailureSink()


async def best_effort(
    work: Awaitable[T],
    task: Task,
    sink: FailureSink | None = None,
) -> T | None:
    """Await ``work``; on failure record it in ``sink`` and return None.

    ``asyncio.CancelledError`` is not an ``Exception`` and still propagates,
    so shutdown can cancel pending handlers.
    """
    try:
        return await work
    except Exception as exc:
        (sink or _default_sink).record(task, exc)
        return None
