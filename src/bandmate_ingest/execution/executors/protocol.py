"""Executor Protocol — the single backend interface.

The dispatcher hands every task to an ``Executor``. Broker mode uses
:class:`~bandmate_ingest.execution.executors.celery.CeleryExecutor`; fallback
mode uses :class:`~bandmate_ingest.execution.executors.async_local.AsyncLocalExecutor`.
``Executor`` is a ``typing.Protocol``; tests substitute any object with the
same methods.

::

    Executor (Protocol)
      ├── .name           ─ executor name for logs
      └── .submit(task)   ─ start work, return external_ref
"""

from typing import Protocol, runtime_checkable

from bandmate_ingest.execution.spec import Task


@runtime_checkable
class Executor(Protocol):
    """How a task gets executed."""

    name: str

    async def submit(self, task: Task) -> str:
        """Submit a task.

        Returns:
            external_ref: Celery task id, or a local reference.

        Raises:
            BrokerUnavailableError: If a broker-backed executor cannot accept the task.
        """
        ...
