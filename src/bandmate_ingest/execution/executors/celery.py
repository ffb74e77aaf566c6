"""Celery Executor — hand tasks to the distributed broker.

``submit`` publishes the task's JSON form to the ingestion queue with
``send_task``; a worker process started from
:mod:`bandmate_ingest.execution.worker` picks it up. Publishing does not
retry: a refused connection surfaces as ``BrokerUnavailableError`` so the
dispatcher can fall back for that task. The publish runs in a worker thread
since kombu connects synchronously.

::

    CeleryExecutor(celery_app, queue="ingestion-queue")
      └── .submit(task)  ─ celery_app.send_task(RUN_TASK_NAME, [task.to_dict()])
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from bandmate_ingest.core.errors import BrokerUnavailableError
from bandmate_ingest.execution.spec import Task

if TYPE_CHECKING:
    from celery import Celery

RUN_TASK_NAME = "bandmate_ingest.run_task"


class CeleryExecutor:
    """Broker-backed executor."""

    name = "celery"

    def __init__(self, celery_app: Celery, queue: str = "ingestion-queue"):
        self.celery_app = celery_app
        self.queue = queue

    async def submit(self, task: Task) -> str:
        """Publish ``task``; returns the Celery task id."""
        try:
            async_result = await asyncio.to_thread(
                self.celery_app.send_task,
                RUN_TASK_NAME,
                args=[task.to_dict()],
                queue=self.queue,
                retry=False,
            )
        except Exception as exc:
            raise BrokerUnavailableError(
                f"Failed to enqueue {task.kind.value} task", cause=exc
            ).with_context(**task.log_fields()) from exc
        return async_result.id
