"""Executor adapters.

- AsyncLocalExecutor: in-process asyncio runner (fallback mode)
- CeleryExecutor: distributed via Celery (broker mode)
"""

from .async_local import AsyncLocalExecutor
from .celery import RUN_TASK_NAME, CeleryExecutor
from .protocol import Executor

__all__ = [
    "Executor",
    "AsyncLocalExecutor",
    "CeleryExecutor",
    "RUN_TASK_NAME",
]
