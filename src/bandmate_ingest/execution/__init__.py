"""Task execution: task model, execution mode, executors, dispatcher and worker.

Import the dispatcher and worker from their modules; this package only
re-exports the leaf types so the handlers can depend on it.
"""

from bandmate_ingest.execution.mode import ExecutionMode, ModeState
from bandmate_ingest.execution.spec import Task, TaskKind, task_from_dict

__all__ = ["ExecutionMode", "ModeState", "Task", "TaskKind", "task_from_dict"]
