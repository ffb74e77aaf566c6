"""bandmate-ingest — song ingestion task pipeline.

Enriches externally discovered songs (metadata lookup + generated
arrangement) and persists them. Tasks go to a Celery broker when one is
configured and reachable, and run in-process otherwise.

Example:
    >>> import bandmate_ingest
    >>> bandmate_ingest.configure(Collaborators(metadata, generator, store))
    >>> await bandmate_ingest.submit_artist("Queen", submitter_id=user.id)
"""

from bandmate_ingest.api import (
    configure,
    configure_from_settings,
    shutdown,
    submit,
    submit_artist,
    submit_song,
)
from bandmate_ingest.execution.mode import ExecutionMode
from bandmate_ingest.execution.spec import Task, TaskKind
from bandmate_ingest.ingestion.collaborators import Collaborators

__version__ = "0.1.0"

__all__ = [
    "Collaborators",
    "ExecutionMode",
    "Task",
    "TaskKind",
    "configure",
    "configure_from_settings",
    "shutdown",
    "submit",
    "submit_artist",
    "submit_song",
]
