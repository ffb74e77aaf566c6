"""Task specification - what to run.

A ``Task`` is the unit of work handed to the dispatcher. The same object is
serialised onto the broker in broker mode and handed straight to a handler
in fallback mode, so callers never build mode-specific requests.

Tasks are immutable and carry no identifier of their own; the broker
assigns one when it accepts the task.

Example:
    >>> task = Task.artist("Queen", submitter_id="user-1")
    >>> task.kind
    <TaskKind.ARTIST_INGEST: 'ingest-artist'>
    >>> task_from_dict(task.to_dict()) == task
    True
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from bandmate_ingest.core.errors import TaskValidationError


class TaskKind(str, Enum):
    """Task kinds. Values are the job names used on the broker queue."""

    ARTIST_INGEST = "ingest-artist"
    SONG_INGEST = "ingest-single-song"


_REQUIRED_FIELDS: dict[TaskKind, str] = {
    TaskKind.ARTIST_INGEST: "artist_name",
    TaskKind.SONG_INGEST: "recording_id",
}


@dataclass(frozen=True)
class Task:
    """An ingestion request.

    Attributes:
        kind: Which handler runs the task.
        payload: ``{"artist_name"}`` for artist ingest,
            ``{"recording_id", "force"}`` for song ingest.
        submitter_id: Requesting user; created records are attributed to it.
    """

    kind: TaskKind
    payload: Mapping[str, Any] = field(hash=False)
    submitter_id: str

    def __post_init__(self) -> None:
        try:
            kind = TaskKind(self.kind)
        except ValueError as exc:
            raise TaskValidationError(f"Unknown task kind: {self.kind!r}", cause=exc) from exc
        object.__setattr__(self, "kind", kind)

        required = _REQUIRED_FIELDS[kind]
        value = self.payload.get(required)
        if not isinstance(value, str) or not value.strip():
            raise TaskValidationError(
                f"{kind.value} task requires a non-empty {required!r}"
            ).with_context(task_kind=kind.value)
        if not isinstance(self.submitter_id, str) or not self.submitter_id:
            raise TaskValidationError("Task requires a submitter_id").with_context(
                task_kind=kind.value
            )

        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))

    # ── Constructors ─────────────────────────────────────────────────

    @classmethod
    def artist(cls, artist_name: str, submitter_id: str) -> Task:
        return cls(TaskKind.ARTIST_INGEST, {"artist_name": artist_name}, submitter_id)

    @classmethod
    def song(cls, recording_id: str, submitter_id: str, force: bool = False) -> Task:
        return cls(
            TaskKind.SONG_INGEST,
            {"recording_id": recording_id, "force": force},
            submitter_id,
        )

    # ── Accessors ────────────────────────────────────────────────────

    @property
    def subject(self) -> str:
        """The artist name or recording id the task is about."""
        return self.payload[_REQUIRED_FIELDS[self.kind]]

    def log_fields(self) -> dict[str, Any]:
        """Fields identifying this task in log lines."""
        return {
            "task_kind": self.kind.value,
            _REQUIRED_FIELDS[self.kind]: self.subject,
            "submitter_id": self.submitter_id,
        }

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable form sent over the broker."""
        return {
            "type": self.kind.value,
            "payload": dict(self.payload),
            "submitter_id": self.submitter_id,
        }


def task_from_dict(data: Mapping[str, Any]) -> Task:
    """Rebuild a task from its broker form (see ``Task.to_dict``)."""
    try:
        return Task(
            kind=data["type"],
            payload=data.get("payload") or {},
            submitter_id=data["submitter_id"],
        )
    except KeyError as exc:
        raise TaskValidationError(f"Task message missing field {exc.args[0]!r}", cause=exc) from exc
