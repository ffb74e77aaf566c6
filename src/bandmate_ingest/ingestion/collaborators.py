"""Collaborator interfaces consumed by the task handlers.

The handlers depend on three external systems and nothing else:

- ``MetadataLookup``        recording search and details (MusicBrainz)
- ``ArrangementGenerator``  structured arrangement for a recording (AI service)
- ``WorkStore``             canonical Works and versioned Arrangements

Each is a ``typing.Protocol``; any object with matching async methods
satisfies it. Dedup of Works by external id and monotonically increasing
arrangement versions are the store's responsibility.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class Recording:
    """A search hit. ``id`` may be empty when the source omits it."""

    id: str | None
    title: str
    artist: str
    duration_ms: int | None = None


@dataclass(frozen=True)
class RecordingDetails:
    id: str
    title: str
    artist: str
    duration_sec: int | None = None
    genre: str | None = None


@dataclass(frozen=True)
class GeneratedArrangement:
    sections: list[dict[str, Any]]
    key: str | None = None
    bpm: float | None = None
    confidence: float | None = None
    source: str | None = None


@dataclass(frozen=True)
class Work:
    id: str
    title: str
    artist: str
    external_id: str | None = None
    genre: str | None = None


@dataclass(frozen=True)
class Arrangement:
    id: str
    work_id: str
    version: int
    submitter_id: str
    sections: list[dict[str, Any]] = field(default_factory=list)
    key: str | None = None
    bpm: float | None = None
    notes: str | None = None


@runtime_checkable
class MetadataLookup(Protocol):
    async def search_by_artist(self, name: str, limit: int = 10) -> list[Recording]: ...

    async def get_details(self, recording_id: str) -> RecordingDetails | None: ...


@runtime_checkable
class ArrangementGenerator(Protocol):
    async def generate(
        self, recording_id: str, details: RecordingDetails
    ) -> GeneratedArrangement: ...


@runtime_checkable
class WorkStore(Protocol):
    async def create_or_find_work(
        self,
        title: str,
        artist: str,
        external_id: str | None,
        genre: str | None = None,
    ) -> Work: ...

    async def append_arrangement(
        self,
        work_id: str,
        submitter_id: str,
        arrangement: GeneratedArrangement,
        notes: str | None = None,
    ) -> Arrangement: ...

    async def count_arrangements(self, work_id: str) -> int: ...


@dataclass
class Collaborators:
    """The three collaborators handed to ``configure()``."""

    metadata: MetadataLookup
    generator: ArrangementGenerator
    store: WorkStore
