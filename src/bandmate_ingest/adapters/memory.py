"""
In-memory work store.

Single-process deployments, local development and the test suite need a
``WorkStore`` without a database. Works are deduplicated by external id
(falling back to title + artist), and arrangement versions increase
monotonically per work. Nothing is persisted.

Tags:
    persistence, in-memory, asyncio, testing
"""

from __future__ import annotations

import asyncio
import uuid

from bandmate_ingest.core.errors import PersistenceError
from bandmate_ingest.ingestion.collaborators import Arrangement, GeneratedArrangement, Work

__all__ = ["InMemoryWorkStore"]


class InMemoryWorkStore:
    """``WorkStore`` backed by dicts.

    Example::

        store = InMemoryWorkStore()
        work = await store.create_or_find_work("Song 2", "Blur", external_id="mbid-1")
        again = await store.create_or_find_work("Song 2", "Blur", external_id="mbid-1")
        assert work == again
    """

    def __init__(self) -> None:
        self.works: dict[str, Work] = {}
        self.arrangements: dict[str, list[Arrangement]] = {}
        self._lock = asyncio.Lock()

    def _find(self, title: str, artist: str, external_id: str | None) -> Work | None:
        for work in self.works.values():
            if external_id:
                if work.external_id == external_id:
                    return work
            elif work.title == title and work.artist == artist:
                return work
        return None

    async def create_or_find_work(
        self,
        title: str,
        artist: str,
        external_id: str | None,
        genre: str | None = None,
    ) -> Work:
        title, artist = title.strip(), artist.strip()
        async with self._lock:
            existing = self._find(title, artist, external_id)
            if existing is not None:
                return existing

            work = Work(
                id=f"work_{uuid.uuid4().hex[:12]}",
                title=title,
                artist=artist,
                external_id=external_id,
                genre=genre,
            )
            self.works[work.id] = work
            self.arrangements[work.id] = []
            return work

    async def append_arrangement(
        self,
        work_id: str,
        submitter_id: str,
        arrangement: GeneratedArrangement,
        notes: str | None = None,
    ) -> Arrangement:
        async with self._lock:
            if work_id not in self.works:
                raise PersistenceError(f"Unknown work: {work_id}")
            versions = self.arrangements[work_id]
            next_version = max((a.version for a in versions), default=0) + 1
            created = Arrangement(
                id=f"arr_{uuid.uuid4().hex[:12]}",
                work_id=work_id,
                version=next_version,
                submitter_id=submitter_id,
                sections=list(arrangement.sections),
                key=arrangement.key,
                bpm=arrangement.bpm,
                notes=notes,
            )
            versions.append(created)
            return created

    async def count_arrangements(self, work_id: str) -> int:
        return len(self.arrangements.get(work_id, ()))
