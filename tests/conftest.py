"""
Shared pytest fixtures for bandmate-ingest tests.

This module provides:
- Fake collaborators (metadata lookup, arrangement generator) that record calls
- Settings with no broker and no fan-out delay
- Cleanup of the process-wide dispatcher and cached settings

Usage:
    Fixtures are auto-discovered by pytest:

    async def test_something(collaborators, settings):
        dispatcher = Dispatcher(ModeState(), collaborators, settings)
"""

from __future__ import annotations

import sys
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

# Ensure the package is importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bandmate_ingest import api
from bandmate_ingest.adapters.memory import InMemoryWorkStore
from bandmate_ingest.core.settings import IngestSettings, reset_settings
from bandmate_ingest.ingestion.collaborators import (
    Collaborators,
    GeneratedArrangement,
    Recording,
    RecordingDetails,
)


# =============================================================================
# Fake collaborators
# =============================================================================


def make_details(recording_id: str, title: str | None = None, artist: str = "Test Artist") -> RecordingDetails:
    return RecordingDetails(
        id=recording_id,
        title=title or f"Song {recording_id}",
        artist=artist,
        duration_sec=200,
        genre="Rock",
    )


class FakeMetadata:
    """MetadataLookup returning canned recordings and details."""

    def __init__(
        self,
        recordings: list[Recording] | None = None,
        details: dict[str, RecordingDetails] | None = None,
    ) -> None:
        self.recordings = recordings or []
        self.details = details or {}
        self.search_calls: list[tuple[str, int]] = []
        self.detail_calls: list[str] = []

    async def search_by_artist(self, name: str, limit: int = 10) -> list[Recording]:
        self.search_calls.append((name, limit))
        return list(self.recordings)[:limit]

    async def get_details(self, recording_id: str) -> RecordingDetails | None:
        self.detail_calls.append(recording_id)
        return self.details.get(recording_id)


class FakeGenerator:
    """ArrangementGenerator returning a fixed two-section arrangement."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def generate(self, recording_id: str, details: RecordingDetails) -> GeneratedArrangement:
        self.calls.append(recording_id)
        return GeneratedArrangement(
            sections=[{"name": "Verse", "bars": 8}, {"name": "Chorus", "bars": 8}],
            key="C",
            bpm=120.0,
            confidence=0.9,
            source="test",
        )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> IngestSettings:
    """No broker, no fan-out delay."""
    return IngestSettings(_env_file=None, broker_url=None, fanout_delay_seconds=0.0)


@pytest.fixture
def recordings() -> list[Recording]:
    return [
        Recording(id="rec-1", title="Song rec-1", artist="Test Artist", duration_ms=200_000),
        Recording(id="rec-2", title="Song rec-2", artist="Test Artist", duration_ms=180_000),
        Recording(id="rec-3", title="Song rec-3", artist="Test Artist", duration_ms=240_000),
    ]


@pytest.fixture
def metadata(recordings: list[Recording]) -> FakeMetadata:
    return FakeMetadata(
        recordings=recordings,
        details={r.id: make_details(r.id) for r in recordings if r.id},
    )


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def store() -> InMemoryWorkStore:
    return InMemoryWorkStore()


@pytest.fixture
def collaborators(
    metadata: FakeMetadata, generator: FakeGenerator, store: InMemoryWorkStore
) -> Collaborators:
    return Collaborators(metadata=metadata, generator=generator, store=store)


@pytest.fixture(autouse=True)
def clean_pipeline_state() -> Generator[None, None, None]:
    """Forget the process-wide dispatcher, cached settings and log config."""
    api.reset()
    reset_settings()
    yield
    api.reset()
    reset_settings()
    structlog.reset_defaults()
