"""Tests for bandmate_ingest.ingestion.handlers — artist fan-out and song ingest."""

from __future__ import annotations

import time

import pytest
from structlog.testing import capture_logs

from bandmate_ingest.core.errors import MetadataLookupError, RecordingNotFoundError
from bandmate_ingest.execution.mode import ExecutionMode, ModeState
from bandmate_ingest.execution.spec import Task, TaskKind
from bandmate_ingest.ingestion.collaborators import Recording, RecordingDetails
from bandmate_ingest.ingestion.handlers import (
    HandlerContext,
    handle_artist_ingest,
    handle_song_ingest,
    run_task,
)


class SubmitRecorder:
    """Stands in for the dispatcher's submit; records tasks with timestamps."""

    def __init__(self) -> None:
        self.tasks: list[Task] = []
        self.times: list[float] = []

    async def __call__(self, task: Task) -> None:
        self.tasks.append(task)
        self.times.append(time.monotonic())


@pytest.fixture
def submitted() -> SubmitRecorder:
    return SubmitRecorder()


@pytest.fixture
def make_ctx(collaborators, settings, submitted):
    def _make(mode: ModeState | None = None, settings_override=None) -> HandlerContext:
        return HandlerContext(
            metadata=collaborators.metadata,
            generator=collaborators.generator,
            store=collaborators.store,
            mode=mode or ModeState(),
            submit=submitted,
            settings=settings_override or settings,
        )

    return _make


class TestArtistIngest:
    @pytest.mark.asyncio
    async def test_fans_out_one_song_task_per_recording(self, make_ctx, submitted, metadata):
        result = await handle_artist_ingest(make_ctx(), "Test Artist", "user-1")

        assert result == {"artist_name": "Test Artist", "queued_count": 3}
        assert [t.kind for t in submitted.tasks] == [TaskKind.SONG_INGEST] * 3
        assert [t.payload["recording_id"] for t in submitted.tasks] == ["rec-1", "rec-2", "rec-3"]
        assert metadata.search_calls == [("Test Artist", 10)]

    @pytest.mark.asyncio
    async def test_submitter_propagates_to_every_song_task(self, make_ctx, submitted):
        await handle_artist_ingest(make_ctx(), "Test Artist", "user-42")
        assert {t.submitter_id for t in submitted.tasks} == {"user-42"}

    @pytest.mark.asyncio
    async def test_no_recordings(self, make_ctx, submitted, metadata):
        metadata.recordings = []
        result = await handle_artist_ingest(make_ctx(), "Nobody", "user-1")
        assert result == {"artist_name": "Nobody", "queued_count": 0}
        assert submitted.tasks == []

    @pytest.mark.asyncio
    async def test_recordings_without_id_are_not_queued(self, make_ctx, submitted, metadata):
        metadata.recordings = [
            Recording(id="rec-1", title="A", artist="Test Artist"),
            Recording(id="", title="B", artist="Test Artist"),
        ]
        result = await handle_artist_ingest(make_ctx(), "Test Artist", "user-1")
        assert result["queued_count"] == 1
        assert [t.subject for t in submitted.tasks] == ["rec-1"]

    @pytest.mark.asyncio
    async def test_search_limit_from_settings(self, make_ctx, metadata, settings):
        limited = settings.model_copy(update={"artist_search_limit": 2})
        result = await handle_artist_ingest(
            make_ctx(settings_override=limited), "Test Artist", "user-1"
        )
        assert metadata.search_calls == [("Test Artist", 2)]
        assert result["queued_count"] == 2

    @pytest.mark.asyncio
    async def test_discovery_failure_logged_and_raised(self, make_ctx, metadata, submitted):
        async def failing_search(name, limit=10):
            raise MetadataLookupError("MusicBrainz unavailable")

        metadata.search_by_artist = failing_search

        with capture_logs() as logs, pytest.raises(MetadataLookupError):
            await handle_artist_ingest(make_ctx(), "Test Artist", "user-1")

        failure = [e for e in logs if e["event"] == "artist_discovery_failed"]
        assert failure and failure[0]["log_level"] == "error"
        assert submitted.tasks == []


class TestFanOutPacing:
    DELAY = 0.05

    @pytest.mark.asyncio
    async def test_fallback_spaces_submissions(self, make_ctx, submitted, settings):
        paced = settings.model_copy(update={"fanout_delay_seconds": self.DELAY})
        await handle_artist_ingest(make_ctx(settings_override=paced), "Test Artist", "user-1")

        gaps = [b - a for a, b in zip(submitted.times, submitted.times[1:])]
        assert len(gaps) == 2
        assert all(gap >= 0.9 * self.DELAY for gap in gaps)

    @pytest.mark.asyncio
    async def test_broker_mode_does_not_pause(self, make_ctx, submitted, settings):
        paced = settings.model_copy(update={"fanout_delay_seconds": 5.0})
        start = time.monotonic()
        await handle_artist_ingest(
            make_ctx(mode=ModeState(ExecutionMode.BROKER), settings_override=paced),
            "Test Artist",
            "user-1",
        )
        assert time.monotonic() - start < 1.0
        assert len(submitted.tasks) == 3


class TestSongIngest:
    @pytest.mark.asyncio
    async def test_creates_work_and_arrangement(self, make_ctx, store, generator):
        result = await handle_song_ingest(make_ctx(), "rec-1", "user-1")

        assert result == {"recording_id": "rec-1", "success": True}
        (work,) = store.works.values()
        assert work.external_id == "rec-1"
        assert work.title == "Song rec-1"
        assert work.genre == "Rock"
        (arrangement,) = store.arrangements[work.id]
        assert arrangement.submitter_id == "user-1"
        assert arrangement.version == 1
        assert arrangement.key == "C"
        assert arrangement.notes == "AI Confidence: 0.9\nAI Source: test"
        assert generator.calls == ["rec-1"]

    @pytest.mark.asyncio
    async def test_not_found_raises_without_persisting(self, make_ctx, store, generator):
        with capture_logs() as logs, pytest.raises(RecordingNotFoundError) as exc_info:
            await handle_song_ingest(make_ctx(), "missing", "user-1")

        assert store.works == {}
        assert generator.calls == []
        assert exc_info.value.context.submitter_id == "user-1"
        failure = [e for e in logs if e["event"] == "song_ingest_failed"]
        assert failure and failure[0]["error_type"] == "RecordingNotFoundError"

    @pytest.mark.asyncio
    async def test_unwanted_title_skipped(self, make_ctx, metadata, store):
        metadata.details["rec-9"] = RecordingDetails(
            id="rec-9", title="Interview with the Band", artist="Test Artist"
        )
        result = await handle_song_ingest(make_ctx(), "rec-9", "user-1")

        assert result["skipped"] is True
        assert result["reason"] == "unwanted_recording"
        assert store.works == {}

    @pytest.mark.asyncio
    async def test_existing_arrangement_skipped(self, make_ctx, store, generator):
        ctx = make_ctx()
        await handle_song_ingest(ctx, "rec-1", "user-1")
        result = await handle_song_ingest(ctx, "rec-1", "user-2")

        assert result["reason"] == "already_exists"
        assert generator.calls == ["rec-1"]
        assert len(store.works) == 1

    @pytest.mark.asyncio
    async def test_force_appends_new_version(self, make_ctx, store):
        ctx = make_ctx()
        await handle_song_ingest(ctx, "rec-1", "user-1")
        result = await handle_song_ingest(ctx, "rec-1", "user-2", force=True)

        assert result == {"recording_id": "rec-1", "success": True}
        (work_id,) = store.works
        assert [(a.version, a.submitter_id) for a in store.arrangements[work_id]] == [
            (1, "user-1"),
            (2, "user-2"),
        ]

    @pytest.mark.asyncio
    async def test_generation_failure_logged_and_raised(self, make_ctx, generator, store):
        async def failing_generate(recording_id, details):
            raise RuntimeError("model timeout")

        generator.generate = failing_generate

        with capture_logs() as logs, pytest.raises(RuntimeError):
            await handle_song_ingest(make_ctx(), "rec-1", "user-1")

        (work_id,) = store.works
        assert store.arrangements[work_id] == []
        assert any(e["event"] == "song_ingest_failed" for e in logs)


class TestRunTask:
    @pytest.mark.asyncio
    async def test_routes_song_task_with_force(self, make_ctx, store):
        ctx = make_ctx()
        await run_task(ctx, Task.song("rec-1", "user-1"))
        await run_task(ctx, Task.song("rec-1", "user-1", force=True))

        (work_id,) = store.works
        assert len(store.arrangements[work_id]) == 2

    @pytest.mark.asyncio
    async def test_routes_artist_task(self, make_ctx, submitted):
        result = await run_task(make_ctx(), Task.artist("Test Artist", "user-1"))
        assert result["queued_count"] == 3
