"""Task handlers — artist discovery and single-song enrichment.

Both handlers are plain coroutines over a ``HandlerContext``. They make one
attempt, log failures with the task's identifiers and re-raise; whoever ran
them (the dispatcher's best-effort wrapper, or the Celery worker) decides
what happens next.

Artist ingest fans out through ``ctx.submit``, the dispatcher's entry point,
never by calling ``handle_song_ingest`` directly.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from bandmate_ingest.core.errors import RecordingNotFoundError
from bandmate_ingest.core.logging import LogContext, get_logger
from bandmate_ingest.core.settings import IngestSettings
from bandmate_ingest.execution.mode import ModeState
from bandmate_ingest.execution.spec import Task, TaskKind
from bandmate_ingest.ingestion.collaborators import (
    ArrangementGenerator,
    MetadataLookup,
    WorkStore,
)

logger = get_logger(__name__)

# Titles the search filter can let through that are never songs.
UNWANTED_TITLE_KEYWORDS = ("interview", "talk", "commentary")


@dataclass
class HandlerContext:
    metadata: MetadataLookup
    generator: ArrangementGenerator
    store: WorkStore
    mode: ModeState
    submit: Callable[[Task], Awaitable[None]]
    settings: IngestSettings


async def handle_artist_ingest(
    ctx: HandlerContext, artist_name: str, submitter_id: str
) -> dict[str, Any]:
    """Discover an artist's recordings and submit one song task per recording.

    In fallback mode successive submissions are spaced by
    ``settings.fanout_delay_seconds`` to keep load on the metadata and
    generation services down. In broker mode the workers' concurrency does
    the pacing.

    Returns:
        ``{"artist_name": ..., "queued_count": n}``
    """
    async with LogContext(task_kind=TaskKind.ARTIST_INGEST.value, artist_name=artist_name):
        logger.info("artist_ingest_started", submitter_id=submitter_id)
        try:
            recordings = await ctx.metadata.search_by_artist(
                artist_name, limit=ctx.settings.artist_search_limit
            )
        except Exception as exc:
            logger.error("artist_discovery_failed", error=str(exc))
            raise

        logger.info("artist_recordings_found", count=len(recordings))

        queued = 0
        for recording in recordings:
            if not recording.id:
                logger.debug("recording_skipped_no_id", title=recording.title)
                continue

            if queued and ctx.mode.is_fallback and ctx.settings.fanout_delay_seconds > 0:
                await asyncio.sleep(ctx.settings.fanout_delay_seconds)

            await ctx.submit(Task.song(recording.id, submitter_id))
            queued += 1

        logger.info("artist_ingest_completed", queued_count=queued)
        return {"artist_name": artist_name, "queued_count": queued}


async def handle_song_ingest(
    ctx: HandlerContext,
    recording_id: str,
    submitter_id: str,
    force: bool = False,
) -> dict[str, Any]:
    """Look up a recording, ensure its Work exists and append a generated arrangement.

    Works that already have an arrangement are skipped unless ``force``.

    Raises:
        RecordingNotFoundError: The metadata source has no such recording.
    """
    async with LogContext(task_kind=TaskKind.SONG_INGEST.value, recording_id=recording_id):
        logger.info("song_ingest_started", submitter_id=submitter_id, force=force)
        try:
            details = await ctx.metadata.get_details(recording_id)
            if details is None:
                raise RecordingNotFoundError(recording_id).with_context(
                    task_kind=TaskKind.SONG_INGEST.value, submitter_id=submitter_id
                )

            title_lower = details.title.lower()
            if any(keyword in title_lower for keyword in UNWANTED_TITLE_KEYWORDS):
                logger.warning("song_ingest_skipped_unwanted", title=details.title)
                return {
                    "recording_id": recording_id,
                    "success": True,
                    "skipped": True,
                    "reason": "unwanted_recording",
                }

            work = await ctx.store.create_or_find_work(
                title=details.title,
                artist=details.artist,
                external_id=details.id,
                genre=details.genre,
            )
            logger.info("work_verified", work_id=work.id, title=work.title)

            if not force:
                existing = await ctx.store.count_arrangements(work.id)
                if existing > 0:
                    logger.info("song_ingest_skipped_existing", work_id=work.id, arrangements=existing)
                    return {
                        "recording_id": recording_id,
                        "success": True,
                        "skipped": True,
                        "reason": "already_exists",
                    }

            generated = await ctx.generator.generate(work.external_id or details.id, details)
            logger.info(
                "arrangement_generated",
                sections=len(generated.sections),
                key=generated.key,
                bpm=generated.bpm,
            )

            arrangement = await ctx.store.append_arrangement(
                work.id,
                submitter_id,
                generated,
                notes=f"AI Confidence: {generated.confidence}\nAI Source: {generated.source}",
            )
        except Exception as exc:
            logger.error("song_ingest_failed", error=str(exc), error_type=type(exc).__name__)
            raise

        logger.info(
            "song_ingest_completed",
            work_id=work.id,
            arrangement_id=arrangement.id,
            version=arrangement.version,
        )
        return {"recording_id": recording_id, "success": True}


async def _run_artist(ctx: HandlerContext, task: Task) -> dict[str, Any]:
    return await handle_artist_ingest(ctx, task.payload["artist_name"], task.submitter_id)


async def _run_song(ctx: HandlerContext, task: Task) -> dict[str, Any]:
    return await handle_song_ingest(
        ctx,
        task.payload["recording_id"],
        task.submitter_id,
        force=bool(task.payload.get("force", False)),
    )


HANDLERS: dict[TaskKind, Callable[[HandlerContext, Task], Awaitable[dict[str, Any]]]] = {
    TaskKind.ARTIST_INGEST: _run_artist,
    TaskKind.SONG_INGEST: _run_song,
}


async def run_task(ctx: HandlerContext, task: Task) -> dict[str, Any]:
    """Run the handler registered for ``task.kind``."""
    return await HANDLERS[task.kind](ctx, task)
