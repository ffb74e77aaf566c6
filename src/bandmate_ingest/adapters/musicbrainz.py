"""MusicBrainz metadata lookup over the public web service.

Implements :class:`~bandmate_ingest.ingestion.collaborators.MetadataLookup`
with ``httpx.AsyncClient``.

Artist search drops hits that are unlikely to be songs (interviews, spoken
intros, snippets under 30 seconds) before applying the result limit. Detail
lookups return ``None`` on any HTTP error response, since a missing
recording and a rejected id mean the same thing to the handler; transport
failures raise ``MetadataLookupError``.

MusicBrainz rejects requests without a descriptive User-Agent.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import httpx

from bandmate_ingest.core.errors import MetadataLookupError
from bandmate_ingest.core.logging import get_logger
from bandmate_ingest.core.settings import IngestSettings
from bandmate_ingest.ingestion.collaborators import Recording, RecordingDetails

logger = get_logger(__name__)

SEARCH_PAGE_SIZE = 20
MIN_SONG_LENGTH_MS = 30_000

EXCLUDED_TITLE_KEYWORDS = (
    "interview",
    "talk",
    "speech",
    "commentary",
    "intro",
    "dialogue",
    "discussion",
)

GENRE_KEYWORDS = (
    "rock", "pop", "jazz", "blues", "metal", "punk", "soul", "funk", "country",
    "folk", "classical", "reggae", "hip hop", "rap", "electronic", "disco",
    "house", "techno", "alternative", "indie", "grunge", "r&b", "latin", "salsa",
    "bossa", "swing", "gospel", "opera", "new wave", "progressive", "psychedelic",
    "britpop", "ska",
)


def is_song_recording(raw: dict[str, Any]) -> bool:
    """True when a search hit looks like a real song."""
    title = (raw.get("title") or "").lower()
    if any(keyword in title for keyword in EXCLUDED_TITLE_KEYWORDS):
        return False
    length = raw.get("length")
    if length and length < MIN_SONG_LENGTH_MS:
        return False
    return True


def _top_by_count(items: Iterable[dict[str, Any]]) -> str | None:
    ranked = sorted(items, key=lambda item: item.get("count") or 0, reverse=True)
    for item in ranked:
        if item.get("name"):
            return item["name"]
    return None


def extract_top_genre(
    genres: list[dict[str, Any]] | None, tags: list[dict[str, Any]] | None
) -> str | None:
    """Most-voted genre, falling back to the most-voted genre-like tag."""
    name = _top_by_count(genres or [])
    if name is None:
        genre_tags = [
            tag for tag in tags or []
            if any(keyword in (tag.get("name") or "").lower() for keyword in GENRE_KEYWORDS)
        ]
        name = _top_by_count(genre_tags)
    if name is None:
        return None
    return " ".join(word[:1].upper() + word[1:] for word in name.split(" "))


def _credited_artist(raw: dict[str, Any]) -> str | None:
    credits = raw.get("artist-credit") or []
    if credits:
        return credits[0].get("name")
    return None


class MusicBrainzClient:
    """Async MusicBrainz client.

    Args:
        base_url: Web service root, e.g. ``https://musicbrainz.org/ws/2``.
        user_agent: Sent with every request.
        timeout: Per-request timeout in seconds.
        client: Pre-built ``httpx.AsyncClient`` (tests pass one with a
            ``MockTransport``). Owned by the caller when given.
    """

    def __init__(
        self,
        base_url: str = "https://musicbrainz.org/ws/2",
        user_agent: str = "Bandmate/1.0.0 ( https://bandmate.io )",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}

    @classmethod
    def from_settings(cls, settings: IngestSettings) -> MusicBrainzClient:
        return cls(
            base_url=settings.musicbrainz_base_url,
            user_agent=settings.musicbrainz_user_agent,
            timeout=settings.http_timeout,
        )

    async def search_by_artist(self, name: str, limit: int = 10) -> list[Recording]:
        url = f"{self.base_url}/recording"
        params = {"query": f'artist:"{name}"', "limit": SEARCH_PAGE_SIZE, "fmt": "json"}
        logger.debug("musicbrainz_search", artist_name=name)
        try:
            response = await self._client.get(url, params=params, headers=self._headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise MetadataLookupError(
                f"MusicBrainz search failed for {name!r}", cause=exc
            ).with_context(artist_name=name) from exc

        recordings = []
        for raw in data.get("recordings") or []:
            if not is_song_recording(raw):
                continue
            length = raw.get("length")
            recordings.append(
                Recording(
                    id=raw.get("id"),
                    title=raw.get("title") or "",
                    artist=_credited_artist(raw) or name,
                    duration_ms=int(length) if length else None,
                )
            )
            if len(recordings) >= limit:
                break
        return recordings

    async def get_details(self, recording_id: str) -> RecordingDetails | None:
        url = f"{self.base_url}/recording/{recording_id}"
        params = {"inc": "artist-credits+releases+genres+tags", "fmt": "json"}
        try:
            response = await self._client.get(url, params=params, headers=self._headers)
        except httpx.HTTPError as exc:
            raise MetadataLookupError(
                f"MusicBrainz lookup failed for {recording_id}", cause=exc
            ).with_context(recording_id=recording_id) from exc

        if response.is_error:
            logger.warning(
                "musicbrainz_lookup_error",
                recording_id=recording_id,
                status_code=response.status_code,
            )
            return None

        try:
            raw = response.json()
        except ValueError:
            raw = None
        if not isinstance(raw, dict) or not raw.get("id"):
            logger.warning("musicbrainz_invalid_response", recording_id=recording_id)
            return None

        genre = extract_top_genre(raw.get("genres"), raw.get("tags"))
        credits = raw.get("artist-credit") or []
        if genre is None and credits and credits[0].get("artist"):
            artist = credits[0]["artist"]
            genre = extract_top_genre(artist.get("genres"), artist.get("tags"))

        length = raw.get("length")
        return RecordingDetails(
            id=raw["id"],
            title=raw.get("title") or "",
            artist=_credited_artist(raw) or "Unknown",
            duration_sec=round(length / 1000) if length else None,
            genre=genre,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
