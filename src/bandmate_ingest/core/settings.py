"""Settings for the ingestion pipeline.

Configuration should be explicit, validated, and environment-driven. The
only setting that changes behaviour at runtime is ``broker_url``: when it is
absent the pipeline starts in fallback mode and runs every task in-process.
That is not an error.

Environment variables use the ``INGEST_`` prefix. ``REDIS_URL`` is accepted
as an alias for the broker URL because that is what hosting providers
usually inject.

Examples:
    >>> settings = IngestSettings(broker_url="redis://localhost:6379/0")
    >>> settings.queue_name
    'ingestion-queue'
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IngestSettings(BaseSettings):
    """Ingestion pipeline settings.

    Fields
    ──────
    broker_url             : Celery broker URL; None selects fallback mode
    result_backend_url     : Optional Celery result backend
    queue_name             : Broker queue tasks are routed to
    broker_connect_timeout : Seconds allowed for a connection probe
    broker_probe_interval  : Seconds between background connection probes
    fanout_delay_seconds   : Pause between fan-out submissions in fallback mode
    artist_search_limit    : Max recordings discovered per artist
    collaborators_factory  : "module:callable" returning a Collaborators bundle
    log_level / log_format / log_file : structlog configuration
    """

    model_config = SettingsConfigDict(
        env_prefix="INGEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ── Broker ───────────────────────────────────────────────────
    broker_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("INGEST_BROKER_URL", "REDIS_URL", "broker_url"),
    )
    result_backend_url: str | None = None
    queue_name: str = "ingestion-queue"
    broker_connect_timeout: float = Field(default=5.0, gt=0)
    broker_probe_interval: float = Field(default=30.0, gt=0)

    # ── Handlers ─────────────────────────────────────────────────
    fanout_delay_seconds: float = Field(default=1.0, ge=0)
    artist_search_limit: int = Field(default=10, ge=1, le=100)

    # ── MusicBrainz ──────────────────────────────────────────────
    musicbrainz_base_url: str = "https://musicbrainz.org/ws/2"
    musicbrainz_user_agent: str = "Bandmate/1.0.0 ( https://bandmate.io )"
    http_timeout: float = Field(default=30.0, gt=0)

    # ── Wiring ───────────────────────────────────────────────────
    collaborators_factory: str | None = None

    # ── Observability ────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] | None = None
    log_file: Path | None = None

    @property
    def broker_configured(self) -> bool:
        return bool(self.broker_url and self.broker_url.strip())


_settings: IngestSettings | None = None


def get_settings() -> IngestSettings:
    """Get or create the process-wide settings instance."""
    global _settings
    if _settings is None:
        _settings = IngestSettings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
