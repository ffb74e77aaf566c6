"""Core building blocks shared by every ingestion module: logging, errors, settings."""

from bandmate_ingest.core.errors import ErrorCategory, ErrorContext, IngestError
from bandmate_ingest.core.logging import LogContext, configure_logging, get_logger
from bandmate_ingest.core.settings import IngestSettings, get_settings, reset_settings

__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "IngestError",
    "LogContext",
    "configure_logging",
    "get_logger",
    "IngestSettings",
    "get_settings",
    "reset_settings",
]
