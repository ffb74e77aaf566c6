"""
Structured error types for the ingestion pipeline.

Instead of generic exceptions that lose context, every ingestion error
carries a category, a retryable flag, and an ``ErrorContext`` naming the
task it belongs to. The pipeline itself never retries; the flag and the
context exist so a failed task logged by the dispatcher carries enough
information for an operator to resubmit it by hand.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        IngestError                               │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  TransientError          SourceError          ValidationError   │
        │  (retryable=True)        (SOURCE)             (VALIDATION)      │
        │       │                      │                     │             │
        │  BrokerUnavailableError  RecordingNotFound    TaskValidation    │
        │                          MetadataLookupError                    │
        │                                                                  │
        │  ConfigError             GenerationError      PersistenceError  │
        │  (CONFIG)                (GENERATION)         (STORAGE)         │
        │       │                                                          │
        │  NotConfiguredError                                              │
        │  InvalidConfigError                                              │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = RecordingNotFoundError("abc-123")
    >>> error.retryable
    False
    >>> error.context.recording_id
    'abc-123'

    Chaining the underlying exception:

    >>> try:
    ...     raise ConnectionError("connection refused")
    ... except ConnectionError as e:
    ...     raise BrokerUnavailableError("Failed to enqueue", cause=e)
    Traceback (most recent call last):
    ...
    BrokerUnavailableError: Failed to enqueue

Tags:
    error-handling, exception-hierarchy, error-context, observability
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and log routing."""

    NETWORK = "NETWORK"
    SOURCE = "SOURCE"
    GENERATION = "GENERATION"
    STORAGE = "STORAGE"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Typed fields cover the identifiers an operator needs to resubmit a
    failed task; anything else goes into ``metadata``. ``to_dict()`` drops
    unset fields so log lines stay small.

    Examples:
        >>> ctx = ErrorContext(task_kind="ingest-single-song", recording_id="abc")
        >>> ctx.to_dict()
        {'task_kind': 'ingest-single-song', 'recording_id': 'abc'}
    """

    task_kind: str | None = None
    recording_id: str | None = None
    artist_name: str | None = None
    submitter_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key in ("task_kind", "recording_id", "artist_name", "submitter_id"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class IngestError(Exception):
    """
    Base exception for all ingestion errors.

    Subclasses set ``default_category`` and ``default_retryable`` so raising
    code only passes what differs from the defaults.

    Usage:
        raise PersistenceError("insert failed", cause=exc).with_context(
            recording_id=recording_id,
        )
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> IngestError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS
# =============================================================================


class TransientError(IngestError):
    """Temporary error that may succeed if the work is submitted again."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class BrokerUnavailableError(TransientError):
    """The distributed broker refused or could not accept a task."""


# =============================================================================
# SOURCE ERRORS
# =============================================================================


class SourceError(IngestError):
    """Error from the metadata source."""

    default_category = ErrorCategory.SOURCE
    default_retryable = False


class RecordingNotFoundError(SourceError):
    """The metadata source has no details for a recording id."""

    def __init__(self, recording_id: str, message: str | None = None, **kwargs: Any):
        super().__init__(message or f"Recording details not found for {recording_id}", **kwargs)
        self.context.recording_id = recording_id


class MetadataLookupError(SourceError):
    """The metadata source failed to answer (HTTP error, bad payload)."""

    default_retryable = True


# =============================================================================
# GENERATION / PERSISTENCE ERRORS
# =============================================================================


class GenerationError(IngestError):
    """Arrangement generation failed."""

    default_category = ErrorCategory.GENERATION


class PersistenceError(IngestError):
    """Creating a work or appending an arrangement failed."""

    default_category = ErrorCategory.STORAGE


# =============================================================================
# VALIDATION / CONFIG ERRORS
# =============================================================================


class ValidationError(IngestError):
    """Invalid input. Never retryable."""

    default_category = ErrorCategory.VALIDATION


class TaskValidationError(ValidationError):
    """A task was constructed with a missing or malformed payload."""


class ConfigError(IngestError):
    """Configuration error. Never retryable."""

    default_category = ErrorCategory.CONFIG


class NotConfiguredError(ConfigError):
    """The submission API was used before ``configure()``."""

    def __init__(self, message: str = "Ingestion pipeline is not configured; call configure() first"):
        super().__init__(message)


class InvalidConfigError(ConfigError):
    """A configuration value could not be used."""

    def __init__(self, key: str, value: Any, message: str | None = None, **kwargs: Any):
        super().__init__(message or f"Invalid value for {key}: {value!r}", **kwargs)
        self.context.metadata["config_key"] = key


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "IngestError",
    "TransientError",
    "BrokerUnavailableError",
    "SourceError",
    "RecordingNotFoundError",
    "MetadataLookupError",
    "GenerationError",
    "PersistenceError",
    "ValidationError",
    "TaskValidationError",
    "ConfigError",
    "NotConfiguredError",
    "InvalidConfigError",
]
