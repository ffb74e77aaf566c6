"""Ingestion handlers and the collaborator interfaces they consume."""

from bandmate_ingest.ingestion.collaborators import (
    Arrangement,
    ArrangementGenerator,
    Collaborators,
    GeneratedArrangement,
    MetadataLookup,
    Recording,
    RecordingDetails,
    Work,
    WorkStore,
)

__all__ = [
    "Arrangement",
    "ArrangementGenerator",
    "Collaborators",
    "GeneratedArrangement",
    "MetadataLookup",
    "Recording",
    "RecordingDetails",
    "Work",
    "WorkStore",
]
