"""Reference collaborator implementations.

- MusicBrainzClient: metadata lookup over the MusicBrainz web service
- InMemoryWorkStore: single-process work store (development, tests)
"""

from bandmate_ingest.adapters.memory import InMemoryWorkStore
from bandmate_ingest.adapters.musicbrainz import MusicBrainzClient

__all__ = ["InMemoryWorkStore", "MusicBrainzClient"]
