"""Persistence port, adapters and typed repositories."""

from scrimboard.repositories.store import DuckDBStore, InMemoryStore, KeyValueStore
from scrimboard.repositories.record_repository import (
    LicenseKeyRepository,
    ScoringPresetRepository,
    TournamentRepository,
    UserRepository,
)

__all__ = [
    "DuckDBStore",
    "InMemoryStore",
    "KeyValueStore",
    "LicenseKeyRepository",
    "ScoringPresetRepository",
    "TournamentRepository",
    "UserRepository",
]
