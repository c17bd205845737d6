"""Key-value persistence port and its adapters.

Each collection is one JSON blob holding an ordered list of records. A
blob is always read whole and rewritten whole; there are no partial
updates.
"""

import json
import threading
from pathlib import Path
from typing import Protocol

import duckdb

USERS = "users"
LICENSE_KEYS = "license_keys"
TOURNAMENTS = "tournaments"
SCORING_PRESETS = "scoring_presets"

COLLECTIONS = (USERS, LICENSE_KEYS, TOURNAMENTS, SCORING_PRESETS)


class KeyValueStore(Protocol):
    """Persistence port injected into the application layer."""

    def load(self, collection: str) -> list[dict]: ...

    def save(self, collection: str, records: list[dict]) -> None: ...


class InMemoryStore:
    """Process-local store. Records round-trip through JSON like the file store."""

    def __init__(self):
        self._blobs: dict[str, str] = {}
        self._lock = threading.Lock()

    def load(self, collection: str) -> list[dict]:
        with self._lock:
            blob = self._blobs.get(collection)
        return json.loads(blob) if blob else []

    def save(self, collection: str, records: list[dict]) -> None:
        blob = json.dumps(records)
        with self._lock:
            self._blobs[collection] = blob


class DuckDBStore:
    """Store backed by a single DuckDB table of (collection, JSON payload)."""

    def __init__(self, database_path: str | Path):
        """Open (creating if needed) the database file.

        Args:
            database_path: Path to the .duckdb file; parent directories are created
        """
        self._db_path = Path(database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

        with duckdb.connect(str(self._db_path)) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS collections (
                    name VARCHAR PRIMARY KEY,
                    payload VARCHAR NOT NULL
                )
            """)

    def load(self, collection: str) -> list[dict]:
        with self._lock, duckdb.connect(str(self._db_path)) as conn:
            row = conn.execute(
                "SELECT payload FROM collections WHERE name = ?", [collection]
            ).fetchone()
        if not row or not row[0]:
            return []
        return json.loads(row[0])

    def save(self, collection: str, records: list[dict]) -> None:
        payload = json.dumps(records)
        with self._lock, duckdb.connect(str(self._db_path)) as conn:
            conn.execute(
                "INSERT OR REPLACE INTO collections (name, payload) VALUES (?, ?)",
                [collection, payload],
            )
