"""
Persistence backends for MixDeck.

The library store only needs a byte-blob key/value port:

    get(key) -> Optional[bytes]
    set(key, value: bytes) -> None

Backends:
- MemoryStorage: process-local dict (tests, throwaway sessions)
- FileStorage: one <key>.dat file per key in a directory, atomic replace on write
- SqliteStorage: single kv_store table with schema version tracking

Single local instance; no concurrent writers are assumed.
"""

import os
import sqlite3
import logging
import tempfile
from pathlib import Path
from typing import Dict, Optional
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

# Used when storage.path is not set
DEFAULT_PATHS = {
    "sqlite": "data/mixdeck.sqlite",
    "file": "data/mixdeck",
}


class MemoryStorage:
    """In-memory key/value store."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self.data: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.data[key] = value


class FileStorage:
    """Key/value store backed by opaque <key>.dat files in a directory."""

    def __init__(self, directory: str = DEFAULT_PATHS["file"]):
        """
        Args:
            directory: Directory holding one file per key (created if missing).
        """
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.dat"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def set(self, key: str, value: bytes) -> None:
        """Write value for key, replacing the file atomically."""
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=str(self.directory), prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug(f"Wrote {len(value)} bytes to {path}")


class SqliteStorage:
    """SQLite key/value store for MixDeck blobs."""

    SCHEMA_VERSION = 1

    # SQL schema definition
    SCHEMA = """
    -- Key/value blobs: library document, last selected id
    CREATE TABLE IF NOT EXISTS kv_store (
        key TEXT PRIMARY KEY,
        value BLOB NOT NULL,
        updated_at TEXT NOT NULL
    );

    -- Schema version tracking
    CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        updated_at TEXT NOT NULL
    );
    """

    def __init__(self, db_path: str = DEFAULT_PATHS["sqlite"]):
        """
        Initialize storage.

        Args:
            db_path: Path to SQLite database file.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn: Optional[sqlite3.Connection] = None

    def connect(self) -> None:
        """Open database connection and initialize schema."""
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row
        logger.info(f"Connected to database: {self.db_path}")
        self._initialize_schema()

    def disconnect(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("Database disconnected")

    def __enter__(self) -> "SqliteStorage":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def _initialize_schema(self) -> None:
        """Initialize or check schema."""
        assert self.conn is not None
        cursor = self.conn.cursor()

        cursor.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
        )
        if not cursor.fetchone():
            logger.info("Initializing database schema...")
            cursor.executescript(self.SCHEMA)
            cursor.execute(
                "INSERT INTO schema_version (version, updated_at) VALUES (?, ?)",
                (self.SCHEMA_VERSION, datetime.now(timezone.utc).isoformat()),
            )
            self.conn.commit()
            logger.info(f"✅ Database schema initialized (v{self.SCHEMA_VERSION})")
        else:
            cursor.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
            current_version = cursor.fetchone()[0]
            if current_version < self.SCHEMA_VERSION:
                logger.warning(
                    f"Schema version mismatch: {current_version} < {self.SCHEMA_VERSION}. "
                    f"Consider running migration."
                )

    def get(self, key: str) -> Optional[bytes]:
        """
        Read the blob stored under key.

        Args:
            key: Logical key (e.g. "library").

        Returns:
            Stored bytes or None if the key was never written.
        """
        assert self.conn is not None
        cursor = self.conn.cursor()

        cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cursor.fetchone()

        if not row:
            return None
        return bytes(row["value"])

    def set(self, key: str, value: bytes) -> None:
        """
        Insert or replace the blob stored under key.

        Args:
            key: Logical key.
            value: Raw bytes to store.
        """
        assert self.conn is not None
        cursor = self.conn.cursor()

        cursor.execute(
            """
            INSERT OR REPLACE INTO kv_store (key, value, updated_at)
            VALUES (?, ?, ?)
            """,
            (key, sqlite3.Binary(value), datetime.now(timezone.utc).isoformat()),
        )
        self.conn.commit()
        logger.debug(f"Stored {len(value)} bytes under {key!r}")


def open_storage(config):
    """
    Build the storage backend selected in config["storage"].

    Args:
        config: Config instance (or dict with a "storage" section)

    Returns:
        Ready-to-use backend; SqliteStorage is already connected.
    """
    storage_cfg = config["storage"]
    backend = storage_cfg.get("backend", "sqlite")
    path = storage_cfg.get("path") or DEFAULT_PATHS.get(backend)

    if backend == "memory":
        logger.info("Using in-memory storage (nothing is persisted)")
        return MemoryStorage()
    if backend == "file":
        logger.info(f"Using file storage in {path}")
        return FileStorage(path)

    storage = SqliteStorage(path)
    storage.connect()
    return storage
