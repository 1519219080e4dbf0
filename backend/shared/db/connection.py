"""SQLite database connection and schema management."""

from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = structlog.get_logger()

_DB_FILE_PERMISSIONS = 0o600

# bumped together with _SCHEMA_SQL; stored in PRAGMA user_version
SCHEMA_VERSION = 1

_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA foreign_keys=ON",
    "PRAGMA busy_timeout=5000",
)

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS players (
    id TEXT PRIMARY KEY,
    display_name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS games (
    id TEXT PRIMARY KEY,
    created_by TEXT NOT NULL,
    created_at TEXT NOT NULL,
    status TEXT NOT NULL,
    data TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_games_created_at ON games (created_at);
CREATE INDEX IF NOT EXISTS idx_games_status ON games (status);
"""


class Database:
    """Owns the single SQLite connection shared by the repositories."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    def connect(self) -> None:
        """Open the file (creating parent directories), ensure the schema, restrict permissions."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path, check_same_thread=False)
        for pragma in _PRAGMAS:
            conn.execute(pragma)
        conn.executescript(_SCHEMA_SQL)
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION}")
        self._conn = conn
        self._restrict_permissions()
        logger.debug("database opened", path=str(self._path))

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit when the block succeeds, roll back and re-raise when it does not."""
        conn = self.connection
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        conn.commit()

    def _restrict_permissions(self) -> None:
        # WAL mode writes database content to -wal and -shm siblings as well
        if os.name != "posix":  # pragma: no cover
            return
        for suffix in ("", "-wal", "-shm"):
            candidate = self._path.with_name(self._path.name + suffix)
            if not candidate.exists():
                continue
            try:
                candidate.chmod(_DB_FILE_PERMISSIONS)
            except OSError:
                logger.warning("could not restrict database file permissions", path=str(candidate))
