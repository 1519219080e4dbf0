"""SQLite-backed roster provider."""

from __future__ import annotations

import asyncio
import sqlite3
from typing import TYPE_CHECKING

from shared.dal.models import RosterEntry
from shared.dal.roster_provider import RosterProvider

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shared.db.connection import Database


class SqliteRosterProvider(RosterProvider):
    """SQLite implementation of RosterProvider backed by the players table."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def add_player(self, player_id: str, display_name: str) -> None:
        """Insert a player. Raises ValueError on duplicate id or empty name."""
        if not display_name.strip():
            raise ValueError("display name must not be empty")
        async with self._lock:
            try:
                with self._db.transaction() as conn:
                    conn.execute(
                        "INSERT INTO players (id, display_name) VALUES (?, ?)",
                        (player_id, display_name),
                    )
            except sqlite3.IntegrityError as exc:
                raise ValueError(f"Player with id '{player_id}' already exists") from exc

    async def get_roster(self, player_ids: Sequence[str]) -> list[RosterEntry]:
        """Look up display names, preserving the requested order."""
        if not player_ids:
            return []
        placeholders = ", ".join("?" for _ in player_ids)
        rows = self._db.connection.execute(
            f"SELECT id, display_name FROM players WHERE id IN ({placeholders})",  # noqa: S608
            tuple(player_ids),
        ).fetchall()
        names = {row[0]: row[1] for row in rows}
        return [RosterEntry(player_id=pid, display_name=names[pid]) for pid in player_ids if pid in names]
