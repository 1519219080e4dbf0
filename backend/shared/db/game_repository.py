"""SQLite-backed game repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import uuid
from typing import TYPE_CHECKING, Any

import structlog

from shared.dal.game_repository import GameRepository
from shared.dal.models import build_game_record

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime

    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteGameRepository(GameRepository):
    """SQLite implementation of GameRepository.

    Stores one JSON document per game with indexed columns for queries.
    Round deltas are patched in place with json_set; json_each is used for
    player-based lookups. Write failures surface as OSError.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_game(
        self,
        player_ids: Sequence[str],
        starting_dealer_index: int,
        created_by: str,
        hand_sizes: Sequence[int],
    ) -> str:
        game_id = uuid.uuid4().hex
        record = build_game_record(game_id, player_ids, starting_dealer_index, created_by, hand_sizes)
        async with self._lock:
            self._execute_write(
                game_id,
                "INSERT INTO games (id, created_by, created_at, status, data) VALUES (?, ?, ?, ?, ?)",
                (game_id, created_by, record["created_at"], record["status"], json.dumps(record)),
            )
        logger.info("game record created", game_id=game_id, rounds=len(hand_sizes))
        return game_id

    async def load_game(self, game_id: str) -> dict[str, Any] | None:
        """Retrieve a single game record by its id."""
        row = self._db.connection.execute(
            "SELECT data FROM games WHERE id = ?",
            (game_id,),
        ).fetchone()
        if row is None:
            return None
        return json.loads(row[0])

    async def save_round_delta(
        self,
        game_id: str,
        round_index: int,
        round_fields: Mapping[str, Any],
        player_fields: Mapping[str, Mapping[str, Any]],
    ) -> None:
        """Patch one round in place.

        Player records are matched by player id; a seated player missing from
        the stored round gets a new record. Raises ValueError when the game or
        round does not exist.
        """
        path = f"$.rounds[{round_index}]"
        async with self._lock:
            row = self._db.connection.execute(
                "SELECT json_extract(data, ?) FROM games WHERE id = ?",
                (path, game_id),
            ).fetchone()
            if row is None:
                raise ValueError(f"game {game_id} not found")
            if row[0] is None:
                raise ValueError(f"game {game_id} has no round {round_index}")

            stored_round = json.loads(row[0])
            stored_round.update(round_fields)
            # legacy records use camelCase keys
            player_rounds = stored_round.get("player_rounds", stored_round.get("playerRounds"))
            if player_rounds is None:
                player_rounds = stored_round["player_rounds"] = []
            by_id = {pr.get("player_id", pr.get("playerId")): pr for pr in player_rounds}
            for player_id, fields in player_fields.items():
                if player_id in by_id:
                    by_id[player_id].update(fields)
                else:
                    player_rounds.append({"player_id": player_id, **fields})

            self._execute_write(
                game_id,
                "UPDATE games SET data = json_set(data, ?, json(?)) WHERE id = ?",
                (path, json.dumps(stored_round), game_id),
            )

    async def save_game_status(
        self,
        game_id: str,
        status: str,
        current_round_index: int,
        completed_at: datetime | None,
    ) -> None:
        completed_iso = completed_at.isoformat() if completed_at else None
        async with self._lock:
            cursor = self._execute_write(
                game_id,
                "UPDATE games SET "
                "status = ?, "
                "data = json_set(data, "
                "  '$.status', ?, "
                "  '$.current_round_index', ?, "
                "  '$.completed_at', ? "
                ") "
                "WHERE id = ?",
                (status, status, current_round_index, completed_iso, game_id),
            )
        if cursor.rowcount == 0:
            raise ValueError(f"game {game_id} not found")

    async def delete_game(self, game_id: str) -> None:
        async with self._lock:
            cursor = self._execute_write(game_id, "DELETE FROM games WHERE id = ?", (game_id,))
        if cursor.rowcount == 0:
            logger.warning("delete_game had no effect (not found)", game_id=game_id)

    async def list_games_for_player(self, player_id: str) -> list[dict[str, Any]]:
        """Retrieve every game the player is seated in, ordered by created_at descending."""
        rows = self._db.connection.execute(
            "SELECT data FROM games "
            "WHERE EXISTS (SELECT 1 FROM json_each(games.data, '$.player_ids') WHERE value = ?) "
            "OR EXISTS (SELECT 1 FROM json_each(games.data, '$.playerIds') WHERE value = ?) "
            "ORDER BY created_at DESC",
            (player_id, player_id),
        ).fetchall()
        return [json.loads(row[0]) for row in rows]

    def _execute_write(self, game_id: str, sql: str, params: tuple[Any, ...]) -> sqlite3.Cursor:
        try:
            with self._db.transaction() as conn:
                cursor = conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise OSError(f"database write failed for game {game_id}") from exc
        return cursor
