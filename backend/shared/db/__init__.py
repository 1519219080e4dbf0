"""SQLite database layer: connection management and repository implementations."""

from shared.db.connection import Database
from shared.db.game_repository import SqliteGameRepository
from shared.db.roster_provider import SqliteRosterProvider

__all__ = [
    "Database",
    "SqliteGameRepository",
    "SqliteRosterProvider",
]
