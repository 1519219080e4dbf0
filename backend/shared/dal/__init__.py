"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.game_repository import GameRepository
from shared.dal.models import GAME_RECORD_VERSION, RosterEntry, build_game_record
from shared.dal.roster_provider import RosterProvider

__all__ = [
    "GAME_RECORD_VERSION",
    "GameRepository",
    "RosterEntry",
    "RosterProvider",
    "build_game_record",
]
