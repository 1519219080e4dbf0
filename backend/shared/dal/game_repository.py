"""Abstract interface for game persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime


class GameRepository(ABC):
    """Abstract interface for game persistence.

    Records cross this boundary as plain dicts in the shape produced by
    build_game_record. Turning a record into a domain Game is the caller's job.
    """

    @abstractmethod
    async def create_game(
        self,
        player_ids: Sequence[str],
        starting_dealer_index: int,
        created_by: str,
        hand_sizes: Sequence[int],
    ) -> str:
        """Persist a zeroed game with every round allocated and return its id."""

    @abstractmethod
    async def load_game(self, game_id: str) -> dict[str, Any] | None: ...

    @abstractmethod
    async def save_round_delta(
        self,
        game_id: str,
        round_index: int,
        round_fields: Mapping[str, Any],
        player_fields: Mapping[str, Mapping[str, Any]],
    ) -> None:
        """Patch one round: round-level fields plus per-player fields keyed by player id."""

    @abstractmethod
    async def save_game_status(
        self,
        game_id: str,
        status: str,
        current_round_index: int,
        completed_at: datetime | None,
    ) -> None: ...

    @abstractmethod
    async def delete_game(self, game_id: str) -> None: ...

    @abstractmethod
    async def list_games_for_player(self, player_id: str) -> list[dict[str, Any]]:
        """Return every record the player is seated in, newest first."""
