"""Persistence models for the data access layer."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

if TYPE_CHECKING:
    from collections.abc import Sequence

# bumped when the stored record shape changes; records without a version are legacy
GAME_RECORD_VERSION = 2


class RosterEntry(BaseModel, frozen=True):
    """Display information for a seated player."""

    player_id: str
    display_name: str


def _zeroed_player_round(player_id: str) -> dict[str, Any]:
    return {
        "player_id": player_id,
        "bid": 0,
        "board_level": 0,
        "tricks_taken": 0,
        "rainbow": False,
        "jobo": False,
        "score": 0,
        "cumulative_score": 0,
    }


def build_game_record(  # noqa: PLR0913
    game_id: str,
    player_ids: Sequence[str],
    starting_dealer_index: int,
    created_by: str,
    hand_sizes: Sequence[int],
    created_at: datetime | None = None,
) -> dict[str, Any]:
    """Build the zeroed record for a new game.

    Every round is allocated up front with the dealer rotating one seat per
    round from the starting dealer.
    """
    count = len(player_ids)
    return {
        "schema_version": GAME_RECORD_VERSION,
        "id": game_id,
        "created_by": created_by,
        "created_at": (created_at or datetime.now(UTC)).isoformat(),
        "completed_at": None,
        "status": "in_progress",
        "player_ids": list(player_ids),
        "starting_dealer_index": starting_dealer_index,
        "current_round_index": 0,
        "rounds": [
            {
                "round_index": round_index,
                "hand_size": hand_size,
                "trump_suit": None,
                "dealer_player_id": player_ids[(starting_dealer_index + round_index) % count],
                "bids_entered": False,
                "is_complete": False,
                "player_rounds": [_zeroed_player_round(pid) for pid in player_ids],
            }
            for round_index, hand_size in enumerate(hand_sizes)
        ],
    }
