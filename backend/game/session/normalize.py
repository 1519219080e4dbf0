"""
Load-time adapter from stored game records to canonical Game snapshots.

Accepts the current record version and legacy records:
- camelCase keys (a snake_case key wins when both spellings are present,
  since deltas written after an upgrade use snake_case)
- ``bidType: "board"`` instead of ``board_level``
- epoch-millisecond timestamps
- missing ``bids_entered``, ``jobo``, ``board_level``, ``status``
- seated players with no record in a round

After normalisation every field is populated and scores are recomputed;
stored scores are never trusted.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from game.logic.enums import GameStatus
from game.logic.game import recalculate_scores
from game.logic.settings import GameSettings
from game.logic.state import Game, PlayerRound, Round

if TYPE_CHECKING:
    from collections.abc import Mapping

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _snake_keys(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Rename keys to snake_case. Keys already in snake_case take precedence."""
    result: dict[str, Any] = {}
    for key, value in raw.items():
        snake = _snake(key)
        if snake in result and snake != key:
            continue
        result[snake] = value
    return result


def _parse_timestamp(value: Any) -> datetime | None:  # noqa: ANN401
    if value is None:
        return None
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _normalize_player_round(raw: Mapping[str, Any]) -> dict[str, Any]:
    data = _snake_keys(raw)
    bid_type = data.pop("bid_type", None)
    if "board_level" not in data or data["board_level"] is None:
        data["board_level"] = 1 if bid_type == "board" else 0
    data.setdefault("jobo", False)
    data.setdefault("rainbow", False)
    data.setdefault("bid", 0)
    data.setdefault("tricks_taken", 0)
    return data


def _normalize_round(raw: Mapping[str, Any], player_ids: tuple[str, ...]) -> Round:
    data = _snake_keys(raw)
    if data.get("bids_entered") is None:
        data["bids_entered"] = bool(data.get("is_complete")) or data.get("trump_suit") is not None
    data.setdefault("is_complete", False)

    records = (_normalize_player_round(pr) for pr in data.get("player_rounds", []))
    stored = {record.get("player_id"): record for record in records}
    data["player_rounds"] = tuple(
        PlayerRound.model_validate(stored[pid]) if pid in stored else PlayerRound(player_id=pid) for pid in player_ids
    )
    return Round.model_validate(data)


def _first_open_round(rounds: tuple[Round, ...]) -> int:
    for round_state in rounds:
        if not round_state.is_complete:
            return round_state.round_index
    return len(rounds) - 1


def normalize_game(raw: Mapping[str, Any], settings: GameSettings | None = None) -> Game:
    """
    Convert a stored record into a Game.

    The game's settings take the seat count and hand-size schedule from the
    record itself; all other rules come from ``settings``. Raises
    pydantic.ValidationError (a ValueError) when a required field is missing.
    """
    data = _snake_keys(raw)
    data.pop("schema_version", None)
    player_ids = tuple(data.get("player_ids", ()))

    rounds = tuple(
        sorted(
            (_normalize_round(r, player_ids) for r in data.get("rounds", [])),
            key=lambda r: r.round_index,
        )
    )
    base_settings = settings or GameSettings()
    game_settings = base_settings.model_copy(
        update={
            "num_players": len(player_ids) or base_settings.num_players,
            "round_hand_sizes": tuple(r.hand_size for r in rounds) or base_settings.round_hand_sizes,
        },
    )

    status = data.get("status") or GameStatus.IN_PROGRESS
    current_round_index = data.get("current_round_index")
    if current_round_index is None and rounds:
        current_round_index = _first_open_round(rounds)

    game = Game.model_validate(
        {
            "id": data.get("id"),
            "created_by": data.get("created_by") or "",
            "created_at": _parse_timestamp(data.get("created_at")) or datetime.now(UTC),
            "completed_at": _parse_timestamp(data.get("completed_at")),
            "status": status,
            "player_ids": player_ids,
            "starting_dealer_index": data.get("starting_dealer_index") or 0,
            "rounds": rounds,
            "current_round_index": current_round_index or 0,
            "settings": game_settings,
        },
    )
    return recalculate_scores(game)
