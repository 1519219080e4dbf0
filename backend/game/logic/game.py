"""
Game initialization, round mutation and cumulative scoring for Back Alley.

Every function is pure: it takes a frozen Game and returns a new one. Mutators
targeting a completed round return the game unchanged so late or duplicate
calls are absorbed safely. Scores are recalculated across the whole game after
every change.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from game.logic.enums import GameStatus, Suit
from game.logic.exceptions import (
    InvalidBidError,
    InvalidGameSetupError,
    InvalidSuitError,
    InvalidTricksError,
    RoundOutOfOrderError,
    UnknownPlayerError,
)
from game.logic.scoring import score_player_round
from game.logic.settings import GameSettings, validate_settings
from game.logic.state import Game, Round
from game.logic.state_utils import (
    get_round,
    replace_round,
    set_board,
    update_player_round,
    update_round,
    zeroed_player_round,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from game.logic.types import BidEntry, JoboEntry, RainbowEntry, TricksEntry

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


def dealer_for_round(player_ids: Sequence[str], starting_dealer_index: int, round_index: int) -> str:
    """Dealer rotates one seat per round: seat (start + round_index) mod n."""
    return player_ids[(starting_dealer_index + round_index) % len(player_ids)]


def validate_game_setup(player_ids: Sequence[str], starting_dealer_index: int, settings: GameSettings) -> None:
    """
    Check seating and starting dealer before a game is created.

    Raises InvalidGameSetupError on the wrong seat count, duplicate or empty
    player ids, or a starting dealer outside the seating.
    """
    if len(player_ids) != settings.num_players:
        raise InvalidGameSetupError(f"expected {settings.num_players} players, got {len(player_ids)}")
    if any(not player_id for player_id in player_ids):
        raise InvalidGameSetupError("player ids must be non-empty")
    if len(set(player_ids)) != len(player_ids):
        raise InvalidGameSetupError("player ids must be unique")
    if not 0 <= starting_dealer_index < len(player_ids):
        raise InvalidGameSetupError(
            f"starting dealer index {starting_dealer_index} outside 0..{len(player_ids) - 1}"
        )


def build_rounds(
    player_ids: Sequence[str],
    starting_dealer_index: int,
    settings: GameSettings,
) -> tuple[Round, ...]:
    """
    Pre-allocate every round from the hand-size schedule with a rotated dealer.
    """
    return tuple(
        Round(
            round_index=round_index,
            hand_size=hand_size,
            dealer_player_id=dealer_for_round(player_ids, starting_dealer_index, round_index),
            player_rounds=tuple(zeroed_player_round(player_id) for player_id in player_ids),
        )
        for round_index, hand_size in enumerate(settings.round_hand_sizes)
    )


def init_game(
    game_id: str,
    player_ids: Sequence[str],
    starting_dealer_index: int,
    created_by: str = "",
    settings: GameSettings | None = None,
    created_at: datetime | None = None,
) -> Game:
    """
    Create a fully formed game: all rounds allocated, status in_progress.
    """
    game_settings = settings or GameSettings()
    validate_settings(game_settings)
    validate_game_setup(player_ids, starting_dealer_index, game_settings)

    return Game(
        id=game_id,
        created_by=created_by,
        created_at=created_at or datetime.now(UTC),
        status=GameStatus.IN_PROGRESS,
        player_ids=tuple(player_ids),
        starting_dealer_index=starting_dealer_index,
        rounds=build_rounds(player_ids, starting_dealer_index, game_settings),
        current_round_index=0,
        settings=game_settings,
    )


# ---------------------------------------------------------------------------
# Cumulative scoring
# ---------------------------------------------------------------------------


def recalculate_scores(game: Game) -> Game:
    """
    Recompute score and cumulative_score for every player in every round.

    Rounds are walked in index order; a player's cumulative score is their
    round score plus their cumulative score in the previous round (0 when the
    previous round has no record for them).
    """
    previous_totals: dict[str, int] = {}
    rounds: list[Round] = []
    for round_state in game.rounds:
        player_rounds = []
        for player_round in round_state.player_rounds:
            score = score_player_round(player_round, round_state.hand_size, game.settings)
            cumulative = score + previous_totals.get(player_round.player_id, 0)
            player_rounds.append(player_round.model_copy(update={"score": score, "cumulative_score": cumulative}))
        previous_totals = {pr.player_id: pr.cumulative_score for pr in player_rounds}
        rounds.append(round_state.model_copy(update={"player_rounds": tuple(player_rounds)}))
    return game.model_copy(update={"rounds": tuple(rounds)})


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


def parse_suit(value: Suit | str) -> Suit:
    """Convert user input to a Suit, failing fast on anything else."""
    try:
        return Suit(value)
    except ValueError as exc:
        raise InvalidSuitError(f"unknown suit {value!r}") from exc


def validate_bid(hand_size: int, bid: int, board_level: int, max_board_level: int) -> None:
    if not 0 <= board_level <= max_board_level:
        raise InvalidBidError(f"board level {board_level} outside 0..{max_board_level}")
    if not 0 <= bid <= hand_size:
        raise InvalidBidError(f"bid {bid} outside 0..{hand_size}")


def validate_tricks(hand_size: int, tricks_taken: int) -> None:
    if not 0 <= tricks_taken <= hand_size:
        raise InvalidTricksError(f"tricks {tricks_taken} outside 0..{hand_size}")


def _require_players(round_state: Round, player_ids: Iterable[str]) -> None:
    """Reject the whole batch before any record is touched."""
    for player_id in player_ids:
        if round_state.get_player_round(player_id) is None:
            raise UnknownPlayerError(f"player {player_id!r} is not seated in round {round_state.round_index}")


def _open_round(game: Game, round_index: int) -> Round | None:
    """Return the round if it may still be mutated, None if it is complete."""
    round_state = get_round(game, round_index)
    if round_state.is_complete:
        logger.debug("ignoring mutation on complete round", round_index=round_index)
        return None
    return round_state


# ---------------------------------------------------------------------------
# Single-field mutators
# ---------------------------------------------------------------------------


def set_trump_suit(game: Game, round_index: int, suit: Suit | str) -> Game:
    round_state = _open_round(game, round_index)
    if round_state is None:
        return game
    return update_round(game, round_index, trump_suit=parse_suit(suit))


def set_bid(game: Game, round_index: int, player_id: str, bid: int, board_level: int = 0) -> Game:
    """
    Record one player's bid. A board (level > 0) implies a bid of the full
    hand and clears any other board standing in the round.
    """
    round_state = _open_round(game, round_index)
    if round_state is None:
        return game
    _require_players(round_state, [player_id])
    validate_bid(round_state.hand_size, bid, board_level, game.settings.max_board_level)

    actual_bid = round_state.hand_size if board_level > 0 else bid
    new_round = update_player_round(round_state, player_id, bid=actual_bid)
    new_round = set_board(new_round, player_id, board_level)
    return recalculate_scores(replace_round(game, new_round))


def set_tricks(game: Game, round_index: int, player_id: str, tricks_taken: int) -> Game:
    round_state = _open_round(game, round_index)
    if round_state is None:
        return game
    _require_players(round_state, [player_id])
    validate_tricks(round_state.hand_size, tricks_taken)
    new_round = update_player_round(round_state, player_id, tricks_taken=tricks_taken)
    return recalculate_scores(replace_round(game, new_round))


def set_rainbow(game: Game, round_index: int, player_id: str, rainbow: bool) -> Game:  # noqa: FBT001
    round_state = _open_round(game, round_index)
    if round_state is None:
        return game
    _require_players(round_state, [player_id])
    new_round = update_player_round(round_state, player_id, rainbow=rainbow)
    return recalculate_scores(replace_round(game, new_round))


def set_jobo(game: Game, round_index: int, player_id: str, jobo: bool) -> Game:  # noqa: FBT001
    round_state = _open_round(game, round_index)
    if round_state is None:
        return game
    _require_players(round_state, [player_id])
    new_round = update_player_round(round_state, player_id, jobo=jobo)
    return recalculate_scores(replace_round(game, new_round))


# ---------------------------------------------------------------------------
# Batch mutators used by the entry flow
# ---------------------------------------------------------------------------


def set_bids_for_round(game: Game, round_index: int, suit: Suit | str, bids: Sequence[BidEntry]) -> Game:
    """
    Commit trump and bids for a round and mark bids entered.

    Bids are applied in the order given (bid order), so when several players
    board over each other the last declaration is the one left standing.
    """
    round_state = _open_round(game, round_index)
    if round_state is None:
        return game
    trump_suit = parse_suit(suit)
    _require_players(round_state, [entry.player_id for entry in bids])
    for entry in bids:
        validate_bid(round_state.hand_size, entry.bid, entry.board_level, game.settings.max_board_level)

    new_round = round_state
    for entry in bids:
        actual_bid = round_state.hand_size if entry.board_level > 0 else entry.bid
        new_round = update_player_round(new_round, entry.player_id, bid=actual_bid)
        new_round = set_board(new_round, entry.player_id, entry.board_level)
    new_round = new_round.model_copy(update={"trump_suit": trump_suit, "bids_entered": True})
    return recalculate_scores(replace_round(game, new_round))


def set_tricks_for_round(game: Game, round_index: int, tricks: Sequence[TricksEntry]) -> Game:
    round_state = _open_round(game, round_index)
    if round_state is None:
        return game
    _require_players(round_state, [entry.player_id for entry in tricks])
    for entry in tricks:
        validate_tricks(round_state.hand_size, entry.tricks_taken)

    new_round = round_state
    for entry in tricks:
        new_round = update_player_round(new_round, entry.player_id, tricks_taken=entry.tricks_taken)
    return recalculate_scores(replace_round(game, new_round))


def set_rainbows_for_round(game: Game, round_index: int, rainbows: Sequence[RainbowEntry]) -> Game:
    round_state = _open_round(game, round_index)
    if round_state is None:
        return game
    _require_players(round_state, [entry.player_id for entry in rainbows])

    new_round = round_state
    for entry in rainbows:
        new_round = update_player_round(new_round, entry.player_id, rainbow=entry.rainbow)
    return recalculate_scores(replace_round(game, new_round))


def set_jobos_for_round(game: Game, round_index: int, jobos: Sequence[JoboEntry]) -> Game:
    round_state = _open_round(game, round_index)
    if round_state is None:
        return game
    _require_players(round_state, [entry.player_id for entry in jobos])

    new_round = round_state
    for entry in jobos:
        new_round = update_player_round(new_round, entry.player_id, jobo=entry.jobo)
    return recalculate_scores(replace_round(game, new_round))


# ---------------------------------------------------------------------------
# Round completion
# ---------------------------------------------------------------------------


def first_open_round(game: Game) -> int | None:
    """Index of the earliest round that is not complete, None once every round is."""
    for round_state in game.rounds:
        if not round_state.is_complete:
            return round_state.round_index
    return None


def require_round_reachable(game: Game, round_index: int) -> None:
    """
    Check that a round can be played now.

    Rounds are played strictly in order, so every earlier round must be
    complete. Raises RoundOutOfOrderError otherwise.
    """
    get_round(game, round_index)
    open_index = first_open_round(game)
    if open_index is not None and round_index > open_index:
        raise RoundOutOfOrderError(f"round {round_index} cannot be played before round {open_index} is complete")


def complete_round(game: Game, round_index: int, completed_at: datetime | None = None) -> Game:
    """
    Lock a round and advance the game.

    Completing the last round flips the game to completed and stamps
    completed_at; otherwise current_round_index moves past the round.
    Re-completing a complete round returns the game unchanged.

    Raises RoundOutOfOrderError if an earlier round is still open and
    InvalidTricksError if the tricks do not add up to the hand size.
    """
    round_state = _open_round(game, round_index)
    if round_state is None:
        return game
    require_round_reachable(game, round_index)
    if not round_state.tricks_balanced:
        raise InvalidTricksError(
            f"round {round_index} tricks total {round_state.total_tricks}, expected {round_state.hand_size}"
        )

    new_game = recalculate_scores(update_round(game, round_index, is_complete=True))
    if round_index == len(game.rounds) - 1:
        return new_game.model_copy(
            update={
                "status": GameStatus.COMPLETED,
                "completed_at": completed_at or datetime.now(UTC),
                "current_round_index": round_index,
            },
        )
    return new_game.model_copy(update={"current_round_index": round_index + 1})
