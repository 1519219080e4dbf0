from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from game.logic.game import complete_round, init_game, set_bids_for_round, set_rainbows_for_round, set_tricks_for_round
from game.logic.types import BidEntry, RainbowEntry, TricksEntry
from game.session.controller import GameController
from game.tests.mocks import InMemoryGameRepository, InMemoryRosterProvider

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from game.logic.settings import GameSettings
    from game.logic.state import Game

PLAYERS = ("p1", "p2", "p3", "p4", "p5")
CREATED_AT = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


# ============================================================================
# Test State Builder Helpers
# ============================================================================


def create_game(
    game_id: str = "game-1",
    *,
    player_ids: Sequence[str] = PLAYERS,
    starting_dealer_index: int = 0,
    settings: GameSettings | None = None,
    created_at: datetime = CREATED_AT,
) -> Game:
    """Create a fresh in-progress game with sensible defaults for testing."""
    return init_game(
        game_id,
        player_ids,
        starting_dealer_index,
        created_by=player_ids[0],
        settings=settings,
        created_at=created_at,
    )


def play_round(
    game: Game,
    round_index: int,
    *,
    bids: Mapping[str, int | tuple[int, int]],
    tricks: Mapping[str, int],
    suit: str = "hearts",
    rainbows: Sequence[str] = (),
) -> Game:
    """Enter bids and tricks for a round and complete it.

    A bid given as a (bid, board_level) tuple declares a board.
    """
    entries = []
    for player_id, value in bids.items():
        bid, board_level = value if isinstance(value, tuple) else (value, 0)
        entries.append(BidEntry(player_id=player_id, bid=bid, board_level=board_level))
    game = set_bids_for_round(game, round_index, suit, entries)
    if rainbows:
        game = set_rainbows_for_round(
            game,
            round_index,
            [RainbowEntry(player_id=pid, rainbow=True) for pid in rainbows],
        )
    game = set_tricks_for_round(
        game,
        round_index,
        [TricksEntry(player_id=pid, tricks_taken=count) for pid, count in tricks.items()],
    )
    return complete_round(game, round_index)


def play_full_game(game: Game, *, taker: str | None = None) -> Game:
    """Complete every round: ``taker`` bids and takes the whole hand, everyone else bids and takes 0."""
    taker = taker or game.player_ids[0]
    for round_state in game.rounds:
        hand = round_state.hand_size
        bids = {pid: (hand if pid == taker else 0) for pid in game.player_ids}
        tricks = {pid: (hand if pid == taker else 0) for pid in game.player_ids}
        game = play_round(game, round_state.round_index, bids=bids, tricks=tricks)
    return game


@pytest.fixture
def repository() -> InMemoryGameRepository:
    return InMemoryGameRepository()


@pytest.fixture
def roster() -> InMemoryRosterProvider:
    return InMemoryRosterProvider({pid: f"Player {pid[1:]}" for pid in PLAYERS})


@pytest.fixture
def controller(repository: InMemoryGameRepository, roster: InMemoryRosterProvider) -> GameController:
    return GameController(repository, roster, save_debounce_seconds=0.01)
