"""
Game state models for Back Alley scorekeeping.

All models are frozen. Updates go through game.logic.state_utils and
game.logic.game, which return new instances via model_copy.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from game.logic.enums import GameStatus, RoundStage, Suit
from game.logic.scoring import effective_bid
from game.logic.settings import GameSettings


class PlayerRound(BaseModel):
    """
    One player's record for one round.

    ``score`` and ``cumulative_score`` are derived and recomputed after every change.
    """

    model_config = ConfigDict(frozen=True)

    player_id: str
    bid: int = 0  # meaningful only when board_level == 0
    board_level: int = 0  # 0 = normal bid, 1-5 = board tiers
    tricks_taken: int = 0
    rainbow: bool = False
    jobo: bool = False
    score: int = 0
    cumulative_score: int = 0

    @property
    def is_board(self) -> bool:
        return self.board_level > 0


class Round(BaseModel):
    """
    One hand of play.
    """

    model_config = ConfigDict(frozen=True)

    round_index: int
    hand_size: int
    trump_suit: Suit | None = None
    dealer_player_id: str
    player_rounds: tuple[PlayerRound, ...] = ()
    bids_entered: bool = False
    is_complete: bool = False

    @property
    def stage(self) -> RoundStage:
        if self.is_complete:
            return RoundStage.COMPLETE
        if self.bids_entered:
            return RoundStage.PLAYING
        return RoundStage.NOT_BID

    def get_player_round(self, player_id: str) -> PlayerRound | None:
        """Return the record for a player, or None if the player is not seated."""
        for player_round in self.player_rounds:
            if player_round.player_id == player_id:
                return player_round
        return None

    def player_index(self, player_id: str) -> int | None:
        for index, player_round in enumerate(self.player_rounds):
            if player_round.player_id == player_id:
                return index
        return None

    def effective_bid(self, player_id: str) -> int:
        player_round = self.get_player_round(player_id)
        if player_round is None:
            return 0
        return effective_bid(player_round.bid, player_round.board_level, self.hand_size)

    @property
    def total_effective_bids(self) -> int:
        """Sum of effective bids. Bidding is free, so this may differ from hand_size."""
        return sum(effective_bid(pr.bid, pr.board_level, self.hand_size) for pr in self.player_rounds)

    @property
    def total_tricks(self) -> int:
        return sum(pr.tricks_taken for pr in self.player_rounds)

    @property
    def tricks_balanced(self) -> bool:
        """Check the one hard validation gate: tricks must add up to the hand size."""
        return self.total_tricks == self.hand_size

    @property
    def board_holder(self) -> str | None:
        """Player id holding the single standing board, if any."""
        for player_round in self.player_rounds:
            if player_round.is_board:
                return player_round.player_id
        return None


def _utc_now() -> datetime:
    return datetime.now(UTC)


class Game(BaseModel):
    """
    Represents one complete match: fixed seating and every round pre-allocated.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    created_by: str = ""
    created_at: datetime = Field(default_factory=_utc_now)
    completed_at: datetime | None = None
    status: GameStatus = GameStatus.IN_PROGRESS
    player_ids: tuple[str, ...]
    starting_dealer_index: int = 0
    rounds: tuple[Round, ...] = ()
    current_round_index: int = 0
    settings: GameSettings = Field(default_factory=GameSettings)

    @property
    def current_round(self) -> Round:
        return self.rounds[self.current_round_index]

    @property
    def is_completed(self) -> bool:
        return self.status == GameStatus.COMPLETED

    def seat_of(self, player_id: str) -> int | None:
        """Return the seat index of a player, or None if not seated."""
        try:
            return self.player_ids.index(player_id)
        except ValueError:
            return None

    def total_score(self, player_id: str) -> int:
        """Running total through the last complete round (0 before any round completes)."""
        total = 0
        for round_state in self.rounds:
            if not round_state.is_complete:
                continue
            player_round = round_state.get_player_round(player_id)
            if player_round is not None:
                total = player_round.cumulative_score
        return total
