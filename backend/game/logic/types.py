"""
Pydantic models for data crossing the entry-flow / game boundary.

The commit payloads are keyed by player id so the game layer never depends
on the seating order the entry flow used to collect them.
"""

from pydantic import BaseModel, ConfigDict

from game.logic.enums import Suit


class BidEntry(BaseModel):
    """A single player's bid as collected by the entry flow."""

    model_config = ConfigDict(frozen=True)

    player_id: str
    bid: int
    board_level: int = 0


class TricksEntry(BaseModel):
    """A single player's trick count."""

    model_config = ConfigDict(frozen=True)

    player_id: str
    tricks_taken: int


class RainbowEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    player_id: str
    rainbow: bool


class JoboEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    player_id: str
    jobo: bool


class BidsCommit(BaseModel):
    """Everything gathered by the bidding half of the entry flow."""

    model_config = ConfigDict(frozen=True)

    round_index: int
    trump_suit: Suit
    bids: tuple[BidEntry, ...]  # bid order
    rainbows: tuple[RainbowEntry, ...]  # seating order
    jobos: tuple[JoboEntry, ...]  # seating order


class TricksCommit(BaseModel):
    """Trick counts gathered by the tricks half of the entry flow (tricks order)."""

    model_config = ConfigDict(frozen=True)

    round_index: int
    tricks: tuple[TricksEntry, ...]

