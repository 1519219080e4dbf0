"""
String enum definitions for Back Alley scorekeeping concepts.
"""

from enum import Enum


class Suit(str, Enum):
    """Trump suit chosen for a round."""

    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"


class GameStatus(str, Enum):
    """Lifecycle status of a game. Only ever moves forward."""

    SETUP = "setup"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class RoundStage(str, Enum):
    """Progression of a round derived from its completion flags."""

    NOT_BID = "not_bid"
    PLAYING = "playing"
    COMPLETE = "complete"


class EntryPhase(str, Enum):
    """Phases of the bid/trick entry flow for a single round."""

    TRUMP = "trump"
    RAINBOW = "rainbow"
    JOBO = "jobo"
    BIDS = "bids"
    TRICKS = "tricks"
    TRICKS_ERROR = "tricks_error"
    COMMIT_BIDS = "commit_bids"
    COMMIT_TRICKS = "commit_tricks"
    CLOSED = "closed"


# phases after which the flow accepts no further input
TERMINAL_ENTRY_PHASES = frozenset({EntryPhase.COMMIT_BIDS, EntryPhase.COMMIT_TRICKS, EntryPhase.CLOSED})
