"""Typed domain exceptions for scorekeeping rule violations.

All domain-level rule violations use subclasses of GameRuleError
rather than raw ValueError. Normal game outcomes (board conflicts,
zero bids, undertricks) are scored, never raised. Only out-of-domain
input and structural inconsistencies end up here.
"""


class GameRuleError(Exception):
    """Base exception for rule violations and out-of-domain input."""


class InvalidBidError(GameRuleError):
    """Bid or board level outside the range allowed for the hand."""


class InvalidTricksError(GameRuleError):
    """Trick count outside 0..hand_size."""


class InvalidSuitError(GameRuleError):
    """Value is not one of the four suits."""


class UnknownPlayerError(GameRuleError):
    """Player id is not seated in the game."""


class InvalidRoundIndexError(GameRuleError):
    """Round index outside the hand-size schedule."""


class RoundOutOfOrderError(GameRuleError):
    """Round played or completed while an earlier round is still open."""


class InvalidGameSetupError(GameRuleError):
    """Seating or starting dealer cannot form a valid game."""


class InvalidEntryActionError(GameRuleError):
    """Entry-flow action is not valid in the current phase."""


class UnsupportedSettingsError(GameRuleError):
    """Game settings contain values the engine cannot run."""


class PersistenceError(Exception):
    """Raised when pending state could not be written to the game repository.

    In-memory state is never rolled back when this is raised.

    Attributes:
        game_id: The game whose save failed.
        round_indexes: Round indexes that remain queued for the next flush.

    """

    def __init__(self, *, game_id: str, round_indexes: tuple[int, ...], reason: str) -> None:
        self.game_id = game_id
        self.round_indexes = round_indexes
        self.reason = reason
        super().__init__(f"failed to save game {game_id} rounds {list(round_indexes)}: {reason}")
