"""Centralized game settings for Back Alley - all load-bearing rule constants."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from game.logic.exceptions import UnsupportedSettingsError

NUM_PLAYERS = 5
ROUND_HAND_SIZES: tuple[int, ...] = (10, 9, 8, 7, 6, 5, 4, 3, 2, 1, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10)
TOTAL_ROUNDS = len(ROUND_HAND_SIZES)
RAINBOW_HAND_SIZE = 4
RAINBOW_BONUS = 8
MAX_BOARD_LEVEL = 5
BOARD_MULTIPLIER_BASE = 6
DECK_SIZE = 52


class GameSettings(BaseModel):
    """
    Configuration for all Back Alley scoring and round-structure rules.

    All fields have default values matching the standard game.
    """

    model_config = ConfigDict(frozen=True)

    # --- Game Structure ---
    num_players: int = NUM_PLAYERS
    round_hand_sizes: tuple[int, ...] = ROUND_HAND_SIZES
    deck_size: int = DECK_SIZE

    # --- Rainbow ---
    rainbow_hand_size: int = RAINBOW_HAND_SIZE
    rainbow_bonus: int = RAINBOW_BONUS

    # --- Boards ---
    max_board_level: int = MAX_BOARD_LEVEL
    board_multiplier_base: int = BOARD_MULTIPLIER_BASE

    @property
    def total_rounds(self) -> int:
        return len(self.round_hand_sizes)

    @property
    def last_round_index(self) -> int:
        return len(self.round_hand_sizes) - 1

    def is_rainbow_hand(self, hand_size: int) -> bool:
        """Check if rainbow/jobo declarations apply to a hand of this size."""
        return hand_size == self.rainbow_hand_size


MIN_PLAYERS = 2


def validate_settings(settings: GameSettings) -> None:
    """Validate that the settings describe a game the engine can run.

    Raises UnsupportedSettingsError for the first problem found.
    """
    if settings.num_players < MIN_PLAYERS:
        raise UnsupportedSettingsError(f"num_players={settings.num_players} is below the minimum of {MIN_PLAYERS}")
    if not settings.round_hand_sizes:
        raise UnsupportedSettingsError("round_hand_sizes must contain at least one round")
    for index, hand_size in enumerate(settings.round_hand_sizes):
        if hand_size < 1:
            raise UnsupportedSettingsError(f"round {index} has hand size {hand_size}, must be at least 1")
        if hand_size * settings.num_players > settings.deck_size:
            raise UnsupportedSettingsError(
                f"round {index} deals {hand_size} cards to {settings.num_players} players "
                f"from a {settings.deck_size}-card deck"
            )
    if settings.rainbow_hand_size not in settings.round_hand_sizes:
        raise UnsupportedSettingsError(
            f"rainbow_hand_size={settings.rainbow_hand_size} does not appear in round_hand_sizes"
        )
    if settings.max_board_level < 1:
        raise UnsupportedSettingsError(f"max_board_level={settings.max_board_level} must be at least 1")
    if settings.board_multiplier_base < 1:
        raise UnsupportedSettingsError(
            f"board_multiplier_base={settings.board_multiplier_base} must be at least 1"
        )
