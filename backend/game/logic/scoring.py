"""
Round score calculation for Back Alley.

Pure functions only. Every combination of bid, board level and tricks is a
valid, scored outcome; range checking happens where user input is accepted
(see game.logic.game and game.logic.entry_flow).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from game.logic.settings import GameSettings

if TYPE_CHECKING:
    from game.logic.state import PlayerRound

_DEFAULT_SETTINGS = GameSettings()

# points per trick for a made bid, and per trick bid for a missed bid
BID_TRICK_VALUE = 3


def board_multiplier(board_level: int, settings: GameSettings | None = None) -> int:
    """
    Return the per-trick multiplier for a board declaration.

    Level 1: 6, level 2: 12, level 3: 18, level 4: 24, level 5: 30.
    """
    game_settings = settings or _DEFAULT_SETTINGS
    return game_settings.board_multiplier_base * board_level


def effective_bid(bid: int, board_level: int, hand_size: int) -> int:
    """Bid used for ordering and totals: the full hand for a board, else the numeric bid."""
    return hand_size if board_level > 0 else bid


def calculate_score(
    bid: int,
    board_level: int,
    tricks_taken: int,
    hand_size: int,
    rainbow: bool,  # noqa: FBT001
    settings: GameSettings | None = None,
) -> int:
    """
    Calculate a single player's score for one round.

    Board (all-or-nothing): +multiplier * hand_size when every trick is taken,
    otherwise -multiplier * hand_size.
    Zero bid: 0 when clean, otherwise one point per trick taken.
    Positive bid: 3 per trick bid plus 1 per overtrick when made, flat -3 per
    trick bid when missed.
    A rainbow on the rainbow hand size adds a flat bonus to any outcome.
    """
    game_settings = settings or _DEFAULT_SETTINGS

    if board_level > 0:
        multiplier = board_multiplier(board_level, game_settings)
        score = multiplier * hand_size if tricks_taken == hand_size else -multiplier * hand_size
    elif bid == 0:
        score = tricks_taken
    elif tricks_taken >= bid:
        score = BID_TRICK_VALUE * bid + (tricks_taken - bid)
    else:
        score = -BID_TRICK_VALUE * bid

    if rainbow and game_settings.is_rainbow_hand(hand_size):
        score += game_settings.rainbow_bonus

    return score


def score_player_round(player_round: PlayerRound, hand_size: int, settings: GameSettings | None = None) -> int:
    """Score a stored player round."""
    return calculate_score(
        player_round.bid,
        player_round.board_level,
        player_round.tricks_taken,
        hand_size,
        player_round.rainbow,
        settings,
    )
