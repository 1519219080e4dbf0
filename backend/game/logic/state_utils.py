"""
Immutable state update utilities using Pydantic model_copy.

These functions never mutate the input state - they always return new
state objects with the requested changes applied. They do not check
completion; callers in game.logic.game guard completed rounds.
"""

from game.logic.exceptions import InvalidRoundIndexError, UnknownPlayerError
from game.logic.state import Game, PlayerRound, Round


def update_player_round(
    round_state: Round,
    player_id: str,
    **updates: object,
) -> Round:
    """
    Return new round with the player's record updated.

    Args:
        round_state: Current round
        player_id: Player whose record changes
        **updates: Fields to update on the PlayerRound

    Returns:
        New Round with updated player record

    Raises:
        UnknownPlayerError: If the player has no record in this round

    """
    index = round_state.player_index(player_id)
    if index is None:
        raise UnknownPlayerError(f"player {player_id!r} is not seated in round {round_state.round_index}")
    player_rounds = list(round_state.player_rounds)
    player_rounds[index] = player_rounds[index].model_copy(update=updates)
    return round_state.model_copy(update={"player_rounds": tuple(player_rounds)})


def set_board(round_state: Round, player_id: str, board_level: int) -> Round:
    """
    Set a player's board level, keeping at most one board standing.

    Declaring a board (level > 0) clears every other player's board in the
    round. Withdrawing a board (level 0) leaves other players untouched.
    """
    new_round = update_player_round(round_state, player_id, board_level=board_level)
    if board_level == 0:
        return new_round

    player_rounds = tuple(
        pr if pr.player_id == player_id or pr.board_level == 0 else pr.model_copy(update={"board_level": 0})
        for pr in new_round.player_rounds
    )
    return new_round.model_copy(update={"player_rounds": player_rounds})


def get_round(game: Game, round_index: int) -> Round:
    """
    Return the round at an index.

    Raises:
        InvalidRoundIndexError: If the index is outside the schedule

    """
    if not 0 <= round_index < len(game.rounds):
        raise InvalidRoundIndexError(f"round index {round_index} outside 0..{len(game.rounds) - 1}")
    return game.rounds[round_index]


def replace_round(game: Game, round_state: Round) -> Game:
    """Return new game with the round at round_state.round_index replaced."""
    get_round(game, round_state.round_index)
    rounds = list(game.rounds)
    rounds[round_state.round_index] = round_state
    return game.model_copy(update={"rounds": tuple(rounds)})


def update_round(game: Game, round_index: int, **updates: object) -> Game:
    """Return new game with fields on one round updated."""
    round_state = get_round(game, round_index)
    return replace_round(game, round_state.model_copy(update=updates))


def zeroed_player_round(player_id: str) -> PlayerRound:
    """Fresh record for a seated player before anything is entered."""
    return PlayerRound(player_id=player_id)
