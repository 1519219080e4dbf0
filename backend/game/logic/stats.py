"""
Per-player statistics across completed games.

Only games with status completed count. Games are read as stored snapshots,
so scores come from the recalculated ``score`` / ``cumulative_score`` fields.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from game.logic.enums import GameStatus

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from game.logic.state import Game


class PlayerStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    player_id: str
    games_played: int = 0
    wins: int = 0
    win_rate: float = 0.0
    average_score: float = 0.0
    best_score: int | None = None
    worst_score: int | None = None

    bid_rounds: int = 0
    bid_accuracy: float = 0.0
    perfect_bid_rate: float = 0.0
    zero_bid_rounds: int = 0
    zero_bid_clean_rate: float = 0.0

    board_attempts: int = 0
    board_successes: int = 0
    board_success_rate: float = 0.0
    board_points_net: int = 0

    rainbow_count: int = 0
    rainbow_points: int = 0

    average_score_as_dealer: float = 0.0
    average_score_not_dealer: float = 0.0


class HeadToHead(BaseModel):
    model_config = ConfigDict(frozen=True)

    player1_id: str
    player2_id: str
    games: int = 0
    player1_wins: int = 0
    player2_wins: int = 0


class ScoreTrendPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    game_id: str
    score: int
    rolling_average: float


def _completed(games: Iterable[Game]) -> list[Game]:
    return sorted(
        (g for g in games if g.status == GameStatus.COMPLETED),
        key=lambda g: g.created_at,
    )


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def get_final_score(game: Game, player_id: str) -> int:
    """Cumulative score from the last complete round, 0 when none is complete."""
    return game.total_score(player_id)


def get_winners(game: Game) -> list[str]:
    """Player ids sharing the highest final score, in seating order."""
    if not game.player_ids:
        return []
    finals = {pid: get_final_score(game, pid) for pid in game.player_ids}
    best = max(finals.values())
    return [pid for pid in game.player_ids if finals[pid] == best]


def compute_player_stats(games: Iterable[Game], player_ids: Sequence[str]) -> dict[str, PlayerStats]:
    """
    Aggregate statistics for each requested player.

    Players with no completed games get an all-zero entry.
    """
    completed = _completed(games)
    return {player_id: _stats_for(completed, player_id) for player_id in player_ids}


def _stats_for(games: list[Game], player_id: str) -> PlayerStats:  # noqa: PLR0915
    finals: list[int] = []
    wins = 0
    bid_rounds = made_bids = perfect_bids = 0
    zero_bid_rounds = zero_bid_clean = 0
    board_attempts = board_successes = board_points_net = 0
    rainbow_count = rainbow_points = 0
    dealer_scores: list[int] = []
    other_scores: list[int] = []

    for game in games:
        if player_id not in game.player_ids:
            continue
        finals.append(get_final_score(game, player_id))
        if player_id in get_winners(game):
            wins += 1

        settings = game.settings
        for round_state in game.rounds:
            if not round_state.is_complete:
                continue
            player_round = round_state.get_player_round(player_id)
            if player_round is None:
                continue

            rainbow_scored = player_round.rainbow and settings.is_rainbow_hand(round_state.hand_size)
            if rainbow_scored:
                rainbow_count += 1
                rainbow_points += settings.rainbow_bonus

            if player_round.is_board:
                board_attempts += 1
                if player_round.tricks_taken == round_state.hand_size:
                    board_successes += 1
                board_points_net += player_round.score - (settings.rainbow_bonus if rainbow_scored else 0)
            else:
                bid_rounds += 1
                if player_round.tricks_taken >= player_round.bid:
                    made_bids += 1
                if player_round.tricks_taken == player_round.bid:
                    perfect_bids += 1
                if player_round.bid == 0:
                    zero_bid_rounds += 1
                    if player_round.tricks_taken == 0:
                        zero_bid_clean += 1

            if round_state.dealer_player_id == player_id:
                dealer_scores.append(player_round.score)
            else:
                other_scores.append(player_round.score)

    games_played = len(finals)
    return PlayerStats(
        player_id=player_id,
        games_played=games_played,
        wins=wins,
        win_rate=_ratio(wins, games_played),
        average_score=_ratio(sum(finals), games_played),
        best_score=max(finals) if finals else None,
        worst_score=min(finals) if finals else None,
        bid_rounds=bid_rounds,
        bid_accuracy=_ratio(made_bids, bid_rounds),
        perfect_bid_rate=_ratio(perfect_bids, bid_rounds),
        zero_bid_rounds=zero_bid_rounds,
        zero_bid_clean_rate=_ratio(zero_bid_clean, zero_bid_rounds),
        board_attempts=board_attempts,
        board_successes=board_successes,
        board_success_rate=_ratio(board_successes, board_attempts),
        board_points_net=board_points_net,
        rainbow_count=rainbow_count,
        rainbow_points=rainbow_points,
        average_score_as_dealer=_ratio(sum(dealer_scores), len(dealer_scores)),
        average_score_not_dealer=_ratio(sum(other_scores), len(other_scores)),
    )


def get_head_to_head(games: Iterable[Game], player1_id: str, player2_id: str) -> HeadToHead:
    """Compare two players over completed games they both sat in. Ties count for neither."""
    played = p1_wins = p2_wins = 0
    for game in _completed(games):
        if player1_id not in game.player_ids or player2_id not in game.player_ids:
            continue
        played += 1
        p1 = get_final_score(game, player1_id)
        p2 = get_final_score(game, player2_id)
        if p1 > p2:
            p1_wins += 1
        elif p2 > p1:
            p2_wins += 1
    return HeadToHead(
        player1_id=player1_id,
        player2_id=player2_id,
        games=played,
        player1_wins=p1_wins,
        player2_wins=p2_wins,
    )


def get_score_trends(games: Iterable[Game], player_id: str, window: int = 5) -> list[ScoreTrendPoint]:
    """Final score per completed game, oldest first, with a trailing rolling average."""
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")
    points: list[ScoreTrendPoint] = []
    scores: list[int] = []
    for game in _completed(games):
        if player_id not in game.player_ids:
            continue
        score = get_final_score(game, player_id)
        scores.append(score)
        recent = scores[-window:]
        points.append(ScoreTrendPoint(game_id=game.id, score=score, rolling_average=sum(recent) / len(recent)))
    return points
