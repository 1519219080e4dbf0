"""
Debounced, coalescing writer for one game's pending changes.

Mutations mark round indexes (and optionally the game status) dirty and
restart a quiet-period timer. When the timer fires, every dirty round of the
latest snapshot is written as a delta, so rapid edits to the same round cost
one write. A failed write keeps its rounds queued for the next attempt.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import structlog

from game.logic.exceptions import PersistenceError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from game.logic.state import Game, Round
    from shared.dal.game_repository import GameRepository

logger = structlog.get_logger()


def round_delta(round_state: Round) -> tuple[dict[str, Any], dict[str, dict[str, Any]]]:
    """Split a round into its round-level fields and per-player fields keyed by player id."""
    round_fields = round_state.model_dump(mode="json", exclude={"player_rounds"})
    player_fields = {
        pr.player_id: pr.model_dump(mode="json", exclude={"player_id"}) for pr in round_state.player_rounds
    }
    return round_fields, player_fields


class SaveScheduler:
    """
    Queue round deltas for one game and write them after a quiet period.

    Marking changes outside a running event loop only queues them; they are
    written by the next awaited flush().
    """

    def __init__(self, repository: GameRepository, delay: float) -> None:
        self._repository = repository
        self._delay = delay
        self._game: Game | None = None
        self._dirty_rounds: set[int] = set()
        self._status_dirty = False
        self._timer: asyncio.Task[None] | None = None
        self._write_lock = asyncio.Lock()
        self.last_error: PersistenceError | None = None

    @property
    def has_pending(self) -> bool:
        return bool(self._dirty_rounds) or self._status_dirty

    @property
    def pending_rounds(self) -> frozenset[int]:
        return frozenset(self._dirty_rounds)

    def mark_round(self, game: Game, round_index: int) -> None:
        self.mark_rounds(game, [round_index])

    def mark_rounds(self, game: Game, round_indexes: Iterable[int]) -> None:
        self._game = game
        self._dirty_rounds.update(round_indexes)
        self._schedule()

    def mark_status(self, game: Game) -> None:
        self._game = game
        self._status_dirty = True
        self._schedule()

    def cancel(self) -> None:
        """Cancel the pending timer. Queued changes stay queued."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def discard(self) -> None:
        """
        Drop everything queued and wait out a write already in progress.

        Once this returns, nothing from this scheduler reaches the repository.
        """
        self.cancel()
        self._dirty_rounds = set()
        self._status_dirty = False
        async with self._write_lock:
            self._dirty_rounds = set()
            self._status_dirty = False
            self._game = None

    async def flush(self) -> None:
        """
        Write everything queued now.

        Raises PersistenceError if the write fails; the rounds stay queued.
        """
        self.cancel()
        await self._write_pending()

    async def close(self) -> None:
        await self.flush()

    def _schedule(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self.cancel()
        self._timer = asyncio.create_task(self._run_after_delay())

    async def _run_after_delay(self) -> None:
        try:
            await asyncio.sleep(self._delay)
        except asyncio.CancelledError:
            return
        # detach so a flush() racing this write waits on the lock instead of cancelling it
        self._timer = None
        try:
            await self._write_pending()
        except PersistenceError:
            logger.exception("save failed")
        except Exception:
            logger.exception("unexpected error in background save")

    async def _write_pending(self) -> None:
        async with self._write_lock:
            game = self._game
            if game is None or not self.has_pending:
                return
            rounds = sorted(self._dirty_rounds)
            status = self._status_dirty
            self._dirty_rounds = set()
            self._status_dirty = False

            try:
                for round_index in rounds:
                    round_fields, player_fields = round_delta(game.rounds[round_index])
                    await self._repository.save_round_delta(game.id, round_index, round_fields, player_fields)
                if status:
                    await self._repository.save_game_status(
                        game.id,
                        game.status.value,
                        game.current_round_index,
                        game.completed_at,
                    )
            except (OSError, ValueError, RuntimeError) as exc:
                self._dirty_rounds.update(rounds)
                self._status_dirty = self._status_dirty or status
                error = PersistenceError(game_id=game.id, round_indexes=tuple(rounds), reason=str(exc))
                self.last_error = error
                raise error from exc

            self.last_error = None
            logger.info("save flushed", rounds=rounds, status_written=status)
