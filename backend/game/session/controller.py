"""
Game lifecycle controller.

Owns the current Game snapshot for one scorekeeping session, applies the pure
mutators from game.logic.game, notifies subscribers with every new snapshot,
and queues the touched rounds on a debounced SaveScheduler.

Mutators are synchronous and return the new snapshot; anything that talks to
the repository is async.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from game.logic import game as game_ops
from game.logic.entry_flow import bids_commit, start_entry_flow, tricks_commit
from game.logic.enums import EntryPhase
from game.logic.exceptions import PersistenceError
from game.logic.settings import GameSettings, validate_settings
from game.logic.state_utils import get_round
from game.session.normalize import normalize_game
from game.session.save_scheduler import SaveScheduler

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from game.logic.entry_flow import EntryFlowState
    from game.logic.enums import Suit
    from game.logic.state import Game
    from game.logic.types import BidEntry, JoboEntry, RainbowEntry, TricksEntry
    from shared.dal.game_repository import GameRepository
    from shared.dal.models import RosterEntry
    from shared.dal.roster_provider import RosterProvider

    Listener = Callable[[Game | None], None]

logger = structlog.get_logger()


class GameController:
    """
    Lifecycle and persistence coordinator for the active game.

    Late mutations on a complete round return the current snapshot unchanged
    and neither notify subscribers nor queue a save.
    """

    def __init__(
        self,
        repository: GameRepository,
        roster_provider: RosterProvider,
        settings: GameSettings | None = None,
        save_debounce_seconds: float = 0.3,
    ) -> None:
        self._repository = repository
        self._roster_provider = roster_provider
        self._settings = settings or GameSettings()
        self._save_debounce_seconds = save_debounce_seconds
        self._game: Game | None = None
        self._scheduler: SaveScheduler | None = None
        self._listeners: list[Listener] = []

    @property
    def game(self) -> Game | None:
        return self._game

    @property
    def scheduler(self) -> SaveScheduler | None:
        return self._scheduler

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for new snapshots. Returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_game(
        self,
        player_ids: Sequence[str],
        starting_dealer_index: int,
        created_by: str = "",
    ) -> Game:
        """Persist a new game and make it the active one."""
        validate_settings(self._settings)
        game_ops.validate_game_setup(player_ids, starting_dealer_index, self._settings)
        game_id = await self._repository.create_game(
            player_ids,
            starting_dealer_index,
            created_by,
            self._settings.round_hand_sizes,
        )
        game = await self.load_game(game_id)
        if game is None:
            raise PersistenceError(game_id=game_id, round_indexes=(), reason="created game could not be read back")
        logger.info("game created", players=len(player_ids), starting_dealer_index=starting_dealer_index)
        return game

    async def load_game(self, game_id: str) -> Game | None:
        """
        Load a game and make it the active one.

        Pending writes for the previously active game are flushed first.
        Returns None when the repository has no such game.
        """
        await self._release()
        raw = await self._repository.load_game(game_id)
        if raw is None:
            logger.info("game not found", game_id=game_id)
            return None

        game = normalize_game(raw, self._settings)
        structlog.contextvars.bind_contextvars(game_id=game.id)
        self._scheduler = SaveScheduler(self._repository, self._save_debounce_seconds)
        self._set_game(game)
        logger.info("game loaded", status=game.status, current_round_index=game.current_round_index)
        return game

    async def abandon_game(self) -> None:
        """Delete the active game. Pending writes are discarded."""
        game = self._require_game()
        if self._scheduler is not None:
            await self._scheduler.discard()
            self._scheduler = None
        await self._repository.delete_game(game.id)
        logger.info("game deleted")
        structlog.contextvars.unbind_contextvars("game_id")
        self._set_game(None)

    async def flush(self) -> None:
        """Write pending round deltas and status now."""
        if self._scheduler is not None:
            await self._scheduler.flush()

    async def close(self) -> None:
        await self._release()

    async def get_roster(self) -> list[RosterEntry]:
        """Display names for the seated players, in seating order."""
        game = self._require_game()
        return await self._roster_provider.get_roster(game.player_ids)

    async def list_games_for_player(self, player_id: str) -> list[Game]:
        """Every game the player has sat in, newest first."""
        records = await self._repository.list_games_for_player(player_id)
        return [normalize_game(raw, self._settings) for raw in records]

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def set_trump_suit(self, round_index: int, suit: Suit | str) -> Game:
        return self._apply(round_index, lambda g: game_ops.set_trump_suit(g, round_index, suit))

    def set_bid(self, round_index: int, player_id: str, bid: int, board_level: int = 0) -> Game:
        return self._apply(round_index, lambda g: game_ops.set_bid(g, round_index, player_id, bid, board_level))

    def set_tricks(self, round_index: int, player_id: str, tricks_taken: int) -> Game:
        return self._apply(round_index, lambda g: game_ops.set_tricks(g, round_index, player_id, tricks_taken))

    def set_rainbow(self, round_index: int, player_id: str, rainbow: bool) -> Game:  # noqa: FBT001
        return self._apply(round_index, lambda g: game_ops.set_rainbow(g, round_index, player_id, rainbow))

    def set_jobo(self, round_index: int, player_id: str, jobo: bool) -> Game:  # noqa: FBT001
        return self._apply(round_index, lambda g: game_ops.set_jobo(g, round_index, player_id, jobo))

    def set_bids_for_round(self, round_index: int, suit: Suit | str, bids: Sequence[BidEntry]) -> Game:
        return self._apply(round_index, lambda g: game_ops.set_bids_for_round(g, round_index, suit, bids))

    def set_tricks_for_round(self, round_index: int, tricks: Sequence[TricksEntry]) -> Game:
        return self._apply(round_index, lambda g: game_ops.set_tricks_for_round(g, round_index, tricks))

    def set_rainbows_for_round(self, round_index: int, rainbows: Sequence[RainbowEntry]) -> Game:
        return self._apply(round_index, lambda g: game_ops.set_rainbows_for_round(g, round_index, rainbows))

    def set_jobos_for_round(self, round_index: int, jobos: Sequence[JoboEntry]) -> Game:
        return self._apply(round_index, lambda g: game_ops.set_jobos_for_round(g, round_index, jobos))

    def complete_round(self, round_index: int) -> Game:
        before = self._require_game()
        game = self._apply(round_index, lambda g: game_ops.complete_round(g, round_index))
        if game is not before:
            self._log_completion(game, round_index)
        return game

    # ------------------------------------------------------------------
    # Entry flow
    # ------------------------------------------------------------------

    def begin_entry(self, round_index: int) -> EntryFlowState | None:
        """
        Start an entry flow for a round, or None if the round is complete.

        Raises RoundOutOfOrderError while an earlier round is still open.
        """
        game = self._require_game()
        round_state = get_round(game, round_index)
        if round_state.is_complete:
            return None
        game_ops.require_round_reachable(game, round_index)
        return start_entry_flow(round_state, game.player_ids, game.settings)

    def commit_entry(self, flow: EntryFlowState) -> Game:
        """
        Apply a finished entry flow.

        commit_bids applies trump, bids, rainbows and jobos together;
        commit_tricks applies tricks and completes the round. Any other phase
        leaves the game untouched.
        """
        if flow.phase == EntryPhase.COMMIT_BIDS:
            payload = bids_commit(flow)

            def apply_bids(g: Game) -> Game:
                g = game_ops.set_bids_for_round(g, payload.round_index, payload.trump_suit, payload.bids)
                g = game_ops.set_rainbows_for_round(g, payload.round_index, payload.rainbows)
                return game_ops.set_jobos_for_round(g, payload.round_index, payload.jobos)

            before = self._require_game()
            game = self._apply(payload.round_index, apply_bids)
            if game is not before:
                logger.info("round bids committed", round_index=payload.round_index, trump_suit=payload.trump_suit)
            return game

        if flow.phase == EntryPhase.COMMIT_TRICKS:
            tricks_payload = tricks_commit(flow)

            def apply_tricks(g: Game) -> Game:
                g = game_ops.set_tricks_for_round(g, tricks_payload.round_index, tricks_payload.tricks)
                return game_ops.complete_round(g, tricks_payload.round_index)

            before = self._require_game()
            game = self._apply(tricks_payload.round_index, apply_tricks)
            if game is not before:
                self._log_completion(game, tricks_payload.round_index)
            return game

        return self._require_game()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_game(self) -> Game:
        if self._game is None:
            raise RuntimeError("No game is loaded")
        return self._game

    def _apply(self, round_index: int, mutate: Callable[[Game], Game]) -> Game:
        game = self._require_game()
        new_game = mutate(game)
        if new_game is game:
            return game

        if self._scheduler is not None:
            # cumulative scores of later rounds move with any edit
            changed = [
                r.round_index for old, r in zip(game.rounds, new_game.rounds, strict=True) if r != old
            ]
            self._scheduler.mark_rounds(new_game, changed or [round_index])
            if (new_game.status, new_game.current_round_index, new_game.completed_at) != (
                game.status,
                game.current_round_index,
                game.completed_at,
            ):
                self._scheduler.mark_status(new_game)
        self._set_game(new_game)
        return new_game

    def _set_game(self, game: Game | None) -> None:
        self._game = game
        for listener in list(self._listeners):
            listener(game)

    def _log_completion(self, game: Game, round_index: int) -> None:
        logger.info("round completed", round_index=round_index)
        if game.is_completed:
            logger.info("game completed", rounds=len(game.rounds))

    async def _release(self) -> None:
        if self._scheduler is not None:
            await self._scheduler.close()
            self._scheduler = None
