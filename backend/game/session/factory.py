"""Wiring: settings -> Database -> repositories -> controller."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from game.session.controller import GameController
from game.session.settings import ScorekeeperSettings
from shared.db import Database, SqliteGameRepository, SqliteRosterProvider
from shared.logging import rotate_log_file, setup_logging

if TYPE_CHECKING:
    from collections.abc import Sequence

    from game.logic.settings import GameSettings
    from game.logic.state import Game
    from shared.dal.game_repository import GameRepository
    from shared.dal.roster_provider import RosterProvider

logger = structlog.get_logger()


class Scorekeeper:
    """A wired controller plus the resources it owns."""

    def __init__(
        self,
        controller: GameController,
        roster_provider: RosterProvider,
        owned_db: Database | None = None,
        log_dir: str | None = None,
    ) -> None:
        self.controller = controller
        self.roster_provider = roster_provider
        self._owned_db = owned_db
        self._log_dir = log_dir

    async def create_game(
        self,
        player_ids: Sequence[str],
        starting_dealer_index: int,
        created_by: str = "",
    ) -> Game:
        game = await self.controller.create_game(player_ids, starting_dealer_index, created_by)
        self._open_game_log(game.id)
        return game

    async def load_game(self, game_id: str) -> Game | None:
        game = await self.controller.load_game(game_id)
        if game is not None:
            self._open_game_log(game.id)
        return game

    def _open_game_log(self, game_id: str) -> None:
        if self._log_dir is not None:
            rotate_log_file(self._log_dir, name=game_id)

    async def shutdown(self) -> None:
        """Flush pending writes, then close the database if this instance opened it."""
        try:
            await self.controller.close()
        finally:
            if self._owned_db is not None:
                self._owned_db.close()
                self._owned_db = None


def create_scorekeeper(
    settings: ScorekeeperSettings | None = None,
    *,
    log_dir: str | None = None,
    game_settings: GameSettings | None = None,
    repository: GameRepository | None = None,
    roster_provider: RosterProvider | None = None,
) -> Scorekeeper:
    """
    Build a Scorekeeper.

    When no repository is given, a SQLite database at settings.database_path
    is opened and owned by the returned instance.
    """
    if settings is None:
        settings = ScorekeeperSettings()

    owned_db: Database | None = None
    if repository is None or roster_provider is None:
        db = Database(settings.database_path)
        db.connect()
        owned_db = db
        repository = repository or SqliteGameRepository(db)
        roster_provider = roster_provider or SqliteRosterProvider(db)

    controller = GameController(
        repository,
        roster_provider,
        settings=game_settings,
        save_debounce_seconds=settings.save_debounce_seconds,
    )
    logger.info("scorekeeper ready", database_path=settings.database_path if owned_db else None)
    return Scorekeeper(controller, roster_provider, owned_db=owned_db, log_dir=log_dir)


def get_scorekeeper() -> Scorekeeper:  # pragma: no cover
    """Production entry point: configuration from the environment, logging to settings.log_dir."""
    settings = ScorekeeperSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_scorekeeper(settings=settings, log_dir=settings.log_dir)
