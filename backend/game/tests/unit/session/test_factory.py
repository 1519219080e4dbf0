import structlog

from game.session.factory import Scorekeeper, create_scorekeeper
from game.session.settings import ScorekeeperSettings
from game.tests.conftest import PLAYERS
from game.tests.mocks import InMemoryGameRepository, InMemoryRosterProvider


class TestCreateScorekeeper:
    async def test_injected_persistence_opens_no_database(self, tmp_path):
        settings = ScorekeeperSettings(database_path=str(tmp_path / "unused.db"))
        repository = InMemoryGameRepository()

        scorekeeper = create_scorekeeper(
            settings,
            repository=repository,
            roster_provider=InMemoryRosterProvider(),
        )
        game = await scorekeeper.create_game(PLAYERS, 0)

        assert isinstance(scorekeeper, Scorekeeper)
        assert game.id in repository.records
        assert not (tmp_path / "unused.db").exists()
        await scorekeeper.shutdown()

    async def test_opens_sqlite_database(self, tmp_path):
        settings = ScorekeeperSettings(database_path=str(tmp_path / "db" / "scores.db"))

        scorekeeper = create_scorekeeper(settings)
        game = await scorekeeper.create_game(PLAYERS, 1)

        assert (tmp_path / "db" / "scores.db").exists()
        assert game.rounds[0].dealer_player_id == "p2"
        await scorekeeper.shutdown()

    async def test_shutdown_flushes_pending_edits(self, tmp_path):
        settings = ScorekeeperSettings(database_path=str(tmp_path / "scores.db"), save_debounce_seconds=60)
        scorekeeper = create_scorekeeper(settings)
        game = await scorekeeper.create_game(PLAYERS, 0)
        scorekeeper.controller.set_bid(2, "p4", 5)
        await scorekeeper.shutdown()

        reopened = create_scorekeeper(settings)
        loaded = await reopened.load_game(game.id)

        assert loaded.rounds[2].get_player_round("p4").bid == 5
        await reopened.shutdown()

    async def test_load_binds_game_id_to_log_context(self, tmp_path):
        scorekeeper = create_scorekeeper(
            ScorekeeperSettings(database_path=str(tmp_path / "scores.db")),
            log_dir=str(tmp_path / "logs"),
        )
        game = await scorekeeper.create_game(PLAYERS, 0)

        assert structlog.contextvars.get_contextvars()["game_id"] == game.id
        # per-game log files are not written under pytest
        assert not (tmp_path / "logs").exists()
        await scorekeeper.shutdown()
