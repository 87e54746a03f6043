from game.server.app import create_engine
from game.server.settings import EngineSettings
from shared.db import Database


class TestCreateEngine:
    async def test_engine_plays_a_game(self, tmp_path):
        settings = EngineSettings(database_path=str(tmp_path / "engine.db"), log_dir=None)
        engine = create_engine(settings)
        try:
            assert engine.database.is_connected
            game = await engine.coordinator.create_game("alice")
            game = await engine.coordinator.join(game.game_id, "bob")
            assert game.next_turn == "alice"
        finally:
            engine.close()
        assert not engine.database.is_connected

    def test_uses_given_database(self, tmp_path):
        db = Database(tmp_path / "given.db")
        engine = create_engine(EngineSettings(log_dir=None), database=db)
        try:
            assert engine.database is db
            assert db.is_connected
        finally:
            engine.close()

    def test_seat_policy_reaches_coordinator(self, tmp_path):
        settings = EngineSettings(
            database_path=str(tmp_path / "engine.db"),
            log_dir=None,
            creator_auto_join=False,
        )
        engine = create_engine(settings)
        try:
            assert engine.coordinator.settings.creator_auto_join is False
        finally:
            engine.close()

    def test_creates_database_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "engine.db"
        engine = create_engine(EngineSettings(database_path=str(path), log_dir=None))
        engine.close()
        assert path.exists()
