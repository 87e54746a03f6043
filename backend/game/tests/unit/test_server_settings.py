import pytest
from pydantic import ValidationError

from game.logic.enums import Symbol
from game.server.settings import EngineSettings


class TestEngineSettings:
    def test_defaults(self, monkeypatch):
        for name in ("TTT_DATABASE_PATH", "TTT_CREATOR_AUTO_JOIN", "TTT_CREATOR_SYMBOL", "TTT_CONFLICT_RETRIES"):
            monkeypatch.delenv(name, raising=False)
        settings = EngineSettings()
        assert settings.database_path == "backend/storage.db"
        assert settings.creator_auto_join is True
        assert settings.creator_symbol is Symbol.X
        assert settings.conflict_retries == 1

    def test_database_path_from_env(self, monkeypatch):
        monkeypatch.setenv("TTT_DATABASE_PATH", "custom/games.db")
        assert EngineSettings().database_path == "custom/games.db"

    def test_seat_policy_from_env(self, monkeypatch):
        monkeypatch.setenv("TTT_CREATOR_AUTO_JOIN", "false")
        monkeypatch.setenv("TTT_CREATOR_SYMBOL", "O")
        settings = EngineSettings()
        assert settings.creator_auto_join is False
        assert settings.creator_symbol is Symbol.O

    def test_invalid_symbol_rejected(self, monkeypatch):
        monkeypatch.setenv("TTT_CREATOR_SYMBOL", "Z")
        with pytest.raises(ValidationError, match="creator_symbol"):
            EngineSettings()

    def test_database_path_empty_rejected(self):
        with pytest.raises(ValidationError, match="database_path"):
            EngineSettings(database_path="")

    def test_log_dir_empty_rejected(self):
        with pytest.raises(ValidationError, match="log_dir"):
            EngineSettings(log_dir="")

    def test_log_dir_can_be_disabled(self):
        assert EngineSettings(log_dir=None).log_dir is None

    @pytest.mark.parametrize("retries", [-1, 6])
    def test_conflict_retries_bounds(self, retries):
        with pytest.raises(ValidationError, match="conflict_retries"):
            EngineSettings(conflict_retries=retries)

    def test_game_settings(self):
        game_settings = EngineSettings(creator_auto_join=False, creator_symbol=Symbol.O).game_settings()
        assert game_settings.creator_auto_join is False
        assert game_settings.creator_symbol is Symbol.O
