"""Engine configuration via environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings

from game.logic.enums import Symbol
from game.logic.settings import GameSettings


class EngineSettings(BaseSettings):
    model_config = {"env_prefix": "TTT_"}

    database_path: str = Field(default="backend/storage.db", min_length=1)
    log_dir: str | None = Field(default="backend/logs/engine", min_length=1)
    creator_auto_join: bool = True
    creator_symbol: Symbol = Symbol.X
    conflict_retries: int = Field(default=1, ge=0, le=5)

    def game_settings(self) -> GameSettings:
        """Rule-level policy handed to the state machine."""
        return GameSettings(
            creator_auto_join=self.creator_auto_join,
            creator_symbol=self.creator_symbol,
        )
