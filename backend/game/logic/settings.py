"""Rule-level game settings: seat policy applied when a game is created."""

from pydantic import BaseModel, ConfigDict

from game.logic.enums import Symbol


class GameSettings(BaseModel):
    """
    Policy knobs for the game state machine.

    creator_auto_join: the creator takes a seat when the game is created.
        When False the creator is purely administrative and both seats are
        filled through join.
    creator_symbol: seat taken by an auto-joining creator when the caller
        does not ask for one explicitly.
    """

    model_config = ConfigDict(frozen=True)

    creator_auto_join: bool = True
    creator_symbol: Symbol = Symbol.X
