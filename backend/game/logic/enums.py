"""
String enum definitions for Tic-Tac-Toe game concepts.
"""

from __future__ import annotations

from enum import StrEnum


class Symbol(StrEnum):
    """Mark placed on the board by a seated player."""

    X = "X"
    O = "O"  # noqa: E741

    @property
    def other(self) -> Symbol:
        return Symbol.O if self is Symbol.X else Symbol.X


class GameStatus(StrEnum):
    """Lifecycle status of a game, as persisted in the games table."""

    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    DRAW = "draw"
    X_WON = "X_won"
    O_WON = "O_won"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @classmethod
    def won_by(cls, symbol: Symbol) -> GameStatus:
        return cls.X_WON if symbol is Symbol.X else cls.O_WON


TERMINAL_STATUSES = frozenset(
    {GameStatus.DRAW, GameStatus.X_WON, GameStatus.O_WON, GameStatus.CANCELLED},
)


class Outcome(StrEnum):
    """Result of evaluating a board."""

    IN_PROGRESS = "in_progress"
    X_WINS = "x_wins"
    O_WINS = "o_wins"
    DRAW = "draw"

    def to_status(self) -> GameStatus:
        """Map a board outcome to the game status it produces."""
        return _OUTCOME_TO_STATUS[self]


_OUTCOME_TO_STATUS: dict[Outcome, GameStatus] = {
    Outcome.IN_PROGRESS: GameStatus.IN_PROGRESS,
    Outcome.X_WINS: GameStatus.X_WON,
    Outcome.O_WINS: GameStatus.O_WON,
    Outcome.DRAW: GameStatus.DRAW,
}


class GameAction(StrEnum):
    """Actions a client can submit for an existing game."""

    JOIN = "join"
    MOVE = "move"
    RESIGN = "resign"
    CANCEL = "cancel"


class ResignReason(StrEnum):
    """Why a player left an in-progress game."""

    RESIGNED = "resigned"
    DISCONNECTED = "disconnected"


class HistoryEventKind(StrEnum):
    """Kinds of audit events written to the game history."""

    CREATED = "created"
    JOINED = "joined"
    STARTED = "started"
    MOVE = "move"
    RESIGNED = "resigned"
    CANCELLED = "cancelled"
    FINISHED = "finished"


class GameErrorCode(StrEnum):
    """Error codes returned to callers for rejected submissions."""

    NOT_A_PARTICIPANT = "not_a_participant"
    NOT_YOUR_TURN = "not_your_turn"
    CELL_OCCUPIED = "cell_occupied"
    INDEX_OUT_OF_RANGE = "index_out_of_range"
    GAME_NOT_ACTIVE = "game_not_active"
    GAME_ALREADY_FINISHED = "game_already_finished"
    GAME_NOT_FOUND = "game_not_found"
    ALREADY_JOINED = "already_joined"
    GAME_FULL = "game_full"
    GAME_NOT_WAITING = "game_not_waiting"
    INVALID_ACTION = "invalid_action"
    CONFLICT = "conflict"
    PERSISTENCE_ERROR = "persistence_error"
