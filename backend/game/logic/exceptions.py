"""Typed domain exceptions for the game session engine.

Three families reach callers of the session coordinator:

- GameValidationError: the request is illegal against the current game
  state. Surfaced unmodified and never retried, since retrying an illegal
  move is still illegal.
- ConflictError: the submission lost a race (version mismatch or a storage
  uniqueness constraint fired at commit). Safe to retry against fresh state.
- PersistenceError: the storage collaborator failed. Fatal for the current
  submission; nothing is left partially committed.

Every error carries the game id and, where applicable, the offending move
index for diagnostics.
"""

from __future__ import annotations

from game.logic.enums import GameErrorCode


class GameEngineError(Exception):
    """Base exception for all engine errors."""

    code: GameErrorCode = GameErrorCode.PERSISTENCE_ERROR
    default_message = "game engine error"

    def __init__(
        self,
        message: str | None = None,
        *,
        game_id: str | None = None,
        index: int | None = None,
    ) -> None:
        self.game_id = game_id
        self.index = index
        self.message = message or self.default_message
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [self.message]
        if self.game_id is not None:
            parts.append(f"game={self.game_id}")
        if self.index is not None:
            parts.append(f"index={self.index}")
        return " ".join(parts)

    def with_game(self, game_id: str) -> GameEngineError:
        """Return a copy of this error bound to a game id."""
        return type(self)(self.message, game_id=game_id, index=self.index)

    def to_dict(self) -> dict[str, object]:
        """Structured form for transport layers and audit logs."""
        return {
            "code": self.code.value,
            "message": self.message,
            "game_id": self.game_id,
            "index": self.index,
        }


class GameValidationError(GameEngineError):
    """The requested action violates the game rules or lifecycle."""

    default_message = "invalid action"


class NotAParticipantError(GameValidationError):
    code = GameErrorCode.NOT_A_PARTICIPANT
    default_message = "user is not a participant in this game"


class NotYourTurnError(GameValidationError):
    code = GameErrorCode.NOT_YOUR_TURN
    default_message = "it is not this user's turn"


class CellOccupiedError(GameValidationError):
    code = GameErrorCode.CELL_OCCUPIED
    default_message = "cell is already occupied"


class IndexOutOfRangeError(GameValidationError):
    code = GameErrorCode.INDEX_OUT_OF_RANGE
    default_message = "move index must be between 0 and 8"


class GameNotActiveError(GameValidationError):
    code = GameErrorCode.GAME_NOT_ACTIVE
    default_message = "game is not in progress"


class GameAlreadyFinishedError(GameValidationError):
    code = GameErrorCode.GAME_ALREADY_FINISHED
    default_message = "game has already finished"


class GameNotFoundError(GameValidationError):
    code = GameErrorCode.GAME_NOT_FOUND
    default_message = "game not found"


class AlreadyJoinedError(GameValidationError):
    code = GameErrorCode.ALREADY_JOINED
    default_message = "user already holds a seat in this game"


class GameFullError(GameValidationError):
    code = GameErrorCode.GAME_FULL
    default_message = "game already has two participants"


class GameNotWaitingError(GameValidationError):
    code = GameErrorCode.GAME_NOT_WAITING
    default_message = "game is no longer waiting for players"


class InvalidActionError(GameValidationError):
    """The action request itself is malformed (unknown action, bad field types)."""

    code = GameErrorCode.INVALID_ACTION
    default_message = "malformed action request"


class ConflictError(GameEngineError):
    """Lost the per-game race or a storage constraint fired at commit time."""

    code = GameErrorCode.CONFLICT
    default_message = "concurrent modification detected"


class PersistenceError(GameEngineError):
    """Storage collaborator unavailable or failed unexpectedly."""

    code = GameErrorCode.PERSISTENCE_ERROR
    default_message = "storage unavailable"
