"""
Pydantic models for actions submitted to the session coordinator.

Actions are discriminated on the ``action`` field so a raw dict coming from
any transport can be parsed into exactly one typed request.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from game.logic.enums import GameAction, ResignReason

_USER_ID_FIELD = Field(min_length=1, max_length=100)


class _ActionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str = _USER_ID_FIELD


class JoinAction(_ActionBase):
    action: Literal[GameAction.JOIN] = GameAction.JOIN


class MoveAction(_ActionBase):
    action: Literal[GameAction.MOVE] = GameAction.MOVE
    # range is checked by the board so callers get IndexOutOfRangeError, not a parse error
    index: int


class ResignAction(_ActionBase):
    action: Literal[GameAction.RESIGN] = GameAction.RESIGN
    reason: ResignReason = ResignReason.RESIGNED


class CancelAction(_ActionBase):
    action: Literal[GameAction.CANCEL] = GameAction.CANCEL


GameActionRequest = Annotated[
    JoinAction | MoveAction | ResignAction | CancelAction,
    Field(discriminator="action"),
]

_action_adapter = TypeAdapter(GameActionRequest)


def parse_action(data: dict[str, Any]) -> GameActionRequest:
    """Parse a raw dict into a typed action request.

    Raises pydantic.ValidationError for unknown actions or malformed fields.
    """
    return _action_adapter.validate_python(data)
