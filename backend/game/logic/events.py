"""Audit event models for the game history.

Each kind of state transition has its own typed payload; the set of kinds is
closed and discriminated on the ``kind`` field so stored history can always
be parsed back into the exact model that produced it.

All layers import exclusively from this module for history event types.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from game.logic.enums import GameStatus, HistoryEventKind, ResignReason, Symbol


class _HistoryPayload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class GameCreatedEvent(_HistoryPayload):
    kind: Literal[HistoryEventKind.CREATED] = HistoryEventKind.CREATED
    creator_id: str
    creator_symbol: Symbol | None = None  # None when the creator did not take a seat


class PlayerJoinedEvent(_HistoryPayload):
    kind: Literal[HistoryEventKind.JOINED] = HistoryEventKind.JOINED
    user_id: str
    symbol: Symbol


class GameStartedEvent(_HistoryPayload):
    kind: Literal[HistoryEventKind.STARTED] = HistoryEventKind.STARTED
    x_player_id: str
    o_player_id: str


class MoveMadeEvent(_HistoryPayload):
    kind: Literal[HistoryEventKind.MOVE] = HistoryEventKind.MOVE
    user_id: str
    index: int
    symbol: Symbol
    move_number: int
    board_state: str


class PlayerResignedEvent(_HistoryPayload):
    kind: Literal[HistoryEventKind.RESIGNED] = HistoryEventKind.RESIGNED
    user_id: str
    reason: ResignReason = ResignReason.RESIGNED


class GameCancelledEvent(_HistoryPayload):
    kind: Literal[HistoryEventKind.CANCELLED] = HistoryEventKind.CANCELLED
    cancelled_by: str


class GameFinishedEvent(_HistoryPayload):
    kind: Literal[HistoryEventKind.FINISHED] = HistoryEventKind.FINISHED
    status: GameStatus
    winner_id: str | None = None
    winning_line: tuple[int, int, int] | None = None
    board_state: str


HistoryEvent = Annotated[
    GameCreatedEvent
    | PlayerJoinedEvent
    | GameStartedEvent
    | MoveMadeEvent
    | PlayerResignedEvent
    | GameCancelledEvent
    | GameFinishedEvent,
    Field(discriminator="kind"),
]

_history_event_adapter: TypeAdapter[HistoryEvent] = TypeAdapter(HistoryEvent)


def parse_history_event(kind: str, payload: dict[str, object]) -> HistoryEvent:
    """Rebuild a typed event from a stored kind and JSON payload."""
    return _history_event_adapter.validate_python({**payload, "kind": kind})


class RecordedEvent(BaseModel, frozen=True):
    """A history event as it was written to storage."""

    sequence: int  # storage-assigned, strictly increasing in write order
    game_id: str
    actor_id: str | None
    created_at: datetime
    event: HistoryEvent
