"""Persistence models for the data access layer.

These mirror the storage tables one-to-one using plain strings for status
and symbols, so the storage layer has no dependency on game logic types.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ParticipationRecord(BaseModel, frozen=True):
    """Row of the participation table."""

    user_id: str
    symbol: str  # "X" | "O"
    joined_at: datetime


class MoveRecord(BaseModel, frozen=True):
    """Row of the moves table."""

    user_id: str
    move_index: int
    symbol: str
    move_number: int
    created_at: datetime


class GameRecord(BaseModel, frozen=True):
    """Row of the games table together with its child rows."""

    game_id: str
    creator_id: str
    status: str
    board_state: str
    created_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None
    winner_id: str | None = None
    next_turn: str | None = None
    version: int = 0
    participants: list[ParticipationRecord] = Field(default_factory=list)
    moves: list[MoveRecord] = Field(default_factory=list)


class HistoryRecord(BaseModel, frozen=True):
    """Row of the game_history table.

    ``id`` is assigned by storage on append and is None for records that
    have not been written yet.
    """

    game_id: str
    event: str  # event kind, e.g. "created", "move", "finished"
    event_data: dict[str, Any] = Field(default_factory=dict)
    user_id: str | None = None  # actor that generated the event
    created_at: datetime
    id: int | None = None
