"""
Game aggregate models.

A GameSnapshot is the full, immutable state of one game: the game row plus
its participations and moves. State machine transitions never mutate a
snapshot; they return a new one built with model_copy.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from game.logic.board import Board
from game.logic.enums import GameStatus, Symbol

MAX_PARTICIPANTS = 2


class Participation(BaseModel, frozen=True):
    """A user's seat in a game."""

    user_id: str
    symbol: Symbol
    joined_at: datetime


class Move(BaseModel, frozen=True):
    """One committed move."""

    user_id: str
    index: int = Field(ge=0, le=8)
    symbol: Symbol
    move_number: int = Field(ge=1)
    created_at: datetime


class GameSnapshot(BaseModel, frozen=True):
    """Immutable view of a game aggregate, returned to callers after every action."""

    game_id: str
    creator_id: str
    status: GameStatus = GameStatus.WAITING
    board_state: str = Board().state
    next_turn: str | None = None  # user whose move is due; None outside in_progress
    winner_id: str | None = None  # set only for X_won / O_won
    created_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None
    participants: tuple[Participation, ...] = ()
    moves: tuple[Move, ...] = ()
    version: int = 0  # bumped on every committed transition

    @property
    def board(self) -> Board:
        return Board.from_state(self.board_state)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_full(self) -> bool:
        return len(self.participants) >= MAX_PARTICIPANTS

    @property
    def move_count(self) -> int:
        return len(self.moves)

    def participant(self, user_id: str) -> Participation | None:
        for p in self.participants:
            if p.user_id == user_id:
                return p
        return None

    def player_for(self, symbol: Symbol) -> Participation | None:
        for p in self.participants:
            if p.symbol is symbol:
                return p
        return None

    def opponent_of(self, user_id: str) -> Participation | None:
        for p in self.participants:
            if p.user_id != user_id:
                return p
        return None
