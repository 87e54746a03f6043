from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from game.logic.board import Board
from game.logic.enums import GameStatus, Symbol
from game.logic.state import GameSnapshot, Move, Participation
from game.session.coordinator import SessionCoordinator
from shared.db.connection import Database
from shared.db.game_repository import SqliteGameRepository

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from game.logic.settings import GameSettings

T0 = datetime(2025, 1, 15, 12, 0, 0, tzinfo=UTC)

ALICE = "user-alice"
BOB = "user-bob"
CAROL = "user-carol"


# ============================================================================
# Test State Builder Helpers
# ============================================================================


def create_waiting_game(
    game_id: str = "g1",
    *,
    creator_id: str = ALICE,
    seated: bool = True,
    version: int = 1,
) -> GameSnapshot:
    """A waiting game, with the creator seated as X unless seated=False."""
    participants = (Participation(user_id=creator_id, symbol=Symbol.X, joined_at=T0),) if seated else ()
    return GameSnapshot(
        game_id=game_id,
        creator_id=creator_id,
        created_at=T0,
        participants=participants,
        version=version,
    )


def create_started_game(
    game_id: str = "g1",
    *,
    x_player: str = ALICE,
    o_player: str = BOB,
    moves: Sequence[int] = (),
    status: GameStatus | None = None,
) -> GameSnapshot:
    """A game with both seats filled and the given cell indices played alternately from X.

    The status and next turn are derived from the board unless ``status`` is given.
    """
    board = Board.empty()
    move_rows: list[Move] = []
    players = (x_player, o_player)
    for number, index in enumerate(moves, start=1):
        symbol = Symbol.X if number % 2 else Symbol.O
        board = board.apply(index, symbol)
        move_rows.append(
            Move(
                user_id=players[(number - 1) % 2],
                index=index,
                symbol=symbol,
                move_number=number,
                created_at=T0 + timedelta(seconds=number),
            ),
        )
    derived = board.evaluate().to_status()
    status = status or derived
    next_turn = None
    if status is GameStatus.IN_PROGRESS:
        next_turn = players[len(move_rows) % 2]
    winner_id = {GameStatus.X_WON: x_player, GameStatus.O_WON: o_player}.get(status)
    return GameSnapshot(
        game_id=game_id,
        creator_id=x_player,
        status=status,
        board_state=board.state,
        next_turn=next_turn,
        winner_id=winner_id,
        created_at=T0,
        started_at=T0,
        finished_at=T0 if status.is_terminal else None,
        participants=(
            Participation(user_id=x_player, symbol=Symbol.X, joined_at=T0),
            Participation(user_id=o_player, symbol=Symbol.O, joined_at=T0),
        ),
        moves=tuple(move_rows),
        version=2 + len(move_rows),
    )


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = T0) -> None:
        self._now = start

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def database(tmp_path: Path):
    db = Database(tmp_path / "engine.db")
    db.connect()
    yield db
    db.close()


@pytest.fixture
def repository(database: Database) -> SqliteGameRepository:
    return SqliteGameRepository(database)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def make_coordinator(
    repository: SqliteGameRepository,
    clock: FakeClock | None = None,
    settings: GameSettings | None = None,
    **kwargs: object,
) -> SessionCoordinator:
    return SessionCoordinator(repository, settings=settings, clock=clock or FakeClock(), **kwargs)  # type: ignore[arg-type]


@pytest.fixture
def coordinator(repository: SqliteGameRepository, clock: FakeClock) -> SessionCoordinator:
    return make_coordinator(repository, clock)
