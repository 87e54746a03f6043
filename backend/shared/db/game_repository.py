"""SQLite-backed game repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from contextlib import asynccontextmanager, contextmanager
from typing import TYPE_CHECKING

import structlog

from shared.dal.exceptions import StorageConflictError, StorageError
from shared.dal.game_repository import GameRepository, GameTransaction
from shared.dal.models import GameRecord, HistoryRecord, MoveRecord, ParticipationRecord

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator
    from datetime import datetime

    from shared.db.connection import Database

logger = structlog.get_logger()

# sqlite reports UNIQUE failures by column list rather than constraint name
_UNIQUE_CONSTRAINTS = {
    "games.id": "games_pkey",
    "participation.user_id, participation.game_id": "one_participation_per_game",
    "participation.game_id, participation.symbol": "one_symbol_per_game",
    "moves.game_id, moves.move_index": "one_move_per_cell",
    "moves.game_id, moves.move_number": "move_number_order",
}

_GAME_COLUMNS = (
    "id, creator_id, created_at, started_at, finished_at, status, winner_id, board_state, next_turn, version"
)


def _constraint_name(message: str) -> str | None:
    if message.startswith("UNIQUE constraint failed: "):
        columns = message.removeprefix("UNIQUE constraint failed: ")
        return _UNIQUE_CONSTRAINTS.get(columns, columns)
    if message.startswith("CHECK constraint failed: "):
        return message.removeprefix("CHECK constraint failed: ")
    if message.startswith("FOREIGN KEY constraint failed"):
        return "foreign_key"
    return message or None


@contextmanager
def _translate_errors() -> Iterator[None]:
    """Map sqlite3 errors onto storage-level exceptions."""
    try:
        yield
    except sqlite3.IntegrityError as exc:
        message = str(exc)
        raise StorageConflictError(message, constraint=_constraint_name(message)) from exc
    except sqlite3.OperationalError as exc:
        # another writer holds the database lock past busy_timeout
        if "locked" in str(exc) or "busy" in str(exc):
            raise StorageConflictError(str(exc), constraint="busy") from exc
        raise StorageError(str(exc)) from exc
    except sqlite3.Error as exc:
        raise StorageError(str(exc)) from exc


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _rollback(conn: sqlite3.Connection) -> None:
    if not conn.in_transaction:
        return
    try:
        conn.execute("ROLLBACK")
    except sqlite3.Error:
        logger.exception("rollback failed")


def _load_game(conn: sqlite3.Connection, game_id: str) -> GameRecord | None:
    row = conn.execute(f"SELECT {_GAME_COLUMNS} FROM games WHERE id = ?", (game_id,)).fetchone()  # noqa: S608
    if row is None:
        return None
    return _game_from_row(conn, row)


def _game_from_row(conn: sqlite3.Connection, row: tuple) -> GameRecord:
    (game_id, creator_id, created_at, started_at, finished_at, status, winner_id, board_state, next_turn, version) = row
    participants = [
        ParticipationRecord(user_id=user_id, symbol=symbol, joined_at=joined_at)
        for user_id, symbol, joined_at in conn.execute(
            "SELECT user_id, symbol, joined_at FROM participation WHERE game_id = ? ORDER BY id",
            (game_id,),
        ).fetchall()
    ]
    moves = [
        MoveRecord(user_id=user_id, move_index=move_index, symbol=symbol, move_number=move_number, created_at=ts)
        for user_id, move_index, symbol, move_number, ts in conn.execute(
            "SELECT user_id, move_index, symbol, move_number, created_at FROM moves "
            "WHERE game_id = ? ORDER BY move_number",
            (game_id,),
        ).fetchall()
    ]
    return GameRecord(
        game_id=game_id,
        creator_id=creator_id,
        created_at=created_at,
        started_at=started_at,
        finished_at=finished_at,
        status=status,
        winner_id=winner_id,
        board_state=board_state,
        next_turn=next_turn,
        version=version,
        participants=participants,
        moves=moves,
    )


class SqliteGameTransaction(GameTransaction):
    """Writes issued inside an open BEGIN IMMEDIATE transaction."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    async def load_game(self, game_id: str) -> GameRecord | None:
        with _translate_errors():
            return _load_game(self._conn, game_id)

    async def insert_game(self, game: GameRecord) -> None:
        with _translate_errors():
            self._conn.execute(
                f"INSERT INTO games ({_GAME_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
                (
                    game.game_id,
                    game.creator_id,
                    _iso(game.created_at),
                    _iso(game.started_at),
                    _iso(game.finished_at),
                    game.status,
                    game.winner_id,
                    game.board_state,
                    game.next_turn,
                    game.version,
                ),
            )

    async def update_game(self, game: GameRecord, expected_version: int) -> None:
        with _translate_errors():
            cursor = self._conn.execute(
                "UPDATE games SET "
                "started_at = ?, finished_at = ?, status = ?, winner_id = ?, "
                "board_state = ?, next_turn = ?, version = ? "
                "WHERE id = ? AND version = ?",
                (
                    _iso(game.started_at),
                    _iso(game.finished_at),
                    game.status,
                    game.winner_id,
                    game.board_state,
                    game.next_turn,
                    game.version,
                    game.game_id,
                    expected_version,
                ),
            )
        if cursor.rowcount == 0:
            raise StorageConflictError(
                f"game {game.game_id} changed since version {expected_version}",
                constraint="version",
            )

    async def add_participation(self, game_id: str, participation: ParticipationRecord) -> None:
        with _translate_errors():
            self._conn.execute(
                "INSERT INTO participation (user_id, game_id, symbol, joined_at) VALUES (?, ?, ?, ?)",
                (participation.user_id, game_id, participation.symbol, _iso(participation.joined_at)),
            )

    async def add_move(self, game_id: str, move: MoveRecord) -> None:
        with _translate_errors():
            self._conn.execute(
                "INSERT INTO moves (game_id, user_id, move_index, symbol, move_number, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (game_id, move.user_id, move.move_index, move.symbol, move.move_number, _iso(move.created_at)),
            )

    async def append_history(self, record: HistoryRecord) -> int:
        with _translate_errors():
            cursor = self._conn.execute(
                "INSERT INTO game_history (game_id, event, event_data, user_id, created_at) VALUES (?, ?, ?, ?, ?)",
                (
                    record.game_id,
                    record.event,
                    json.dumps(record.event_data),
                    record.user_id,
                    _iso(record.created_at),
                ),
            )
        if cursor.lastrowid is None:  # pragma: no cover
            raise StorageError("history insert returned no row id")
        return cursor.lastrowid


class SqliteGameRepository(GameRepository):
    """SQLite implementation of GameRepository.

    A single connection is shared, so transactions and reads are serialized
    under an asyncio lock. Uniqueness and check constraints from the schema
    surface as StorageConflictError.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[GameTransaction]:
        """Open a write transaction; commit on normal exit, roll back on any exception."""
        async with self._lock:
            conn = self._db.connection
            with _translate_errors():
                conn.execute("BEGIN IMMEDIATE")
            try:
                yield SqliteGameTransaction(conn)
            except BaseException:
                # includes CancelledError: nothing from this unit of work may survive
                _rollback(conn)
                raise
            try:
                with _translate_errors():
                    conn.execute("COMMIT")
            except StorageError:
                _rollback(conn)
                raise

    async def get_game(self, game_id: str) -> GameRecord | None:
        """Retrieve a single game with its participants and moves."""
        async with self._lock:
            with _translate_errors():
                return _load_game(self._db.connection, game_id)

    async def get_history(self, game_id: str) -> list[HistoryRecord]:
        """Retrieve a game's history in write order."""
        async with self._lock:
            with _translate_errors():
                rows = self._db.connection.execute(
                    "SELECT id, game_id, event, event_data, user_id, created_at FROM game_history "
                    "WHERE game_id = ? ORDER BY id",
                    (game_id,),
                ).fetchall()
        return [
            HistoryRecord(
                id=row_id,
                game_id=gid,
                event=event,
                event_data=json.loads(event_data),
                user_id=user_id,
                created_at=created_at,
            )
            for row_id, gid, event, event_data, user_id, created_at in rows
        ]

    async def list_games(self, status: str | None = None, limit: int = 20) -> list[GameRecord]:
        """Retrieve the most recently created games, optionally filtered by status."""
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")
        async with self._lock:
            conn = self._db.connection
            with _translate_errors():
                if status is None:
                    rows = conn.execute(
                        f"SELECT {_GAME_COLUMNS} FROM games ORDER BY created_at DESC LIMIT ?",  # noqa: S608
                        (limit,),
                    ).fetchall()
                else:
                    rows = conn.execute(
                        f"SELECT {_GAME_COLUMNS} FROM games WHERE status = ? "  # noqa: S608
                        "ORDER BY created_at DESC LIMIT ?",
                        (status, limit),
                    ).fetchall()
                return [_game_from_row(conn, row) for row in rows]
