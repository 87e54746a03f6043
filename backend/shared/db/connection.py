"""SQLite database connection and schema management."""

import os
import sqlite3
from pathlib import Path

import structlog

logger = structlog.get_logger()

_DB_FILE_PERMISSIONS = 0o600

# Participant count and append-only history are enforced by triggers because
# SQLite CHECK constraints cannot contain subqueries. The game state machine
# enforces the same rules first; these are the storage-level backstop.
_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS games (
    id TEXT PRIMARY KEY,
    creator_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    started_at TEXT,
    finished_at TEXT,
    status TEXT NOT NULL
        CHECK (status IN ('waiting', 'in_progress', 'draw', 'X_won', 'O_won', 'cancelled')),
    winner_id TEXT,
    board_state TEXT NOT NULL CHECK (length(board_state) = 9),
    next_turn TEXT,
    version INTEGER NOT NULL CHECK (version >= 1),
    CONSTRAINT winner_only_when_won CHECK ((status IN ('X_won', 'O_won')) = (winner_id IS NOT NULL))
);

CREATE TABLE IF NOT EXISTS participation (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    game_id TEXT NOT NULL REFERENCES games(id) ON DELETE CASCADE,
    symbol TEXT NOT NULL CHECK (symbol IN ('X', 'O')),
    joined_at TEXT NOT NULL,
    CONSTRAINT one_participation_per_game UNIQUE (user_id, game_id),
    CONSTRAINT one_symbol_per_game UNIQUE (game_id, symbol)
);

CREATE TRIGGER IF NOT EXISTS only_two_participants
BEFORE INSERT ON participation
WHEN (SELECT COUNT(*) FROM participation WHERE game_id = NEW.game_id) >= 2
BEGIN
    SELECT RAISE(ABORT, 'only_two_participants');
END;

CREATE TABLE IF NOT EXISTS moves (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    game_id TEXT NOT NULL REFERENCES games(id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    move_index INTEGER NOT NULL CHECK (move_index BETWEEN 0 AND 8),
    symbol TEXT NOT NULL CHECK (symbol IN ('X', 'O')),
    move_number INTEGER NOT NULL CHECK (move_number >= 1),
    created_at TEXT NOT NULL,
    CONSTRAINT one_move_per_cell UNIQUE (game_id, move_index),
    CONSTRAINT move_number_order UNIQUE (game_id, move_number)
);

CREATE TABLE IF NOT EXISTS game_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    game_id TEXT NOT NULL REFERENCES games(id),
    event TEXT NOT NULL,
    event_data TEXT NOT NULL,
    user_id TEXT,
    created_at TEXT NOT NULL
);

CREATE TRIGGER IF NOT EXISTS game_history_no_update
BEFORE UPDATE ON game_history
BEGIN
    SELECT RAISE(ABORT, 'game_history is append-only');
END;

CREATE TRIGGER IF NOT EXISTS game_history_no_delete
BEFORE DELETE ON game_history
BEGIN
    SELECT RAISE(ABORT, 'game_history is append-only');
END;

CREATE INDEX IF NOT EXISTS idx_games_status ON games (status);
CREATE INDEX IF NOT EXISTS idx_games_creator_id ON games (creator_id);
CREATE INDEX IF NOT EXISTS idx_moves_game_id ON moves (game_id);
CREATE INDEX IF NOT EXISTS idx_moves_user_id ON moves (user_id);
CREATE INDEX IF NOT EXISTS idx_participation_game_id ON participation (game_id);
CREATE INDEX IF NOT EXISTS idx_game_history_game_id ON game_history (game_id);
"""


class Database:
    """SQLite database wrapper with schema management.

    The connection runs in autocommit mode; repositories open explicit
    transactions with BEGIN IMMEDIATE so each unit of work is atomic.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def connection(self) -> sqlite3.Connection:
        """Return the active connection or raise if disconnected."""
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    def connect(self) -> None:
        """Open the database, apply pragmas, create schema, and harden file permissions."""
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(self._path, check_same_thread=False, isolation_level=None)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.executescript(_SCHEMA_SQL)

        self._harden_permissions()
        logger.info("database connected", path=self._path)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _harden_permissions(self) -> None:
        """Set restrictive file permissions on POSIX systems (best effort).

        Covers the WAL/SHM sibling files created by WAL mode, since they
        also contain database content.
        """
        if os.name != "posix" or self._path == ":memory:":  # pragma: no cover
            return
        for suffix in ("", "-wal", "-shm"):
            p = Path(self._path + suffix)
            if p.exists():
                try:
                    p.chmod(_DB_FILE_PERMISSIONS)
                except OSError:
                    logger.warning("could not set file permissions", permissions=oct(_DB_FILE_PERMISSIONS), path=str(p))
