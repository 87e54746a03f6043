"""Abstract interface for game aggregate persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from shared.dal.models import GameRecord, HistoryRecord, MoveRecord, ParticipationRecord


class GameTransaction(ABC):
    """Unit of work over one or more game aggregates.

    All writes made through a transaction become visible together when the
    owning context manager exits normally, and are discarded otherwise.
    Writes raise StorageConflictError when a constraint rejects them and
    StorageError when the backend fails.
    """

    @abstractmethod
    async def load_game(self, game_id: str) -> GameRecord | None: ...

    @abstractmethod
    async def insert_game(self, game: GameRecord) -> None: ...

    @abstractmethod
    async def update_game(self, game: GameRecord, expected_version: int) -> None:
        """Overwrite the game row only if its stored version equals expected_version."""
        ...

    @abstractmethod
    async def add_participation(self, game_id: str, participation: ParticipationRecord) -> None: ...

    @abstractmethod
    async def add_move(self, game_id: str, move: MoveRecord) -> None: ...

    @abstractmethod
    async def append_history(self, record: HistoryRecord) -> int:
        """Append an immutable history row and return its sequence id."""
        ...


class GameRepository(ABC):
    """Abstract interface for game persistence.

    Implementations can use SQLite, PostgreSQL, etc.
    """

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[GameTransaction]: ...

    @abstractmethod
    async def get_game(self, game_id: str) -> GameRecord | None: ...

    @abstractmethod
    async def get_history(self, game_id: str) -> list[HistoryRecord]: ...

    @abstractmethod
    async def list_games(self, status: str | None = None, limit: int = 20) -> list[GameRecord]: ...
