from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import pytest

from shared.dal.game_repository import GameRepository, GameTransaction

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from shared.dal.models import GameRecord, HistoryRecord, MoveRecord, ParticipationRecord
    from shared.db.game_repository import SqliteGameRepository


class FaultInjectingRepository(GameRepository):
    """Wraps a real repository and fails selected calls on demand.

    ``fail_next("add_move", exc)`` makes the next add_move raise exc before
    reaching storage; ``before("add_move", hook)`` awaits hook first, which
    lets a test park a submission in the middle of its transaction.
    """

    def __init__(self, inner: SqliteGameRepository) -> None:
        self.inner = inner
        self._failures: dict[str, list[BaseException]] = {}
        self._hooks: dict[str, Callable[[], Awaitable[None]]] = {}
        self.calls: list[str] = []

    def fail_next(self, method: str, exc: BaseException, times: int = 1) -> None:
        self._failures.setdefault(method, []).extend([exc] * times)

    def before(self, method: str, hook: Callable[[], Awaitable[None]]) -> None:
        self._hooks[method] = hook

    async def check(self, method: str) -> None:
        self.calls.append(method)
        hook = self._hooks.pop(method, None)
        if hook is not None:
            await hook()
        queued = self._failures.get(method)
        if queued:
            raise queued.pop(0)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[GameTransaction]:
        await self.check("transaction")
        async with self.inner.transaction() as tx:
            yield _FaultInjectingTransaction(tx, self)

    async def get_game(self, game_id: str) -> GameRecord | None:
        await self.check("get_game")
        return await self.inner.get_game(game_id)

    async def get_history(self, game_id: str) -> list[HistoryRecord]:
        await self.check("get_history")
        return await self.inner.get_history(game_id)

    async def list_games(self, status: str | None = None, limit: int = 20) -> list[GameRecord]:
        await self.check("list_games")
        return await self.inner.list_games(status, limit)


class _FaultInjectingTransaction(GameTransaction):
    def __init__(self, inner: GameTransaction, owner: FaultInjectingRepository) -> None:
        self._inner = inner
        self._owner = owner

    async def load_game(self, game_id: str) -> GameRecord | None:
        await self._owner.check("load_game")
        return await self._inner.load_game(game_id)

    async def insert_game(self, game: GameRecord) -> None:
        await self._owner.check("insert_game")
        await self._inner.insert_game(game)

    async def update_game(self, game: GameRecord, expected_version: int) -> None:
        await self._owner.check("update_game")
        await self._inner.update_game(game, expected_version)

    async def add_participation(self, game_id: str, participation: ParticipationRecord) -> None:
        await self._owner.check("add_participation")
        await self._inner.add_participation(game_id, participation)

    async def add_move(self, game_id: str, move: MoveRecord) -> None:
        await self._owner.check("add_move")
        await self._inner.add_move(game_id, move)

    async def append_history(self, record: HistoryRecord) -> int:
        await self._owner.check("append_history")
        return await self._inner.append_history(record)


@pytest.fixture
def faulty_repository(repository: SqliteGameRepository) -> FaultInjectingRepository:
    return FaultInjectingRepository(repository)
