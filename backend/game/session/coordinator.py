"""Session coordinator: the single entry point that applies actions to games.

For one game id at most one action runs at a time (a per-game asyncio lock),
and each successful action commits its game row, child row and history
events in one storage transaction. Games never share a lock, so different
games proceed concurrently.

The storage version check and uniqueness constraints are the backstop for
writers outside this process: a commit that loses to another writer
surfaces as ConflictError and is retried against fresh state.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from game.logic.enums import GameAction, GameStatus, ResignReason
from game.logic.exceptions import (
    ConflictError,
    GameNotFoundError,
    GameValidationError,
    InvalidActionError,
    PersistenceError,
)
from game.logic.settings import GameSettings
from game.logic.state import GameSnapshot
from game.logic.state_machine import Transition, apply_action, create_game
from game.logic.types import CancelAction, MoveAction, ResignAction, parse_action
from game.session.history import HistoryRecorder
from game.session.records import (
    move_to_record,
    participation_to_record,
    record_to_snapshot,
    snapshot_to_record,
)
from shared.dal.exceptions import StorageConflictError, StorageError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from game.logic.enums import Symbol
    from game.logic.events import RecordedEvent
    from game.logic.types import GameActionRequest
    from shared.dal.game_repository import GameRepository, GameTransaction

    _Step = Callable[[GameTransaction, datetime], Awaitable[Transition | GameSnapshot]]

logger = structlog.get_logger()

DEFAULT_CONFLICT_RETRIES = 1


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _new_game_id() -> str:
    return uuid.uuid4().hex


def _parse_action(game_id: str, data: dict[str, Any]) -> GameActionRequest:
    try:
        return parse_action(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "action"
        error = InvalidActionError(f"malformed action, {location}: {first['msg']}", game_id=game_id)
        logger.warning("action rejected", game_id=game_id, error_code=error.code, detail=error.message)
        raise error from exc


class SessionCoordinator:
    def __init__(
        self,
        repository: GameRepository,
        *,
        settings: GameSettings | None = None,
        recorder: HistoryRecorder | None = None,
        clock: Callable[[], datetime] | None = None,
        conflict_retries: int = DEFAULT_CONFLICT_RETRIES,
        game_id_factory: Callable[[], str] | None = None,
    ) -> None:
        if conflict_retries < 0:
            raise ValueError(f"conflict_retries must be >= 0, got {conflict_retries}")
        self._repository = repository
        self._settings = settings or GameSettings()
        self._clock = clock or _utc_now
        self._recorder = recorder or HistoryRecorder(clock=self._clock)
        self._conflict_retries = conflict_retries
        self._new_game_id = game_id_factory or _new_game_id
        self._game_locks: dict[str, asyncio.Lock] = {}  # game_id -> Lock

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def lock_count(self) -> int:
        return len(self._game_locks)

    def _get_game_lock(self, game_id: str) -> asyncio.Lock:
        lock = self._game_locks.get(game_id)
        if lock is None:
            lock = self._game_locks[game_id] = asyncio.Lock()
        return lock

    def _release_game_lock(self, game_id: str) -> None:
        """Drop the lock of a game that can no longer change.

        Late waiters still hold the old lock object; anything they load is
        terminal (or absent), so they cannot write.
        """
        self._game_locks.pop(game_id, None)

    # ------------------------------------------------------------------
    # public actions
    # ------------------------------------------------------------------

    async def create_game(
        self,
        creator_id: str,
        *,
        game_id: str | None = None,
        symbol: Symbol | None = None,
    ) -> GameSnapshot:
        """Create a new waiting game. A duplicate game_id fails with ConflictError."""
        game_id = game_id or self._new_game_id()

        async def step(_tx: GameTransaction, now: datetime) -> Transition:
            return create_game(game_id, creator_id, now, self._settings, symbol)

        return await self._run(game_id, "create", step)

    async def submit(self, game_id: str, action: GameActionRequest | dict[str, Any]) -> GameSnapshot:
        """Apply one action to a game and return the committed snapshot.

        Raises GameValidationError subclasses for illegal actions,
        ConflictError when the commit lost a race twice, and
        PersistenceError when storage fails.
        """
        if isinstance(action, dict):
            action = _parse_action(game_id, action)
        index = action.index if isinstance(action, MoveAction) else None

        async def step(tx: GameTransaction, now: datetime) -> Transition:
            game = await self._load(tx, game_id)
            return apply_action(game, action, now)

        return await self._run(game_id, action.action.value, step, index=index)

    async def join(self, game_id: str, user_id: str) -> GameSnapshot:
        return await self.submit(game_id, {"action": GameAction.JOIN.value, "user_id": user_id})

    async def move(self, game_id: str, user_id: str, index: int) -> GameSnapshot:
        return await self.submit(game_id, {"action": GameAction.MOVE.value, "user_id": user_id, "index": index})

    async def resign(self, game_id: str, user_id: str) -> GameSnapshot:
        return await self.submit(game_id, {"action": GameAction.RESIGN.value, "user_id": user_id})

    async def cancel(self, game_id: str, user_id: str) -> GameSnapshot:
        return await self.submit(game_id, {"action": GameAction.CANCEL.value, "user_id": user_id})

    async def handle_disconnect(self, game_id: str, user_id: str) -> GameSnapshot:
        """Apply the disconnect policy for a user who dropped out of a game.

        A waiting game is cancelled if the user is its creator or holds a
        seat; an in-progress game is resigned on the user's behalf. Terminal
        games and unrelated users leave the game untouched. The decision is
        made under the game lock against the current stored state.
        """

        async def step(tx: GameTransaction, now: datetime) -> Transition | GameSnapshot:
            game = await self._load(tx, game_id)
            seated = game.participant(user_id) is not None
            if game.status is GameStatus.WAITING and (seated or user_id == game.creator_id):
                return apply_action(game, CancelAction(user_id=user_id), now)
            if game.status is GameStatus.IN_PROGRESS and seated:
                return apply_action(game, ResignAction(user_id=user_id, reason=ResignReason.DISCONNECTED), now)
            return game

        return await self._run(game_id, "disconnect", step)

    # ------------------------------------------------------------------
    # read paths
    # ------------------------------------------------------------------

    async def get_game(self, game_id: str) -> GameSnapshot:
        try:
            record = await self._repository.get_game(game_id)
        except StorageError as exc:
            raise PersistenceError(str(exc), game_id=game_id) from exc
        if record is None:
            raise GameNotFoundError(game_id=game_id)
        return record_to_snapshot(record)

    async def get_history(self, game_id: str) -> list[RecordedEvent]:
        try:
            return await self._recorder.load(self._repository, game_id)
        except StorageError as exc:
            raise PersistenceError(str(exc), game_id=game_id) from exc

    async def list_games(self, status: GameStatus | None = None, limit: int = 20) -> list[GameSnapshot]:
        try:
            records = await self._repository.list_games(status.value if status is not None else None, limit)
        except StorageError as exc:
            raise PersistenceError(str(exc)) from exc
        return [record_to_snapshot(record) for record in records]

    # ------------------------------------------------------------------
    # execution
    # ------------------------------------------------------------------

    async def _load(self, tx: GameTransaction, game_id: str) -> GameSnapshot:
        """Load a game under its lock, dropping the lock once the game cannot change."""
        record = await tx.load_game(game_id)
        if record is None:
            self._release_game_lock(game_id)
            raise GameNotFoundError(game_id=game_id)
        game = record_to_snapshot(record)
        if game.is_terminal:
            self._release_game_lock(game_id)
        return game

    async def _run(
        self,
        game_id: str,
        action_name: str,
        step: _Step,
        *,
        index: int | None = None,
    ) -> GameSnapshot:
        with structlog.contextvars.bound_contextvars(game_id=game_id, action=action_name):
            attempt = 0
            while True:
                try:
                    return await self._execute(game_id, step, index)
                except ConflictError:
                    if attempt >= self._conflict_retries:
                        logger.warning("conflict persisted after retry, giving up", attempts=attempt + 1)
                        raise
                    attempt += 1
                    logger.info("conflict detected, retrying against fresh state", attempt=attempt)
                except GameValidationError as exc:
                    logger.warning("action rejected", error_code=exc.code, index=exc.index)
                    raise
                except PersistenceError:
                    logger.exception("storage failure, action aborted")
                    raise

    async def _execute(self, game_id: str, step: _Step, index: int | None) -> GameSnapshot:
        """Run one attempt: lock, open a transaction, transition, persist, commit."""
        async with self._get_game_lock(game_id):
            now = self._clock()
            try:
                async with self._repository.transaction() as tx:
                    result = await step(tx, now)
                    if isinstance(result, GameSnapshot):
                        return result
                    await self._persist(tx, game_id, result, now)
            except StorageConflictError as exc:
                raise ConflictError(str(exc), game_id=game_id, index=index) from exc
            except StorageError as exc:
                raise PersistenceError(str(exc), game_id=game_id, index=index) from exc

        game = result.game
        if game.is_terminal:
            self._release_game_lock(game_id)
        logger.info(
            "action applied",
            status=game.status,
            version=game.version,
            next_turn=game.next_turn,
            moves=game.move_count,
        )
        return game

    async def _persist(self, tx: GameTransaction, game_id: str, transition: Transition, now: datetime) -> None:
        record = snapshot_to_record(transition.game)
        if transition.previous_version == 0:
            await tx.insert_game(record)
        else:
            await tx.update_game(record, transition.previous_version)
        if transition.participation is not None:
            await tx.add_participation(game_id, participation_to_record(transition.participation))
        if transition.move is not None:
            await tx.add_move(game_id, move_to_record(transition.move))
        await self._recorder.record_all(tx, game_id, transition.events, transition.actor_id, at=now)
