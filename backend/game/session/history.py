"""History recorder: writes typed audit events through the open game transaction.

History is part of the atomic unit of a submission. A failed append raises
out of the transaction and rolls back the whole state transition; it is
never logged and skipped.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from game.logic.events import RecordedEvent, parse_history_event
from shared.dal.models import HistoryRecord

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from game.logic.events import HistoryEvent
    from shared.dal.game_repository import GameRepository, GameTransaction

logger = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(UTC)


class HistoryRecorder:
    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utc_now

    async def record(
        self,
        tx: GameTransaction,
        game_id: str,
        event: HistoryEvent,
        actor_id: str | None = None,
        *,
        at: datetime | None = None,
    ) -> int:
        """Append one event and return its storage sequence id."""
        record = HistoryRecord(
            game_id=game_id,
            event=event.kind.value,
            event_data=event.model_dump(mode="json", exclude={"kind"}),
            user_id=actor_id,
            created_at=at or self._clock(),
        )
        sequence = await tx.append_history(record)
        logger.debug("history event recorded", kind=event.kind, sequence=sequence)
        return sequence

    async def record_all(
        self,
        tx: GameTransaction,
        game_id: str,
        events: Sequence[HistoryEvent],
        actor_id: str | None = None,
        *,
        at: datetime | None = None,
    ) -> list[int]:
        """Append events in order with a shared timestamp."""
        at = at or self._clock()
        return [await self.record(tx, game_id, event, actor_id, at=at) for event in events]

    async def load(self, repository: GameRepository, game_id: str) -> list[RecordedEvent]:
        """Read a game's history back as typed events, oldest first."""
        return [to_recorded_event(record) for record in await repository.get_history(game_id)]


def to_recorded_event(record: HistoryRecord) -> RecordedEvent:
    if record.id is None:
        raise ValueError("history record has not been written to storage")
    return RecordedEvent(
        sequence=record.id,
        game_id=record.game_id,
        actor_id=record.user_id,
        created_at=record.created_at,
        event=parse_history_event(record.event, record.event_data),
    )
