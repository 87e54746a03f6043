"""Data access layer: repository interfaces, persistence records and storage errors."""

from shared.dal.exceptions import StorageConflictError, StorageError
from shared.dal.game_repository import GameRepository, GameTransaction
from shared.dal.models import GameRecord, HistoryRecord, MoveRecord, ParticipationRecord

__all__ = [
    "GameRecord",
    "GameRepository",
    "GameTransaction",
    "HistoryRecord",
    "MoveRecord",
    "ParticipationRecord",
    "StorageConflictError",
    "StorageError",
]
