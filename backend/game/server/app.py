"""Composition root: wires storage, history and the session coordinator.

Transport layers (HTTP, WebSocket, CLI) are external; they build an Engine
here and call its coordinator.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from game.server.settings import EngineSettings
from game.session.coordinator import SessionCoordinator
from game.session.history import HistoryRecorder
from shared.db import Database, SqliteGameRepository
from shared.logging import setup_logging

logger = structlog.get_logger()


@dataclass
class Engine:
    """A running engine: the coordinator plus the database it owns."""

    settings: EngineSettings
    database: Database
    coordinator: SessionCoordinator

    def close(self) -> None:
        self.database.close()
        logger.info("engine stopped")


def create_engine(settings: EngineSettings | None = None, *, database: Database | None = None) -> Engine:
    """Build an engine from settings.

    When ``database`` is given it must not be connected yet; the engine
    connects it and owns its lifecycle from then on.
    """
    if settings is None:  # pragma: no cover
        settings = EngineSettings()

    db = database or Database(settings.database_path)
    db.connect()

    coordinator = SessionCoordinator(
        SqliteGameRepository(db),
        settings=settings.game_settings(),
        recorder=HistoryRecorder(),
        conflict_retries=settings.conflict_retries,
    )
    logger.info(
        "engine ready",
        database_path=db.path,
        creator_auto_join=settings.creator_auto_join,
        conflict_retries=settings.conflict_retries,
    )
    return Engine(settings=settings, database=db, coordinator=coordinator)


def get_engine() -> Engine:  # pragma: no cover
    """Engine factory for production use: reads the environment and configures logging."""
    settings = EngineSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_engine(settings)
