"""Conversion between game aggregates and persistence records."""

from game.logic.enums import GameStatus, Symbol
from game.logic.state import GameSnapshot, Move, Participation
from shared.dal.models import GameRecord, MoveRecord, ParticipationRecord


def participation_to_record(participation: Participation) -> ParticipationRecord:
    return ParticipationRecord(
        user_id=participation.user_id,
        symbol=participation.symbol.value,
        joined_at=participation.joined_at,
    )


def move_to_record(move: Move) -> MoveRecord:
    return MoveRecord(
        user_id=move.user_id,
        move_index=move.index,
        symbol=move.symbol.value,
        move_number=move.move_number,
        created_at=move.created_at,
    )


def snapshot_to_record(game: GameSnapshot) -> GameRecord:
    return GameRecord(
        game_id=game.game_id,
        creator_id=game.creator_id,
        status=game.status.value,
        board_state=game.board_state,
        created_at=game.created_at,
        started_at=game.started_at,
        finished_at=game.finished_at,
        winner_id=game.winner_id,
        next_turn=game.next_turn,
        version=game.version,
        participants=[participation_to_record(p) for p in game.participants],
        moves=[move_to_record(m) for m in game.moves],
    )


def record_to_snapshot(record: GameRecord) -> GameSnapshot:
    """Rebuild a snapshot from storage. Raises ValueError on corrupt rows."""
    return GameSnapshot(
        game_id=record.game_id,
        creator_id=record.creator_id,
        status=GameStatus(record.status),
        board_state=record.board_state,
        next_turn=record.next_turn,
        winner_id=record.winner_id,
        created_at=record.created_at,
        started_at=record.started_at,
        finished_at=record.finished_at,
        participants=tuple(
            Participation(user_id=p.user_id, symbol=Symbol(p.symbol), joined_at=p.joined_at)
            for p in record.participants
        ),
        moves=tuple(
            Move(
                user_id=m.user_id,
                index=m.move_index,
                symbol=Symbol(m.symbol),
                move_number=m.move_number,
                created_at=m.created_at,
            )
            for m in record.moves
        ),
        version=record.version,
    )
