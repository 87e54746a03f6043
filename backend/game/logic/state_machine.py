"""
Game lifecycle state machine.

    waiting ──join (2nd seat)──> in_progress ──move/resign──> draw | X_won | O_won
       │
       └──cancel──> cancelled

Every transition is a pure function of (snapshot, request, now) and returns
a Transition holding the new snapshot, the child row it created (if any) and
the history events it produced. Snapshots are never mutated; terminal games
reject every transition with GameAlreadyFinishedError.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

from game.logic.board import Board
from game.logic.enums import GameStatus, Outcome, ResignReason, Symbol
from game.logic.events import (
    GameCancelledEvent,
    GameCreatedEvent,
    GameFinishedEvent,
    GameStartedEvent,
    MoveMadeEvent,
    PlayerJoinedEvent,
    PlayerResignedEvent,
)
from game.logic.exceptions import (
    AlreadyJoinedError,
    GameAlreadyFinishedError,
    GameFullError,
    GameNotActiveError,
    GameNotWaitingError,
    NotAParticipantError,
)
from game.logic.settings import GameSettings
from game.logic.state import MAX_PARTICIPANTS, GameSnapshot, Move, Participation
from game.logic.types import CancelAction, JoinAction, MoveAction, ResignAction
from game.logic.validator import validate_move

if TYPE_CHECKING:
    from datetime import datetime

    from game.logic.events import HistoryEvent
    from game.logic.types import GameActionRequest


class Transition(NamedTuple):
    """
    Result of applying one action to a game.

    The caller persists ``game`` (with ``previous_version`` as the expected
    storage version), inserts ``participation`` / ``move`` when present, and
    records ``events`` in order, all inside one transaction.
    """

    game: GameSnapshot
    previous_version: int
    actor_id: str | None
    events: list[HistoryEvent]
    participation: Participation | None = None
    move: Move | None = None


def _advance(game: GameSnapshot, **updates: object) -> GameSnapshot:
    return game.model_copy(update={**updates, "version": game.version + 1})


def _ensure_not_finished(game: GameSnapshot) -> None:
    if game.status.is_terminal:
        raise GameAlreadyFinishedError(game_id=game.game_id)


def _ensure_participant(game: GameSnapshot, user_id: str) -> Participation:
    participant = game.participant(user_id)
    if participant is None:
        raise NotAParticipantError(game_id=game.game_id)
    return participant


def create_game(
    game_id: str,
    creator_id: str,
    now: datetime,
    settings: GameSettings | None = None,
    symbol: Symbol | None = None,
) -> Transition:
    """Create a waiting game, seating the creator when the policy says so."""
    settings = settings or GameSettings()
    game = GameSnapshot(game_id=game_id, creator_id=creator_id, created_at=now, version=1)

    if not settings.creator_auto_join:
        return Transition(
            game=game,
            previous_version=0,
            actor_id=creator_id,
            events=[GameCreatedEvent(creator_id=creator_id)],
        )

    seat = Participation(user_id=creator_id, symbol=symbol or settings.creator_symbol, joined_at=now)
    game = game.model_copy(update={"participants": (seat,)})
    return Transition(
        game=game,
        previous_version=0,
        actor_id=creator_id,
        events=[
            GameCreatedEvent(creator_id=creator_id, creator_symbol=seat.symbol),
            PlayerJoinedEvent(user_id=creator_id, symbol=seat.symbol),
        ],
        participation=seat,
    )


def join_game(game: GameSnapshot, user_id: str, now: datetime) -> Transition:
    """Seat a user. Filling the second seat starts the game with X to move."""
    _ensure_not_finished(game)
    if game.participant(user_id) is not None:
        raise AlreadyJoinedError(game_id=game.game_id)
    if game.status is not GameStatus.WAITING or game.is_full:
        raise GameFullError(game_id=game.game_id)

    taken = {p.symbol for p in game.participants}
    symbol = Symbol.X if Symbol.X not in taken else Symbol.O
    seat = Participation(user_id=user_id, symbol=symbol, joined_at=now)
    participants = (*game.participants, seat)
    events: list[HistoryEvent] = [PlayerJoinedEvent(user_id=user_id, symbol=symbol)]

    if len(participants) < MAX_PARTICIPANTS:
        updated = _advance(game, participants=participants)
    else:
        x_player = next(p for p in participants if p.symbol is Symbol.X)
        o_player = next(p for p in participants if p.symbol is Symbol.O)
        updated = _advance(
            game,
            participants=participants,
            status=GameStatus.IN_PROGRESS,
            started_at=now,
            next_turn=x_player.user_id,
        )
        events.append(GameStartedEvent(x_player_id=x_player.user_id, o_player_id=o_player.user_id))

    return Transition(
        game=updated,
        previous_version=game.version,
        actor_id=user_id,
        events=events,
        participation=seat,
    )


def make_move(game: GameSnapshot, user_id: str, index: int, now: datetime) -> Transition:
    """Apply a validated move and derive the next turn or the final status."""
    validated = validate_move(game, user_id, index)
    move = Move(
        user_id=user_id,
        index=index,
        symbol=validated.symbol,
        move_number=validated.move_number,
        created_at=now,
    )
    board: Board = validated.board
    events: list[HistoryEvent] = [
        MoveMadeEvent(
            user_id=user_id,
            index=index,
            symbol=validated.symbol,
            move_number=validated.move_number,
            board_state=board.state,
        ),
    ]
    moves = (*game.moves, move)

    outcome = board.evaluate()
    if outcome is Outcome.IN_PROGRESS:
        opponent = game.opponent_of(user_id)
        updated = _advance(
            game,
            board_state=board.state,
            moves=moves,
            next_turn=opponent.user_id if opponent is not None else None,
        )
    else:
        status = outcome.to_status()
        winner_id = None
        if outcome is not Outcome.DRAW:
            winner_id = user_id  # only the mover can complete a line
        updated = _advance(
            game,
            board_state=board.state,
            moves=moves,
            status=status,
            next_turn=None,
            winner_id=winner_id,
            finished_at=now,
        )
        events.append(
            GameFinishedEvent(
                status=status,
                winner_id=winner_id,
                winning_line=board.winning_line(),
                board_state=board.state,
            ),
        )

    return Transition(
        game=updated,
        previous_version=game.version,
        actor_id=user_id,
        events=events,
        move=move,
    )


def resign_game(
    game: GameSnapshot,
    user_id: str,
    now: datetime,
    reason: ResignReason = ResignReason.RESIGNED,
) -> Transition:
    """Concede an in-progress game; the other seat wins."""
    _ensure_not_finished(game)
    participant = _ensure_participant(game, user_id)
    if game.status is not GameStatus.IN_PROGRESS:
        raise GameNotActiveError(game_id=game.game_id)

    winner = game.opponent_of(user_id)
    if winner is None:  # pragma: no cover - in_progress always has two seats
        raise GameNotActiveError(game_id=game.game_id)
    status = GameStatus.won_by(participant.symbol.other)
    updated = _advance(
        game,
        status=status,
        winner_id=winner.user_id,
        next_turn=None,
        finished_at=now,
    )
    return Transition(
        game=updated,
        previous_version=game.version,
        actor_id=user_id,
        events=[
            PlayerResignedEvent(user_id=user_id, reason=reason),
            GameFinishedEvent(status=status, winner_id=winner.user_id, board_state=game.board_state),
        ],
    )


def cancel_game(game: GameSnapshot, actor_id: str, now: datetime) -> Transition:
    """Cancel a game that has not started. Only the creator or a seated player may cancel."""
    _ensure_not_finished(game)
    if actor_id != game.creator_id and game.participant(actor_id) is None:
        raise NotAParticipantError(game_id=game.game_id)
    if game.status is not GameStatus.WAITING:
        raise GameNotWaitingError(game_id=game.game_id)

    updated = _advance(game, status=GameStatus.CANCELLED, next_turn=None, finished_at=now)
    return Transition(
        game=updated,
        previous_version=game.version,
        actor_id=actor_id,
        events=[GameCancelledEvent(cancelled_by=actor_id)],
    )


def apply_action(game: GameSnapshot, action: GameActionRequest, now: datetime) -> Transition:
    """Dispatch a typed action request to its transition."""
    match action:
        case JoinAction():
            return join_game(game, action.user_id, now)
        case MoveAction():
            return make_move(game, action.user_id, action.index, now)
        case ResignAction():
            return resign_game(game, action.user_id, now, action.reason)
        case CancelAction():
            return cancel_game(game, action.user_id, now)
    raise TypeError(f"unsupported action: {action!r}")
