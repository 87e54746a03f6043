"""Move validation against a game snapshot.

Checks run in a fixed order so the same request against the same state
always produces the same error: participation, game status, turn, then
board rules.
"""

from typing import NamedTuple

from game.logic.board import Board
from game.logic.enums import GameStatus, Symbol
from game.logic.exceptions import (
    GameAlreadyFinishedError,
    GameEngineError,
    GameNotActiveError,
    NotAParticipantError,
    NotYourTurnError,
)
from game.logic.state import GameSnapshot


class ValidatedMove(NamedTuple):
    """Symbol to play, the move number it is recorded under, and the resulting board."""

    symbol: Symbol
    move_number: int
    board: Board


def validate_move(game: GameSnapshot, user_id: str, index: int) -> ValidatedMove:
    """Validate a proposed move without changing any state.

    Raises:
        NotAParticipantError: user holds no seat in the game
        GameAlreadyFinishedError: game is in a terminal state
        GameNotActiveError: game is still waiting for players
        NotYourTurnError: another participant's move is due
        CellOccupiedError / IndexOutOfRangeError: board rejects the index

    """
    participant = game.participant(user_id)
    if participant is None:
        raise NotAParticipantError(game_id=game.game_id, index=index)
    if game.status.is_terminal:
        raise GameAlreadyFinishedError(game_id=game.game_id, index=index)
    if game.status is not GameStatus.IN_PROGRESS:
        raise GameNotActiveError(game_id=game.game_id, index=index)
    if game.next_turn != user_id:
        raise NotYourTurnError(game_id=game.game_id, index=index)

    try:
        board = game.board.apply(index, participant.symbol)
    except GameEngineError as exc:
        raise exc.with_game(game.game_id) from exc

    return ValidatedMove(symbol=participant.symbol, move_number=game.move_count + 1, board=board)
