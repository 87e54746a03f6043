from __future__ import annotations

from typing import TYPE_CHECKING

from game.tests.conftest import ALICE, BOB

if TYPE_CHECKING:
    from collections.abc import Sequence

    from game.logic.state import GameSnapshot
    from game.session.coordinator import SessionCoordinator


async def start_game(
    coordinator: SessionCoordinator,
    game_id: str = "g1",
    *,
    x_player: str = ALICE,
    o_player: str = BOB,
) -> GameSnapshot:
    """Create a game as x_player and seat o_player, leaving X to move."""
    await coordinator.create_game(x_player, game_id=game_id)
    return await coordinator.join(game_id, o_player)


async def play_moves(
    coordinator: SessionCoordinator,
    game_id: str,
    moves: Sequence[int],
    *,
    x_player: str = ALICE,
    o_player: str = BOB,
) -> GameSnapshot:
    """Play cell indices alternately starting with X and return the last snapshot."""
    players = (x_player, o_player)
    game = await coordinator.get_game(game_id)
    for index in moves:
        game = await coordinator.move(game_id, players[game.move_count % 2], index)
    return game
