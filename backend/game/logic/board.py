"""
Immutable 3x3 Tic-Tac-Toe board.

Cells are indexed 0-8 in row-major order (0 = top-left, 8 = bottom-right).
The board never changes in place: apply() returns a new Board.
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, field_validator

from game.logic.enums import Outcome, Symbol
from game.logic.exceptions import CellOccupiedError, IndexOutOfRangeError

BOARD_SIZE = 9
EMPTY_CELL = "-"

# rows, columns, diagonals
WIN_LINES: tuple[tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


class Board(BaseModel, frozen=True):
    """Nine cells, each empty (None) or marked with a Symbol."""

    cells: tuple[Symbol | None, ...] = (None,) * BOARD_SIZE

    @field_validator("cells")
    @classmethod
    def _validate_size(cls, v: tuple[Symbol | None, ...]) -> tuple[Symbol | None, ...]:
        if len(v) != BOARD_SIZE:
            raise ValueError(f"board must have {BOARD_SIZE} cells, got {len(v)}")
        return v

    @classmethod
    def empty(cls) -> Self:
        return cls()

    @classmethod
    def from_state(cls, state: str) -> Self:
        """Parse a 9-character board_state string ("X", "O" or "-" per cell)."""
        if len(state) != BOARD_SIZE:
            raise ValueError(f"board_state must be {BOARD_SIZE} characters, got {state!r}")
        cells: list[Symbol | None] = []
        for char in state:
            if char == EMPTY_CELL:
                cells.append(None)
            elif char in (Symbol.X, Symbol.O):
                cells.append(Symbol(char))
            else:
                raise ValueError(f"invalid board_state character {char!r} in {state!r}")
        return cls(cells=tuple(cells))

    @property
    def state(self) -> str:
        """9-character snapshot stored in games.board_state."""
        return "".join(EMPTY_CELL if cell is None else cell.value for cell in self.cells)

    def __str__(self) -> str:
        s = self.state
        return "\n".join(s[row : row + 3] for row in range(0, BOARD_SIZE, 3))

    def cell(self, index: int) -> Symbol | None:
        _check_index(index)
        return self.cells[index]

    def empty_cells(self) -> list[int]:
        return [i for i, cell in enumerate(self.cells) if cell is None]

    def is_full(self) -> bool:
        return all(cell is not None for cell in self.cells)

    def count(self, symbol: Symbol) -> int:
        return sum(1 for cell in self.cells if cell is symbol)

    def apply(self, index: int, symbol: Symbol) -> Board:
        """Return a new board with symbol placed at index.

        Raises IndexOutOfRangeError for an index outside 0-8 and
        CellOccupiedError if the cell already holds a mark.
        """
        _check_index(index)
        if self.cells[index] is not None:
            raise CellOccupiedError(index=index)
        cells = list(self.cells)
        cells[index] = symbol
        return Board(cells=tuple(cells))

    def winning_line(self) -> tuple[int, int, int] | None:
        """Return the first completed line, or None."""
        for line in WIN_LINES:
            a, b, c = line
            first = self.cells[a]
            if first is not None and first is self.cells[b] and first is self.cells[c]:
                return line
        return None

    def evaluate(self) -> Outcome:
        """Evaluate the board. A completed line is checked before a full board."""
        line = self.winning_line()
        if line is not None:
            return Outcome.X_WINS if self.cells[line[0]] is Symbol.X else Outcome.O_WINS
        if self.is_full():
            return Outcome.DRAW
        return Outcome.IN_PROGRESS


def _check_index(index: int) -> None:
    if isinstance(index, bool) or not isinstance(index, int) or not (0 <= index < BOARD_SIZE):
        raise IndexOutOfRangeError(index=index if isinstance(index, int) else None)
