from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Literal

from pydantic import BaseModel, Field

from tictactoe.errors import CellOccupied, OutOfRange

SIZE = 3


class Mark(IntEnum):
    empty = 0
    player1 = 1
    player2 = 2


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of evaluating a board.

    - `kind == "none"`: game continues.
    - `kind == "win"`: `mark` completed a line.
    - `kind == "tie"`: board is full without a line.
    """

    kind: Literal["none", "win", "tie"]
    mark: Mark | None = None

    @staticmethod
    def win(mark: Mark) -> "Outcome":
        return Outcome(kind="win", mark=mark)


NO_OUTCOME = Outcome(kind="none")
TIE = Outcome(kind="tie")


def _empty_cells() -> list[list[Mark]]:
    return [[Mark.empty] * SIZE for _ in range(SIZE)]


# 3 rows, 3 columns, 2 diagonals.
LINES: tuple[tuple[tuple[int, int], ...], ...] = (
    *(tuple((r, c) for c in range(SIZE)) for r in range(SIZE)),
    *(tuple((r, c) for r in range(SIZE)) for c in range(SIZE)),
    tuple((i, i) for i in range(SIZE)),
    tuple((i, SIZE - 1 - i) for i in range(SIZE)),
)


class Board(BaseModel):
    cells: list[list[Mark]] = Field(default_factory=_empty_cells)

    def mark_at(self, row: int, col: int) -> Mark:
        return self.cells[row][col]

    def place(self, row: int, col: int, mark: Mark) -> None:
        if not (0 <= row < SIZE and 0 <= col < SIZE):
            raise OutOfRange(f"Cell ({row}, {col}) is outside the board")
        if self.cells[row][col] != Mark.empty:
            raise CellOccupied(f"Cell ({row}, {col}) is already taken")
        self.cells[row][col] = mark

    def is_full(self) -> bool:
        return all(cell != Mark.empty for row in self.cells for cell in row)

    def evaluate(self) -> Outcome:
        for line in LINES:
            first = self.mark_at(*line[0])
            if first != Mark.empty and all(self.mark_at(r, c) == first for r, c in line):
                return Outcome.win(first)
        if self.is_full():
            return TIE
        return NO_OUTCOME
