"""
A square on the board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass

# Russian checkers is always played on 8x8.
BOARD_SIZE = 8


@dataclass(frozen=True)
class Position:
    """
    Row 0 is BLACK's back rank, row 7 is WHITE's back rank.
    Column 0 is the a-file, so in algebraic notation row 7 is rank 1 and row 0 is rank 8.
    """

    row: int
    col: int

    @classmethod
    def from_algebraic(cls, sq: str) -> Position:
        """Algebraic notation: 'a8' - 'h1' get converted to (0, 0) - (7, 7)"""
        col = ord(sq[0].lower()) - ord("a")
        row = BOARD_SIZE - int(sq[1])
        return cls(row, col)

    @classmethod
    def from_index(cls, index: int) -> Position:
        return cls(*divmod(index, BOARD_SIZE))

    def to_algebraic(self) -> str:
        return f"{chr(self.col + ord('a'))}{BOARD_SIZE - self.row}"

    @property
    def index(self) -> int:
        """Offset into the flat board array."""
        return self.row * BOARD_SIZE + self.col

    def is_within_bounds(self) -> bool:
        return (0 <= self.row < BOARD_SIZE) and (0 <= self.col < BOARD_SIZE)

    def is_dark(self) -> bool:
        """Pieces only ever stand on the dark squares."""
        return (self.row + self.col) % 2 == 1

    def to_dict(self) -> dict[str, int]:
        return {"row": self.row, "col": self.col}

    @classmethod
    def from_dict(cls, data: dict[str, int]) -> Position:
        return cls(int(data["row"]), int(data["col"]))
