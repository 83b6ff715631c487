"""Defines the checkers pieces: men and kings of either color"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Self

from src.core.shared_types import Color


class PieceType(Enum):
    MAN = auto()
    KING = auto()


# The row a man has to reach to be crowned
PROMOTION_ROW: dict[Color, int] = {
    Color.WHITE: 0,
    Color.BLACK: 7,
}

# Direction (in rows) a man moves forward in
FORWARD: dict[Color, int] = {
    Color.WHITE: -1,
    Color.BLACK: 1,
}


@dataclass(frozen=True)
class Piece:
    color: Color
    is_king: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Stored format: {"color": "WHITE", "isKing": false}"""
        return cls(Color(data["color"]), bool(data["isKing"]))

    def to_dict(self) -> dict[str, Any]:
        return {"color": self.color.value, "isKing": self.is_king}

    @property
    def type(self) -> PieceType:
        return PieceType.KING if self.is_king else PieceType.MAN

    def crowned(self) -> Self:
        return type(self)(self.color, is_king=True)

    def reaches_promotion_row(self, row: int) -> bool:
        return row == PROMOTION_ROW[self.color]
