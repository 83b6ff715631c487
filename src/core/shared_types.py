"""
Type definitions used across layers
"""

from enum import StrEnum


class Status(StrEnum):
    WAITING = "WAITING"
    ACTIVE = "ACTIVE"
    FINISHED = "FINISHED"
    DRAW = "DRAW"


# --- NOTE values double as the wire format of the stored board / game record, so keep them upper case.


class Color(StrEnum):
    WHITE = "WHITE"
    BLACK = "BLACK"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self == Color.WHITE else Color.WHITE
