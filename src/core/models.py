"""
Boundary layer data model(s).

These objects can be used to communicate with the Service.
Hence, both the API layer (higher) and domain/db layers (lower) will use model(s) defined here to send to/receive from the Service
(Decouples the data model specific to the DB layer, API layer, or domain layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

# Type aliases to make GameModel easier to read
PieceColor = str
PlayerId = str
JSONDict = dict[str, Any]


@dataclass
class GameModel:
    """Transport-safe representation of a checkers game (the stored game record) used between API, Service, DB, and Game layers."""

    board: str
    turn: str
    players: dict[PieceColor, Optional[PlayerId]]
    status: str
    version: int
    half_move_clock: int
    created_at: datetime
    expire_at: datetime
    winner: Optional[str] = None
    is_random_color: bool = False
    last_move: Optional[JSONDict] = None
    previous_state: Optional[JSONDict] = None
    takeback_request: Optional[JSONDict] = None
    rematch_id: Optional[UUID] = None
