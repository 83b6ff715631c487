"""Requests and Response models"""

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from src.checkers.board import Board
from src.checkers.moves import Move
from src.checkers.square import BOARD_SIZE
from src.core.exceptions import InvalidRequestError, MalformedStateError
from src.core.shared_types import Color, Status

PieceColor = str
PlayerId = str
SerializedBoard = list[list[Optional[dict[str, Any]]]]


def _is_algebraic_notation(value: str) -> bool:
    """'a1' - 'h8'"""
    if len(value) != 2:
        return False

    file_character = value[0].lower()
    rank_character = value[1]
    if not ("a" <= file_character < chr(ord("a") + BOARD_SIZE)):
        return False
    return rank_character in {str(rank) for rank in range(1, BOARD_SIZE + 1)}


def _validate_square(value: str) -> str:
    if not _is_algebraic_notation(value):
        raise InvalidRequestError(
            f"Cannot interpret {value!r} as a valid square name."
        )
    return value


# --- REQUEST MODELS ---
class CreateGameRequest(BaseModel):
    player_id: PlayerId
    # no color: pick one at random
    color: Optional[Color] = None
    initial_board: Optional[SerializedBoard] = None

    @field_validator("initial_board")
    @classmethod
    def validate_initial_board(
        cls, value: Optional[SerializedBoard]
    ) -> Optional[SerializedBoard]:
        if value is None:
            return value

        try:
            Board.from_rows(value)
        except MalformedStateError as e:
            raise InvalidRequestError(f"Invalid initial board: {e}") from e
        return value


class JoinGameRequest(BaseModel):
    game_id: UUID
    player_id: PlayerId


class GetGameRequest(BaseModel):
    game_id: UUID


class LegalMovesRequest(BaseModel):
    game_id: UUID
    player_id: PlayerId


class MoveRequest(BaseModel):
    game_id: UUID
    player_id: PlayerId
    # version of the game the player based the move on
    expected_version: int
    from_square: str
    to_square: str
    # landing squares, only needed to tell apart capture chains with the same end points
    path: Optional[list[str]] = None

    @field_validator(*["from_square", "to_square"])
    @classmethod
    def validate_square(cls, value: str) -> str:
        return _validate_square(value)

    @field_validator("path")
    @classmethod
    def validate_path(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        if value is None:
            return value
        return [_validate_square(square) for square in value]


class TakebackRequest(BaseModel):
    game_id: UUID
    player_id: PlayerId


class ResolveTakebackRequest(BaseModel):
    game_id: UUID
    accepted: bool


class ResignRequest(BaseModel):
    game_id: UUID
    player_id: PlayerId


class DeclareOutcomeRequest(BaseModel):
    game_id: UUID
    expected_version: int
    winner: Color


class RematchRequest(BaseModel):
    game_id: UUID
    player_id: PlayerId
    # color the proposer played with in the finished game (they get the other one)
    old_color: Color
    is_random: bool = False


class BotTurnRequest(BaseModel):
    game_id: UUID


# --- RESPONSE MODELS ---
class MoveSchema(BaseModel):
    from_square: str
    to_square: str
    path: list[str]
    captures: list[str]
    becomes_king: bool
    notation: str

    @classmethod
    def from_move(cls, move: Move) -> "MoveSchema":
        return cls(
            from_square=move.from_square.to_algebraic(),
            to_square=move.to_square.to_algebraic(),
            path=[square.to_algebraic() for square in move.path],
            captures=[square.to_algebraic() for square in move.captures],
            becomes_king=move.becomes_king,
            notation=move.to_notation(),
        )


class GameResponse(BaseModel):
    game_id: UUID
    board: SerializedBoard
    turn: Color
    players: dict[PieceColor, Optional[PlayerId]]
    status: Status
    winner: Optional[Color]
    version: int
    half_move_clock: int
    is_random_color: bool
    last_move: Optional[dict[str, Any]]
    takeback_request: Optional[dict[str, Any]]
    # a snapshot to go back to exists
    can_take_back: bool
    rematch_id: Optional[UUID]


class LegalMovesResponse(BaseModel):
    game_id: UUID
    player_id: PlayerId
    color: Color
    legal_moves: list[MoveSchema]
    max_captures: int


class RematchResponse(BaseModel):
    old_game_id: UUID
    game_id: UUID
