"""The Game board implements all rules that effect the `position` (in checkers: the configuration of pieces on the board)"""

import json
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Optional, Self

from src.checkers.moves import (
    MOVEMENT_RULES,
    CandidateMovesFn,
    Move,
    candidate_captures,
)
from src.checkers.pieces import Piece
from src.checkers.square import BOARD_SIZE, Position
from src.core.exceptions import MalformedStateError
from src.core.shared_types import Color

# Rows filled with men at the start of the game
BLACK_START_ROWS = range(0, 3)
WHITE_START_ROWS = range(BOARD_SIZE - 3, BOARD_SIZE)

Cell = Optional[Piece]
SerializedCell = Optional[dict[str, Any]]


@dataclass(frozen=True)
class Board:
    """
    Immutable board. Cells are stored in a flat tuple, indexed by row * 8 + col.

    Every update returns a new Board, so a Board handed out earlier (undo snapshot, search tree node) never changes underneath you.
    """

    cells: tuple[Cell, ...]

    @classmethod
    def empty(cls) -> Self:
        return cls((None,) * (BOARD_SIZE * BOARD_SIZE))

    @classmethod
    def initial(cls) -> Self:
        """Men on the dark squares of the three rows closest to each player. The middle two rows start empty."""
        cells: list[Cell] = [None] * (BOARD_SIZE * BOARD_SIZE)
        for index in range(len(cells)):
            square = Position.from_index(index)
            if not square.is_dark():
                continue
            if square.row in BLACK_START_ROWS:
                cells[index] = Piece(Color.BLACK)
            elif square.row in WHITE_START_ROWS:
                cells[index] = Piece(Color.WHITE)
        return cls(tuple(cells))

    @classmethod
    def from_pieces(cls, pieces: dict[Position, Piece]) -> Self:
        """Convenience method: set up a (test) position from scratch"""
        cells: list[Cell] = [None] * (BOARD_SIZE * BOARD_SIZE)
        for square, piece in pieces.items():
            cells[square.index] = piece
        return cls(tuple(cells))

    # --- SERIALIZATION ---
    @classmethod
    def from_rows(cls, rows: Any) -> Self:
        """
        Construct a board from its stored form: 8 rows of 8 cells, row-major, row 0 is BLACK's back rank.
        Each cell is either null or {"color": "WHITE" | "BLACK", "isKing": bool}
        """
        if not isinstance(rows, list) or len(rows) != BOARD_SIZE:
            raise MalformedStateError(f"Board must have {BOARD_SIZE} rows.")

        cells: list[Cell] = []
        for row_idx, row in enumerate(rows):
            if not isinstance(row, list) or len(row) != BOARD_SIZE:
                raise MalformedStateError(
                    f"Row {row_idx} must have {BOARD_SIZE} cells."
                )
            for col_idx, cell in enumerate(row):
                cells.append(cls._parse_cell(cell, Position(row_idx, col_idx)))
        return cls(tuple(cells))

    @staticmethod
    def _parse_cell(cell: SerializedCell, square: Position) -> Cell:
        if cell is None:
            return None
        try:
            piece = Piece.from_dict(cell)
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedStateError(
                f"Cannot interpret cell {square.to_algebraic()}: {cell!r}"
            ) from e
        if not square.is_dark():
            raise MalformedStateError(
                f"Piece found on light square {square.to_algebraic()}."
            )
        return piece

    def to_rows(self) -> list[list[SerializedCell]]:
        return [
            [
                piece.to_dict() if piece else None
                for piece in self.cells[row * BOARD_SIZE : (row + 1) * BOARD_SIZE]
            ]
            for row in range(BOARD_SIZE)
        ]

    @classmethod
    def from_json(cls, board_json: str) -> Self:
        try:
            rows = json.loads(board_json)
        except (TypeError, json.JSONDecodeError) as e:
            raise MalformedStateError(f"Board is not valid JSON: {e}") from e
        return cls.from_rows(rows)

    def to_json(self) -> str:
        return json.dumps(self.to_rows(), separators=(",", ":"))

    # --- QUERIES ---
    def piece(self, square: Position) -> Cell:
        return self.cells[square.index]

    def is_empty(self, square: Position) -> bool:
        return self.cells[square.index] is None

    def pieces(self) -> Iterator[tuple[Position, Piece]]:
        for index, piece in enumerate(self.cells):
            if piece is not None:
                yield Position.from_index(index), piece

    def locate_color(self, color: Color) -> list[Position]:
        return [square for square, piece in self.pieces() if piece.color == color]

    def count_material(self) -> dict[Color, tuple[int, int]]:
        """Tally (men, kings) for both players"""
        material = {color: (0, 0) for color in Color}
        for _, piece in self.pieces():
            men, kings = material[piece.color]
            material[piece.color] = (men, kings + 1) if piece.is_king else (men + 1, kings)
        return material

    # --- RULES ---
    def allowed_moves(self, color: Color) -> list[Move]:
        """
        List of legal moves for the player with the 'color' pieces
        ----

        1. every piece: all of its complete capture chains, or (only if it has none) its simple moves
        2. mandatory capture: once any piece can capture, the simple moves of ALL pieces are dropped

        No particular order is guaranteed.
        """
        captures: list[Move] = []
        simple_moves: list[Move] = []
        for square in self.locate_color(color):
            piece_captures = candidate_captures(square, self)
            if piece_captures:
                captures.extend(piece_captures)
                continue

            piece = self.piece(square)
            assert piece is not None
            movement_rule: CandidateMovesFn = MOVEMENT_RULES[piece.type]
            simple_moves.extend(movement_rule(square, self))

        return captures if captures else simple_moves

    def apply_move(self, move: Move) -> Self:
        """
        Returns the board after the move. Captured pieces are only removed once the whole chain is done.
        """
        cells = list(self.cells)
        moving_piece = cells[move.from_square.index]
        if moving_piece is None:
            return type(self)(tuple(cells))

        cells[move.from_square.index] = None
        cells[move.to_square.index] = Piece(
            moving_piece.color, moving_piece.is_king or move.becomes_king
        )
        for captured in move.captures:
            cells[captured.index] = None
        return type(self)(tuple(cells))


# --- RULE ENGINE API ---
def initialize_board() -> Board:
    return Board.initial()


def calculate_allowed_moves(board: Board, side: Color) -> list[Move]:
    return board.allowed_moves(side)


def apply_move(board: Board, move: Move) -> Board:
    return board.apply_move(move)
