"""
Static evaluation of a checkers position.

Score is always from the perspective of the color asked for: positive means that side is ahead.
Every term is counted for one side and subtracted for the other, so
evaluate_board(board, WHITE) == -evaluate_board(board, BLACK).
"""

from src.checkers.board import Board
from src.checkers.pieces import PROMOTION_ROW, Piece
from src.checkers.square import Position
from src.core.shared_types import Color

# --- Heuristic weights ---
WIN_SCORE = 100_000
KING_VALUE = 800
PIECE_VALUE = 100
# man still guarding its own back rank (blocks the opponent from crowning)
BACK_ROW_BONUS = 40
CENTER_BONUS = 15
# per row advanced towards the promotion row (men only)
ADVANCE_BONUS = 8

CENTER = range(2, 6)


def piece_value(square: Position, piece: Piece) -> int:
    """Material + positional value of a single piece"""
    value = KING_VALUE if piece.is_king else PIECE_VALUE

    if square.row in CENTER and square.col in CENTER:
        value += CENTER_BONUS

    if not piece.is_king:
        # the back row of one color is the promotion row of the other
        home_row = PROMOTION_ROW[piece.color.opponent]
        rows_advanced = abs(square.row - home_row)
        value += rows_advanced * ADVANCE_BONUS
        if square.row == home_row:
            value += BACK_ROW_BONUS

    return value


def evaluate_board(board: Board, color: Color) -> int:
    score = 0
    for square, piece in board.pieces():
        value = piece_value(square, piece)
        score += value if piece.color == color else -value
    return score
