"""Unit tests for /src/checkers/moves.py"""

import pytest

from src.checkers.board import Board
from src.checkers.moves import (
    CaptureChain,
    Move,
    candidate_captures,
    candidate_king_moves,
    candidate_man_moves,
    king_capture_steps,
    man_capture_steps,
)
from src.checkers.pieces import Piece
from src.checkers.square import Position
from src.core.shared_types import Color

WHITE_MAN = Piece(Color.WHITE)
BLACK_MAN = Piece(Color.BLACK)
WHITE_KING = Piece(Color.WHITE, is_king=True)
BLACK_KING = Piece(Color.BLACK, is_king=True)


def sq(notation: str) -> Position:
    return Position.from_algebraic(notation)


# -- MOVE NOTATION / ENCODING ---
def test_simple_move_notation() -> None:
    move = Move(sq("c3"), sq("d4"), path=(sq("d4"),))
    assert move.to_notation() == "c3-d4"
    assert not move.is_capture


def test_capture_notation() -> None:
    """Every landing square is listed"""
    move = Move(
        sq("c3"),
        sq("c7"),
        captures=(sq("d4"), sq("d6")),
        path=(sq("e5"), sq("c7")),
    )
    assert move.to_notation() == "c3:e5:c7"
    assert move.is_capture


# -- SIMPLE MOVES ---
@pytest.mark.parametrize(
    "piece, square, expected_targets",
    [
        (WHITE_MAN, Position(5, 2), {Position(4, 1), Position(4, 3)}),
        (BLACK_MAN, Position(2, 3), {Position(3, 2), Position(3, 4)}),
        # edge of the board: a single diagonal left
        (WHITE_MAN, Position(5, 0), {Position(4, 1)}),
        (BLACK_MAN, Position(0, 7), {Position(1, 6)}),
    ],
)
def test_men_move_forward_only(
    piece: Piece, square: Position, expected_targets: set[Position]
) -> None:
    board = Board.from_pieces({square: piece})
    moves = candidate_man_moves(square, board)
    assert {move.to_square for move in moves} == expected_targets
    assert all(move.path == (move.to_square,) for move in moves)


def test_man_blocked_by_any_piece() -> None:
    board = Board.from_pieces(
        {Position(5, 2): WHITE_MAN, Position(4, 1): WHITE_MAN, Position(4, 3): BLACK_MAN}
    )
    assert candidate_man_moves(Position(5, 2), board) == []


@pytest.mark.parametrize(
    "piece, square",
    [
        (WHITE_MAN, Position(1, 2)),
        (BLACK_MAN, Position(6, 3)),
    ],
)
def test_man_promotes_on_far_row(piece: Piece, square: Position) -> None:
    board = Board.from_pieces({square: piece})
    moves = candidate_man_moves(square, board)
    assert len(moves) == 2
    assert all(move.becomes_king for move in moves)


def test_flying_king() -> None:
    """King in the corner: every square of the long diagonal."""
    board = Board.from_pieces({Position(7, 0): WHITE_KING})
    moves = candidate_king_moves(Position(7, 0), board)
    assert {move.to_square for move in moves} == {
        Position(7 - step, step) for step in range(1, 8)
    }
    # a king's simple move never crowns
    assert not any(move.becomes_king for move in moves)


def test_flying_king_stops_before_pieces() -> None:
    board = Board.from_pieces(
        {
            Position(4, 3): BLACK_KING,
            Position(2, 5): WHITE_MAN,
            Position(6, 1): BLACK_MAN,
        }
    )
    targets = {move.to_square for move in candidate_king_moves(Position(4, 3), board)}
    assert Position(3, 4) in targets
    assert Position(2, 5) not in targets
    assert Position(5, 2) in targets
    assert Position(6, 1) not in targets
    assert Position(7, 0) not in targets
    assert Position(0, 7) not in targets
    # open diagonals run up to the edge
    assert Position(1, 0) in targets
    assert Position(7, 6) in targets


# -- CAPTURES ---
def test_man_captures_backwards() -> None:
    board = Board.from_pieces({Position(3, 4): WHITE_MAN, Position(4, 5): BLACK_MAN})
    chain = CaptureChain(origin=Position(3, 4), piece=WHITE_MAN)
    assert man_capture_steps(Position(3, 4), chain, board) == [
        (Position(4, 5), Position(5, 6))
    ]


def test_no_capturing_own_pieces() -> None:
    board = Board.from_pieces({Position(3, 4): WHITE_MAN, Position(2, 5): WHITE_MAN})
    assert candidate_captures(Position(3, 4), board) == []


def test_no_jump_onto_occupied_square() -> None:
    board = Board.from_pieces(
        {Position(3, 4): WHITE_MAN, Position(2, 5): BLACK_MAN, Position(1, 6): BLACK_MAN}
    )
    assert candidate_captures(Position(3, 4), board) == []


def test_double_capture_only_full_chain() -> None:
    """WHITE on (5, 4), BLACK on (4, 3) and (2, 1): the two-capture chain is the only move (no stopping halfway)."""
    board = Board.from_pieces(
        {Position(5, 4): WHITE_MAN, Position(4, 3): BLACK_MAN, Position(2, 1): BLACK_MAN}
    )
    moves = candidate_captures(Position(5, 4), board)
    assert moves == [
        Move(
            from_square=Position(5, 4),
            to_square=Position(1, 0),
            captures=(Position(4, 3), Position(2, 1)),
            path=(Position(3, 2), Position(1, 0)),
            becomes_king=False,
        )
    ]


def test_loop_back_through_starting_square() -> None:
    """
    The square the capturing piece started from counts as empty:
    c3 can go around the four BLACK men in both directions and end where it started.
    """
    board = Board.from_pieces(
        {
            sq("c3"): WHITE_MAN,
            sq("d4"): BLACK_MAN,
            sq("d6"): BLACK_MAN,
            sq("b6"): BLACK_MAN,
            sq("b4"): BLACK_MAN,
        }
    )
    moves = candidate_captures(sq("c3"), board)
    assert sorted(move.to_notation() for move in moves) == [
        "c3:a5:c7:e5:c3",
        "c3:e5:c7:a5:c3",
    ]
    for move in moves:
        assert move.from_square == move.to_square
        assert len(move.captures) == 4
        # every piece is captured once
        assert len(set(move.captures)) == len(move.captures)


def test_promotion_mid_capture() -> None:
    """
    Man reaches the far row by capturing, and continues the same move as a flying king:
    (2, 5) x (1, 4) lands on (0, 3), then x (2, 1) from a distance (a man couldn't).
    """
    board = Board.from_pieces(
        {Position(2, 5): WHITE_MAN, Position(1, 4): BLACK_MAN, Position(2, 1): BLACK_MAN}
    )
    moves = candidate_captures(Position(2, 5), board)
    assert moves == [
        Move(
            from_square=Position(2, 5),
            to_square=Position(3, 0),
            captures=(Position(1, 4), Position(2, 1)),
            path=(Position(0, 3), Position(3, 0)),
            becomes_king=True,
        )
    ]


def test_promotion_at_end_of_capture() -> None:
    board = Board.from_pieces({Position(2, 3): WHITE_MAN, Position(1, 2): BLACK_MAN})
    (move,) = candidate_captures(Position(2, 3), board)
    assert move.to_square == Position(0, 1)
    assert move.becomes_king


def test_flying_king_capture_landing_squares() -> None:
    """Every free square behind the captured piece is a separate move."""
    board = Board.from_pieces({Position(7, 0): WHITE_KING, Position(4, 3): BLACK_MAN})
    moves = candidate_captures(Position(7, 0), board)
    assert {move.to_square for move in moves} == {
        Position(3, 4),
        Position(2, 5),
        Position(1, 6),
        Position(0, 7),
    }
    assert all(move.captures == (Position(4, 3),) for move in moves)
    assert all(move.becomes_king for move in moves)


def test_flying_king_cannot_jump_two_pieces() -> None:
    board = Board.from_pieces(
        {Position(7, 0): WHITE_KING, Position(4, 3): BLACK_MAN, Position(3, 4): BLACK_MAN}
    )
    assert candidate_captures(Position(7, 0), board) == []


def test_flying_king_blocked_by_own_piece() -> None:
    board = Board.from_pieces(
        {Position(7, 0): WHITE_KING, Position(5, 2): WHITE_MAN, Position(4, 3): BLACK_MAN}
    )
    chain = CaptureChain(origin=Position(7, 0), piece=WHITE_KING)
    assert king_capture_steps(Position(7, 0), chain, board) == []


def test_captured_piece_blocks_king() -> None:
    """A piece jumped earlier in the chain stays on the board until the move is done, and blocks the diagonal."""
    board = Board.from_pieces(
        {
            Position(7, 0): WHITE_KING,
            Position(5, 2): BLACK_MAN,
            Position(3, 2): BLACK_MAN,
            Position(5, 4): BLACK_MAN,
        }
    )
    # (7, 0) x (5, 2) to (4, 3), then x (3, 2) to (2, 1)
    chain = CaptureChain(
        origin=Position(7, 0),
        piece=WHITE_KING,
        captures=(Position(5, 2), Position(3, 2)),
        path=(Position(4, 3), Position(2, 1)),
    )
    # looking back from (2, 1): (3, 2) was jumped already, so (5, 4) behind it is out of reach
    assert king_capture_steps(Position(2, 1), chain, board) == []


def test_no_piece_captured_twice() -> None:
    """Kings flying around a cluster of pieces: no chain lists a square twice."""
    board = Board.from_pieces(
        {
            Position(7, 0): WHITE_KING,
            Position(5, 2): BLACK_MAN,
            Position(2, 3): BLACK_MAN,
            Position(2, 5): BLACK_MAN,
            Position(5, 4): BLACK_MAN,
        }
    )
    moves = candidate_captures(Position(7, 0), board)
    assert moves
    for move in moves:
        assert len(set(move.captures)) == len(move.captures)
        assert len(move.path) == len(move.captures)


def test_chains_do_not_share_state() -> None:
    chain = CaptureChain(origin=Position(5, 4), piece=WHITE_MAN)
    first = chain.extend(Position(4, 3), Position(3, 2))
    second = chain.extend(Position(4, 5), Position(3, 6))
    assert chain.captures == ()
    assert first.captures == (Position(4, 3),)
    assert second.captures == (Position(4, 5),)
    assert first.to_move().path == (Position(3, 2),)
