"""Unit tests for /src/bot/search.py"""

import random
from unittest.mock import patch

from src.bot.evaluate import WIN_SCORE, evaluate_board
from src.bot.search import (
    INFINITY,
    SearchContext,
    get_smart_bot_move,
    minimax,
    order_moves,
    quiescence,
)
from src.checkers.board import Board
from src.checkers.moves import Move
from src.checkers.pieces import Piece
from src.checkers.square import Position
from src.core.config import SearchSettings
from src.core.shared_types import Color

WHITE_MAN = Piece(Color.WHITE)
BLACK_MAN = Piece(Color.BLACK)
WHITE_KING = Piece(Color.WHITE, is_king=True)


def relaxed_context() -> SearchContext:
    """No time pressure in unit tests"""
    return SearchContext(timeout_ms=60_000, max_q_depth=2)


def test_order_moves_is_stable() -> None:
    quiet_a = Move(Position(5, 0), Position(4, 1), path=(Position(4, 1),))
    quiet_b = Move(Position(5, 2), Position(4, 3), path=(Position(4, 3),))
    single = Move(Position(3, 4), Position(1, 6), captures=(Position(2, 5),), path=(Position(1, 6),))
    double = Move(
        Position(5, 4),
        Position(1, 0),
        captures=(Position(4, 3), Position(2, 1)),
        path=(Position(3, 2), Position(1, 0)),
    )
    assert order_moves([quiet_a, single, quiet_b, double]) == [double, single, quiet_a, quiet_b]


# --- QUIESCENCE ---
def test_quiescence_stands_pat_without_captures() -> None:
    board = Board.initial()
    score = quiescence(board, -INFINITY, INFINITY, True, Color.WHITE, 2, relaxed_context())
    assert score == evaluate_board(board, Color.WHITE)


def test_quiescence_resolves_forced_capture() -> None:
    """WHITE has to take: the position is scored after the exchange, not before."""
    board = Board.from_pieces({Position(3, 4): WHITE_MAN, Position(2, 5): BLACK_MAN})
    after = board.apply_move(board.allowed_moves(Color.WHITE)[0])
    score = quiescence(board, -INFINITY, INFINITY, True, Color.WHITE, 2, relaxed_context())
    assert score == evaluate_board(after, Color.WHITE)


def test_quiescence_depth_exhausted() -> None:
    board = Board.from_pieces({Position(3, 4): WHITE_MAN, Position(2, 5): BLACK_MAN})
    score = quiescence(board, -INFINITY, INFINITY, True, Color.WHITE, 0, relaxed_context())
    assert score == evaluate_board(board, Color.WHITE)


# --- MINIMAX ---
def test_minimax_terminal_scores() -> None:
    """Side to move without legal moves has lost. Sooner (more depth left) is worth more."""
    board = Board.from_pieces({Position(3, 4): WHITE_MAN})
    # BLACK (minimizing) to move, but has nothing left
    assert minimax(board, 2, -INFINITY, INFINITY, False, Color.WHITE, relaxed_context()) == WIN_SCORE + 2
    # same from BLACK's point of view: the bot is stuck
    assert minimax(board, 2, -INFINITY, INFINITY, True, Color.BLACK, relaxed_context()) == -(WIN_SCORE + 2)

    quick = minimax(board, 3, -INFINITY, INFINITY, False, Color.WHITE, relaxed_context())
    slow = minimax(board, 1, -INFINITY, INFINITY, False, Color.WHITE, relaxed_context())
    assert quick > slow


def test_minimax_depth_zero_is_quiescence() -> None:
    board = Board.initial()
    context = relaxed_context()
    with patch("src.bot.search.quiescence", return_value=42) as mock_quiescence:
        assert minimax(board, 0, -INFINITY, INFINITY, True, Color.WHITE, context) == 42
    mock_quiescence.assert_called_once_with(
        board, -INFINITY, INFINITY, True, Color.WHITE, context.max_q_depth, context
    )


def test_timeout_returns_static_evaluation() -> None:
    board = Board.initial()
    context = relaxed_context()
    with patch.object(SearchContext, "timed_out", return_value=True):
        score = minimax(board, 5, -INFINITY, INFINITY, True, Color.WHITE, context)
    assert score == evaluate_board(board, Color.WHITE)
    assert context.node_count == 1


# --- ROOT MOVE SELECTION ---
def test_no_legal_moves() -> None:
    board = Board.from_pieces({Position(3, 4): WHITE_MAN})
    assert get_smart_bot_move(board, Color.BLACK) is None


def test_forced_move_skips_search() -> None:
    """A single legal move (here: a forced capture) is played right away."""
    board = Board.from_pieces(
        {Position(3, 4): WHITE_MAN, Position(2, 5): BLACK_MAN, Position(7, 0): WHITE_MAN}
    )
    with patch("src.bot.search.minimax") as mock_minimax:
        move = get_smart_bot_move(board, Color.WHITE)
    mock_minimax.assert_not_called()
    assert move == board.allowed_moves(Color.WHITE)[0]
    assert move is not None and move.is_capture


def test_bot_returns_legal_move() -> None:
    board = Board.initial()
    settings = SearchSettings(max_depth=2, max_q_depth=1, timeout_ms=5_000)
    move = get_smart_bot_move(board, Color.BLACK, settings, random.Random(7))
    assert move in board.allowed_moves(Color.BLACK)


def test_bot_plays_winning_move() -> None:
    """Only b6-c7 leaves BLACK's last man without a move."""
    board = Board.from_pieces(
        {
            Position(0, 1): BLACK_MAN,
            Position(1, 0): WHITE_MAN,
            Position(2, 1): WHITE_MAN,
            Position(2, 3): WHITE_MAN,
        }
    )
    settings = SearchSettings(max_depth=2, max_q_depth=2, timeout_ms=5_000)
    for seed in range(5):
        move = get_smart_bot_move(board, Color.WHITE, settings, random.Random(seed))
        assert move == Move(Position(2, 1), Position(1, 2), path=(Position(1, 2),))


def test_timeout_falls_back_to_first_ordered_move() -> None:
    board = Board.initial()
    with (
        patch.object(SearchContext, "timed_out", return_value=True),
        patch("src.bot.search.minimax") as mock_minimax,
    ):
        move = get_smart_bot_move(board, Color.WHITE, SearchSettings(), random.Random(3))
    mock_minimax.assert_not_called()
    assert move in board.allowed_moves(Color.WHITE)
