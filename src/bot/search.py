"""
Bot move selection: minimax with alpha-beta pruning, extended with a capture-only quiescence search.

Time management
----
The search polls the clock when entering every minimax / quiescence call and at every root move.
Once the budget is spent, each level returns its static evaluation, so the call always comes back
(overshooting by at most the cost of a single node). The effective depth is therefore not guaranteed.

The start time lives in a SearchContext passed down the recursion (no module level state),
so several searches can run side by side.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Optional

from src.bot.evaluate import WIN_SCORE, evaluate_board
from src.checkers.board import Board
from src.checkers.moves import Move
from src.core.config import SETTINGS, SearchSettings
from src.core.shared_types import Color

logger = logging.getLogger(__name__)

INFINITY = 1_000_000


@dataclass
class SearchContext:
    """State of one search: the clock and some counters for logging."""

    timeout_ms: int
    max_q_depth: int
    start_time: float = field(default_factory=time.monotonic)
    node_count: int = 0

    def timed_out(self) -> bool:
        return (time.monotonic() - self.start_time) * 1000 > self.timeout_ms


def order_moves(moves: list[Move]) -> list[Move]:
    """Longest capture chains first. Stable, so ties keep their incoming order."""
    return sorted(moves, key=lambda move: len(move.captures), reverse=True)


def side_to_move(maximizing: bool, bot_color: Color) -> Color:
    return bot_color if maximizing else bot_color.opponent


def quiescence(
    board: Board,
    alpha: int,
    beta: int,
    maximizing: bool,
    bot_color: Color,
    q_depth: int,
    context: SearchContext,
) -> int:
    """
    Capture-only extension beyond the nominal depth.

    Captures are mandatory, so a position that looks quiet at the horizon can still hide a forced exchange.
    There is no stand-pat option while a capture is available: the side to move has to take.
    """
    context.node_count += 1
    if context.timed_out():
        return evaluate_board(board, bot_color)

    moves = board.allowed_moves(side_to_move(maximizing, bot_color))
    # mandatory capture: if the first move is a capture, all of them are
    capture_available = bool(moves) and moves[0].is_capture
    if not capture_available or q_depth == 0:
        return evaluate_board(board, bot_color)

    if maximizing:
        max_eval = -INFINITY
        for move in order_moves(moves):
            score = quiescence(
                board.apply_move(move), alpha, beta, False, bot_color, q_depth - 1, context
            )
            max_eval = max(max_eval, score)
            alpha = max(alpha, score)
            if beta <= alpha:
                break
        return max_eval

    min_eval = INFINITY
    for move in order_moves(moves):
        score = quiescence(
            board.apply_move(move), alpha, beta, True, bot_color, q_depth - 1, context
        )
        min_eval = min(min_eval, score)
        beta = min(beta, score)
        if beta <= alpha:
            break
    return min_eval


def minimax(
    board: Board,
    depth: int,
    alpha: int,
    beta: int,
    maximizing: bool,
    bot_color: Color,
    context: SearchContext,
) -> int:
    """
    Minimax with alpha-beta pruning. Hands over to the quiescence search at depth 0.

    A side without legal moves has lost. The remaining depth is folded into that score,
    so a quicker win scores higher (and a quicker loss lower) than a slower one.
    """
    context.node_count += 1
    if context.timed_out():
        return evaluate_board(board, bot_color)

    if depth == 0:
        return quiescence(
            board, alpha, beta, maximizing, bot_color, context.max_q_depth, context
        )

    moves = board.allowed_moves(side_to_move(maximizing, bot_color))
    if not moves:
        # more depth left == reached sooner
        return -(WIN_SCORE + depth) if maximizing else WIN_SCORE + depth

    if maximizing:
        max_eval = -INFINITY
        for move in order_moves(moves):
            score = minimax(
                board.apply_move(move), depth - 1, alpha, beta, False, bot_color, context
            )
            max_eval = max(max_eval, score)
            alpha = max(alpha, score)
            if beta <= alpha:
                break
        return max_eval

    min_eval = INFINITY
    for move in order_moves(moves):
        score = minimax(
            board.apply_move(move), depth - 1, alpha, beta, True, bot_color, context
        )
        min_eval = min(min_eval, score)
        beta = min(beta, score)
        if beta <= alpha:
            break
    return min_eval


def get_smart_bot_move(
    board: Board,
    bot_color: Color,
    settings: Optional[SearchSettings] = None,
    rng: Optional[random.Random] = None,
) -> Optional[Move]:
    """
    Pick a move for the bot
    ----

    * None: the bot has no legal move (the caller decides what that means for the game)
    * a single legal move (typically a forced capture) is played without searching
    * otherwise every root move is searched (opponent to move next), until the time budget runs out.
      Root moves are shuffled before the (stable) capture ordering, so equally good moves are picked at random.
    """
    settings = settings or SETTINGS.search
    rng = rng or random.Random()

    moves = board.allowed_moves(bot_color)
    if not moves:
        return None
    if len(moves) == 1:
        return moves[0]

    rng.shuffle(moves)
    moves = order_moves(moves)

    context = SearchContext(
        timeout_ms=settings.timeout_ms, max_q_depth=settings.max_q_depth
    )
    best_move: Optional[Move] = None
    best_value = -INFINITY
    for move in moves:
        if context.timed_out():
            break

        value = minimax(
            board.apply_move(move),
            settings.max_depth - 1,
            -INFINITY,
            INFINITY,
            False,
            bot_color,
            context,
        )
        if value > best_value:
            best_value = value
            best_move = move

    logger.debug(
        "Bot (%s) searched %d nodes in %.0f ms, best %s (%s)",
        bot_color,
        context.node_count,
        (time.monotonic() - context.start_time) * 1000,
        best_move.to_notation() if best_move else None,
        best_value,
    )
    return best_move or moves[0]
