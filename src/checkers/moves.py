"""
Geometry/Base movement and capturing rules

Key idea: Use strategy pattern to define move sets for each piece type (man / king).

The mandatory capture rule (only captures are legal once any piece can capture) is applied by the Board.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from src.checkers.pieces import FORWARD, Piece, PieceType
from src.checkers.square import Position


class Board(Protocol):
    """Just the parts the movement strategies need"""

    def piece(self, square: Position) -> Optional[Piece]: ...
    def is_empty(self, square: Position) -> bool: ...


Vector = tuple[int, int]

DIAGONALS: list[Vector] = [(-1, -1), (-1, 1), (1, -1), (1, 1)]


@dataclass(frozen=True)
class Move:
    """
    A complete move, including every jump of a capture chain.

    * path: all landing squares in order (excluding from_square, including to_square)
    * captures: squares of the captured pieces in the order they were jumped
    * becomes_king: the moving piece is a king at the end of the move
    """

    from_square: Position
    to_square: Position
    captures: tuple[Position, ...] = ()
    path: tuple[Position, ...] = ()
    becomes_king: bool = False

    @property
    def is_capture(self) -> bool:
        return len(self.captures) > 0

    def to_notation(self) -> str:
        """
        Russian notation
        ----
        * "c3-d4": simple move
        * "c3:e5:c7": capture chain, listing every landing square
        """
        if not self.is_capture:
            return f"{self.from_square.to_algebraic()}-{self.to_square.to_algebraic()}"
        squares = [self.from_square, *self.path]
        return ":".join(square.to_algebraic() for square in squares)


# --- SIMPLE (NON-CAPTURING) MOVES ---
def candidate_man_moves(square: Position, board: Board) -> list[Move]:
    """A man steps a single square diagonally forward. Reaching the far row crowns it."""
    piece = board.piece(square)
    assert piece is not None

    moves: list[Move] = []
    dr = FORWARD[piece.color]
    for dc in (-1, 1):
        target = Position(square.row + dr, square.col + dc)
        if not target.is_within_bounds() or not board.is_empty(target):
            continue
        moves.append(
            Move(
                from_square=square,
                to_square=target,
                path=(target,),
                becomes_king=piece.reaches_promotion_row(target.row),
            )
        )
    return moves


def candidate_king_moves(square: Position, board: Board) -> list[Move]:
    """
    Flying king
    ----
    Raycasting along the four diagonals: every empty square until the first occupied one (or the edge).
    """
    moves: list[Move] = []
    for dr, dc in DIAGONALS:
        row, col = square.row, square.col
        while True:
            row += dr
            col += dc
            target = Position(row, col)
            if not target.is_within_bounds() or not board.is_empty(target):
                break
            # already a king, so never "becomes" one
            moves.append(Move(from_square=square, to_square=target, path=(target,)))
    return moves


# -- STRATEGY PATTERN: MOVEMENT RULES ---
CandidateMovesFn = Callable[[Position, Board], list[Move]]
MOVEMENT_RULES: dict[PieceType, CandidateMovesFn] = {
    PieceType.MAN: candidate_man_moves,
    PieceType.KING: candidate_king_moves,
}


# --- CAPTURING RULES ---
@dataclass(frozen=True)
class CaptureChain:
    """
    Partial capture sequence, as far as it has been explored.

    Every extension returns a new chain, so sibling branches of the search never share state.
    NOTE: Captured pieces stay on the board until the move is complete (they are only removed by apply_move).
    """

    origin: Position
    piece: Piece
    captures: tuple[Position, ...] = ()
    path: tuple[Position, ...] = ()

    def extend(self, captured: Position, landing: Position) -> CaptureChain:
        # Russian rules: a man reaching the far row mid-capture continues the same move as a king
        piece = (
            self.piece.crowned()
            if self.piece.reaches_promotion_row(landing.row)
            else self.piece
        )
        return CaptureChain(
            origin=self.origin,
            piece=piece,
            captures=self.captures + (captured,),
            path=self.path + (landing,),
        )

    def to_move(self) -> Move:
        return Move(
            from_square=self.origin,
            to_square=self.path[-1],
            captures=self.captures,
            path=self.path,
            becomes_king=self.piece.is_king,
        )

    def can_capture(self, square: Position, board: Board) -> bool:
        """Opponent piece that was not jumped earlier in this chain"""
        target = board.piece(square)
        return (
            target is not None
            and target.color != self.piece.color
            and square not in self.captures
        )

    def can_land(self, square: Position, board: Board) -> bool:
        """The square the chain started from has been vacated by the moving piece."""
        return board.is_empty(square) or square == self.origin


# (captured square, landing square)
CaptureStep = tuple[Position, Position]


def man_capture_steps(
    square: Position, chain: CaptureChain, board: Board
) -> list[CaptureStep]:
    """Men capture in all four directions (also backwards) by jumping an adjacent piece."""
    steps: list[CaptureStep] = []
    for dr, dc in DIAGONALS:
        jumped = Position(square.row + dr, square.col + dc)
        landing = Position(square.row + 2 * dr, square.col + 2 * dc)
        if not landing.is_within_bounds():
            continue
        if chain.can_capture(jumped, board) and chain.can_land(landing, board):
            steps.append((jumped, landing))
    return steps


def king_capture_steps(
    square: Position, chain: CaptureChain, board: Board
) -> list[CaptureStep]:
    """
    Flying king capture
    ----
    Scan along the diagonal. The first piece found must be capturable, otherwise the direction is blocked.
    Every open square behind it is a possible landing square (each one a separate branch).
    """
    steps: list[CaptureStep] = []
    for dr, dc in DIAGONALS:
        row, col = square.row + dr, square.col + dc
        while Position(row, col).is_within_bounds():
            candidate = Position(row, col)
            if board.piece(candidate) is None:
                row += dr
                col += dc
                continue

            if chain.can_capture(candidate, board):
                landing = Position(row + dr, col + dc)
                while landing.is_within_bounds() and chain.can_land(landing, board):
                    steps.append((candidate, landing))
                    landing = Position(landing.row + dr, landing.col + dc)
            # cannot jump two pieces in a row, nor your own piece
            break
    return steps


# --- STRATEGY PATTERN: CAPTURING RULES ---
CaptureStepsFn = Callable[[Position, CaptureChain, Board], list[CaptureStep]]
CAPTURE_RULES: dict[PieceType, CaptureStepsFn] = {
    PieceType.MAN: man_capture_steps,
    PieceType.KING: king_capture_steps,
}


def capture_chains(square: Position, chain: CaptureChain, board: Board) -> list[Move]:
    """
    Recursive search for complete capture sequences
    ----

    1. find every single capture available from the current square (rule depends on the piece, which may have been crowned mid-chain)
    2. continue from each landing square
    3. a chain only ends (and becomes a Move) when no further capture is possible: you cannot stop halfway.
    """
    moves: list[Move] = []
    capture_steps = CAPTURE_RULES[chain.piece.type]
    for captured, landing in capture_steps(square, chain, board):
        extended = chain.extend(captured, landing)
        continuations = capture_chains(landing, extended, board)
        if continuations:
            moves.extend(continuations)
        else:
            moves.append(extended.to_move())
    return moves


def candidate_captures(square: Position, board: Board) -> list[Move]:
    """All complete capture chains of the piece standing on the given square."""
    piece = board.piece(square)
    assert piece is not None
    return capture_chains(square, CaptureChain(origin=square, piece=piece), board)
