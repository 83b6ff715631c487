"""
The Game class will be the entrypoint into the domain layer for the service layer.
It is responsible for orchestrating all the business logic required to play a turn of checkers -->
passes this information to the service layer, which can then pass it onwards to the API layer.

The Game itself knows nothing about concurrency: the service builds one from a freshly read record inside a store
transaction, applies a single transition, and writes the result back.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Self
from uuid import UUID

from src.checkers.board import Board
from src.checkers.moves import Move
from src.checkers.square import Position
from src.core.exceptions import (
    GameFullError,
    GameStateError,
    IllegalMoveError,
    MalformedStateError,
    NotYourTurnError,
)
from src.core.models import GameModel
from src.core.shared_types import Color, Status

DEFAULT_TTL = timedelta(hours=24)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


@dataclass(frozen=True)
class LastMove:
    """Only used for display / animation on the clients. The rules never look at it."""

    from_square: Position
    to_square: Position
    path: tuple[Position, ...]
    ts: int

    @classmethod
    def from_move(cls, move: Move, now: datetime) -> Self:
        return cls(move.from_square, move.to_square, move.path, to_timestamp_ms(now))

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_square.to_dict(),
            "to": self.to_square.to_dict(),
            "path": [square.to_dict() for square in self.path],
            "ts": self.ts,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            from_square=Position.from_dict(data["from"]),
            to_square=Position.from_dict(data["to"]),
            path=tuple(Position.from_dict(sq) for sq in data.get("path") or []),
            ts=int(data["ts"]),
        )


@dataclass(frozen=True)
class PreviousState:
    """Snapshot of the game right before the last committed move (one level of undo)."""

    board: Board
    turn: Color
    half_move_clock: int
    last_move: Optional[LastMove]

    def to_dict(self) -> dict[str, Any]:
        return {
            "board": self.board.to_json(),
            "turn": self.turn.value,
            "halfMoveClock": self.half_move_clock,
            "lastMove": self.last_move.to_dict() if self.last_move else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        last_move = data.get("lastMove")
        return cls(
            board=Board.from_json(data["board"]),
            turn=Color(data["turn"]),
            half_move_clock=int(data["halfMoveClock"]),
            last_move=LastMove.from_dict(last_move) if last_move else None,
        )


@dataclass(frozen=True)
class TakebackRequest:
    requester_id: str
    created_at: int

    def to_dict(self) -> dict[str, Any]:
        return {"requesterId": self.requester_id, "createdAt": self.created_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(str(data["requesterId"]), int(data["createdAt"]))


@dataclass(frozen=True)
class MoveOutcome:
    """What a move does to the game, computed by the moving client before it commits."""

    next_turn: Color
    status: Status
    winner: Optional[Color]


@dataclass
class Game:
    # --- DOMAIN LAYER API CALLED BY SERVICE---

    board: Board
    turn: Color
    players: dict[Color, str]
    status: Status
    version: int
    half_move_clock: int
    created_at: datetime
    expire_at: datetime
    winner: Optional[Color] = None
    is_random_color: bool = False
    last_move: Optional[LastMove] = None
    previous_state: Optional[PreviousState] = None
    takeback_request: Optional[TakebackRequest] = None
    rematch_id: Optional[UUID] = None

    @classmethod
    def from_model(cls, model: GameModel) -> Self:
        """Define how to construct a Game from the information the Service layer actually has"""

        # Validation
        if model.status not in Status.__members__:
            raise MalformedStateError(
                f"Invalid status code: {model.status!r}. \nPick one from {','.join(Status)}"
            )
        try:
            turn = Color(model.turn)
            winner = Color(model.winner) if model.winner else None
            players = {
                color: model.players[color.value.lower()]
                for color in Color
                if model.players.get(color.value.lower())
            }
            last_move = (
                LastMove.from_dict(model.last_move) if model.last_move else None
            )
            previous_state = (
                PreviousState.from_dict(model.previous_state)
                if model.previous_state
                else None
            )
            takeback_request = (
                TakebackRequest.from_dict(model.takeback_request)
                if model.takeback_request
                else None
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedStateError(f"Cannot interpret stored game: {e}") from e

        return cls(
            board=Board.from_json(model.board),
            turn=turn,
            players=players,
            status=Status(model.status),
            version=model.version,
            half_move_clock=model.half_move_clock,
            created_at=model.created_at,
            expire_at=model.expire_at,
            winner=winner,
            is_random_color=model.is_random_color,
            last_move=last_move,
            previous_state=previous_state,
            takeback_request=takeback_request,
            rematch_id=model.rematch_id,
        )

    def to_model(self) -> GameModel:
        """Encode back into a format the Service layer uses"""

        return GameModel(
            board=self.board.to_json(),
            turn=self.turn.value,
            players={
                color.value.lower(): self.players.get(color) for color in Color
            },
            status=self.status.value,
            version=self.version,
            half_move_clock=self.half_move_clock,
            created_at=self.created_at,
            expire_at=self.expire_at,
            winner=self.winner.value if self.winner else None,
            is_random_color=self.is_random_color,
            last_move=self.last_move.to_dict() if self.last_move else None,
            previous_state=(
                self.previous_state.to_dict() if self.previous_state else None
            ),
            takeback_request=(
                self.takeback_request.to_dict() if self.takeback_request else None
            ),
            rematch_id=self.rematch_id,
        )

    @classmethod
    def new_game(
        cls,
        player: str,
        color: Color,
        is_random_color: bool = False,
        board: Optional[Board] = None,
        now: Optional[datetime] = None,
        ttl: timedelta = DEFAULT_TTL,
    ) -> Self:
        """
        To start a new game with the player using the pieces with the indicated color.

        NOTE: a random color must already be resolved by the caller. `is_random_color` is only kept for display.
        """
        created_at = now or utc_now()
        return cls(
            board=board or Board.initial(),
            turn=Color.WHITE,
            players={color: player},
            status=Status.WAITING,
            version=0,
            half_move_clock=0,
            created_at=created_at,
            expire_at=created_at + ttl,
            is_random_color=is_random_color,
        )

    def player_color(self, player: str) -> Optional[Color]:
        return next(
            (color for color, name in self.players.items() if name == player), None
        )

    def register_player(self, player: str) -> bool:
        """
        Registering the 2nd player to an open game.
        Returns False when the player already has a seat (rejoining is fine).
        """
        if self.player_color(player) is not None:
            return False

        open_seats = [color for color in Color if color not in self.players]
        if not open_seats:
            raise GameFullError("Cannot join this game. Both seats are taken.")

        self.players[open_seats[0]] = player
        self._change_status(Status.ACTIVE)
        return True

    def legal_moves(self, player: str) -> list[Move]:
        """
        Service will request the set of legal moves.
        ----
        1. Check the game is being played and if it is your turn
        2. Yes? Generate legal moves.
        """
        self._assert_active()
        self._assert_your_turn(player)
        return self.board.allowed_moves(self.turn)

    def find_move(
        self,
        player: str,
        from_square: Position,
        to_square: Position,
        path: Optional[tuple[Position, ...]] = None,
    ) -> Move:
        """
        Pick the legal move the player means.

        A capture chain can be ambiguous by its end points alone (the same squares reached along different routes).
        Then the path decides, or the first matching chain is taken.
        """
        candidates = [
            move
            for move in self.legal_moves(player)
            if move.from_square == from_square and move.to_square == to_square
        ]
        if path is not None:
            candidates = [move for move in candidates if move.path == path]
        if not candidates:
            raise IllegalMoveError(
                f"Move not allowed: {from_square.to_algebraic()} -> {to_square.to_algebraic()}"
            )
        return candidates[0]

    def outcome_after(self, move: Move) -> MoveOutcome:
        """
        Precompute the effect of a move on the status of the game
        ----
        * opponent has no legal reply --> you win
        * exactly one king per side and nothing else left --> draw
        """
        next_board = self.board.apply_move(move)
        next_turn = self.turn.opponent
        if not next_board.allowed_moves(next_turn):
            return MoveOutcome(next_turn, Status.FINISHED, self.turn)
        if _is_lone_kings(next_board):
            return MoveOutcome(next_turn, Status.DRAW, None)
        return MoveOutcome(next_turn, Status.ACTIVE, None)

    def commit_move(
        self,
        move: Move,
        next_turn: Color,
        status: Status,
        winner: Optional[Color],
        draw_half_move_limit: int,
        now: Optional[datetime] = None,
        ttl: timedelta = DEFAULT_TTL,
    ) -> None:
        """
        Apply a move (and its precomputed outcome) to this (freshly loaded) game
        ----

        1. re-validate the move against this state
        2. half move clock from THIS state (the caller's copy may be stale), draw once it hits the limit
        3. snapshot the state before the move (for a takeback)
        4. update board, turn, last move, status
        5. a pending takeback request is void after a new move
        """
        self._assert_active()
        moving_piece = self.board.piece(move.from_square)
        if moving_piece is None or moving_piece.color != self.turn:
            raise IllegalMoveError(
                f"No {self.turn.value} piece on {move.from_square.to_algebraic()}."
            )
        if move not in self.board.allowed_moves(self.turn):
            raise IllegalMoveError(f"Move not allowed: {move.to_notation()}")

        if move.is_capture or not moving_piece.is_king:
            half_move_clock = 0
        else:
            half_move_clock = self.half_move_clock + 1

        if status == Status.ACTIVE and half_move_clock >= draw_half_move_limit:
            status, winner = Status.DRAW, None

        now = now or utc_now()
        self.previous_state = PreviousState(
            board=self.board,
            turn=self.turn,
            half_move_clock=self.half_move_clock,
            last_move=self.last_move,
        )
        self.board = self.board.apply_move(move)
        self.turn = next_turn
        self.last_move = LastMove.from_move(move, now)
        self.half_move_clock = half_move_clock
        self._change_status(status)
        self.winner = winner
        self.takeback_request = None
        # keep active games alive
        self.expire_at = now + ttl

    def request_takeback(self, player: str, now: Optional[datetime] = None) -> None:
        """Either player may ask, whoever's turn it is. Only a proposal: nothing about the position changes."""
        self._assert_active()
        if self.player_color(player) is None:
            raise GameStateError(f"{player!r} is not playing in this game.")
        self.takeback_request = TakebackRequest(player, to_timestamp_ms(now or utc_now()))

    def resolve_takeback(self, accepted: bool) -> bool:
        """
        Answer to a takeback request. Returns False when there was nothing to resolve.

        Accepting restores the snapshot taken before the last move. Only one level of undo exists:
        the snapshot is consumed, so a second takeback has nothing to restore.
        """
        if self.takeback_request is None:
            return False

        self.takeback_request = None
        if accepted and self.previous_state is not None and self.status == Status.ACTIVE:
            snapshot = self.previous_state
            self.board = snapshot.board
            self.turn = snapshot.turn
            self.half_move_clock = snapshot.half_move_clock
            self.last_move = snapshot.last_move
            self.previous_state = None
        return True

    def resign(self, player: str) -> bool:
        """
        A seated player can give up while waiting for an opponent or during play.
        Returns False (and changes nothing) for anyone not seated, or once the game is over.
        """
        player_color = self.player_color(player)
        if player_color is None or self.status not in (Status.WAITING, Status.ACTIVE):
            return False
        self._change_status(Status.FINISHED)
        self.winner = player_color.opponent
        return True

    def declare_outcome(self, winner: Color) -> None:
        """A client found it has no legal move on its turn and reports its own loss."""
        self._assert_active()
        if winner != self.turn.opponent:
            raise GameStateError(
                f"Only the side to move can lose by being stuck. {self.turn.value} is to move, {winner.value} cannot be declared winner."
            )
        if self.board.allowed_moves(self.turn):
            raise GameStateError(f"{self.turn.value} still has legal moves.")
        self._change_status(Status.FINISHED)
        self.winner = winner

    # -- PRIVATE HELPERS ---
    def _assert_active(self) -> None:
        if self.status != Status.ACTIVE:
            raise GameStateError(f"Game is not being played. status: {self.status}")

    def _assert_your_turn(self, player: str) -> None:
        """You must wait for your turn before calculating legal moves / making a move."""
        player_to_move = self.players.get(self.turn)
        if player != player_to_move:
            raise NotYourTurnError(
                f"It is not your turn. Waiting for player {player_to_move} to make a move first."
            )

    def _change_status(self, new_status: Status) -> None:
        self.status = new_status


def _is_lone_kings(board: Board) -> bool:
    """Both sides are down to a single king"""
    return all(material == (0, 1) for material in board.count_material().values())
