"""
Orchestration of communication from API router to business logic and persistence layers (and the reverse direction).

Every state change follows the same recipe: inside a store transaction, rebuild a Game from the freshly read record,
apply one transition, write it back. Nothing is written when a transition raises.
The store re-runs the recipe when a concurrent writer beat us to the record. A stale `expected_version`
from the caller is NOT retried here: that surfaces as VersionConflictError, and the caller reloads.
"""

import logging
import random
from datetime import timedelta
from typing import Callable, Optional
from uuid import UUID

from src.api.models import (
    BotTurnRequest,
    CreateGameRequest,
    DeclareOutcomeRequest,
    GameResponse,
    GetGameRequest,
    JoinGameRequest,
    LegalMovesRequest,
    LegalMovesResponse,
    MoveRequest,
    MoveSchema,
    RematchRequest,
    RematchResponse,
    ResignRequest,
    ResolveTakebackRequest,
    TakebackRequest,
)
from src.bot.search import get_smart_bot_move
from src.checkers.board import Board
from src.checkers.game import Game
from src.checkers.moves import Move
from src.checkers.square import Position
from src.core.config import SETTINGS, Settings
from src.core.exceptions import (
    GameNotFoundError,
    GameStateError,
    NotYourTurnError,
    VersionConflictError,
)
from src.core.models import GameModel
from src.core.shared_types import Color, Status
from src.db.repository import GameRepository, GameTransaction, Unsubscribe

logger = logging.getLogger(__name__)


class CheckersService:
    """Orchestration of layers for a checkers game."""

    def __init__(
        self,
        repository: GameRepository,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.repo = repository
        self.settings = settings or SETTINGS
        self.rng = rng or random.Random()

    @property
    def _ttl(self) -> timedelta:
        return timedelta(hours=self.settings.store.game_ttl_hours)

    # -- API routes logic ---
    def create_new_game(self, request: CreateGameRequest) -> GameResponse:
        """First player requested to create a new game."""

        # A random color is resolved once, here. The flag is only stored for display.
        is_random_color = request.color is None
        color = request.color or self.rng.choice(list(Color))
        board = (
            Board.from_rows(request.initial_board)
            if request.initial_board is not None
            else None
        )
        new_game = Game.new_game(
            player=request.player_id,
            color=color,
            is_random_color=is_random_color,
            board=board,
            ttl=self._ttl,
        )

        stored_game, game_id = self.repo.create_game(new_game.to_model())
        logger.info("Game %s created by %s playing %s", game_id, request.player_id, color)
        return self._create_game_response(game_id, stored_game)

    def join_game(self, request: JoinGameRequest) -> GameResponse:
        """
        Second player requested to join a game.
        Joining a game you already play in changes nothing. Of two players racing for the last seat, one gets GameFullError.
        """

        def join(transaction: GameTransaction) -> GameModel:
            game = Game.from_model(transaction.game)
            if not game.register_player(request.player_id):
                return transaction.game
            return transaction.update(game.to_model())

        joined = self.repo.run_transaction(request.game_id, join)
        logger.info("Player %s joined game %s", request.player_id, request.game_id)
        return self._create_game_response(request.game_id, joined)

    def get_game_state(self, request: GetGameRequest) -> GameResponse:
        """Retrieve current game state."""
        game_model = self._fetch_game(request.game_id)
        return self._create_game_response(request.game_id, game_model)

    def legal_moves(self, request: LegalMovesRequest) -> LegalMovesResponse:
        """retrieve set of legal moves."""
        game = Game.from_model(self._fetch_game(request.game_id))
        legal_moves = game.legal_moves(request.player_id)
        return LegalMovesResponse(
            game_id=request.game_id,
            player_id=request.player_id,
            color=game.turn,
            legal_moves=[MoveSchema.from_move(move) for move in legal_moves],
            max_captures=max((len(move.captures) for move in legal_moves), default=0),
        )

    def make_move(self, request: MoveRequest) -> GameResponse:
        """
        Make a move attempt.
        ----

        Client side of the protocol: compute the move and its consequences on the version the player saw,
        then commit it (which checks that version is still the current one).
        """
        stored_model = self._fetch_game(request.game_id)
        if stored_model.version != request.expected_version:
            raise VersionConflictError(
                f"Game {request.game_id} changed (version {stored_model.version}, move based on {request.expected_version}). Reload and retry."
            )

        game = Game.from_model(stored_model)
        path = (
            tuple(Position.from_algebraic(square) for square in request.path)
            if request.path is not None
            else None
        )
        move = game.find_move(
            request.player_id,
            Position.from_algebraic(request.from_square),
            Position.from_algebraic(request.to_square),
            path,
        )
        outcome = game.outcome_after(move)

        committed = self.commit_move(
            request.game_id,
            request.expected_version,
            move,
            outcome.next_turn,
            outcome.status,
            outcome.winner,
        )
        return self._create_game_response(request.game_id, committed)

    def commit_move(
        self,
        game_id: UUID,
        expected_version: int,
        move: Move,
        next_turn: Color,
        status: Status,
        winner: Optional[Color],
    ) -> GameModel:
        """
        Commit a move, computed by the caller on the version `expected_version`.

        The half move clock (and with it the draw by move count) is recomputed from the fresh record,
        never taken from the caller.
        """

        def commit(transaction: GameTransaction) -> GameModel:
            current = transaction.game
            if current.version != expected_version:
                logger.warning(
                    "Rejected move %s on game %s: version %d, expected %d",
                    move.to_notation(),
                    game_id,
                    current.version,
                    expected_version,
                )
                raise VersionConflictError(
                    f"Game {game_id} changed (version {current.version}, move based on {expected_version}). Reload and retry."
                )

            game = Game.from_model(current)
            game.commit_move(
                move,
                next_turn,
                status,
                winner,
                self.settings.rules.draw_half_move_limit,
                ttl=self._ttl,
            )
            return transaction.update(game.to_model())

        committed = self.repo.run_transaction(game_id, commit)
        logger.info(
            "Game %s: %s committed (version %d, status %s)",
            game_id,
            move.to_notation(),
            committed.version,
            committed.status,
        )
        return committed

    def request_takeback(self, request: TakebackRequest) -> GameResponse:
        """Propose to undo the last move. Doesn't need to be your turn."""

        def propose(transaction: GameTransaction) -> GameModel:
            game = Game.from_model(transaction.game)
            game.request_takeback(request.player_id)
            return transaction.update(game.to_model())

        updated = self.repo.run_transaction(request.game_id, propose)
        logger.info("Takeback requested by %s in game %s", request.player_id, request.game_id)
        return self._create_game_response(request.game_id, updated)

    def resolve_takeback(self, request: ResolveTakebackRequest) -> GameResponse:
        """
        Accept or reject the pending takeback.

        The version is bumped even for a rejection, so every client sees the request disappear.
        If the request is gone already (someone else answered first), this is a no-op.
        """

        def resolve(transaction: GameTransaction) -> GameModel:
            game = Game.from_model(transaction.game)
            if not game.resolve_takeback(request.accepted):
                return transaction.game
            return transaction.update(game.to_model())

        updated = self.repo.run_transaction(request.game_id, resolve)
        return self._create_game_response(request.game_id, updated)

    def resign(self, request: ResignRequest) -> GameResponse:
        """Resigning player loses. Ignored for anyone not seated in the game."""

        def resign(transaction: GameTransaction) -> GameModel:
            game = Game.from_model(transaction.game)
            if not game.resign(request.player_id):
                return transaction.game
            return transaction.update(game.to_model())

        updated = self.repo.run_transaction(request.game_id, resign)
        return self._create_game_response(request.game_id, updated)

    def declare_outcome(self, request: DeclareOutcomeRequest) -> GameResponse:
        """A client without legal moves on its turn reports its own loss."""
        updated = self._declare_outcome(
            request.game_id, request.expected_version, request.winner
        )
        return self._create_game_response(request.game_id, updated)

    def propose_rematch(self, request: RematchRequest) -> RematchResponse:
        """
        Propose a rematch of a finished game
        ----

        * the opponent proposed first? --> you get their new game (both clients end up in the same rematch)
        * otherwise a new game is created with colors swapped, and linked to the old game in the same transaction
        """

        def rematch(transaction: GameTransaction) -> UUID:
            if transaction.game.rematch_id is not None:
                return transaction.game.rematch_id

            old_game = Game.from_model(transaction.game)
            if old_game.status not in (Status.FINISHED, Status.DRAW):
                raise GameStateError(
                    f"Cannot propose a rematch. Game is not over yet. status: {old_game.status}"
                )
            if old_game.player_color(request.player_id) != request.old_color:
                raise GameStateError(
                    f"{request.player_id!r} did not play {request.old_color} in this game."
                )

            new_game = Game.new_game(
                player=request.player_id,
                color=request.old_color.opponent,
                is_random_color=request.is_random,
                ttl=self._ttl,
            )
            new_game_id = transaction.create(new_game.to_model())
            old_game.rematch_id = new_game_id
            transaction.update(old_game.to_model())
            return new_game_id

        new_game_id = self.repo.run_transaction(request.game_id, rematch)
        logger.info("Game %s rematch: %s", request.game_id, new_game_id)
        return RematchResponse(old_game_id=request.game_id, game_id=new_game_id)

    def play_bot_turn(self, request: BotTurnRequest) -> GameResponse:
        """
        Let the bot play the seat of the configured bot player.
        Without a legal move, the bot reports its own loss.
        """
        stored_model = self._fetch_game(request.game_id)
        game = Game.from_model(stored_model)
        bot_color = game.player_color(self.settings.bot_player_id)
        if bot_color is None:
            raise GameStateError(f"No bot seated in game {request.game_id}.")
        if game.status != Status.ACTIVE or game.turn != bot_color:
            raise NotYourTurnError(f"Not the bot's turn in game {request.game_id}.")

        move = get_smart_bot_move(game.board, bot_color, self.settings.search, self.rng)
        if move is None:
            updated = self._declare_outcome(
                request.game_id, stored_model.version, bot_color.opponent
            )
            return self._create_game_response(request.game_id, updated)

        outcome = game.outcome_after(move)
        committed = self.commit_move(
            request.game_id,
            stored_model.version,
            move,
            outcome.next_turn,
            outcome.status,
            outcome.winner,
        )
        return self._create_game_response(request.game_id, committed)

    def subscribe(
        self, game_id: UUID, callback: Callable[[GameResponse], None]
    ) -> Unsubscribe:
        """Get called with the current state and every committed change. Call the returned function to stop."""
        return self.repo.subscribe(
            game_id,
            lambda model: callback(self._create_game_response(game_id, model)),
        )

    # -- Internal helpers --
    def _declare_outcome(
        self, game_id: UUID, expected_version: int, winner: Color
    ) -> GameModel:
        def declare(transaction: GameTransaction) -> GameModel:
            current = transaction.game
            if current.version != expected_version:
                raise VersionConflictError(
                    f"Game {game_id} changed (version {current.version}, outcome based on {expected_version}). Reload and retry."
                )
            game = Game.from_model(current)
            game.declare_outcome(winner)
            return transaction.update(game.to_model())

        updated = self.repo.run_transaction(game_id, declare)
        logger.info("Game %s: %s declared winner", game_id, winner)
        return updated

    def _create_game_response(self, game_id: UUID, model: GameModel) -> GameResponse:
        """Convert info in GameModel to a GameResponse (for game with given ID.)"""
        return GameResponse(
            game_id=game_id,
            board=Board.from_json(model.board).to_rows(),
            turn=Color(model.turn),
            players=model.players,
            status=Status(model.status),
            winner=Color(model.winner) if model.winner else None,
            version=model.version,
            half_move_clock=model.half_move_clock,
            is_random_color=model.is_random_color,
            last_move=model.last_move,
            takeback_request=model.takeback_request,
            can_take_back=model.previous_state is not None,
            rematch_id=model.rematch_id,
        )

    def _fetch_game(self, game_id: UUID) -> GameModel:
        """Attempt to find the game in the repository and raise error if it fails."""
        game_model = self.repo.get_game(game_id)
        if game_model is None:
            raise GameNotFoundError(f"Game with {game_id=} not found.")
        return game_model
