"""Implementation of (Game)Repository using SQLAlchemy"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from src.core.config import SETTINGS
from src.core.exceptions import GameNotFoundError, TransactionAbortedError
from src.core.models import GameModel
from src.db.notifications import ChangeFeed
from src.db.repository import GameCallback, GameTransaction, Unsubscribe
from src.db.schema import DBGame

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SQLGameTransaction:
    """One attempt of a read-modify-write. Writes are flushed when the repository commits."""

    def __init__(self, db: Session, game_db: DBGame, game: GameModel) -> None:
        self.db = db
        self._game_db = game_db
        self._game = game
        self.written: list[UUID] = []

    @property
    def game(self) -> GameModel:
        return self._game

    def update(self, game: GameModel) -> GameModel:
        _copy_to_db(game, self._game_db)
        self._game_db.version = self._game.version + 1
        self.written.append(self._game_db.id)
        return replace(game, version=self._game.version + 1)

    def create(self, game: GameModel) -> UUID:
        new_id = uuid4()
        self.db.add(_new_db_game(new_id, game))
        self.written.append(new_id)
        return new_id


class SQLGameRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(
        self,
        db_session: Session,
        feed: Optional[ChangeFeed] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        self.db = db_session
        self.feed = feed or ChangeFeed()
        self.max_attempts = max_attempts or SETTINGS.store.transaction_attempts

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        game_db = self._fetch_game(game_id)
        if game_db:
            return self._to_model(game_db)
        return None

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        """Store new game and return the stored data + newly created game ID."""

        new_id = uuid4()
        game_db = _new_db_game(new_id, game)
        self.db.add(game_db)
        self.db.commit()
        self.db.refresh(game_db)
        return self._to_model(game_db), new_id

    def run_transaction(
        self, game_id: UUID, transaction_fn: Callable[[GameTransaction], T]
    ) -> T:
        """
        Read-modify-write of a single record
        ----

        1. read the current record
        2. let transaction_fn decide what to write (it may also raise: then nothing is written)
        3. commit. The UPDATE only matches if the version is still the one read in step 1.
        4. lost the race? roll back and start over from a fresh read.
        """
        for attempt in range(1, self.max_attempts + 1):
            game_db = self._fetch_game(game_id)
            if game_db is None:
                self.db.rollback()
                raise GameNotFoundError(f"Game with {game_id=} not found.")

            transaction = SQLGameTransaction(self.db, game_db, self._to_model(game_db))
            try:
                result = transaction_fn(transaction)
                self.db.commit()
            except StaleDataError:
                self.db.rollback()
                logger.info(
                    "Concurrent write on game %s, re-running transaction (attempt %d/%d)",
                    game_id,
                    attempt,
                    self.max_attempts,
                )
                continue
            except Exception:
                self.db.rollback()
                raise

            self._notify(transaction.written)
            return result

        raise TransactionAbortedError(
            f"Gave up on game {game_id} after {self.max_attempts} conflicting attempts."
        )

    def subscribe(self, game_id: UUID, callback: GameCallback) -> Unsubscribe:
        """Deliver the current record right away, then every committed version."""
        unsubscribe = self.feed.subscribe(game_id, callback)
        current = self.get_game(game_id)
        if current is not None:
            callback(current)
        return unsubscribe

    def _notify(self, game_ids: list[UUID]) -> None:
        for game_id in dict.fromkeys(game_ids):
            game = self.get_game(game_id)
            if game is not None:
                self.feed.publish(game_id, game)

    def _fetch_game(self, game_id: UUID) -> DBGame | None:
        # populate_existing: never trust a copy cached in this session, always the row as stored now
        query = (
            select(DBGame)
            .where(DBGame.id == game_id)
            .execution_options(populate_existing=True)
        )
        return self.db.scalar(query)

    def _to_model(self, game_db: DBGame) -> GameModel:
        """Convert SQLAlchemy model to data transfer model."""
        return GameModel(
            board=game_db.board,
            turn=game_db.turn,
            players=dict(game_db.players),
            status=game_db.status,
            version=game_db.version,
            half_move_clock=game_db.half_move_clock,
            created_at=_as_utc(game_db.created_at),
            expire_at=_as_utc(game_db.expire_at),
            winner=game_db.winner,
            is_random_color=game_db.is_random_color,
            last_move=game_db.last_move,
            previous_state=game_db.previous_state,
            takeback_request=game_db.takeback_request,
            rematch_id=game_db.rematch_id,
        )


def _new_db_game(game_id: UUID, game: GameModel) -> DBGame:
    game_db = DBGame(id=game_id, version=game.version)
    _copy_to_db(game, game_db)
    return game_db


def _copy_to_db(game: GameModel, game_db: DBGame) -> None:
    """Everything except the ID and the version (those are owned by the repository)."""
    game_db.board = game.board
    game_db.turn = game.turn
    game_db.players = dict(game.players)
    game_db.status = game.status
    game_db.winner = game.winner
    game_db.half_move_clock = game.half_move_clock
    game_db.is_random_color = game.is_random_color
    game_db.last_move = game.last_move
    game_db.previous_state = game.previous_state
    game_db.takeback_request = game.takeback_request
    game_db.rematch_id = game.rematch_id
    game_db.created_at = game.created_at
    game_db.expire_at = game.expire_at


def _as_utc(moment: datetime) -> datetime:
    """SQLite hands back naive datetimes (stored as UTC)."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
