"""
Protocol repository: the store the game state protocol relies on.

What the protocol needs from the store
----
* get / create a game record
* transactional read-modify-write on a single record, first committer wins.
  When another writer got there first, the store re-runs the transaction function on a fresh read
  (the function must therefore only act through the transaction it is handed).
* every committed update increments the record's version
* change notifications per record
"""

from typing import Callable, Protocol, TypeVar
from uuid import UUID

from src.core.models import GameModel

T = TypeVar("T")
GameCallback = Callable[[GameModel], None]
Unsubscribe = Callable[[], None]


class GameTransaction(Protocol):
    """Handle passed to the transaction function."""

    @property
    def game(self) -> GameModel:
        """The record, as read at the start of this attempt."""
        ...

    def update(self, game: GameModel) -> GameModel:
        """Overwrite the record on commit. The version is set to the version read + 1 (returned: the record as it will be stored)."""
        ...

    def create(self, game: GameModel) -> UUID:
        """Store a new record as part of the same transaction. Returns its ID."""
        ...


class GameRepository(Protocol):
    """Persistence layer orchestration"""

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        ...

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        """Store new game and return the stored data + newly created game ID."""
        ...

    def run_transaction(
        self, game_id: UUID, transaction_fn: Callable[[GameTransaction], T]
    ) -> T:
        """Run read-modify-write on one record atomically. Raises GameNotFoundError for unknown IDs."""
        ...

    def subscribe(self, game_id: UUID, callback: GameCallback) -> Unsubscribe:
        """Call back with the current record and with every committed version after it."""
        ...
