"""Change notifications: who wants to hear about which game."""

import logging
from collections import defaultdict
from uuid import UUID

from src.core.models import GameModel
from src.db.repository import GameCallback, Unsubscribe

logger = logging.getLogger(__name__)


class ChangeFeed:
    """
    In-process subscription registry, shared by every repository (session) that writes to the same store.

    Delivery is after commit, in subscription order. Only the latest committed version is guaranteed to arrive.
    """

    def __init__(self) -> None:
        self._subscribers: dict[UUID, list[GameCallback]] = defaultdict(list)

    def subscribe(self, game_id: UUID, callback: GameCallback) -> Unsubscribe:
        self._subscribers[game_id].append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(game_id, [])
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self._subscribers.pop(game_id, None)

        return unsubscribe

    def publish(self, game_id: UUID, game: GameModel) -> None:
        for callback in list(self._subscribers.get(game_id, [])):
            try:
                callback(game)
            except Exception:
                # already committed: keep notifying the other subscribers
                logger.exception("Subscriber of game %s failed", game_id)

    def subscriber_count(self, game_id: UUID) -> int:
        return len(self._subscribers.get(game_id, []))
