"""
Custom exceptions, shared by all layers.

Everything raised on purpose derives from GameError, so the API layer can catch one type.
"""


class GameError(Exception):
    """Top-level exception for anything that goes wrong while handling a game."""


# --- REQUESTS ---
class InvalidRequestError(GameError):
    """Request data could not be interpreted (raised from pydantic validators)."""


# --- STORED STATE ---
class MalformedStateError(GameError):
    """A stored board / game record could not be decoded. Caller should fall back to a loading state."""


# --- PERSISTENCE ---
class RepositoryError(GameError):
    """Problem talking to the store."""


class GameNotFoundError(RepositoryError):
    """No record exists for the given game ID."""


class TransactionAbortedError(RepositoryError):
    """The store kept losing the race for a record and gave up re-running the transaction."""


# --- GAME RULES / PROTOCOL ---
class GameStateError(GameError):
    """The requested action is not possible in the current state of the game."""


class GameFullError(GameStateError):
    """Both seats are already taken by other players."""


class VersionConflictError(GameStateError):
    """The game changed since the caller last saw it. Reload and retry."""


class NotYourTurnError(GameStateError):
    """Player attempted to move out of turn."""


class IllegalMoveError(GameStateError):
    """The move is not in the set of legal moves."""
