"""Domain errors raised by the board engine, vote ledger and turn services.

Routers translate these into HTTP responses; services never catch their own
domain errors except to roll back the current transaction and re-raise.
"""


class VoteBoardError(Exception):
    """Base class for every error raised by the game core."""


class InvalidMoveError(VoteBoardError, ValueError):
    """A disc cannot be placed at the requested position."""


class InvalidStateError(VoteBoardError, ValueError):
    """The target object is not in a state that allows the operation."""


class ConflictError(InvalidStateError):
    """The write would duplicate an existing record."""


class NotFoundError(VoteBoardError, LookupError):
    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class TransientPersistenceError(VoteBoardError):
    """A guarded multi-row write lost a race; the caller may retry."""


class InvalidCursorError(VoteBoardError, ValueError):
    """A pagination cursor could not be decoded."""
