"""Exceptions raised by board operations.

Each error carries the HTTP-style status code a calling handler should
answer with. Partial failures while resolving a single period are not
exceptions; they become canceled payout records.
"""


class PrizeBoardError(Exception):
    """Base prize board exception."""

    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BoardValidationError(PrizeBoardError):
    """Input rejected before any computation."""

    status_code = 400


class BoardNotFoundError(PrizeBoardError):
    """No board with the requested id."""

    status_code = 404


class NotBoardHostError(PrizeBoardError):
    """Caller is not the host of the board."""

    status_code = 403


class BoardStateError(PrizeBoardError):
    """Board is not in the status the operation requires."""

    status_code = 400


class StatusConflictError(PrizeBoardError):
    """A conditional status transition affected nothing."""

    status_code = 409


class HostFeeLimitError(ValueError):
    """Host fee percentage above the configured cap."""

    pass


class PersistenceError(PrizeBoardError):
    """Writing to the board store failed."""

    status_code = 500


class NotificationError(PrizeBoardError):
    """Sending a notification failed."""

    status_code = 502
