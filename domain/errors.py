"""Domain Errors

Every failure of the reservation core is a ``ReservationError`` carrying an
``ErrorKind``. They subclass ``ValueError`` so the API layer can keep catching
``ValueError`` at the boundary and answer with HTTP 400.
"""
from domain.enums import ErrorKind


class ReservationError(ValueError):
    """Base error for the reservation core"""

    kind: ErrorKind = ErrorKind.INVALID_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class InvalidRequestError(ReservationError):
    kind = ErrorKind.INVALID_REQUEST


class NotFoundError(ReservationError):
    kind = ErrorKind.NOT_FOUND


class IneligibleUserError(ReservationError):
    kind = ErrorKind.INELIGIBLE_USER


class InsufficientCapacityError(ReservationError):
    kind = ErrorKind.INSUFFICIENT_CAPACITY


class AlreadyCanceledError(ReservationError):
    kind = ErrorKind.ALREADY_CANCELED


class PastBookingError(ReservationError):
    kind = ErrorKind.PAST_BOOKING


class UnauthorizedError(ReservationError):
    kind = ErrorKind.UNAUTHORIZED
