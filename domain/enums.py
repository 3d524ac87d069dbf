"""Domain Enums"""
from enum import Enum


class ReservationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELED = "CANCELED"


class ResourceKind(str, Enum):
    PACKAGE = "PACKAGE"
    ROOM = "ROOM"


class ActorKind(str, Enum):
    """Who performed a cancellation"""
    USER = "USER"
    ADMIN = "ADMIN"


class ErrorKind(str, Enum):
    INVALID_REQUEST = "InvalidRequest"
    NOT_FOUND = "NotFound"
    INELIGIBLE_USER = "IneligibleUser"
    INSUFFICIENT_CAPACITY = "InsufficientCapacity"
    ALREADY_CANCELED = "AlreadyCanceled"
    PAST_BOOKING = "PastBooking"
    UNAUTHORIZED = "Unauthorized"
    NETWORK_FAILURE = "NetworkFailure"
