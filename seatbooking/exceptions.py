"""Failure kinds surfaced by the seat booking service."""

from __future__ import annotations


class SeatBookingError(Exception):
    """Base class for every rejected operation.

    ``kind`` is the stable, machine readable name of the failure and
    ``status_code`` the HTTP status the service answers with.
    """

    kind = "SeatBookingError"
    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self.args[0])


class InvalidCredentials(SeatBookingError):
    """Unknown username or wrong password; the two are never distinguished."""

    kind = "InvalidCredentials"
    status_code = 401
    default_message = "Invalid credentials"


class Unauthenticated(SeatBookingError):
    kind = "Unauthenticated"
    status_code = 401
    default_message = "Authentication required"


class Forbidden(SeatBookingError):
    kind = "Forbidden"
    status_code = 403
    default_message = "Admin access required"


class SeatAlreadyBooked(SeatBookingError):
    kind = "SeatAlreadyBooked"
    default_message = "Seat already booked"


class UserAlreadyHasBooking(SeatBookingError):
    kind = "UserAlreadyHasBooking"
    default_message = "You already have a seat booked. Cancel it first to book another."


class SeatNotBooked(SeatBookingError):
    kind = "SeatNotBooked"
    default_message = "Seat is not booked"


class NotOwner(SeatBookingError):
    kind = "NotOwner"
    status_code = 403
    default_message = "You can only cancel your own bookings"


class InvalidSeat(SeatBookingError):
    """The seat does not exist in the configured layout."""

    kind = "InvalidSeat"
    default_message = "Seat does not exist"


class StoreUnavailable(SeatBookingError):
    """The durable medium could not be read or written."""

    kind = "StoreUnavailable"
    status_code = 503
    default_message = "Booking storage is unavailable"


__all__ = [
    "Forbidden",
    "InvalidCredentials",
    "InvalidSeat",
    "NotOwner",
    "SeatAlreadyBooked",
    "SeatBookingError",
    "SeatNotBooked",
    "StoreUnavailable",
    "Unauthenticated",
    "UserAlreadyHasBooking",
]
