"""Reservation engine: the authoritative owner of seat bookings."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .config import SeatLayout
from .exceptions import (
    InvalidSeat,
    NotOwner,
    SeatAlreadyBooked,
    SeatNotBooked,
    StoreUnavailable,
    UserAlreadyHasBooking,
)
from .models import Booking, Identity, Ledger, SeatId
from .policy import OperationClass, require
from .store import LedgerStore

logger = logging.getLogger("seatbooking.engine")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReservationEngine:
    """Books and cancels seats against the persisted ledger.

    Every mutation loads the ledger, applies its checks and saves the whole
    ledger while holding a single lock, so two mutations never interleave
    their read-modify-write. Reads skip the lock; the store only ever exposes
    complete documents.
    """

    def __init__(
        self,
        store: LedgerStore,
        *,
        layout: Optional[SeatLayout] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._layout = layout
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def layout(self) -> Optional[SeatLayout]:
        return self._layout

    def list_bookings(self) -> Ledger:
        """Return a snapshot of the ledger."""
        return dict(self._store.load())

    def bookings_for(self, username: str) -> List[Booking]:
        """Return the bookings owned by ``username`` ordered by seat."""
        ledger = self._store.load()
        return [ledger[seat] for seat in sorted(ledger) if ledger[seat].username == username]

    def book(self, caller: Identity, seat: SeatId) -> Booking:
        """Claim ``seat`` for ``caller``."""
        require(OperationClass.AUTHENTICATED, caller)
        self._ensure_in_layout(seat)

        with self._lock:
            ledger = self._store.load()
            if seat in ledger:
                logger.info("Rejected booking of %s by %s: already booked", seat, caller.username)
                raise SeatAlreadyBooked()
            if not caller.is_admin and any(
                booking.username == caller.username for booking in ledger.values()
            ):
                logger.info("Rejected booking of %s by %s: already holds a seat", seat, caller.username)
                raise UserAlreadyHasBooking()

            booking = Booking(
                seat=seat,
                username=caller.username,
                display_name=caller.display_name,
                booked_at=self._clock(),
            )
            updated = dict(ledger)
            updated[seat] = booking
            self._store.save(updated)

        logger.info("User %s booked %s", caller.username, seat)
        return booking

    def cancel(self, caller: Identity, seat: SeatId) -> Booking:
        """Release ``seat`` and return the booking that was removed."""
        require(OperationClass.AUTHENTICATED, caller)

        with self._lock:
            ledger = self._store.load()
            booking = ledger.get(seat)
            if booking is None:
                raise SeatNotBooked()
            if booking.username != caller.username and not caller.is_admin:
                logger.info(
                    "Rejected cancellation of %s by %s: held by %s", seat, caller.username, booking.username
                )
                raise NotOwner()

            updated = dict(ledger)
            del updated[seat]
            self._store.save(updated)

        if booking.username != caller.username:
            logger.info("Admin %s cancelled %s held by %s", caller.username, seat, booking.username)
        else:
            logger.info("User %s cancelled %s", caller.username, seat)
        return booking

    def reset_all(self, caller: Identity) -> int:
        """Clear every booking. Returns the number of bookings removed."""
        require(OperationClass.ADMIN, caller)

        with self._lock:
            try:
                cleared = len(self._store.load())
            except StoreUnavailable:
                logger.warning("Existing ledger is unreadable; resetting it anyway")
                cleared = 0
            self._store.save({})

        logger.warning("Admin %s reset all bookings (%d cleared)", caller.username, cleared)
        return cleared

    def _ensure_in_layout(self, seat: SeatId) -> None:
        if self._layout is not None and not self._layout.contains(seat):
            raise InvalidSeat(f"Seat {seat} is not part of the seating layout")


__all__ = ["ReservationEngine"]
