"""Domain models for the seat booking service."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Dict

_SEAT_KEY = re.compile(r"^bench(\d+)_seat(\d+)$")


@dataclass(frozen=True, order=True)
class SeatId:
    """Identifies a physical seat by bench and position on that bench."""

    bench: int
    seat: int

    def __post_init__(self) -> None:
        if isinstance(self.bench, bool) or isinstance(self.seat, bool):
            raise ValueError("Bench and seat numbers must be integers")
        if self.bench < 1 or self.seat < 1:
            raise ValueError("Bench and seat numbers must be positive")

    @property
    def key(self) -> str:
        return f"bench{self.bench}_seat{self.seat}"

    @staticmethod
    def parse(key: str) -> "SeatId":
        """Create a :class:`SeatId` from its ``bench{N}_seat{M}`` form."""
        match = _SEAT_KEY.fullmatch(key.strip())
        if match is None:
            raise ValueError(f"Malformed seat identifier '{key}'")
        return SeatId(int(match.group(1)), int(match.group(2)))

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class Identity:
    """The non-secret view of a user that the engine acts on behalf of."""

    username: str
    display_name: str
    is_admin: bool = False


@dataclass(frozen=True)
class User:
    """A provisioned account stored in the user directory."""

    username: str
    display_name: str
    is_admin: bool
    password_hash: str

    def identity(self) -> Identity:
        return Identity(
            username=self.username,
            display_name=self.display_name,
            is_admin=self.is_admin,
        )


@dataclass(frozen=True)
class Booking:
    """A claim on one seat."""

    seat: SeatId
    username: str
    display_name: str
    booked_at: datetime


@dataclass(frozen=True)
class Session:
    """A time-bounded proof of a successful login."""

    token: str
    identity: Identity
    expires_at: datetime


Ledger = Dict[SeatId, Booking]


__all__ = ["Booking", "Identity", "Ledger", "SeatId", "Session", "User"]
