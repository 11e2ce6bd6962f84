"""Seat booking service: one seat per user on a fixed bench layout."""

from __future__ import annotations

from typing import Any

from .engine import ReservationEngine
from .store import LedgerStore
from .users import UserDirectory


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the seat booking API application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "LedgerStore",
    "ReservationEngine",
    "UserDirectory",
    "create_app",
]
