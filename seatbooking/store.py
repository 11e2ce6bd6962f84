"""JSON file persistence for the booking ledger and the user directory."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping

from .exceptions import StoreUnavailable
from .models import Booking, Ledger, SeatId

logger = logging.getLogger("seatbooking.store")


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    # Older files carry JavaScript style timestamps ending in "Z".
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class JSONDocumentStore:
    """Reads and atomically replaces a single JSON object on disk.

    A missing file reads as an empty document. Writes go to a temporary file
    in the same directory which is then renamed over the target, so readers
    only ever see the previous or the new document in full.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def read(self) -> Dict[str, Any]:
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.error("Failed to read %s: %s", self._path, exc)
            raise StoreUnavailable(f"Unable to read {self._path.name}") from exc

        if not isinstance(data, dict):
            logger.error("Document %s does not contain a JSON object", self._path)
            raise StoreUnavailable(f"Unable to read {self._path.name}")
        return data

    def write(self, document: Mapping[str, Any]) -> None:
        try:
            _ensure_directory(self._path)
            payload = json.dumps(document, indent=2, sort_keys=True)
            fd, temp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=str(self._path.parent)
            )
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Failed to prepare write of %s: %s", self._path, exc)
            raise StoreUnavailable(f"Unable to write {self._path.name}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, self._path)
        except OSError as exc:
            logger.error("Failed to write %s: %s", self._path, exc)
            try:
                os.unlink(temp_name)
            except FileNotFoundError:
                pass
            raise StoreUnavailable(f"Unable to write {self._path.name}") from exc


def _booking_to_record(booking: Booking) -> Dict[str, str]:
    return {
        "username": booking.username,
        "name": booking.display_name,
        "bookedAt": _serialize_datetime(booking.booked_at),
    }


def _record_to_booking(seat: SeatId, record: Mapping[str, Any]) -> Booking:
    username = str(record["username"])
    name = record.get("name")
    return Booking(
        seat=seat,
        username=username,
        display_name=str(name) if name is not None else username,
        booked_at=_parse_datetime(str(record["bookedAt"])),
    )


class LedgerStore:
    """Durable home of the seat to booking ledger."""

    def __init__(self, path: Path) -> None:
        self._document = JSONDocumentStore(path)

    @property
    def path(self) -> Path:
        return self._document.path

    def load(self) -> Ledger:
        """Return the persisted ledger, or an empty one if none exists yet."""
        raw = self._document.read()
        ledger: Ledger = {}
        for key, record in raw.items():
            try:
                seat = SeatId.parse(key)
            except ValueError as exc:
                raise StoreUnavailable(f"Corrupt booking key '{key}'") from exc
            if not isinstance(record, dict):
                raise StoreUnavailable(f"Corrupt booking record for {key}")
            if not record.get("username"):
                logger.warning("Ignoring booking record for %s without an owner", key)
                continue
            try:
                ledger[seat] = _record_to_booking(seat, record)
            except (KeyError, TypeError, ValueError) as exc:
                raise StoreUnavailable(f"Corrupt booking record for {key}") from exc
        return ledger

    def save(self, ledger: Mapping[SeatId, Booking]) -> None:
        """Replace the persisted ledger with ``ledger`` in a single step."""
        document = {seat.key: _booking_to_record(booking) for seat, booking in ledger.items()}
        self._document.write(document)

    def initialize(self) -> bool:
        """Create an empty ledger file if none exists. Returns ``True`` if created."""
        if self._document.exists():
            return False
        self._document.write({})
        return True


__all__ = ["JSONDocumentStore", "LedgerStore"]
