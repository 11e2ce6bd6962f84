"""Configuration for the seat booking service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional

import yaml

from .models import SeatId

DEFAULT_BENCHES = 10
DEFAULT_SEATS_PER_BENCH = 4
DEFAULT_SESSION_TTL = timedelta(hours=1)

BOOKINGS_FILENAME = "bookings.json"
USERS_FILENAME = "users.json"


@dataclass(frozen=True)
class SeatLayout:
    """The finite grid of seats that can be booked."""

    benches: int = DEFAULT_BENCHES
    seats_per_bench: int = DEFAULT_SEATS_PER_BENCH

    def __post_init__(self) -> None:
        if self.benches < 1 or self.seats_per_bench < 1:
            raise ValueError("Seat layout must contain at least one bench and one seat")

    def contains(self, seat: SeatId) -> bool:
        return seat.bench <= self.benches and seat.seat <= self.seats_per_bench

    def seats(self) -> Iterator[SeatId]:
        for bench in range(1, self.benches + 1):
            for seat in range(1, self.seats_per_bench + 1):
                yield SeatId(bench, seat)

    @property
    def capacity(self) -> int:
        return self.benches * self.seats_per_bench

    @staticmethod
    def from_dict(data: Mapping[str, object]) -> "SeatLayout":
        """Create a :class:`SeatLayout` from raw configuration data."""
        try:
            benches = int(data.get("benches", DEFAULT_BENCHES))  # type: ignore[arg-type]
            seats = int(data.get("seats_per_bench", DEFAULT_SEATS_PER_BENCH))  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise ValueError("benches and seats_per_bench must be integers") from exc
        return SeatLayout(benches=benches, seats_per_bench=seats)


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved from YAML and the environment."""

    data_dir: Path
    layout: SeatLayout
    session_ttl: timedelta = DEFAULT_SESSION_TTL
    secure_cookies: bool = False

    @property
    def bookings_path(self) -> Path:
        return self.data_dir / BOOKINGS_FILENAME

    @property
    def users_path(self) -> Path:
        return self.data_dir / USERS_FILENAME


def _env_flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def resolve_data_dir(env_value: Optional[str]) -> Path:
    """Resolve the directory holding the bookings and users documents."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (Path(__file__).resolve().parent.parent / "data").resolve(strict=False)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the seating configuration file."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (Path(__file__).resolve().parent.parent / "config" / "seating.yaml").resolve(strict=False)


def _load_yaml(config_path: Path) -> Dict[str, object]:
    if not config_path.exists():
        return {}
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    return raw


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build :class:`Settings` from the YAML file and ``SEATING_*`` variables."""
    env = os.environ if environ is None else environ
    path = config_path or resolve_config_path(env.get("SEATING_CONFIG"))
    raw = _load_yaml(path)

    layout = SeatLayout.from_dict(raw)

    ttl_minutes = raw.get("session_ttl_minutes")
    if ttl_minutes is None:
        session_ttl = DEFAULT_SESSION_TTL
    else:
        session_ttl = timedelta(minutes=int(ttl_minutes))  # type: ignore[arg-type]
        if session_ttl <= timedelta(0):
            raise ValueError("session_ttl_minutes must be positive")

    return Settings(
        data_dir=resolve_data_dir(env.get("SEATING_DATA_DIR")),
        layout=layout,
        session_ttl=session_ttl,
        secure_cookies=_env_flag(env.get("SEATING_SESSION_SECURE"), False),
    )


__all__ = [
    "BOOKINGS_FILENAME",
    "DEFAULT_SESSION_TTL",
    "SeatLayout",
    "Settings",
    "USERS_FILENAME",
    "load_settings",
    "resolve_config_path",
    "resolve_data_dir",
]
