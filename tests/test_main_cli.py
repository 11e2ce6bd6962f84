from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import httpx
import pytest

import main
from main import _parse_args
from seatbooking.config import SeatLayout, Settings
from seatbooking.users import UserDirectory


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        data_dir=tmp_path,
        layout=SeatLayout(benches=2, seats_per_bench=3),
        session_ttl=timedelta(minutes=5),
    )


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "127.0.0.1", "--port", "8080"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8080


def test_create_user_subcommand_parses_admin_flag() -> None:
    args = _parse_args(["create-user", "carol", "Carol Danvers", "--admin"])
    assert args.command == "create-user"
    assert args.username == "carol"
    assert args.name == "Carol Danvers"
    assert args.admin is True


def test_init_data_seeds_files(settings: Settings) -> None:
    main._initialise_data(settings)

    assert json.loads(settings.bookings_path.read_text(encoding="utf-8")) == {}
    assert UserDirectory(settings.users_path).authenticate("admin", "admin123").is_admin


def test_create_user_prompts_for_password(
    monkeypatch: pytest.MonkeyPatch, settings: Settings, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(main, "getpass", lambda prompt="": "correct-horse")

    assert main._create_user(settings, "carol", "Carol", is_admin=False) == 0
    assert "Created user carol (Carol)" in capsys.readouterr().out
    assert UserDirectory(settings.users_path).authenticate("carol", "correct-horse").username == "carol"

    assert main._create_user(settings, "carol", "Carol", is_admin=False) == 1


def test_create_user_gives_up_after_short_passwords(
    monkeypatch: pytest.MonkeyPatch, settings: Settings
) -> None:
    monkeypatch.setattr(main, "getpass", lambda prompt="": "short")

    assert main._create_user(settings, "dave", "Dave", is_admin=False) == 1
    assert UserDirectory(settings.users_path).get("dave") is None


def test_list_users_prints_table(settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
    UserDirectory(settings.users_path).initialize()

    assert main._list_users(settings) == 0
    output = capsys.readouterr().out
    assert "3 user(s) found:" in output
    assert "student1" in output
    assert "admin123" not in output


def test_show_bookings_prints_seat_map(
    monkeypatch: pytest.MonkeyPatch, settings: Settings, capsys: pytest.CaptureFixture[str]
) -> None:
    requested = []

    def fake_get(url, timeout):
        requested.append(url)
        return httpx.Response(
            200,
            json={"bench2_seat3": {"username": "bob", "name": "Bob", "bookedAt": "2024-01-01T00:00:00+00:00"}},
            request=httpx.Request("GET", url),
        )

    monkeypatch.setattr(main.httpx, "get", fake_get)

    assert main._show_bookings(settings, "http://booking.local/") == 0
    assert requested == ["http://booking.local/api/bookings"]
    output = capsys.readouterr().out
    assert "Bench  2:" in output
    assert "bob" in output
    assert "1 of 6 seat(s) booked." in output


@pytest.mark.parametrize(
    "payload",
    [
        ["bench1_seat1"],
        {"bench1_seat1": "bob"},
        "bench1_seat1",
    ],
)
def test_show_bookings_rejects_malformed_payload(
    monkeypatch: pytest.MonkeyPatch, settings: Settings, capsys: pytest.CaptureFixture[str], payload
) -> None:
    def fake_get(url, timeout):
        return httpx.Response(200, json=payload, request=httpx.Request("GET", url))

    monkeypatch.setattr(main.httpx, "get", fake_get)

    assert main._show_bookings(settings, None) == 1
    assert "Service returned an unexpected response format." in capsys.readouterr().out


def test_show_bookings_reports_connection_errors(
    monkeypatch: pytest.MonkeyPatch, settings: Settings, capsys: pytest.CaptureFixture[str]
) -> None:
    def fake_get(url, timeout):
        raise httpx.ConnectError("refused", request=httpx.Request("GET", url))

    monkeypatch.setattr(main.httpx, "get", fake_get)

    assert main._show_bookings(settings, None) == 1
    assert "Failed to contact booking service" in capsys.readouterr().out
