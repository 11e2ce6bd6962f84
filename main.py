"""Command-line interface for the seat booking service."""

from __future__ import annotations
import argparse
import logging
import sys
from getpass import getpass
from typing import Sequence

try:
    import httpx
except ImportError as exc:  # pragma: no cover - exercised in environments missing deps
    raise SystemExit(
        "The 'httpx' package is required. Run `pip install -e .` to install dependencies."
    ) from exc

from seatbooking.config import Settings, load_settings
from seatbooking.exceptions import StoreUnavailable
from seatbooking.models import SeatId
from seatbooking.store import LedgerStore
from seatbooking.users import UserDirectory

logger = logging.getLogger("seatbooking.main")

_DEFAULT_SERVICE_URL = "http://localhost:3000"
PASSWORD_MIN_LENGTH = 8


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seat booking service utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-data", help="Create the bookings file and seed default users")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP booking service")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=3000,
        help="Port for the HTTP API (default: 3000)",
    )

    create_parser = subparsers.add_parser("create-user", help="Provision a new user")
    create_parser.add_argument("username", help="Unique login name")
    create_parser.add_argument("name", help="Display name shown next to bookings")
    create_parser.add_argument(
        "--admin",
        action="store_true",
        help="Grant administrator rights (multiple seats, cancel any booking)",
    )

    subparsers.add_parser("list-users", help="List provisioned users")

    show_parser = subparsers.add_parser(
        "show-bookings", help="Print the seat map of a running service"
    )
    show_parser.add_argument(
        "--service-url",
        default=None,
        help=f"Base URL of a running booking service (default: {_DEFAULT_SERVICE_URL})",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-data", "create-user", "list-users", "show-bookings"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_data(settings: Settings) -> None:
    if LedgerStore(settings.bookings_path).initialize():
        logger.info("Created empty bookings file at %s", settings.bookings_path)
    if UserDirectory(settings.users_path).initialize():
        logger.info("Seeded default users at %s", settings.users_path)


def _serve(*, settings: Settings, host: str, port: int) -> None:
    from seatbooking.service import create_app
    import uvicorn

    _initialise_data(settings)
    logger.info("Starting seat booking API on http://%s:%s", host, port)

    app = create_app(settings=settings)
    uvicorn.run(app, host=host, port=port, log_level="info")


def _prompt_for_password() -> str | None:
    for _ in range(3):
        password = getpass(f"Password (min {PASSWORD_MIN_LENGTH} characters): ")
        if len(password) < PASSWORD_MIN_LENGTH:
            print("Password is too short. Please try again.")
            continue
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Please try again.")
            continue
        return password
    return None


def _create_user(settings: Settings, username: str, name: str, *, is_admin: bool) -> int:
    password = _prompt_for_password()
    if password is None:
        print("Aborted creating user.", file=sys.stderr)
        return 1

    directory = UserDirectory(settings.users_path)
    try:
        user = directory.create_user(username, name, password, is_admin=is_admin)
    except (ValueError, StoreUnavailable) as exc:
        print(f"Failed to create user: {exc}", file=sys.stderr)
        return 1

    role = "administrator" if user.is_admin else "user"
    print(f"Created {role} {user.username} ({user.display_name})")
    return 0


def _list_users(settings: Settings) -> int:
    try:
        users = UserDirectory(settings.users_path).list_users()
    except StoreUnavailable as exc:
        print(f"Failed to read users: {exc}", file=sys.stderr)
        return 1

    if not users:
        print("No users are currently registered.")
        return 0

    print(f"{len(users)} user(s) found:")
    print(f"{'Username':<20}  {'Name':<28}  Admin")
    print("-" * 60)
    for user in users:
        print(f"{user.username:<20}  {user.display_name:<28}  {'yes' if user.is_admin else 'no'}")
    return 0


def _show_bookings(settings: Settings, service_url: str | None) -> int:
    base_url = (service_url or _DEFAULT_SERVICE_URL).rstrip("/")
    endpoint = base_url + "/api/bookings"

    try:
        response = httpx.get(endpoint, timeout=10.0)
    except httpx.HTTPError as exc:
        print(f"Failed to contact booking service: {exc}")
        return 1

    if response.status_code != 200:
        print(f"Service responded with {response.status_code}: {response.text.strip()}")
        return 1

    try:
        payload = response.json()
    except ValueError:
        print("Service returned an unexpected response format.")
        return 1

    if not isinstance(payload, dict) or not all(isinstance(record, dict) for record in payload.values()):
        print("Service returned an unexpected response format.")
        return 1

    layout = settings.layout
    for bench in range(1, layout.benches + 1):
        cells = []
        for seat in range(1, layout.seats_per_bench + 1):
            booking = payload.get(SeatId(bench, seat).key)
            cells.append(booking.get("username", "?") if booking else "-")
        print(f"Bench {bench:>2}: " + "  ".join(f"{cell:<12}" for cell in cells).rstrip())

    print(f"{len(payload)} of {layout.capacity} seat(s) booked.")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    settings = load_settings()

    if args.command == "serve":
        _serve(settings=settings, host=args.host, port=args.port)
    elif args.command == "init-data":
        _initialise_data(settings)
        print("Data initialisation complete.")
    elif args.command == "create-user":
        return _create_user(settings, args.username, args.name, is_admin=args.admin)
    elif args.command == "list-users":
        return _list_users(settings)
    elif args.command == "show-bookings":
        return _show_bookings(settings, args.service_url)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
