"""HTTP API for booking seats."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from .config import Settings, load_settings
from .engine import ReservationEngine
from .exceptions import SeatBookingError
from .models import Booking, Identity, SeatId
from .policy import OperationClass, require
from .sessions import SessionManager
from .store import LedgerStore
from .users import UserDirectory

logger = logging.getLogger("seatbooking.service")

SESSION_COOKIE_NAME = "seat_session"


class LoginRequest(BaseModel):
    username: str
    password: str


class SeatRequest(BaseModel):
    bench: int = Field(..., ge=1)
    seat: int = Field(..., ge=1)

    def seat_id(self) -> SeatId:
        return SeatId(self.bench, self.seat)


class IdentityView(BaseModel):
    username: str
    name: str
    isAdmin: bool


class LoginResponse(BaseModel):
    message: str
    user: IdentityView
    session_token: str
    expires_at: datetime


class CurrentUserResponse(BaseModel):
    user: Optional[IdentityView]


class BookingView(BaseModel):
    seat_id: str
    bench: int
    seat: int
    username: str
    name: str
    bookedAt: datetime


class BookResponse(BaseModel):
    message: str
    booking: BookingView


class MyBookingsResponse(BaseModel):
    username: str
    bookings: List[BookingView]


class MessageResponse(BaseModel):
    message: str


class ResetResponse(BaseModel):
    message: str
    cleared: int


class LayoutResponse(BaseModel):
    benches: int
    seats_per_bench: int
    seats: List[str]


def _identity_to_view(identity: Identity) -> IdentityView:
    return IdentityView(
        username=identity.username,
        name=identity.display_name,
        isAdmin=identity.is_admin,
    )


def _booking_to_view(booking: Booking) -> BookingView:
    return BookingView(
        seat_id=booking.seat.key,
        bench=booking.seat.bench,
        seat=booking.seat.seat,
        username=booking.username,
        name=booking.display_name,
        bookedAt=booking.booked_at,
    )


async def _handle_booking_error(request: Request, exc: SeatBookingError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "error": exc.kind},
    )


def _extract_token(
    request: Request,
    bearer: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    if bearer is not None and bearer.credentials:
        return bearer.credentials
    return request.cookies.get(SESSION_COOKIE_NAME)


def _build_identity_dependency(sessions: SessionManager):
    bearer_security = HTTPBearer(auto_error=False)

    def dependency(
        request: Request,
        bearer: HTTPAuthorizationCredentials | None = Depends(bearer_security),
    ) -> Optional[Identity]:
        return sessions.resolve(_extract_token(request, bearer))

    return dependency


def _build_access_dependency(
    operation: OperationClass,
    current_identity: Callable[..., Optional[Identity]],
):
    def dependency(identity: Optional[Identity] = Depends(current_identity)) -> Optional[Identity]:
        return require(operation, identity)

    return dependency


def register_api_routes(
    app: FastAPI,
    engine: ReservationEngine,
    users: UserDirectory,
    sessions: SessionManager,
    *,
    secure_cookies: bool,
) -> None:
    """Expose the JSON API endpoints on the provided FastAPI application."""

    bearer_security = HTTPBearer(auto_error=False)
    current_identity = _build_identity_dependency(sessions)
    authenticated = _build_access_dependency(OperationClass.AUTHENTICATED, current_identity)
    admin_only = _build_access_dependency(OperationClass.ADMIN, current_identity)

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/login", response_model=LoginResponse)
    def login(payload: LoginRequest, request: Request, response: Response) -> LoginResponse:
        try:
            identity = users.authenticate(payload.username, payload.password)
        except SeatBookingError as exc:
            logger.warning("Failed login attempt for %s: %s", payload.username, exc.kind)
            raise

        sessions.destroy(request.cookies.get(SESSION_COOKIE_NAME))
        session = sessions.create(identity)
        logger.info("User %s signed in", identity.username)

        response.set_cookie(
            SESSION_COOKIE_NAME,
            session.token,
            max_age=sessions.cookie_max_age,
            secure=secure_cookies,
            httponly=True,
            samesite="lax",
            path="/",
        )
        return LoginResponse(
            message="Login successful",
            user=_identity_to_view(identity),
            session_token=session.token,
            expires_at=session.expires_at,
        )

    @app.post("/api/logout", response_model=MessageResponse)
    def logout(
        request: Request,
        response: Response,
        bearer: HTTPAuthorizationCredentials | None = Depends(bearer_security),
    ) -> MessageResponse:
        sessions.destroy(_extract_token(request, bearer))
        sessions.destroy(request.cookies.get(SESSION_COOKIE_NAME))
        response.delete_cookie(SESSION_COOKIE_NAME, path="/")
        return MessageResponse(message="Logged out successfully")

    @app.get("/api/current-user", response_model=CurrentUserResponse)
    def current_user(identity: Optional[Identity] = Depends(current_identity)) -> CurrentUserResponse:
        if identity is None:
            return CurrentUserResponse(user=None)
        return CurrentUserResponse(user=_identity_to_view(identity))

    @app.get("/api/bookings")
    def list_bookings() -> Dict[str, Dict[str, str]]:
        ledger = engine.list_bookings()
        return {
            seat.key: {
                "username": booking.username,
                "name": booking.display_name,
                "bookedAt": booking.booked_at.isoformat(),
            }
            for seat, booking in sorted(ledger.items())
        }

    @app.get("/api/layout", response_model=LayoutResponse)
    def layout() -> LayoutResponse:
        grid = engine.layout
        if grid is None:
            return LayoutResponse(benches=0, seats_per_bench=0, seats=[])
        return LayoutResponse(
            benches=grid.benches,
            seats_per_bench=grid.seats_per_bench,
            seats=[seat.key for seat in grid.seats()],
        )

    @app.get("/api/my-bookings", response_model=MyBookingsResponse)
    def my_bookings(identity: Identity = Depends(authenticated)) -> MyBookingsResponse:
        return MyBookingsResponse(
            username=identity.username,
            bookings=[_booking_to_view(booking) for booking in engine.bookings_for(identity.username)],
        )

    @app.post("/api/book", response_model=BookResponse)
    def book_seat(payload: SeatRequest, identity: Identity = Depends(authenticated)) -> BookResponse:
        booking = engine.book(identity, payload.seat_id())
        return BookResponse(message="Seat booked successfully", booking=_booking_to_view(booking))

    @app.post("/api/cancel", response_model=MessageResponse)
    def cancel_seat(payload: SeatRequest, identity: Identity = Depends(authenticated)) -> MessageResponse:
        engine.cancel(identity, payload.seat_id())
        return MessageResponse(message="Booking cancelled successfully")

    @app.get("/api/users")
    def list_users(identity: Identity = Depends(admin_only)) -> Dict[str, Dict[str, Any]]:
        return {
            user.username: {"name": user.display_name, "isAdmin": user.is_admin}
            for user in users.list_users()
        }

    @app.post("/api/reset-bookings", response_model=ResetResponse)
    def reset_bookings(identity: Identity = Depends(admin_only)) -> ResetResponse:
        cleared = engine.reset_all(identity)
        return ResetResponse(message="All bookings have been reset", cleared=cleared)


def create_app(
    *,
    settings: Settings | None = None,
    engine: ReservationEngine | None = None,
    users: UserDirectory | None = None,
    sessions: SessionManager | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the seat booking service."""

    config = settings if settings is not None else load_settings()
    if engine is not None:
        booking_engine = engine
    else:
        booking_engine = ReservationEngine(LedgerStore(config.bookings_path), layout=config.layout)
    directory = users if users is not None else UserDirectory(config.users_path)
    session_manager = sessions if sessions is not None else SessionManager(ttl=config.session_ttl)

    if not config.secure_cookies:
        logger.warning(
            "Session cookies are not marked as secure. Only disable secure cookies for"
            " local development."
        )

    app = FastAPI(
        title="Seat Booking API",
        version="0.1.0",
        description="Claim one seat per user out of a fixed bench layout.",
    )
    app.state.settings = config
    app.state.engine = booking_engine
    app.state.users = directory
    app.state.sessions = session_manager
    app.add_exception_handler(SeatBookingError, _handle_booking_error)  # type: ignore[arg-type]

    register_api_routes(
        app,
        booking_engine,
        directory,
        session_manager,
        secure_cookies=config.secure_cookies,
    )
    return app


__all__ = ["SESSION_COOKIE_NAME", "create_app", "register_api_routes"]
