from __future__ import annotations

import logging
import random
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path

import pytest

from seatbooking.config import SeatLayout
from seatbooking.engine import ReservationEngine
from seatbooking.exceptions import (
    Forbidden,
    InvalidSeat,
    NotOwner,
    SeatAlreadyBooked,
    SeatBookingError,
    SeatNotBooked,
    StoreUnavailable,
    Unauthenticated,
    UserAlreadyHasBooking,
)
from seatbooking.models import Identity, SeatId
from seatbooking.store import LedgerStore

ALICE = Identity("alice", "Alice Liddell")
BOB = Identity("bob", "Bob Builder")
CAROL = Identity("carol", "Carol Danvers")
ADMIN = Identity("admin", "Administrator", is_admin=True)

FIXED_NOW = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture()
def store(tmp_path: Path) -> LedgerStore:
    return LedgerStore(tmp_path / "bookings.json")


@pytest.fixture()
def engine(store: LedgerStore) -> ReservationEngine:
    return ReservationEngine(
        store,
        layout=SeatLayout(benches=2, seats_per_bench=2),
        clock=lambda: FIXED_NOW,
    )


def _assert_invariants(engine: ReservationEngine) -> None:
    ledger = engine.list_bookings()
    for seat, booking in ledger.items():
        assert booking.seat == seat
    owners = Counter(booking.username for booking in ledger.values() if booking.username != ADMIN.username)
    assert all(count == 1 for count in owners.values())


def test_example_scenario(engine: ReservationEngine) -> None:
    seat_1_1 = SeatId(1, 1)

    booking = engine.book(ALICE, seat_1_1)
    assert booking.username == "alice"
    assert booking.display_name == "Alice Liddell"
    assert booking.booked_at == FIXED_NOW

    with pytest.raises(UserAlreadyHasBooking):
        engine.book(ALICE, SeatId(1, 2))

    with pytest.raises(SeatAlreadyBooked):
        engine.book(BOB, seat_1_1)

    removed = engine.cancel(ADMIN, seat_1_1)
    assert removed.username == "alice"

    engine.book(BOB, seat_1_1)
    assert engine.list_bookings()[seat_1_1].username == "bob"


def test_booking_taken_seat_leaves_ledger_unchanged(engine: ReservationEngine) -> None:
    engine.book(ALICE, SeatId(2, 1))
    before = engine.list_bookings()

    with pytest.raises(SeatAlreadyBooked):
        engine.book(ADMIN, SeatId(2, 1))

    assert engine.list_bookings() == before


def test_admin_can_hold_multiple_bookings(engine: ReservationEngine) -> None:
    engine.book(ADMIN, SeatId(1, 1))
    engine.book(ADMIN, SeatId(1, 2))
    engine.book(ADMIN, SeatId(2, 2))

    assert [booking.seat for booking in engine.bookings_for("admin")] == [
        SeatId(1, 1),
        SeatId(1, 2),
        SeatId(2, 2),
    ]


def test_cancel_by_non_owner_is_rejected(engine: ReservationEngine) -> None:
    engine.book(ALICE, SeatId(1, 1))

    with pytest.raises(NotOwner):
        engine.cancel(BOB, SeatId(1, 1))

    assert SeatId(1, 1) in engine.list_bookings()


def test_rejections_are_logged(engine: ReservationEngine, caplog: pytest.LogCaptureFixture) -> None:
    engine.book(ALICE, SeatId(1, 1))

    with caplog.at_level(logging.INFO, logger="seatbooking.engine"):
        with pytest.raises(UserAlreadyHasBooking):
            engine.book(ALICE, SeatId(1, 2))
        with pytest.raises(NotOwner):
            engine.cancel(BOB, SeatId(1, 1))

    messages = [record.getMessage() for record in caplog.records if record.name == "seatbooking.engine"]
    assert "Rejected booking of bench1_seat2 by alice: already holds a seat" in messages
    assert "Rejected cancellation of bench1_seat1 by bob: held by alice" in messages


def test_owner_cancel_removes_only_that_entry(engine: ReservationEngine) -> None:
    engine.book(ALICE, SeatId(1, 1))
    engine.book(BOB, SeatId(1, 2))

    engine.cancel(ALICE, SeatId(1, 1))

    ledger = engine.list_bookings()
    assert list(ledger) == [SeatId(1, 2)]
    assert ledger[SeatId(1, 2)].username == "bob"


def test_cancel_free_seat_fails(engine: ReservationEngine) -> None:
    with pytest.raises(SeatNotBooked):
        engine.cancel(ALICE, SeatId(2, 2))


def test_cancelled_user_may_book_again(engine: ReservationEngine) -> None:
    engine.book(ALICE, SeatId(1, 1))
    engine.cancel(ALICE, SeatId(1, 1))

    engine.book(ALICE, SeatId(2, 2))
    assert [booking.seat for booking in engine.bookings_for("alice")] == [SeatId(2, 2)]


def test_reset_all_clears_ledger(engine: ReservationEngine) -> None:
    engine.book(ALICE, SeatId(1, 1))
    engine.book(BOB, SeatId(1, 2))
    engine.book(ADMIN, SeatId(2, 1))

    assert engine.reset_all(ADMIN) == 3
    assert engine.list_bookings() == {}
    assert engine.reset_all(ADMIN) == 0


def test_reset_all_rejects_non_admin(engine: ReservationEngine) -> None:
    engine.book(ALICE, SeatId(1, 1))

    with pytest.raises(Forbidden):
        engine.reset_all(ALICE)

    assert SeatId(1, 1) in engine.list_bookings()


def test_reset_all_recovers_corrupt_ledger(store: LedgerStore, engine: ReservationEngine) -> None:
    store.path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StoreUnavailable):
        engine.list_bookings()

    assert engine.reset_all(ADMIN) == 0
    assert engine.list_bookings() == {}


def test_anonymous_caller_is_rejected(engine: ReservationEngine) -> None:
    with pytest.raises(Unauthenticated):
        engine.book(None, SeatId(1, 1))  # type: ignore[arg-type]
    with pytest.raises(Unauthenticated):
        engine.cancel(None, SeatId(1, 1))  # type: ignore[arg-type]


def test_seat_outside_layout_is_rejected(engine: ReservationEngine) -> None:
    with pytest.raises(InvalidSeat):
        engine.book(ALICE, SeatId(3, 1))
    with pytest.raises(InvalidSeat):
        engine.book(ALICE, SeatId(1, 3))
    assert engine.list_bookings() == {}


def test_engine_without_layout_accepts_any_seat(store: LedgerStore) -> None:
    engine = ReservationEngine(store)
    engine.book(ALICE, SeatId(40, 12))
    assert SeatId(40, 12) in engine.list_bookings()


def test_failed_save_leaves_previous_ledger(monkeypatch: pytest.MonkeyPatch, store: LedgerStore, engine: ReservationEngine) -> None:
    engine.book(ALICE, SeatId(1, 1))

    def _fail(ledger):
        raise StoreUnavailable("disk full")

    monkeypatch.setattr(store, "save", _fail)

    with pytest.raises(StoreUnavailable):
        engine.book(BOB, SeatId(1, 2))
    with pytest.raises(StoreUnavailable):
        engine.cancel(ALICE, SeatId(1, 1))

    monkeypatch.undo()
    assert list(engine.list_bookings()) == [SeatId(1, 1)]


def test_random_sequences_preserve_invariants(tmp_path: Path) -> None:
    layout = SeatLayout(benches=3, seats_per_bench=3)
    engine = ReservationEngine(LedgerStore(tmp_path / "bookings.json"), layout=layout)
    callers = [ALICE, BOB, CAROL, ADMIN]
    seats = list(layout.seats())
    rng = random.Random(1234)

    for _ in range(150):
        caller = rng.choice(callers)
        seat = rng.choice(seats)
        before = engine.list_bookings()
        try:
            if rng.random() < 0.6:
                engine.book(caller, seat)
            else:
                engine.cancel(caller, seat)
        except SeatBookingError:
            assert engine.list_bookings() == before
        _assert_invariants(engine)
