# Concurrency: racing overlapping booking requests, racing payments, and the bounded booking-lock wait.
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest

from rentify import bookings, locks, models, payments
from rentify.db import SessionLocal
from rentify.errors import Conflict, StorageError
from rentify.locks import booking_lock
from rentify.models import BookingStatus, PaymentMethod


def _attempt(fn):
    """Run `fn(session)` on a fresh session; return 'ok' or the error kind."""
    session = SessionLocal()
    try:
        fn(session)
        return "ok"
    except (Conflict, StorageError) as exc:
        return exc.kind
    finally:
        session.close()


@pytest.mark.parametrize("workers", [2, 8])
def test_overlapping_requests_exactly_one_wins(db, make_user, make_property, workers):
    renters = [make_user(f"renter{i}") for i in range(workers)]
    prop = make_property("80.00")
    ranges = [(date(2024, 6, 1 + i % 3), date(2024, 6, 5 + i % 3)) for i in range(workers)]
    renter_ids = [r.id for r in renters]
    property_id = prop.id

    def request(i):
        start, end = ranges[i]
        return _attempt(
            lambda s: bookings.create_booking(
                s, property_id=property_id, renter_id=renter_ids[i], start_date=start, end_date=end
            )
        )

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(request, range(workers)))

    assert results.count("ok") == 1
    assert results.count("conflict") == workers - 1
    live = (
        db.query(models.Booking)
        .filter(models.Booking.property_id == property_id, models.Booking.status != BookingStatus.CANCELLED)
        .count()
    )
    assert live == 1


def test_disjoint_requests_all_succeed(db, make_user, make_property):
    renter = make_user("alice")
    prop = make_property()
    renter_id, property_id = renter.id, prop.id

    def request(i):
        day = date(2024, 7, 1 + 2 * i)
        return _attempt(
            lambda s: bookings.create_booking(
                s, property_id=property_id, renter_id=renter_id, start_date=day, end_date=day
            )
        )

    with ThreadPoolExecutor(max_workers=6) as pool:
        results = list(pool.map(request, range(6)))

    assert results == ["ok"] * 6
    assert len(bookings.list_bookings_for_property(db, property_id)) == 6


def test_racing_payments_one_recorded(db, make_user, make_property):
    renter = make_user("alice")
    prop = make_property("50.00")
    b = bookings.create_booking(
        db, property_id=prop.id, renter_id=renter.id, start_date=date(2024, 8, 1), end_date=date(2024, 8, 2)
    )
    booking_id = b.id

    def pay(_):
        return _attempt(
            lambda s: payments.make_payment(s, booking_id, amount=Decimal("100.00"), method=PaymentMethod.CASH)
        )

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(pay, range(4)))

    assert results.count("ok") == 1
    assert set(results) <= {"ok", "conflict"}
    assert db.query(models.Payment).filter(models.Payment.booking_id == booking_id).count() == 1


def test_lock_wait_is_bounded():
    with booking_lock(4242):
        with pytest.raises(StorageError) as excinfo:
            with booking_lock(4242, wait_ms=50):
                pass
    assert excinfo.value.retry_after == 1
    assert excinfo.value.status_code == 503

    # Released on exit: a fresh acquisition succeeds immediately
    with booking_lock(4242, wait_ms=50):
        pass


def test_local_lock_registry_does_not_grow(db, make_user, make_property):
    renter = make_user("alice")
    props = [make_property() for _ in range(20)]
    before = len(locks._local_locks)

    for p in props:
        bookings.create_booking(db, property_id=p.id, renter_id=renter.id, start_date=date(2024, 9, 1), end_date=date(2024, 9, 2))
    assert len(locks._local_locks) == before

    # Held and timed-out acquisitions are both released from the registry
    with booking_lock(777):
        assert "lock:booking:property:777" in locks._local_locks
        with pytest.raises(StorageError):
            with booking_lock(777, wait_ms=20):
                pass
    assert "lock:booking:property:777" not in locks._local_locks
