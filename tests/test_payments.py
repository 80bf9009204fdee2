# Payment core test suite: amount pinning, one payment per booking, updates, deletion and Decimal totals.
from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from rentify import bookings, models, payments
from rentify.errors import AmountMismatch, Conflict, IllegalState, InvalidArgument, NotFound
from rentify.models import BookingStatus, PaymentMethod, PaymentStatus


@pytest.fixture()
def booking(db, make_user, make_property):
    """A PENDING 5-day booking at 100.00/day (total 500.00) for renter 'alice'."""
    renter = make_user("alice")
    prop = make_property("100.00")
    return bookings.create_booking(
        db, property_id=prop.id, renter_id=renter.id, start_date=date(2024, 1, 1), end_date=date(2024, 1, 5)
    )


def test_make_payment_records_pending_payment(db, booking):
    p = payments.make_payment(
        db, booking.id, amount=Decimal("500.00"), method=PaymentMethod.CREDIT_CARD, transaction_id="tx-1"
    )

    assert p.amount == Decimal("500.00")
    assert p.payment_status == PaymentStatus.PENDING
    assert p.payment_method == PaymentMethod.CREDIT_CARD
    assert p.renter_id == booking.renter_id
    assert p.transaction_id == "tx-1"
    assert payments.get_payment_for_booking(db, booking.id).id == p.id


@pytest.mark.parametrize("amount", ["499.99", "500.01", "0.00", "100.00"])
def test_amount_mismatch_leaves_no_record(db, booking, amount):
    with pytest.raises(AmountMismatch):
        payments.make_payment(db, booking.id, amount=Decimal(amount), method=PaymentMethod.PAYPAL)
    assert db.query(models.Payment).count() == 0
    with pytest.raises(NotFound):
        payments.get_payment_for_booking(db, booking.id)


@pytest.mark.parametrize("amount", [500.0, "abc", "500.001", None])
def test_malformed_amount_is_invalid_argument(db, booking, amount):
    with pytest.raises(InvalidArgument):
        payments.make_payment(db, booking.id, amount=amount, method=PaymentMethod.PAYPAL)
    assert db.query(models.Payment).count() == 0


def test_float_amount_is_rejected_even_when_it_looks_right(db, make_user, make_property):
    renter = make_user("bob")
    prop = make_property("33.10")
    b = bookings.create_booking(
        db, property_id=prop.id, renter_id=renter.id, start_date=date(2024, 2, 1), end_date=date(2024, 2, 1)
    )
    with pytest.raises(InvalidArgument):
        payments.make_payment(db, b.id, amount=33.1, method=PaymentMethod.CASH)
    p = payments.make_payment(db, b.id, amount="33.10", method=PaymentMethod.CASH)
    with pytest.raises(InvalidArgument):
        payments.update_payment(db, p.id, method=PaymentMethod.PAYPAL, amount="abc")


def test_second_payment_conflicts(db, booking):
    payments.make_payment(db, booking.id, amount=Decimal("500.00"), method=PaymentMethod.PAYPAL)
    with pytest.raises(Conflict):
        payments.make_payment(db, booking.id, amount=Decimal("500.00"), method=PaymentMethod.CASH)
    assert db.query(models.Payment).count() == 1


def test_payment_for_unknown_or_cancelled_booking(db, booking):
    with pytest.raises(NotFound):
        payments.make_payment(db, 4242, amount=Decimal("500.00"), method=PaymentMethod.CASH)

    bookings.transition(db, booking.id, BookingStatus.CANCELLED)
    with pytest.raises(IllegalState):
        payments.make_payment(db, booking.id, amount=Decimal("500.00"), method=PaymentMethod.CASH)


def test_update_status_and_method(db, booking):
    p = payments.make_payment(db, booking.id, amount=Decimal("500.00"), method=PaymentMethod.PAYPAL)

    assert payments.update_status(db, p.id, PaymentStatus.FAILED).payment_status == PaymentStatus.FAILED
    assert payments.update_status(db, p.id, PaymentStatus.COMPLETED).payment_status == PaymentStatus.COMPLETED
    assert payments.update_method(db, p.id, PaymentMethod.BANK_TRANSFER).payment_method == PaymentMethod.BANK_TRANSFER

    with pytest.raises(NotFound):
        payments.update_status(db, 777, PaymentStatus.REFUNDED)


def test_update_payment_resets_status(db, booking):
    p = payments.make_payment(db, booking.id, amount=Decimal("500.00"), method=PaymentMethod.PAYPAL)
    payments.update_status(db, p.id, PaymentStatus.FAILED)

    updated = payments.update_payment(db, p.id, method=PaymentMethod.CREDIT_CARD, transaction_id="retry-2")
    assert updated.payment_status == PaymentStatus.PENDING
    assert updated.payment_method == PaymentMethod.CREDIT_CARD
    assert updated.transaction_id == "retry-2"
    assert updated.amount == Decimal("500.00")

    with pytest.raises(AmountMismatch):
        payments.update_payment(db, p.id, method=PaymentMethod.CASH, amount=Decimal("1.00"))
    # Failed update left the previous state intact
    assert payments.get_payment_for_booking(db, booking.id).payment_method == PaymentMethod.CREDIT_CARD


def test_delete_by_booking(db, booking):
    payments.make_payment(db, booking.id, amount=Decimal("500.00"), method=PaymentMethod.PAYPAL)
    payments.delete_by_booking(db, booking.id)

    with pytest.raises(NotFound):
        payments.get_payment_for_booking(db, booking.id)
    with pytest.raises(NotFound):
        payments.delete_by_booking(db, booking.id)
    # The slot is free again
    assert payments.make_payment(db, booking.id, amount=Decimal("500.00"), method=PaymentMethod.CASH).id


def test_is_payment_owner(db, booking, make_user):
    make_user("bob")
    p = payments.make_payment(db, booking.id, amount=Decimal("500.00"), method=PaymentMethod.PAYPAL)
    assert payments.is_payment_owner(db, p.id, "alice") is True
    assert payments.is_payment_owner(db, p.id, "bob") is False


# ----------------
# Aggregates
# ----------------
def test_totals_are_exact_decimals(db, make_user, make_property):
    alice = make_user("alice")
    bob = make_user("bob")
    prop = make_property("33.33")
    other = make_property("0.10")

    def pay(renter, p, start, end):
        b = bookings.create_booking(db, property_id=p.id, renter_id=renter.id, start_date=start, end_date=end)
        payments.make_payment(db, b.id, amount=b.total_price, method=PaymentMethod.CASH)
        return b

    pay(alice, prop, date(2024, 1, 1), date(2024, 1, 3))     # 99.99
    pay(alice, other, date(2024, 1, 1), date(2024, 1, 3))    # 0.30
    pay(bob, prop, date(2024, 2, 1), date(2024, 2, 1))       # 33.33

    assert payments.total_paid_by_renter(db, alice.id) == Decimal("100.29")
    assert payments.total_paid_by_renter(db, bob.id) == Decimal("33.33")
    assert payments.total_paid_platform(db) == Decimal("133.62")
    assert payments.total_paid_for_property(db, prop.id) == Decimal("133.32")
    assert payments.list_payments_for_renter(db, alice.id)[0].renter_id == alice.id


def test_totals_without_payments(db, make_user, make_property):
    carol = make_user("carol")
    prop = make_property()
    empty = make_property()

    with pytest.raises(NotFound):
        payments.total_paid_by_renter(db, carol.id)
    with pytest.raises(NotFound):
        payments.list_payments_for_renter(db, carol.id)
    with pytest.raises(NotFound):
        payments.total_paid_platform(db)
    with pytest.raises(NotFound):
        payments.total_paid_for_property(db, empty.id)

    # Bookings without payments sum to zero rather than failing
    bookings.create_booking(db, property_id=prop.id, renter_id=carol.id, start_date=date(2024, 1, 1), end_date=date(2024, 1, 1))
    assert payments.total_paid_for_property(db, prop.id) == Decimal("0.00")
