# Payment reconciliation: one payment per booking, amount pinned to the booking price,
# field updates, and exact Decimal aggregates.
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from . import models
from .errors import AmountMismatch, Conflict, IllegalState, NotFound
from .gateway import read_only, transaction
from .models import BookingStatus, PaymentMethod, PaymentStatus
from .pricing import to_money

logger = logging.getLogger("rentify.payments")

ZERO = Decimal("0.00")


def _sum(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def _check_amount(booking: models.Booking, amount: Decimal) -> None:
    if amount != booking.total_price:
        raise AmountMismatch("Payment amount does not match booking total price")


def make_payment(
    db: Session,
    booking_id: int,
    *,
    amount: Decimal,
    method: PaymentMethod,
    transaction_id: Optional[str] = None,
) -> models.Payment:
    """
    Record the payment for a booking.

    Raises:
    - InvalidArgument: `amount` is a float, unparseable, or finer than cents
    - NotFound: unknown booking
    - Conflict: the booking already has a payment (also when a concurrent insert wins the unique key)
    - IllegalState: the booking is cancelled
    - AmountMismatch: `amount` differs from the booking's total price

    The payment starts PENDING and inherits the booking's renter. Nothing is written on failure.
    """
    amount = to_money(amount, "Payment amount")
    with transaction(db) as gw:
        booking = gw.require(models.Booking, booking_id, "Booking")
        if gw.payment_for_booking(booking_id) is not None:
            raise Conflict("Payment already exists for this booking")
        if booking.status == BookingStatus.CANCELLED:
            raise IllegalState("Cannot pay for a cancelled booking")
        _check_amount(booking, amount)

        payment = gw.add(
            models.Payment(
                booking_id=booking.id,
                renter_id=booking.renter_id,
                amount=booking.total_price,
                payment_method=PaymentMethod(method),
                payment_status=PaymentStatus.PENDING,
                transaction_id=transaction_id,
                payment_date=datetime.now(timezone.utc),
            )
        )

    logger.info("payment.created", extra={"payment_id": payment.id, "booking_id": booking_id})
    return payment


def get_payment_for_booking(db: Session, booking_id: int) -> models.Payment:
    with read_only(db) as gw:
        payment = gw.payment_for_booking(booking_id)
        if payment is None:
            raise NotFound(f"Payment not found for booking ID: {booking_id}")
        return payment


def list_payments_for_renter(db: Session, renter_id: int) -> List[models.Payment]:
    with read_only(db) as gw:
        gw.require(models.User, renter_id, "User")
        payments = gw.find_by(models.Payment, renter_id=renter_id)
        if not payments:
            raise NotFound("No payments found for user")
        return payments


def is_payment_owner(db: Session, payment_id: int, username: str) -> bool:
    with read_only(db) as gw:
        payment = gw.require(models.Payment, payment_id, "Payment")
        renter = gw.get(models.User, payment.renter_id)
        return renter is not None and renter.username == username


def update_status(db: Session, payment_id: int, new_status: PaymentStatus) -> models.Payment:
    """Set the payment status; any value of PaymentStatus is accepted from any current status."""
    with transaction(db) as gw:
        payment = gw.require(models.Payment, payment_id, "Payment")
        payment.payment_status = PaymentStatus(new_status)
        gw.db.flush()
    logger.info("payment.status_updated", extra={"payment_id": payment_id, "status": PaymentStatus(new_status).value})
    return payment


def update_method(db: Session, payment_id: int, new_method: PaymentMethod) -> models.Payment:
    with transaction(db) as gw:
        payment = gw.require(models.Payment, payment_id, "Payment")
        payment.payment_method = PaymentMethod(new_method)
        gw.db.flush()
    logger.info("payment.method_updated", extra={"payment_id": payment_id, "method": PaymentMethod(new_method).value})
    return payment


def update_payment(
    db: Session,
    payment_id: int,
    *,
    method: PaymentMethod,
    transaction_id: Optional[str] = None,
    amount: Optional[Decimal] = None,
) -> models.Payment:
    """
    Re-submit a payment with new method/transaction details.

    Status goes back to PENDING and payment_date to now. The amount stays pinned to the
    booking price; a differing `amount` raises AmountMismatch.
    """
    if amount is not None:
        amount = to_money(amount, "Payment amount")
    with transaction(db) as gw:
        payment = gw.require(models.Payment, payment_id, "Payment")
        if amount is not None:
            booking = gw.require(models.Booking, payment.booking_id, "Booking")
            _check_amount(booking, amount)
        payment.payment_method = PaymentMethod(method)
        payment.transaction_id = transaction_id
        payment.payment_status = PaymentStatus.PENDING
        payment.payment_date = datetime.now(timezone.utc)
        gw.db.flush()
    logger.info("payment.resubmitted", extra={"payment_id": payment_id})
    return payment


def delete_by_booking(db: Session, booking_id: int) -> None:
    with transaction(db) as gw:
        payment = gw.payment_for_booking(booking_id)
        if payment is None:
            raise NotFound(f"Payment not found for booking ID: {booking_id}")
        gw.delete(payment)
    logger.info("payment.deleted", extra={"booking_id": booking_id})


# ----------------
# Aggregates
# ----------------
def total_paid_by_renter(db: Session, renter_id: int) -> Decimal:
    with read_only(db) as gw:
        gw.require(models.User, renter_id, "User")
        payments = gw.find_by(models.Payment, renter_id=renter_id)
        if not payments:
            raise NotFound("No payments found for user")
        return _sum(p.amount for p in payments)


def total_paid_platform(db: Session) -> Decimal:
    with read_only(db) as gw:
        amounts = [row.amount for row in gw.db.query(models.Payment.amount).all()]
        if not amounts:
            raise NotFound("No payments found")
        return _sum(amounts)


def total_paid_for_property(db: Session, property_id: int) -> Decimal:
    """
    Sum of payments whose booking belongs to the property.

    NotFound when the property has no bookings; bookings without payments contribute 0.00.
    """
    with read_only(db) as gw:
        gw.require(models.Property, property_id, "Property")
        has_bookings = (
            gw.db.query(models.Booking.id).filter(models.Booking.property_id == property_id).first()
        )
        if has_bookings is None:
            raise NotFound(f"No bookings found for property ID: {property_id}")
        rows = (
            gw.db.query(models.Payment.amount)
            .join(models.Booking, models.Booking.id == models.Payment.booking_id)
            .filter(models.Booking.property_id == property_id)
            .all()
        )
        return _sum(row.amount for row in rows)
