# Booking lifecycle: creation under the per-property lock, listing, ownership, status transitions
# and cascade deletion. Every mutation runs in one gateway transaction (all-or-nothing).
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Dict, FrozenSet, List

from sqlalchemy.orm import Session

from . import intervals, models, pricing
from .errors import Conflict, IllegalTransition, NotFound, Unavailable
from .gateway import read_only, transaction
from .locks import booking_lock
from .models import BookingStatus, PaymentStatus

logger = logging.getLogger("rentify.bookings")

# COMPLETED and CANCELLED are terminal
LEGAL_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def create_booking(
    db: Session,
    *,
    property_id: int,
    renter_id: int,
    start_date: date,
    end_date: date,
) -> models.Booking:
    """
    Reserve a property for [start_date, end_date] (inclusive) on behalf of a renter.

    Raises:
    - InvalidRangeError: end_date before start_date
    - NotFound: unknown property or renter
    - Unavailable: the listing is switched off
    - Conflict: a non-cancelled booking of the property overlaps the range
    - StorageError: the property lock could not be taken in time, or the write failed

    Availability check, overlap check and insert happen in one transaction while holding
    the property's booking lock, so concurrent overlapping requests cannot both succeed.
    """
    # Fail fast on a malformed range before touching storage
    pricing.stay_days(start_date, end_date)

    with booking_lock(property_id):
        with transaction(db) as gw:
            prop = gw.lock_property(property_id)
            gw.require(models.User, renter_id, "User")

            if not prop.availability:
                raise Unavailable("Property is not available for booking")

            if intervals.has_overlap(gw, property_id, start_date, end_date):
                raise Conflict("Property is already booked for the selected dates")

            booking = gw.add(
                models.Booking(
                    property_id=property_id,
                    renter_id=renter_id,
                    start_date=start_date,
                    end_date=end_date,
                    total_price=pricing.price(prop.price_per_day, start_date, end_date),
                    booking_date=datetime.now(timezone.utc),
                    status=BookingStatus.PENDING,
                )
            )

    logger.info(
        "booking.created",
        extra={
            "booking_id": booking.id,
            "property_id": property_id,
            "renter_id": renter_id,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
        },
    )
    return booking


def get_booking(db: Session, booking_id: int) -> models.Booking:
    with read_only(db) as gw:
        return gw.require(models.Booking, booking_id, "Booking")


def list_bookings_for_renter(db: Session, renter_id: int) -> List[models.Booking]:
    """All bookings of a renter ordered by (start_date, id). Empty results raise NotFound."""
    with read_only(db) as gw:
        gw.require(models.User, renter_id, "User")
        items = (
            gw.db.query(models.Booking)
            .filter(models.Booking.renter_id == renter_id)
            .order_by(models.Booking.start_date.asc(), models.Booking.id.asc())
            .all()
        )
        if not items:
            raise NotFound("No bookings found for this user")
        return items


def list_bookings_for_property(db: Session, property_id: int) -> List[models.Booking]:
    with read_only(db) as gw:
        gw.require(models.Property, property_id, "Property")
        items = (
            gw.db.query(models.Booking)
            .filter(models.Booking.property_id == property_id)
            .order_by(models.Booking.start_date.asc(), models.Booking.id.asc())
            .all()
        )
        if not items:
            raise NotFound("No bookings found for this property")
        return items


def is_booking_owner(db: Session, booking_id: int, username: str) -> bool:
    """Capability check for the transport layer: does `username` own the booking?"""
    with read_only(db) as gw:
        booking = gw.require(models.Booking, booking_id, "Booking")
        renter = gw.get(models.User, booking.renter_id)
        return renter is not None and renter.username == username


def transition(db: Session, booking_id: int, new_status: BookingStatus) -> models.Booking:
    """
    Move a booking to `new_status`.

    Legal: PENDING -> COMPLETED, PENDING -> CANCELLED. Anything else, including a no-op
    transition into the current status, raises IllegalTransition. A booking whose payment
    has completed cannot be cancelled.
    """
    new_status = BookingStatus(new_status)
    with transaction(db) as gw:
        booking = gw.require(models.Booking, booking_id, "Booking")
        current = BookingStatus(booking.status)
        if new_status not in LEGAL_TRANSITIONS[current]:
            raise IllegalTransition(f"Cannot change booking status from {current.value} to {new_status.value}")

        if new_status is BookingStatus.CANCELLED:
            payment = gw.payment_for_booking(booking.id)
            if payment is not None and payment.payment_status == PaymentStatus.COMPLETED:
                raise IllegalTransition("Cannot cancel a booking whose payment is completed")

        booking.status = new_status
        gw.db.flush()

    logger.info(
        "booking.transition",
        extra={"booking_id": booking_id, "from": current.value, "to": new_status.value},
    )
    return booking


def delete_booking(db: Session, booking_id: int) -> None:
    """Remove a booking and, in the same transaction, its payment and review."""
    with transaction(db) as gw:
        booking = gw.require(models.Booking, booking_id, "Booking")
        gw.delete_booking(booking)
    logger.info("booking.deleted", extra={"booking_id": booking_id})
