# Periodic policy jobs that sit outside the core (e.g., concluding stays that have elapsed).
# These utilities are invoked from an opt-in startup thread or an external scheduler.
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from . import bookings, models
from .db import SessionLocal
from .errors import IllegalTransition, NotFound
from .models import BookingStatus, PaymentStatus

logger = logging.getLogger("rentify.sweepers")


def complete_elapsed_bookings(db: Optional[Session] = None, today: Optional[date] = None) -> int:
    """
    Mark paid PENDING bookings whose stay has ended (end_date < today, UTC) as COMPLETED.

    Semantics:
    - Goes through bookings.transition, so the regular transition rules apply.
    - Idempotent across repeated runs; a booking changed concurrently is skipped.
    - Accepts an optional Session; otherwise creates and cleans up its own.

    Returns:
    - Number of bookings transitioned.
    """
    created_session = False
    if db is None:
        db = SessionLocal()
        created_session = True

    try:
        today = today or datetime.now(timezone.utc).date()
        ids = [
            row.id
            for row in (
                db.query(models.Booking.id)
                .join(models.Payment, models.Payment.booking_id == models.Booking.id)
                .filter(
                    models.Booking.status == BookingStatus.PENDING,
                    models.Booking.end_date < today,
                    models.Payment.payment_status == PaymentStatus.COMPLETED,
                )
                .order_by(models.Booking.id.asc())
                .all()
            )
        ]
        db.rollback()

        done = 0
        for booking_id in ids:
            try:
                bookings.transition(db, booking_id, BookingStatus.COMPLETED)
                done += 1
            except (IllegalTransition, NotFound) as exc:
                # Changed or deleted since the scan; the next run sees the current state
                logger.info("sweep.skipped", extra={"booking_id": booking_id, "reason": exc.detail})
        if done:
            logger.info("sweep.completed", extra={"count": done, "today": today.isoformat()})
        return done
    finally:
        if created_session:
            db.close()
