# Persistence gateway: the only route from the core to durable state.
# Wraps a SQLAlchemy Session with transactional scopes, identity/foreign-key lookups,
# the booking overlap query, and cascade deletes.
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterator, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .db import is_sqlite
from .errors import Conflict, NotFound, RentifyError, StorageError

logger = logging.getLogger("rentify.gateway")

T = TypeVar("T")


class Gateway:
    """
    Identity-addressed access to entities within the caller's transaction.

    Lookups never follow live object references; cross-entity navigation is always a
    query by foreign key.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # ----------------
    # Generic access
    # ----------------
    def get(self, model: Type[T], ident: int) -> Optional[T]:
        return self.db.get(model, ident)

    def require(self, model: Type[T], ident: int, label: Optional[str] = None) -> T:
        obj = self.db.get(model, ident)
        if obj is None:
            raise NotFound(f"{label or model.__name__} not found")
        return obj

    def find_by(self, model: Type[T], **criteria) -> List[T]:
        return self.db.query(model).filter_by(**criteria).order_by(model.id.asc()).all()

    def first_by(self, model: Type[T], **criteria) -> Optional[T]:
        return self.db.query(model).filter_by(**criteria).order_by(model.id.asc()).first()

    def add(self, obj: T) -> T:
        # Flush so generated ids are visible to the rest of the transaction
        self.db.add(obj)
        self.db.flush()
        return obj

    def delete(self, obj) -> None:
        self.db.delete(obj)
        self.db.flush()

    # ----------------
    # Domain queries
    # ----------------
    def user_by_username(self, username: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.username == username).first()

    def lock_property(self, property_id: int) -> models.Property:
        """
        Load a property, taking a row lock where the dialect supports it.

        SQLite has no SELECT ... FOR UPDATE; there the per-property booking lock is the only guard.
        """
        q = self.db.query(models.Property).filter(models.Property.id == property_id)
        if not is_sqlite(self.db):
            q = q.with_for_update()
        prop = q.first()
        if prop is None:
            raise NotFound("Property not found")
        return prop

    def overlapping_bookings(
        self,
        property_id: int,
        start_date: date,
        end_date: date,
    ) -> List[models.Booking]:
        """
        Non-cancelled bookings of the property whose stored range intersects [start_date, end_date].

        Closed intervals: stored.end_date >= start_date AND stored.start_date <= end_date.
        """
        q = self.db.query(models.Booking).filter(
            models.Booking.property_id == property_id,
            models.Booking.status != models.BookingStatus.CANCELLED,
            models.Booking.end_date >= start_date,
            models.Booking.start_date <= end_date,
        )
        return q.order_by(models.Booking.start_date.asc(), models.Booking.id.asc()).all()

    def payment_for_booking(self, booking_id: int) -> Optional[models.Payment]:
        return self.first_by(models.Payment, booking_id=booking_id)

    def review_for_booking(self, booking_id: int) -> Optional[models.Review]:
        return self.first_by(models.Review, booking_id=booking_id)

    def delete_booking(self, booking: models.Booking) -> None:
        """Delete a booking together with its payment and review (they never outlive it)."""
        payment = self.payment_for_booking(booking.id)
        if payment is not None:
            self.db.delete(payment)
        review = self.review_for_booking(booking.id)
        if review is not None:
            self.db.delete(review)
        # Children first so the FK never points at a missing booking, even mid-flush
        self.db.flush()
        self.db.delete(booking)
        self.db.flush()


@contextmanager
def transaction(db: Session) -> Iterator[Gateway]:
    """
    Run a unit of work atomically.

    - Commits when the block exits normally.
    - Rolls back on any exception; nothing written inside the block survives a failure.
    - Domain errors propagate unchanged; IntegrityError becomes Conflict (unique keys settle races);
      any other SQLAlchemy failure becomes StorageError.
    """
    gw = Gateway(db)
    try:
        yield gw
        db.commit()
    except RentifyError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        logger.info("gateway.integrity_conflict", extra={"error": str(exc.orig)})
        raise Conflict("Conflicting write rejected by a uniqueness or integrity constraint") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("gateway.storage_error: %s", exc)
        raise StorageError("Storage failure, please retry") from exc
    except Exception:
        db.rollback()
        raise


@contextmanager
def read_only(db: Session) -> Iterator[Gateway]:
    """Read scope: never commits, always ends the transaction so no snapshot is held open."""
    try:
        yield Gateway(db)
    except SQLAlchemyError as exc:
        logger.error("gateway.storage_error: %s", exc)
        raise StorageError("Storage failure, please retry") from exc
    finally:
        db.rollback()
