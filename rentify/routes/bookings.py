# Booking endpoints: create, list, read, change status and delete bookings.
# Capability checks (booking owner / property owner / admin) run here; the core enforces the booking rules.
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from .. import bookings, models, properties, schemas
from ..gateway import read_only
from ..models import BookingStatus
from ..rate_limit import rate_limit
from .auth import forbid, get_current_user, is_admin, require_renter
from .properties import ensure_property_owner

router = APIRouter()


def to_read(db: Session, booking: models.Booking) -> schemas.BookingRead:
    """Booking read model with its optional payment/review ids resolved through the gateway."""
    out = schemas.BookingRead.model_validate(booking)
    with read_only(db) as gw:
        payment = gw.payment_for_booking(out.id)
        review = gw.review_for_booking(out.id)
        return out.model_copy(
            update={
                "payment_id": payment.id if payment else None,
                "review_id": review.id if review else None,
            }
        )


def ensure_booking_access(db: Session, booking_id: int, user: models.User) -> models.Booking:
    """Renter of the booking, owner of its property, or admin."""
    booking = bookings.get_booking(db, booking_id)
    if is_admin(user) or bookings.is_booking_owner(db, booking_id, user.username):
        return booking
    if properties.is_owner(db, booking.property_id, user.username):
        return booking
    raise forbid("Not allowed to access this booking")


@router.post(
    "/bookings",
    response_model=schemas.BookingRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("write"))],
)
def create_booking(
    payload: schemas.BookingCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_renter),
) -> schemas.BookingRead:
    obj = bookings.create_booking(
        db,
        property_id=payload.property_id,
        renter_id=user.id,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    return to_read(db, obj)


@router.get("/bookings/me", response_model=List[schemas.BookingRead])
def list_my_bookings(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> List[schemas.BookingRead]:
    return [to_read(db, b) for b in bookings.list_bookings_for_renter(db, user.id)]


@router.get("/bookings/{booking_id}", response_model=schemas.BookingRead)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.BookingRead:
    return to_read(db, ensure_booking_access(db, booking_id, user))


@router.get("/properties/{property_id}/bookings", response_model=List[schemas.BookingRead])
def list_property_bookings(
    property_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> List[schemas.BookingRead]:
    ensure_property_owner(db, property_id, user)
    return [to_read(db, b) for b in bookings.list_bookings_for_property(db, property_id)]


@router.patch(
    "/bookings/{booking_id}/status",
    response_model=schemas.BookingRead,
    dependencies=[Depends(rate_limit("write"))],
)
def change_status(
    booking_id: int,
    payload: schemas.BookingStatusUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.BookingRead:
    """
    Authorization:
    - Property owner or admin: any transition the lifecycle allows
    - Renter: may only cancel their own booking
    """
    booking = bookings.get_booking(db, booking_id)
    if not is_admin(user) and not properties.is_owner(db, booking.property_id, user.username):
        is_renter = bookings.is_booking_owner(db, booking_id, user.username)
        if not (is_renter and payload.status == BookingStatus.CANCELLED):
            raise forbid("Not allowed to change this booking")
    return to_read(db, bookings.transition(db, booking_id, payload.status))


@router.delete(
    "/bookings/{booking_id}",
    response_model=schemas.MessageResponse,
    dependencies=[Depends(rate_limit("write"))],
)
def delete_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.MessageResponse:
    if not is_admin(user) and not bookings.is_booking_owner(db, booking_id, user.username):
        raise forbid("Not allowed to delete this booking")
    bookings.delete_booking(db, booking_id)
    return schemas.MessageResponse(message=f"Booking ID {booking_id} deleted successfully")
