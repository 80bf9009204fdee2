# Payment endpoints: pay for a booking, inspect/update payments, and payment totals.
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from .. import bookings, models, payments, schemas
from ..rate_limit import rate_limit
from .auth import forbid, get_current_user, is_admin, require_admin
from .bookings import ensure_booking_access
from .properties import ensure_property_owner

router = APIRouter()


def ensure_payment_owner(db: Session, payment_id: int, user: models.User) -> None:
    if not is_admin(user) and not payments.is_payment_owner(db, payment_id, user.username):
        raise forbid("Not allowed to change this payment")


@router.post(
    "/bookings/{booking_id}/payment",
    response_model=schemas.PaymentRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("write"))],
)
def make_payment(
    booking_id: int,
    payload: schemas.PaymentCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Payment:
    if not bookings.is_booking_owner(db, booking_id, user.username):
        raise forbid("Only the renter of this booking may pay for it")
    return payments.make_payment(
        db,
        booking_id,
        amount=payload.amount,
        method=payload.payment_method,
        transaction_id=payload.transaction_id,
    )


@router.get("/bookings/{booking_id}/payment", response_model=schemas.PaymentRead)
def get_booking_payment(
    booking_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Payment:
    ensure_booking_access(db, booking_id, user)
    return payments.get_payment_for_booking(db, booking_id)


@router.delete(
    "/bookings/{booking_id}/payment",
    response_model=schemas.MessageResponse,
    dependencies=[Depends(rate_limit("write"))],
)
def delete_booking_payment(
    booking_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_admin),
) -> schemas.MessageResponse:
    payments.delete_by_booking(db, booking_id)
    return schemas.MessageResponse(message=f"Payment deleted successfully for booking ID: {booking_id}")


@router.get("/payments/me", response_model=List[schemas.PaymentRead])
def list_my_payments(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> List[models.Payment]:
    return payments.list_payments_for_renter(db, user.id)


@router.get("/payments/me/total", response_model=schemas.TotalRead)
def my_total(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.TotalRead:
    return schemas.TotalRead(total=payments.total_paid_by_renter(db, user.id))


@router.get("/payments/total", response_model=schemas.TotalRead)
def platform_total(
    db: Session = Depends(get_db),
    user: models.User = Depends(require_admin),
) -> schemas.TotalRead:
    return schemas.TotalRead(total=payments.total_paid_platform(db))


@router.get("/properties/{property_id}/payments/total", response_model=schemas.TotalRead)
def property_total(
    property_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.TotalRead:
    ensure_property_owner(db, property_id, user)
    return schemas.TotalRead(total=payments.total_paid_for_property(db, property_id))


@router.put(
    "/payments/{payment_id}",
    response_model=schemas.PaymentRead,
    dependencies=[Depends(rate_limit("write"))],
)
def update_payment(
    payment_id: int,
    payload: schemas.PaymentUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Payment:
    ensure_payment_owner(db, payment_id, user)
    return payments.update_payment(
        db,
        payment_id,
        method=payload.payment_method,
        transaction_id=payload.transaction_id,
        amount=payload.amount,
    )


@router.patch(
    "/payments/{payment_id}/status",
    response_model=schemas.PaymentRead,
    dependencies=[Depends(rate_limit("write"))],
)
def update_payment_status(
    payment_id: int,
    payload: schemas.PaymentStatusUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_admin),
) -> models.Payment:
    return payments.update_status(db, payment_id, payload.payment_status)


@router.patch(
    "/payments/{payment_id}/method",
    response_model=schemas.PaymentRead,
    dependencies=[Depends(rate_limit("write"))],
)
def update_payment_method(
    payment_id: int,
    payload: schemas.PaymentMethodUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Payment:
    ensure_payment_owner(db, payment_id, user)
    return payments.update_method(db, payment_id, payload.payment_method)
