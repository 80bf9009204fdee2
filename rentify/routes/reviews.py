# Review endpoints. The review gate re-validates authorship itself, so routes pass the caller's id through.
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, reviews, schemas
from ..rate_limit import rate_limit
from .auth import get_current_user

router = APIRouter()


@router.post(
    "/bookings/{booking_id}/review",
    response_model=schemas.ReviewRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("write"))],
)
def create_review(
    booking_id: int,
    payload: schemas.ReviewCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Review:
    return reviews.create_review(db, booking_id, user.id, rating=payload.rating, comment=payload.comment)


@router.get("/bookings/{booking_id}/review", response_model=schemas.ReviewRead)
def get_booking_review(booking_id: int, db: Session = Depends(get_db)) -> models.Review:
    return reviews.get_review_for_booking(db, booking_id)


@router.get("/reviews/me", response_model=List[schemas.ReviewRead])
def list_my_reviews(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> List[models.Review]:
    return reviews.list_reviews_for_renter(db, user.id)


@router.get("/properties/{property_id}/reviews", response_model=List[schemas.ReviewRead])
def list_property_reviews(property_id: int, db: Session = Depends(get_db)) -> List[models.Review]:
    return reviews.list_reviews_for_property(db, property_id)


@router.put(
    "/reviews/{review_id}",
    response_model=schemas.ReviewRead,
    dependencies=[Depends(rate_limit("write"))],
)
def update_review(
    review_id: int,
    payload: schemas.ReviewUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Review:
    return reviews.update_review(db, review_id, user.id, rating=payload.rating, comment=payload.comment)


@router.patch(
    "/reviews/{review_id}/rating",
    response_model=schemas.ReviewRead,
    dependencies=[Depends(rate_limit("write"))],
)
def update_rating(
    review_id: int,
    payload: schemas.RatingUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Review:
    return reviews.update_review_rating(db, review_id, user.id, payload.rating)


@router.patch(
    "/reviews/{review_id}/comment",
    response_model=schemas.ReviewRead,
    dependencies=[Depends(rate_limit("write"))],
)
def update_comment(
    review_id: int,
    payload: schemas.CommentUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Review:
    return reviews.update_review_description(db, review_id, user.id, payload.comment)


@router.delete(
    "/reviews/{review_id}",
    response_model=schemas.MessageResponse,
    dependencies=[Depends(rate_limit("write"))],
)
def delete_review(
    review_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.MessageResponse:
    reviews.delete_review(db, review_id, user.id)
    return schemas.MessageResponse(message=f"Review with ID {review_id} deleted successfully")
