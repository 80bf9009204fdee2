# Review gate: reviews only for completed bookings, only by the booking's renter, one per booking.
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models
from .errors import Conflict, Forbidden, IllegalState, InvalidArgument, NotFound
from .gateway import Gateway, read_only, transaction
from .models import BookingStatus

logger = logging.getLogger("rentify.reviews")

MIN_RATING = 1
MAX_RATING = 5


def _check_rating(rating: int) -> None:
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidArgument(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}")


def _owned_review(gw: Gateway, review_id: int, requester_id: int) -> models.Review:
    review = gw.require(models.Review, review_id, "Review")
    if review.renter_id != requester_id:
        raise Forbidden("Only the author may change this review")
    return review


def create_review(
    db: Session,
    booking_id: int,
    renter_id: int,
    *,
    rating: int,
    comment: Optional[str] = None,
) -> models.Review:
    """
    Review a concluded stay.

    Raises:
    - InvalidArgument: rating outside [1, 5]
    - NotFound: unknown booking
    - Forbidden: requester is not the booking's renter
    - Conflict: the booking already has a review
    - IllegalState: the booking is not COMPLETED
    """
    _check_rating(rating)
    with transaction(db) as gw:
        booking = gw.require(models.Booking, booking_id, "Booking")
        if booking.renter_id != renter_id:
            raise Forbidden("Only the renter of this booking may review it")
        if gw.review_for_booking(booking_id) is not None:
            raise Conflict("Review already exists for this booking")
        if booking.status != BookingStatus.COMPLETED:
            raise IllegalState("Booking must be completed to create a review")

        review = gw.add(
            models.Review(
                booking_id=booking.id,
                renter_id=booking.renter_id,
                property_id=booking.property_id,
                rating=rating,
                comment=comment,
                review_date=datetime.now(timezone.utc),
            )
        )

    logger.info(
        "review.created",
        extra={"review_id": review.id, "booking_id": booking_id, "rating": rating},
    )
    return review


def get_review_for_booking(db: Session, booking_id: int) -> models.Review:
    with read_only(db) as gw:
        gw.require(models.Booking, booking_id, "Booking")
        review = gw.review_for_booking(booking_id)
        if review is None:
            raise NotFound("No reviews found for this booking")
        return review


def list_reviews_for_renter(db: Session, renter_id: int) -> List[models.Review]:
    with read_only(db) as gw:
        gw.require(models.User, renter_id, "User")
        reviews = gw.find_by(models.Review, renter_id=renter_id)
        if not reviews:
            raise NotFound("No reviews found for this user")
        return reviews


def list_reviews_for_property(db: Session, property_id: int) -> List[models.Review]:
    with read_only(db) as gw:
        gw.require(models.Property, property_id, "Property")
        reviews = gw.find_by(models.Review, property_id=property_id)
        if not reviews:
            raise NotFound("No reviews found for this property")
        return reviews


def is_review_owner(db: Session, review_id: int, username: str) -> bool:
    with read_only(db) as gw:
        review = gw.require(models.Review, review_id, "Review")
        renter = gw.get(models.User, review.renter_id)
        return renter is not None and renter.username == username


def update_review(
    db: Session,
    review_id: int,
    requester_id: int,
    *,
    rating: int,
    comment: Optional[str] = None,
) -> models.Review:
    _check_rating(rating)
    with transaction(db) as gw:
        review = _owned_review(gw, review_id, requester_id)
        review.rating = rating
        review.comment = comment
        review.review_date = datetime.now(timezone.utc)
        gw.db.flush()
    logger.info("review.updated", extra={"review_id": review_id})
    return review


def update_review_rating(db: Session, review_id: int, requester_id: int, rating: int) -> models.Review:
    _check_rating(rating)
    with transaction(db) as gw:
        review = _owned_review(gw, review_id, requester_id)
        review.rating = rating
        review.review_date = datetime.now(timezone.utc)
        gw.db.flush()
    logger.info("review.rating_updated", extra={"review_id": review_id, "rating": rating})
    return review


def update_review_description(db: Session, review_id: int, requester_id: int, comment: str) -> models.Review:
    if comment is None or not comment.strip():
        raise InvalidArgument("Comment must not be empty")
    with transaction(db) as gw:
        review = _owned_review(gw, review_id, requester_id)
        review.comment = comment
        review.review_date = datetime.now(timezone.utc)
        gw.db.flush()
    logger.info("review.comment_updated", extra={"review_id": review_id})
    return review


def delete_review(db: Session, review_id: int, requester_id: int) -> None:
    """
    Delete the requester's review.

    The review row holds the only link to its booking, so removing it leaves the booking
    without a review reference and free to be reviewed again.
    """
    with transaction(db) as gw:
        review = _owned_review(gw, review_id, requester_id)
        gw.delete(review)
    logger.info("review.deleted", extra={"review_id": review_id})
