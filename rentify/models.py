# SQLAlchemy ORM models for the rental domain (users, properties, bookings, payments, reviews).
# Entities reference each other by foreign-key id only; navigation goes through rentify.gateway.
import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import declarative_mixin

from .db import Base


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "CREDIT_CARD"
    PAYPAL = "PAYPAL"
    BANK_TRANSFER = "BANK_TRANSFER"
    CASH = "CASH"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


# Money columns: fixed-point, two decimal places, returned as decimal.Decimal
Money = Numeric(10, 2)


@declarative_mixin
class TimestampMixin:
    """Common UTC-aware timestamps automatically managed by the database.

    - created_at: set on insert
    - updated_at: set on insert and updated on each modification
    """
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class User(Base, TimestampMixin):
    """Application account.

    Roles:
    - owner: lists and manages properties
    - renter: books properties, pays and reviews
    - admin: platform-wide reads and payment status changes
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String(64), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, index=True)


class Property(Base, TimestampMixin):
    """Rentable unit listed by an owner.

    `availability` is a manual listing toggle; it is not reconciled against booked ranges.
    """
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price_per_day = Column(Money, nullable=False)
    availability = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("price_per_day >= 0", name="ck_properties_price_non_negative"),
    )


class Booking(Base, TimestampMixin):
    """Reservation of a property for an inclusive [start_date, end_date] range.

    Status transitions:
    PENDING -> COMPLETED
            └── CANCELLED

    total_price is fixed at creation and never recalculated.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    renter_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_price = Column(Money, nullable=False)
    booking_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        Enum(BookingStatus, native_enum=False, length=20),
        nullable=False,
        default=BookingStatus.PENDING,
    )

    # Overlap lookups filter by property and both range bounds
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_bookings_range"),
        Index("ix_bookings_property_start", "property_id", "start_date"),
        Index("ix_bookings_property_end", "property_id", "end_date"),
        Index("ix_bookings_status", "status"),
    )


class Payment(Base, TimestampMixin):
    """Payment for exactly one booking; `booking_id` is unique."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True)
    renter_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Money, nullable=False)
    payment_method = Column(Enum(PaymentMethod, native_enum=False, length=20), nullable=False)
    payment_status = Column(
        Enum(PaymentStatus, native_enum=False, length=20),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    transaction_id = Column(String(255), nullable=True)
    payment_date = Column(DateTime(timezone=True), nullable=False)


class Review(Base, TimestampMixin):
    """Review of a concluded stay; `booking_id` is unique."""
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True)
    renter_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    review_date = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )
