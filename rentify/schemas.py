# Pydantic models (request/response DTOs) used by the API layer.
# Keep models minimal and serializable; business rules live in the core modules.
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Literal, Optional
from datetime import date, datetime
from decimal import Decimal

from .models import BookingStatus, PaymentMethod, PaymentStatus


# Generic message envelope for operations without a resource body
class MessageResponse(BaseModel):
    message: str


# Properties
# Base attributes for a property listing (shared by create/read)
class PropertyBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price_per_day: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    availability: bool = True

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: str) -> str:
        # Trim surrounding whitespace before validation
        if isinstance(v, str):
            v = v.strip()
        return v


# Payload for creating a new property
class PropertyCreate(PropertyBase):
    pass


# Response shape when reading a property from the API
class PropertyRead(PropertyBase):
    id: int
    owner_id: int

    model_config = ConfigDict(from_attributes=True)


class PriceUpdate(BaseModel):
    price_per_day: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


class AvailabilityUpdate(BaseModel):
    availability: bool


class OwnershipRead(BaseModel):
    owner: bool


# Bookings
# Common booking fields shared by create/read
class BookingBase(BaseModel):
    property_id: int = Field(..., ge=1)
    start_date: date
    end_date: date


# Request payload for creating a booking; the price is always computed server-side
class BookingCreate(BookingBase):
    pass


# API response for a booking record
class BookingRead(BookingBase):
    id: int
    renter_id: int
    status: BookingStatus
    total_price: Decimal
    booking_date: datetime
    payment_id: Optional[int] = None
    review_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


# Payments
class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    payment_method: PaymentMethod
    transaction_id: Optional[str] = Field(None, max_length=255)


# Full re-submission of an existing payment; amount is optional and must still match the booking
class PaymentUpdate(BaseModel):
    payment_method: PaymentMethod
    transaction_id: Optional[str] = Field(None, max_length=255)
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)


class PaymentRead(BaseModel):
    id: int
    booking_id: int
    renter_id: int
    amount: Decimal
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    transaction_id: Optional[str] = None
    payment_date: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class PaymentMethodUpdate(BaseModel):
    payment_method: PaymentMethod


class TotalRead(BaseModel):
    total: Decimal


# Reviews
class ReviewBase(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class ReviewCreate(ReviewBase):
    pass


class ReviewUpdate(ReviewBase):
    pass


class ReviewRead(ReviewBase):
    id: int
    booking_id: int
    renter_id: int
    property_id: int
    review_date: datetime

    model_config = ConfigDict(from_attributes=True)


class RatingUpdate(BaseModel):
    rating: int = Field(..., ge=1, le=5)


class CommentUpdate(BaseModel):
    comment: str = Field(..., min_length=1, max_length=2000)

    # Trim surrounding whitespace before validation
    @field_validator("comment", mode="before")
    @classmethod
    def normalize_comment(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip()
        return v


# Authentication and user models

# Roles a user may sign up with; admins are provisioned out of band
SignupRole = Literal["owner", "renter"]
Role = Literal["owner", "renter", "admin"]


class UserBase(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)

    # Normalize usernames to lowercase without surrounding whitespace
    @field_validator("username", mode="before")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip().lower()
        return v


# Request payload for user registration
class UserCreate(UserBase):
    password: str = Field(..., min_length=8)
    role: SignupRole = "renter"


# API response for a user record
class UserRead(UserBase):
    id: int
    role: Role

    model_config = ConfigDict(from_attributes=True)


# Request payload for logging in
class LoginRequest(UserBase):
    password: str = Field(..., min_length=8)


# OAuth2-style token response bundled with the current user profile
class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
