# Property registry: listings, per-day rate and the manual availability toggle.
# Rate and availability changes never touch existing bookings.
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models
from .errors import InvalidArgument
from .gateway import read_only, transaction
from .pricing import to_money

logger = logging.getLogger("rentify.properties")


def _check_rate(price_per_day: Decimal) -> Decimal:
    rate = to_money(price_per_day, "Price per day")
    if rate < 0:
        raise InvalidArgument("Price per day must not be negative")
    return rate


def create_property(
    db: Session,
    *,
    owner_id: int,
    title: str,
    price_per_day: Decimal,
    description: Optional[str] = None,
    availability: bool = True,
) -> models.Property:
    rate = _check_rate(price_per_day)
    with transaction(db) as gw:
        gw.require(models.User, owner_id, "User")
        prop = gw.add(
            models.Property(
                owner_id=owner_id,
                title=title,
                description=description,
                price_per_day=rate,
                availability=availability,
            )
        )
    logger.info("property.created", extra={"property_id": prop.id, "owner_id": owner_id})
    return prop


def get_property(db: Session, property_id: int) -> models.Property:
    with read_only(db) as gw:
        return gw.require(models.Property, property_id, "Property")


def list_properties(db: Session, owner_id: Optional[int] = None) -> List[models.Property]:
    """Browse listings newest first; an empty catalogue is a valid (empty) result."""
    with read_only(db) as gw:
        q = gw.db.query(models.Property)
        if owner_id is not None:
            q = q.filter(models.Property.owner_id == owner_id)
        return q.order_by(models.Property.id.desc()).all()


def update_price(db: Session, property_id: int, price_per_day: Decimal) -> models.Property:
    rate = _check_rate(price_per_day)
    with transaction(db) as gw:
        prop = gw.require(models.Property, property_id, "Property")
        prop.price_per_day = rate
        gw.db.flush()
    logger.info("property.price_updated", extra={"property_id": property_id, "price_per_day": str(rate)})
    return prop


def update_availability(db: Session, property_id: int, availability: bool) -> models.Property:
    with transaction(db) as gw:
        prop = gw.require(models.Property, property_id, "Property")
        prop.availability = bool(availability)
        gw.db.flush()
    logger.info("property.availability_updated", extra={"property_id": property_id, "availability": bool(availability)})
    return prop


def is_owner(db: Session, property_id: int, username: str) -> bool:
    with read_only(db) as gw:
        prop = gw.require(models.Property, property_id, "Property")
        owner = gw.get(models.User, prop.owner_id)
        return owner is not None and owner.username == username
