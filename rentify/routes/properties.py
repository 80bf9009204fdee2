# Property listing endpoints.
# Owners manage their own listings; anyone may browse. Ownership is checked here before core mutators run.
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, properties, schemas
from .auth import forbid, get_current_user, is_admin, require_owner
from ..rate_limit import rate_limit

router = APIRouter()


def ensure_property_owner(db: Session, property_id: int, user: models.User) -> None:
    """Capability check shared by property, booking and payment routes (admins pass)."""
    if is_admin(user):
        properties.get_property(db, property_id)
        return
    if not properties.is_owner(db, property_id, user.username):
        raise forbid("Not owner of property")


@router.get("/properties", response_model=List[schemas.PropertyRead])
def list_properties(db: Session = Depends(get_db)) -> List[models.Property]:
    """List all properties, newest first."""
    return properties.list_properties(db)


@router.get("/properties/{property_id}", response_model=schemas.PropertyRead)
def get_property(property_id: int, db: Session = Depends(get_db)) -> models.Property:
    return properties.get_property(db, property_id)


@router.get("/properties/{property_id}/owner", response_model=schemas.OwnershipRead)
def check_owner(
    property_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.OwnershipRead:
    return schemas.OwnershipRead(owner=properties.is_owner(db, property_id, user.username))


@router.post(
    "/properties",
    response_model=schemas.PropertyRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("write"))],
)
def create_property(
    payload: schemas.PropertyCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_owner),
) -> models.Property:
    """Create a new property owned by the authenticated owner."""
    return properties.create_property(
        db,
        owner_id=user.id,
        title=payload.title,
        description=payload.description,
        price_per_day=payload.price_per_day,
        availability=payload.availability,
    )


@router.patch(
    "/properties/{property_id}/price",
    response_model=schemas.PropertyRead,
    dependencies=[Depends(rate_limit("write"))],
)
def update_price(
    property_id: int,
    payload: schemas.PriceUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_owner),
) -> models.Property:
    ensure_property_owner(db, property_id, user)
    return properties.update_price(db, property_id, payload.price_per_day)


@router.patch(
    "/properties/{property_id}/availability",
    response_model=schemas.PropertyRead,
    dependencies=[Depends(rate_limit("write"))],
)
def update_availability(
    property_id: int,
    payload: schemas.AvailabilityUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_owner),
) -> models.Property:
    ensure_property_owner(db, property_id, user)
    return properties.update_availability(db, property_id, payload.availability)
