# Property registry: creation, rate validation at the money boundary, toggles and ownership.
from __future__ import annotations

from decimal import Decimal

import pytest

from rentify import models, properties
from rentify.errors import InvalidArgument, NotFound


def test_create_and_browse(db, make_user):
    owner = make_user("host", "owner")
    assert properties.list_properties(db) == []

    first = properties.create_property(db, owner_id=owner.id, title="Cabin", price_per_day=Decimal("80.00"))
    second = properties.create_property(db, owner_id=owner.id, title="Loft", price_per_day="120.50", availability=False)

    assert [p.id for p in properties.list_properties(db)] == [second.id, first.id]
    assert properties.get_property(db, second.id).price_per_day == Decimal("120.50")
    assert properties.get_property(db, second.id).availability is False
    assert properties.is_owner(db, first.id, "host") is True
    assert properties.is_owner(db, first.id, "someone") is False

    with pytest.raises(NotFound):
        properties.create_property(db, owner_id=999, title="Ghost", price_per_day="1.00")


@pytest.mark.parametrize("rate", ["10.005", "abc", 10.5, "-1.00", "NaN"])
def test_create_rejects_bad_rates_without_writing(db, make_user, rate):
    owner = make_user("host", "owner")
    with pytest.raises(InvalidArgument):
        properties.create_property(db, owner_id=owner.id, title="Cabin", price_per_day=rate)
    assert db.query(models.Property).count() == 0


def test_update_price_rejects_sub_cent_rate(db, make_property):
    prop = make_property("100.00")
    with pytest.raises(InvalidArgument):
        properties.update_price(db, prop.id, Decimal("99.999"))
    assert properties.get_property(db, prop.id).price_per_day == Decimal("100.00")

    assert properties.update_price(db, prop.id, "99.99").price_per_day == Decimal("99.99")
    assert properties.update_availability(db, prop.id, False).availability is False
