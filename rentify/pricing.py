# Deterministic booking price: per-day rate times the inclusive number of days.
# Also the single coercion point for money entering the core (rates, payment amounts).
from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Union

from .errors import InvalidArgument, InvalidRangeError

Money = Union[Decimal, int, str]

# Matches the Numeric(10, 2) money columns
CENT = Decimal("0.01")


def to_money(value: Money, label: str = "Amount") -> Decimal:
    """
    Exact Decimal for a money input, or InvalidArgument.

    Rejects floats (and bools), unparseable or non-finite values, and anything with
    sub-cent precision that the money columns would silently round.
    """
    if isinstance(value, (float, bool)):
        raise InvalidArgument(f"{label} must be a decimal amount, not {type(value).__name__}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(value)
        if not amount.is_finite() or amount != amount.quantize(CENT):
            raise InvalidArgument(f"{label} must have at most two decimal places")
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidArgument(f"{label} is not a valid decimal amount") from exc
    return amount


def stay_days(start_date: date, end_date: date) -> int:
    """Inclusive day count: a booking from the 1st to the 3rd covers 3 days."""
    if end_date < start_date:
        raise InvalidRangeError("End date must not be before start date")
    return (end_date - start_date).days + 1


def price(rate_per_day: Money, start_date: date, end_date: date) -> Decimal:
    """
    Total price for [start_date, end_date] at `rate_per_day`.

    Computed in Decimal arithmetic; multiplying by an integer day count keeps the
    rate's scale, so Decimal("120.50") over 3 days is Decimal("361.50").
    """
    rate = to_money(rate_per_day, "Price per day")
    if rate < 0:
        raise InvalidArgument("Price per day must not be negative")
    return rate * stay_days(start_date, end_date)
