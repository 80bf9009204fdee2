# Overlap detection for inclusive booking ranges on a single property.
from __future__ import annotations

from datetime import date

from .gateway import Gateway


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    # Closed intervals share at least one day
    return a_start <= b_end and b_start <= a_end


def has_overlap(
    gw: Gateway,
    property_id: int,
    start_date: date,
    end_date: date,
) -> bool:
    """
    True if a non-cancelled booking of the property overlaps [start_date, end_date].

    Must run inside the same transaction (and booking lock) as the insert it guards.
    """
    return bool(gw.overlapping_bookings(property_id, start_date, end_date))
