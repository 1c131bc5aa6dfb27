"""Date & capacity model - pure functions over overrides and bookings."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date

from staybook.domain.models import AvailabilityOverride, Booking

DEFAULT_CAPACITY = 2


def index_overrides(
    overrides: Iterable[AvailabilityOverride],
) -> dict[date, AvailabilityOverride]:
    """Index overrides by date. A later override for the same date wins."""
    return {o.date: o for o in overrides}


def booked_count(day: date, bookings: Iterable[Booking]) -> int:
    """Number of distinct confirmed booking ids holding *day*.

    Counts reservations, not rows: a multi-night reservation occupies one
    slot per night.
    """
    return len({b.booking_id for b in bookings if b.date == day and b.is_confirmed})


def booked_counts(bookings: Iterable[Booking]) -> dict[date, int]:
    """booked_count for every date in one pass."""
    ids_by_date: dict[date, set[str]] = {}
    for b in bookings:
        if b.is_confirmed:
            ids_by_date.setdefault(b.date, set()).add(b.booking_id)
    return {d: len(ids) for d, ids in ids_by_date.items()}


def capacity(
    day: date,
    overrides: Mapping[date, AvailabilityOverride],
    default_capacity: int = DEFAULT_CAPACITY,
) -> int:
    """Max bookings for *day*: the override's capacity, else the default."""
    override = overrides.get(day)
    if override is not None:
        return override.max_capacity
    return default_capacity


def is_past(day: date, today: date) -> bool:
    """A date is past iff strictly before today (calendar-day granularity)."""
    return day < today


def offline_booked(day: date, overrides: Mapping[date, AvailabilityOverride]) -> int:
    """Slots taken outside the engine, recorded on the date's override."""
    override = overrides.get(day)
    return override.offline_booked if override is not None else 0
