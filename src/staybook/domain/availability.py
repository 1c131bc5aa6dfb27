"""Availability resolver - derives a day's status from overrides and bookings.

Precedence:
1. Past date -> Past, whatever else is recorded.
2. Override Closed / Booked -> that status.
3. Override Limited / Available -> that label, even if the booking count
   would say otherwise.
4. No override: count >= capacity -> Booked; count >= 1 -> Limited;
   otherwise Available.

Counts include the offline bookings recorded on a date's override.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, timedelta

from staybook.domain.capacity import (
    DEFAULT_CAPACITY,
    booked_count,
    booked_counts,
    capacity,
    is_past,
    offline_booked,
)
from staybook.domain.models import (
    UNSELECTABLE_STATUSES,
    AvailabilityOverride,
    Booking,
    DayStatus,
    OverrideStatus,
)

_OVERRIDE_LABELS = {
    OverrideStatus.CLOSED: DayStatus.CLOSED,
    OverrideStatus.BOOKED: DayStatus.BOOKED,
    OverrideStatus.LIMITED: DayStatus.LIMITED,
    OverrideStatus.AVAILABLE: DayStatus.AVAILABLE,
}


@dataclass(frozen=True)
class DayAvailability:
    """Resolved view of one calendar day."""

    date: date
    status: DayStatus
    capacity: int
    booked: int
    remaining: int
    selectable: bool
    price: int | None = None
    notes: str = ""


def resolve_status(
    day: date,
    override: AvailabilityOverride | None,
    count: int,
    cap: int,
    today: date,
) -> DayStatus:
    """Apply the precedence rules to precomputed count and capacity."""
    if is_past(day, today):
        return DayStatus.PAST
    if override is not None:
        return _OVERRIDE_LABELS[override.status]
    if count >= cap:
        return DayStatus.BOOKED
    if count >= 1:
        return DayStatus.LIMITED
    return DayStatus.AVAILABLE


def day_status(
    day: date,
    overrides: Mapping[date, AvailabilityOverride],
    bookings: Iterable[Booking],
    *,
    today: date,
    default_capacity: int = DEFAULT_CAPACITY,
) -> DayStatus:
    """Resolve the status of *day*."""
    return resolve_status(
        day,
        overrides.get(day),
        booked_count(day, bookings) + offline_booked(day, overrides),
        capacity(day, overrides, default_capacity),
        today,
    )


def is_selectable(status: DayStatus) -> bool:
    """A day can be selected unless it is Past, Closed or Booked."""
    return status not in UNSELECTABLE_STATUSES


def remaining_capacity(
    day: date,
    overrides: Mapping[date, AvailabilityOverride],
    bookings: Iterable[Booking],
    default_capacity: int = DEFAULT_CAPACITY,
) -> int:
    """Free slots on *day*, clamped at zero. Display only."""
    cap = capacity(day, overrides, default_capacity)
    taken = booked_count(day, bookings) + offline_booked(day, overrides)
    return max(0, cap - taken)


def build_calendar(
    start: date,
    end: date,
    overrides: Mapping[date, AvailabilityOverride],
    bookings: Iterable[Booking],
    *,
    today: date,
    default_capacity: int = DEFAULT_CAPACITY,
) -> list[DayAvailability]:
    """Resolve every day of the half-open range [start, end).

    Returns an empty list when end <= start.
    """
    counts = booked_counts(bookings)
    days: list[DayAvailability] = []
    current = start
    while current < end:
        override = overrides.get(current)
        count = counts.get(current, 0) + offline_booked(current, overrides)
        cap = capacity(current, overrides, default_capacity)
        status = resolve_status(current, override, count, cap, today)
        days.append(
            DayAvailability(
                date=current,
                status=status,
                capacity=cap,
                booked=count,
                remaining=max(0, cap - count),
                selectable=is_selectable(status),
                price=override.price if override else None,
                notes=override.notes if override else "",
            )
        )
        current += timedelta(days=1)
    return days
