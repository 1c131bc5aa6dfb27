"""Booking transaction - validates a submission and materializes its rows.

The capacity re-check happens at commit time, not at selection time, to
close the window between the guest picking dates and submitting. Either
every selected night is committed or none is.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime

from staybook.domain.availability import is_selectable, resolve_status
from staybook.domain.capacity import (
    DEFAULT_CAPACITY,
    booked_counts,
    capacity,
    offline_booked,
)
from staybook.domain.models import (
    AvailabilityOverride,
    Booking,
    BookingStatus,
    Customer,
    Plan,
)

DEFAULT_BOOKING_PREFIX = "SNOW"


class ValidationError(Exception):
    """Submission is incomplete; the transaction was not attempted."""

    def __init__(self, reason_code: str, fields: Sequence[str] = ()):
        self.reason_code = reason_code
        self.fields = tuple(fields)
        detail = f" ({', '.join(self.fields)})" if self.fields else ""
        super().__init__(f"Invalid booking: {reason_code}{detail}")


class CapacityConflictError(Exception):
    """One or more selected dates stopped being bookable before commit."""

    def __init__(self, dates: Sequence[date]):
        self.dates = tuple(dates)
        listed = ", ".join(d.isoformat() for d in self.dates)
        super().__init__(f"Dates no longer available: {listed}")


@dataclass(frozen=True)
class BookingRequest:
    """Customer-supplied part of a submission."""

    name: str
    email: str
    phone: str = ""
    guest_count: int = 1
    special_requests: str = ""


@dataclass(frozen=True)
class BookingResult:
    success: bool
    booking_id: str | None = None


def generate_booking_id(prefix: str = DEFAULT_BOOKING_PREFIX) -> str:
    """Namespaced random id, e.g. "SNOW-3F9A0C1B22D4" (16**12 space)."""
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def validate_request(request: BookingRequest, dates: Sequence[date]) -> None:
    """Raise ValidationError for an empty selection or missing fields."""
    if not dates:
        raise ValidationError("empty_selection")

    missing = [
        name
        for name, value in (("name", request.name), ("email", request.email))
        if not value or not value.strip()
    ]
    if missing:
        raise ValidationError("missing_fields", missing)
    if request.guest_count < 1:
        raise ValidationError("invalid_guest_count", ["guest_count"])


def find_conflicts(
    dates: Iterable[date],
    overrides: Mapping[date, AvailabilityOverride],
    bookings: Iterable[Booking],
    *,
    today: date,
    default_capacity: int = DEFAULT_CAPACITY,
) -> list[date]:
    """Dates that are no longer selectable or have no free slot left."""
    counts = booked_counts(bookings)
    conflicts = []
    for day in dates:
        count = counts.get(day, 0) + offline_booked(day, overrides)
        cap = capacity(day, overrides, default_capacity)
        status = resolve_status(day, overrides.get(day), count, cap, today)
        if not is_selectable(status) or count >= cap:
            conflicts.append(day)
    return conflicts


def commit_booking(
    request: BookingRequest,
    dates: Sequence[date],
    plan: Plan,
    overrides: Mapping[date, AvailabilityOverride],
    bookings: Iterable[Booking],
    *,
    today: date,
    now: datetime,
    default_capacity: int = DEFAULT_CAPACITY,
    booking_prefix: str = DEFAULT_BOOKING_PREFIX,
    id_factory: Callable[[str], str] = generate_booking_id,
) -> list[Booking]:
    """Validate a submission and build one Confirmed row per selected night.

    Does not mutate any state; the caller appends the returned rows.

    Args:
        request: Customer fields.
        dates: Selected nights (sorted).
        plan: Chosen plan; its price is the nightly unit price.
        overrides: Current overrides indexed by date.
        bookings: Current booking rows.
        today: Local calendar date used for the past-date check.
        now: Creation timestamp stamped on every row.
        default_capacity: Capacity of dates without override.
        booking_prefix: Namespace of the generated booking id.
        id_factory: Booking id generator (injectable for tests).

    Returns:
        The new rows, all sharing one booking_id.

    Raises:
        ValidationError: Empty selection or missing customer fields.
        CapacityConflictError: Any date became unavailable.
    """
    validate_request(request, dates)

    booking_list = list(bookings)
    conflicts = find_conflicts(
        dates,
        overrides,
        booking_list,
        today=today,
        default_capacity=default_capacity,
    )
    if conflicts:
        raise CapacityConflictError(conflicts)

    booking_id = id_factory(booking_prefix)
    customer = Customer(
        name=request.name.strip(),
        email=request.email.strip(),
        phone=request.phone.strip(),
    )
    nights = len(dates)

    return [
        Booking(
            booking_id=booking_id,
            date=day,
            customer=customer,
            guest_count=request.guest_count,
            plan_id=plan.plan_id,
            plan_name=plan.name,
            unit_price=plan.price,
            total_price=plan.price * nights,
            status=BookingStatus.CONFIRMED,
            created_at=now,
            special_requests=request.special_requests,
        )
        for day in dates
    ]
