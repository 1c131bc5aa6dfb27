"""Shared test helper functions for staybook tests.

These are NOT fixtures - they are regular functions that build records.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from staybook.domain.models import (
    AvailabilityOverride,
    Booking,
    BookingStatus,
    Customer,
    OverrideStatus,
)

TODAY = date(2024, 1, 1)
NOW = datetime(2024, 1, 1, 3, 0, tzinfo=timezone.utc)


def make_booking(
    booking_id: str,
    day: date,
    *,
    status: BookingStatus = BookingStatus.CONFIRMED,
    name: str = "Taro Yamada",
    email: str = "taro@example.com",
    total_price: int = 12800,
) -> Booking:
    return Booking(
        booking_id=booking_id,
        date=day,
        customer=Customer(name=name, email=email, phone="090-1234-5678"),
        guest_count=2,
        plan_id="weekend-getaway",
        plan_name="Weekend Getaway",
        unit_price=12800,
        total_price=total_price,
        status=status,
        created_at=NOW,
    )


def make_override(
    day: date,
    status: OverrideStatus = OverrideStatus.AVAILABLE,
    max_capacity: int = 2,
    notes: str = "",
    price: int | None = None,
    offline_booked: int = 0,
) -> AvailabilityOverride:
    return AvailabilityOverride(
        date=day,
        status=status,
        max_capacity=max_capacity,
        notes=notes,
        price=price,
        offline_booked=offline_booked,
    )
