"""Core records of the booking calendar.

Records are immutable; spreadsheet rows are normalized into these at the
boundary (see staybook.infra.rows) and never flow into engine logic raw.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


# ── Enums ─────────────────────────────────────────────────


class OverrideStatus(str, Enum):
    """Status an operator can pin on a date."""

    AVAILABLE = "Available"
    LIMITED = "Limited"
    BOOKED = "Booked"
    CLOSED = "Closed"


class DayStatus(str, Enum):
    """Resolved status of a calendar day."""

    PAST = "Past"
    CLOSED = "Closed"
    BOOKED = "Booked"
    LIMITED = "Limited"
    AVAILABLE = "Available"


class BookingStatus(str, Enum):
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


UNSELECTABLE_STATUSES = frozenset({DayStatus.PAST, DayStatus.CLOSED, DayStatus.BOOKED})


# ── Records ───────────────────────────────────────────────


@dataclass(frozen=True)
class AvailabilityOverride:
    """Operator-authored rule for a single date. At most one per date.

    offline_booked counts reservations taken outside the engine (phone,
    walk-in); they occupy slots like confirmed bookings do.
    """

    date: date
    status: OverrideStatus = OverrideStatus.AVAILABLE
    max_capacity: int = 2
    notes: str = ""
    price: int | None = None
    offline_booked: int = 0


@dataclass(frozen=True)
class Customer:
    name: str
    email: str
    phone: str = ""


@dataclass(frozen=True)
class Plan:
    """A bookable package with a fixed nightly price (integer yen)."""

    plan_id: str
    name: str
    price: int


@dataclass(frozen=True)
class Booking:
    """One night of a reservation.

    A reservation spanning N nights is N rows sharing booking_id; rows of
    the same booking_id differ only in date.
    """

    booking_id: str
    date: date
    customer: Customer
    guest_count: int = 1
    plan_id: str = ""
    plan_name: str = ""
    unit_price: int = 0
    total_price: int = 0
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: datetime | None = None
    special_requests: str = ""

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED


@dataclass(frozen=True)
class SelectionChanged:
    """Payload emitted on every selection change."""

    dates: tuple[date, ...] = field(default_factory=tuple)
    checkin: date | None = None
    checkout: date | None = None


DEFAULT_PLANS: tuple[Plan, ...] = (
    Plan("weekend-getaway", "Weekend Getaway", 12800),
    Plan("ski-adventure", "Ski Adventure", 18500),
    Plan("family-package", "Family Ski Package", 32000),
)
