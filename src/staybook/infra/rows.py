"""Spreadsheet row boundary.

Rows read from the spreadsheets are loosely typed dicts keyed by column
header ("Booking ID", "Date", ...), with optional or malformed cells.
They are validated here into AvailabilityOverride / Booking records with
explicit defaults, and rendered back into rows for writing.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from staybook.domain.capacity import DEFAULT_CAPACITY
from staybook.domain.models import (
    AvailabilityOverride,
    Booking,
    BookingStatus,
    Customer,
    OverrideStatus,
)
from staybook.observability.logging import get_logger

logger = get_logger(__name__)

Row = dict[str, Any]
T = TypeVar("T")

_EXCEL_EPOCH = date(1899, 12, 30)

BOOKING_COLUMNS = (
    "Booking ID",
    "Date",
    "Customer Name",
    "Email",
    "Phone",
    "Guests",
    "Plan ID",
    "Plan",
    "Plan Price",
    "Total Price",
    "Status",
    "Booking Date",
    "Special Requests",
)

AVAILABILITY_COLUMNS = ("Date", "Status", "Price", "MaxBookings", "Booked", "Notes")


# ── Cell parsing ──────────────────────────────────────────


def parse_sheet_date(value: Any) -> date | None:
    """Parse a spreadsheet date cell.

    Accepts datetime/date cells, Excel serial numbers, "M/D/YYYY" (two-digit
    years are read as 20xx) and ISO "YYYY-MM-DD" (a time part is ignored).
    Returns None for anything else.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        try:
            return _EXCEL_EPOCH + timedelta(days=int(value))
        except (OverflowError, ValueError):
            return None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        parts = text.split("/")
        if len(parts) == 3:
            month, day, year = parts
            if len(year) == 2:
                year = "20" + year
            return date(int(year), int(month), int(day))
        return date.fromisoformat(text.split("T")[0])
    except (OverflowError, ValueError):
        return None


def format_sheet_date(day: date) -> str:
    """Render a date the way the spreadsheets store it: M/D/YYYY."""
    return f"{day.month}/{day.day}/{day.year}"


def _to_int(value: Any, default: int) -> int:
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


# ── Row schemas ───────────────────────────────────────────


class OverrideRow(BaseModel):
    """Availability spreadsheet row."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    day: date = Field(alias="Date")
    status: OverrideStatus = Field(default=OverrideStatus.AVAILABLE, alias="Status")
    max_bookings: int = Field(default=DEFAULT_CAPACITY, alias="MaxBookings")
    price: int | None = Field(default=None, alias="Price")
    booked: int = Field(default=0, alias="Booked")
    notes: str = Field(default="", alias="Notes")

    @field_validator("day", mode="before")
    @classmethod
    def _parse_date(cls, v: Any) -> date:
        parsed = parse_sheet_date(v)
        if parsed is None:
            raise ValueError("unparseable date")
        return parsed

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, v: Any) -> OverrideStatus:
        text = _to_text(v).lower()
        for status in OverrideStatus:
            if status.value.lower() == text:
                return status
        return OverrideStatus.AVAILABLE

    @field_validator("max_bookings", mode="before")
    @classmethod
    def _parse_max(cls, v: Any) -> int:
        return max(0, _to_int(v, DEFAULT_CAPACITY))

    @field_validator("booked", mode="before")
    @classmethod
    def _parse_booked(cls, v: Any) -> int:
        return max(0, _to_int(v, 0))

    @field_validator("price", mode="before")
    @classmethod
    def _parse_price(cls, v: Any) -> int | None:
        parsed = _to_int(v, -1)
        return parsed if parsed >= 0 else None

    @field_validator("notes", mode="before")
    @classmethod
    def _parse_notes(cls, v: Any) -> str:
        return _to_text(v)


class BookingRow(BaseModel):
    """Bookings spreadsheet row."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    booking_id: str = Field(alias="Booking ID", min_length=1)
    day: date = Field(alias="Date")
    customer_name: str = Field(default="", alias="Customer Name")
    email: str = Field(default="", alias="Email")
    phone: str = Field(default="", alias="Phone")
    guests: int = Field(default=1, alias="Guests")
    plan_id: str = Field(default="", alias="Plan ID")
    plan: str = Field(default="", alias="Plan")
    plan_price: int = Field(default=0, alias="Plan Price")
    total_price: int = Field(default=0, alias="Total Price")
    status: BookingStatus = Field(default=BookingStatus.CONFIRMED, alias="Status")
    booking_date: datetime | None = Field(default=None, alias="Booking Date")
    special_requests: str = Field(default="", alias="Special Requests")

    @field_validator("day", mode="before")
    @classmethod
    def _parse_date(cls, v: Any) -> date:
        parsed = parse_sheet_date(v)
        if parsed is None:
            raise ValueError("unparseable date")
        return parsed

    @field_validator(
        "booking_id",
        "customer_name",
        "email",
        "phone",
        "plan_id",
        "plan",
        "special_requests",
        mode="before",
    )
    @classmethod
    def _parse_text(cls, v: Any) -> str:
        return _to_text(v)

    @field_validator("guests", mode="before")
    @classmethod
    def _parse_guests(cls, v: Any) -> int:
        return max(1, _to_int(v, 1))

    @field_validator("plan_price", "total_price", mode="before")
    @classmethod
    def _parse_amount(cls, v: Any) -> int:
        return _to_int(v, 0)

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, v: Any) -> BookingStatus:
        text = _to_text(v).lower()
        if text == BookingStatus.CANCELLED.value.lower():
            return BookingStatus.CANCELLED
        return BookingStatus.CONFIRMED

    @field_validator("booking_date", mode="before")
    @classmethod
    def _parse_booking_date(cls, v: Any) -> datetime | None:
        if isinstance(v, datetime):
            return v
        parsed = parse_sheet_date(v)
        if parsed is None:
            return None
        return datetime(parsed.year, parsed.month, parsed.day)


# ── Row <-> record ────────────────────────────────────────


def override_from_row(row: Row) -> AvailabilityOverride:
    parsed = OverrideRow.model_validate(row)
    return AvailabilityOverride(
        date=parsed.day,
        status=parsed.status,
        max_capacity=parsed.max_bookings,
        notes=parsed.notes,
        price=parsed.price,
        offline_booked=parsed.booked,
    )


def override_to_row(override: AvailabilityOverride) -> Row:
    return {
        "Date": format_sheet_date(override.date),
        "Status": override.status.value,
        "Price": override.price,
        "MaxBookings": override.max_capacity,
        "Booked": override.offline_booked,
        "Notes": override.notes,
    }


def booking_from_row(row: Row) -> Booking:
    parsed = BookingRow.model_validate(row)
    return Booking(
        booking_id=parsed.booking_id,
        date=parsed.day,
        customer=Customer(
            name=parsed.customer_name, email=parsed.email, phone=parsed.phone
        ),
        guest_count=parsed.guests,
        plan_id=parsed.plan_id,
        plan_name=parsed.plan,
        unit_price=parsed.plan_price,
        total_price=parsed.total_price,
        status=parsed.status,
        created_at=parsed.booking_date,
        special_requests=parsed.special_requests,
    )


def booking_to_row(booking: Booking) -> Row:
    created = booking.created_at
    return {
        "Booking ID": booking.booking_id,
        "Date": format_sheet_date(booking.date),
        "Customer Name": booking.customer.name,
        "Email": booking.customer.email,
        "Phone": booking.customer.phone,
        "Guests": booking.guest_count,
        "Plan ID": booking.plan_id,
        "Plan": booking.plan_name,
        "Plan Price": booking.unit_price,
        "Total Price": booking.total_price,
        "Status": booking.status.value,
        "Booking Date": format_sheet_date(created.date()) if created else "",
        "Special Requests": booking.special_requests,
    }


# ── Per-file schema ───────────────────────────────────────


@dataclass(frozen=True)
class RowSchema(Generic[T]):
    """How one spreadsheet file maps to typed records.

    Attributes:
        name: Category name, also used as sheet title ("Bookings").
        columns: Header order used when writing.
        key: Merge key of a record.
        from_row: Row -> record; raises pydantic.ValidationError when the
            row cannot be normalized.
        to_row: Record -> row.
    """

    name: str
    columns: tuple[str, ...]
    key: Callable[[T], Hashable]
    from_row: Callable[[Row], T]
    to_row: Callable[[T], Row]

    def parse_rows(self, rows: Iterable[Row]) -> list[T]:
        """Normalize rows, dropping the ones that cannot be parsed."""
        records: list[T] = []
        dropped = 0
        for row in rows:
            try:
                records.append(self.from_row(row))
            except ValidationError:
                dropped += 1
        if dropped:
            logger.warning(
                "dropped malformed spreadsheet rows",
                extra={"extra_fields": {"sheet": self.name, "dropped": dropped}},
            )
        return records

    def render_rows(self, records: Iterable[T]) -> list[Row]:
        return [self.to_row(r) for r in records]


def booking_key(booking: Booking) -> tuple[str, date]:
    """Merge key of a booking row: one row per (reservation, night)."""
    return (booking.booking_id, booking.date)


def override_key(override: AvailabilityOverride) -> date:
    return override.date


BOOKINGS_SCHEMA: RowSchema[Booking] = RowSchema(
    name="Bookings",
    columns=BOOKING_COLUMNS,
    key=booking_key,
    from_row=booking_from_row,
    to_row=booking_to_row,
)

AVAILABILITY_SCHEMA: RowSchema[AvailabilityOverride] = RowSchema(
    name="Availability",
    columns=AVAILABILITY_COLUMNS,
    key=override_key,
    from_row=override_from_row,
    to_row=override_to_row,
)
