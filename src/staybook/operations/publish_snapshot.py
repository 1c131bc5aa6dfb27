"""Publish the public calendar snapshot.

Reads both spreadsheets from the configured remote store and writes:
- availability.json: resolved status of the next 90 days plus every date
  present in either file
- bookings-summary.json: anonymized bookings (masked names, no contact data)
- timestamp.txt: epoch milliseconds of the export

Usage:
    STAYBOOK_STORE=github GITHUB_TOKEN=... uv run python -m staybook.operations.publish_snapshot public-data
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Iterable
from datetime import date, timedelta
from pathlib import Path
from typing import Any

from staybook.domain.availability import build_calendar
from staybook.domain.capacity import index_overrides
from staybook.domain.models import AvailabilityOverride, Booking
from staybook.infra.rows import format_sheet_date
from staybook.infra.time import utc_now
from staybook.observability.logging import get_logger
from staybook.observability.redaction import mask_name, redact_string
from staybook.services.booking_engine import create_engine

logger = get_logger(__name__)

HORIZON_DAYS = 90
RECENT_BOOKINGS = 20


def availability_snapshot(
    overrides: Iterable[AvailabilityOverride],
    bookings: Iterable[Booking],
    *,
    today: date,
    default_capacity: int,
    horizon_days: int = HORIZON_DAYS,
) -> list[dict[str, Any]]:
    """One entry per date, sorted ascending."""
    indexed = index_overrides(overrides)
    booking_list = list(bookings)

    dates = {today + timedelta(days=i) for i in range(horizon_days)}
    dates.update(indexed)
    dates.update(b.date for b in booking_list)

    entries = []
    for day in sorted(dates):
        (resolved,) = build_calendar(
            day,
            day + timedelta(days=1),
            indexed,
            booking_list,
            today=today,
            default_capacity=default_capacity,
        )
        entries.append(
            {
                "date": format_sheet_date(day),
                "status": resolved.status.value,
                "maxBookings": resolved.capacity,
                "booked": resolved.booked,
                "available": resolved.remaining,
                "price": resolved.price,
                "notes": redact_string(resolved.notes),
            }
        )
    return entries


def bookings_summary(bookings: Iterable[Booking], *, generated_at: str) -> dict[str, Any]:
    """Anonymized booking list plus totals.

    Both totals count confirmed reservations once, however many nights
    they span; recentBookings lists every row.
    """
    rows = list(bookings)
    anonymized = [
        {
            "bookingId": b.booking_id,
            "date": format_sheet_date(b.date),
            "name": mask_name(b.customer.name),
            "guests": b.guest_count,
            "plan": b.plan_name,
            "totalPrice": b.total_price,
        }
        for b in rows
    ]
    revenue_by_booking = {b.booking_id: b.total_price for b in rows if b.is_confirmed}
    return {
        "totalBookings": len(revenue_by_booking),
        "totalRevenue": sum(revenue_by_booking.values()),
        "lastUpdated": generated_at,
        "recentBookings": list(reversed(anonymized[-RECENT_BOOKINGS:])),
    }


async def publish(out_dir: Path) -> None:
    engine = create_engine()
    await engine.refresh()

    now = utc_now()
    out_dir.mkdir(parents=True, exist_ok=True)

    snapshot = availability_snapshot(
        engine.overrides.values(),
        engine.bookings,
        today=engine.today(),
        default_capacity=engine.settings.default_capacity,
    )
    (out_dir / "availability.json").write_text(json.dumps(snapshot, indent=2))

    summary = bookings_summary(engine.bookings, generated_at=now.isoformat())
    (out_dir / "bookings-summary.json").write_text(json.dumps(summary, indent=2))

    (out_dir / "timestamp.txt").write_text(str(int(now.timestamp() * 1000)))

    logger.info(
        "public snapshot published",
        extra={
            "extra_fields": {
                "days": len(snapshot),
                "bookings": summary["totalBookings"],
            }
        },
    )


def main() -> int:
    out_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("public-data")
    asyncio.run(publish(out_dir))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
