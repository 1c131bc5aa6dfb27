"""Availability endpoints for the booking calendar.

Provides:
- GET /availability: resolved status of every day in a range
- GET /plans: bookable plans and their nightly price
"""

from __future__ import annotations

from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException

from staybook.api.deps import get_engine
from staybook.domain.availability import DayAvailability
from staybook.services.booking_engine import BookingEngine

router = APIRouter(tags=["availability"])

MAX_RANGE_DAYS = 180


def day_to_dict(day: DayAvailability) -> dict:
    return {
        "date": day.date.isoformat(),
        "status": day.status.value,
        "capacity": day.capacity,
        "booked": day.booked,
        "remaining": day.remaining,
        "selectable": day.selectable,
        "price": day.price,
        "notes": day.notes,
    }


@router.get("/availability")
async def get_availability(
    start: date,
    end: date | None = None,
    engine: BookingEngine = Depends(get_engine),
) -> list[dict]:
    """Resolve the days of [start, end). Defaults to 31 days from start.

    Max range: 180 days.
    """
    if end is None:
        end = start + timedelta(days=31)
    if end <= start:
        raise HTTPException(status_code=400, detail="end must be after start")
    if (end - start).days > MAX_RANGE_DAYS:
        raise HTTPException(
            status_code=400, detail=f"range limited to {MAX_RANGE_DAYS} days"
        )
    return [day_to_dict(d) for d in engine.calendar(start, end)]


@router.get("/plans")
async def list_plans(engine: BookingEngine = Depends(get_engine)) -> list[dict]:
    return [
        {"plan_id": p.plan_id, "name": p.name, "price": p.price}
        for p in engine.plans
    ]
