"""Guest session endpoints: date selection, plan choice, booking submission.

All handlers are async so engine state is only touched from the event
loop thread.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from staybook.api.deps import get_engine
from staybook.api.routes.availability import MAX_RANGE_DAYS
from staybook.domain.booking import (
    BookingRequest,
    CapacityConflictError,
    ValidationError,
)
from staybook.domain.selection import NotSelectableError
from staybook.services.booking_engine import (
    BookingEngine,
    GuestSession,
    UnknownPlanError,
    UnknownSessionError,
)

router = APIRouter(prefix="/sessions", tags=["sessions"])


# ── Schemas ───────────────────────────────────────────────


class RangeSelect(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start: date
    end: date


class PlanChoice(BaseModel):
    model_config = ConfigDict(extra="forbid")

    plan_id: str


class BookingSubmit(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = ""
    email: str = ""
    phone: str = ""
    guests: int = Field(default=1)
    special_requests: str = ""


# ── Helpers ───────────────────────────────────────────────


def _session(engine: BookingEngine, session_id: str) -> GuestSession:
    try:
        return engine.get_session(session_id)
    except UnknownSessionError:
        raise HTTPException(status_code=404, detail="session not found")


def _summary(session: GuestSession) -> dict:
    event = session.last_event
    q = session.quote()
    return {
        "session_id": session.session_id,
        "dates": [d.isoformat() for d in event.dates],
        "checkin": event.checkin.isoformat() if event.checkin else None,
        "checkout": event.checkout.isoformat() if event.checkout else None,
        "plan_id": session.plan.plan_id if session.plan else None,
        "quote": {
            "nights": q.nights,
            "price_per_night": q.price_per_night,
            "room_rate": q.room_rate,
            "tax": q.tax,
            "service_charge": q.service_charge,
            "total": q.total,
        },
    }


# ── Routes ────────────────────────────────────────────────


@router.post("", status_code=201)
async def create_session(engine: BookingEngine = Depends(get_engine)) -> dict:
    session = engine.new_session()
    return {"session_id": session.session_id}


@router.get("/{session_id}")
async def get_session(
    session_id: str, engine: BookingEngine = Depends(get_engine)
) -> dict:
    return _summary(_session(engine, session_id))


@router.post("/{session_id}/dates/{day}")
async def toggle_date(
    session_id: str, day: date, engine: BookingEngine = Depends(get_engine)
) -> dict:
    """Add the date if absent, remove it if selected."""
    session = _session(engine, session_id)
    try:
        session.selection.toggle(day)
    except NotSelectableError:
        raise HTTPException(
            status_code=409, detail="This date is not available for booking"
        )
    return _summary(session)


@router.post("/{session_id}/range")
async def select_range(
    session_id: str, body: RangeSelect, engine: BookingEngine = Depends(get_engine)
) -> dict:
    """Replace the selection with the selectable days of [start, end)."""
    if body.end <= body.start:
        raise HTTPException(status_code=400, detail="end must be after start")
    if (body.end - body.start).days > MAX_RANGE_DAYS:
        raise HTTPException(
            status_code=400, detail=f"range limited to {MAX_RANGE_DAYS} days"
        )
    session = _session(engine, session_id)
    session.selection.select_range(body.start, body.end)
    return _summary(session)


@router.delete("/{session_id}/dates")
async def clear_dates(
    session_id: str, engine: BookingEngine = Depends(get_engine)
) -> dict:
    session = _session(engine, session_id)
    session.selection.clear()
    return _summary(session)


@router.put("/{session_id}/plan")
async def choose_plan(
    session_id: str, body: PlanChoice, engine: BookingEngine = Depends(get_engine)
) -> dict:
    session = _session(engine, session_id)
    try:
        session.choose_plan(body.plan_id)
    except UnknownPlanError:
        raise HTTPException(status_code=422, detail="unknown plan")
    return _summary(session)


@router.post("/{session_id}/booking")
async def submit_booking(
    session_id: str, body: BookingSubmit, engine: BookingEngine = Depends(get_engine)
) -> dict:
    """Commit the selection. Remote sync continues in the background."""
    session = _session(engine, session_id)
    request = BookingRequest(
        name=body.name,
        email=body.email,
        phone=body.phone,
        guest_count=body.guests,
        special_requests=body.special_requests,
    )
    try:
        result = engine.submit_booking(session, request)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"reason": e.reason_code, "fields": list(e.fields)},
        )
    except CapacityConflictError as e:
        raise HTTPException(
            status_code=409,
            detail={
                "reason": "capacity_conflict",
                "dates": [d.isoformat() for d in e.dates],
            },
        )
    return {"success": result.success, "booking_id": result.booking_id}
