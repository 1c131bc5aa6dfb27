"""Worker task endpoints for remote sync.

- POST /tasks/sync/bookings: push local bookings now
- POST /tasks/refresh: re-read both remote files
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from staybook.api.deps import get_engine
from staybook.infra.remote_store import RemoteUnavailableError
from staybook.services.booking_engine import BookingEngine

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("/sync/bookings")
async def sync_bookings(engine: BookingEngine = Depends(get_engine)) -> dict:
    result = await engine.sync_bookings()
    return {
        "ok": result.ok,
        "category": result.category,
        "attempts": result.attempts,
        "rows": result.rows,
        "reason": result.reason,
    }


@router.post("/refresh")
async def refresh(engine: BookingEngine = Depends(get_engine)) -> dict:
    try:
        performed = await engine.refresh()
    except RemoteUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.reason)
    return {"ok": True, "skipped": not performed}
