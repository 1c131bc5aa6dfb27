"""Worker routes (APP_ROLE=worker)."""

from fastapi import APIRouter, Depends

from staybook.api.deps import get_engine
from staybook.services.booking_engine import BookingEngine

router = APIRouter()


@router.get("/tasks/health")
async def tasks_health(engine: BookingEngine = Depends(get_engine)) -> dict:
    """Background sync health: tasks still running and whether a sync failed."""
    return {
        "status": "ok",
        "subsystem": "tasks",
        "in_flight": engine.tasks.in_flight,
        "sync_pending": engine.sync_pending,
    }
