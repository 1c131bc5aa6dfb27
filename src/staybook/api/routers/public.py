"""Public routes (APP_ROLE=public)."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness check. Does not touch the remote store."""
    return {"status": "ok"}
