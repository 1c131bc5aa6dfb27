"""FastAPI application factory with role-based route mounting."""

import os
from contextlib import asynccontextmanager
from typing import Literal

from fastapi import FastAPI, Request, Response

from staybook.infra.remote_store import RemoteUnavailableError
from staybook.observability.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from staybook.observability.logging import get_logger
from staybook.services.booking_engine import BookingEngine, create_engine

from .routers import public, worker
from .routes import availability, sessions, tasks_sync

logger = get_logger(__name__)

AppRole = Literal["public", "worker"]


def create_app(
    role: AppRole | None = None,
    engine: BookingEngine | None = None,
    refresh_on_startup: bool = True,
) -> FastAPI:
    """Create FastAPI app with routes based on APP_ROLE.

    Args:
        role: Explicit role override. If None, reads from APP_ROLE env var.
              Defaults to "public" if env var is not set.
        engine: Booking engine to serve. Built from env settings if None.
        refresh_on_startup: Load remote state before serving and start the
              periodic refresh loop.

    Returns:
        Configured FastAPI application.
    """
    if role is None:
        role = os.environ.get("APP_ROLE", "public")  # type: ignore[assignment]

    engine = engine or create_engine()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if refresh_on_startup:
            try:
                await engine.refresh()
            except RemoteUnavailableError as e:
                # Serve with empty state; the refresh loop will catch up.
                logger.warning(
                    "initial refresh failed",
                    extra={"extra_fields": {"reason": e.reason}},
                )
            if engine.settings.refresh_seconds > 0:
                engine.start_refresh_loop()
        yield
        await engine.stop_refresh_loop()

    app = FastAPI(
        title="Staybook",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.engine = engine

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    # Mount public routes (always)
    app.include_router(public.router)
    app.include_router(availability.router)
    app.include_router(sessions.router)

    # Mount worker routes only for worker role
    if role == "worker":
        app.include_router(worker.router)
        app.include_router(tasks_sync.router)

    return app
