"""Shared pytest fixtures for staybook tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from helpers import NOW, TODAY  # noqa: E402
from staybook.infra.remote_store import InMemoryRemoteStore  # noqa: E402
from staybook.infra.settings import Settings  # noqa: E402
from staybook.services.booking_engine import BookingEngine  # noqa: E402
from staybook.tasks.client import TasksClient  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    """Default settings without retry back-off or refresh loop."""
    return Settings(sync_backoff_seconds=0.0, refresh_seconds=0.0)


@pytest.fixture
def store() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()


@pytest.fixture
def tasks() -> TasksClient:
    """Deferred backend: spawned syncs run only when drained."""
    return TasksClient(backend="deferred")


@pytest.fixture
def engine(settings, store, tasks) -> BookingEngine:
    """Engine pinned to TODAY (2024-01-01)."""
    return BookingEngine(
        settings,
        store,
        tasks=tasks,
        today=lambda: TODAY,
        now=lambda: NOW,
    )
