"""Engine configuration loaded from environment variables.

All knobs have defaults matching the production calendar, so an empty
environment yields a working in-memory setup for local dev and tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

StoreBackend = Literal["memory", "github"]


@dataclass(frozen=True)
class GitHubConfig:
    """Location of the versioned spreadsheet files on GitHub."""

    owner: str = "ZeroDegreeStation"
    repo: str = "Calendar"
    branch: str = "main"
    api_base: str = "https://api.github.com"


@dataclass(frozen=True)
class Settings:
    """Engine settings.

    Attributes:
        timezone: IANA timezone used to decide whether a date is past.
        default_capacity: Bookings allowed per date when no override exists.
        default_price: Nightly price used when no plan is selected.
        service_charge: Flat charge added to every non-empty quote.
        booking_prefix: Namespace prefix for generated booking ids.
        sync_max_retries: Conflict retries after the first write attempt.
        sync_backoff_seconds: Linear back-off step between retries.
        refresh_seconds: Interval of the periodic remote refresh.
        session_ttl_seconds: Idle time after which a guest session is dropped.
        max_sessions: Open guest sessions kept; the least recently used go first.
        store: Remote store backend.
        bookings_path: Path of the bookings file in the store.
        availability_path: Path of the availability file in the store.
        http_timeout: Timeout (seconds) for remote store HTTP calls.
    """

    timezone: str = "Asia/Tokyo"
    default_capacity: int = 2
    default_price: int = 12800
    service_charge: int = 1000
    booking_prefix: str = "SNOW"
    sync_max_retries: int = 3
    sync_backoff_seconds: float = 1.0
    refresh_seconds: float = 300.0
    session_ttl_seconds: float = 3600.0
    max_sessions: int = 10000
    store: StoreBackend = "memory"
    bookings_path: str = "data/calendar-bookings.xlsx"
    availability_path: str = "data/calendar-availability.xlsx"
    http_timeout: int = 30
    github: GitHubConfig = field(default_factory=GitHubConfig)

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from STAYBOOK_* and GITHUB_* environment variables."""
        env = os.environ
        store = env.get("STAYBOOK_STORE", "memory")
        if store not in ("memory", "github"):
            raise ValueError(f"Unknown STAYBOOK_STORE: {store}")

        return cls(
            timezone=env.get("STAYBOOK_TIMEZONE", "Asia/Tokyo"),
            default_capacity=int(env.get("STAYBOOK_DEFAULT_CAPACITY", "2")),
            default_price=int(env.get("STAYBOOK_DEFAULT_PRICE", "12800")),
            service_charge=int(env.get("STAYBOOK_SERVICE_CHARGE", "1000")),
            booking_prefix=env.get("STAYBOOK_BOOKING_PREFIX", "SNOW"),
            sync_max_retries=int(env.get("STAYBOOK_SYNC_MAX_RETRIES", "3")),
            sync_backoff_seconds=float(env.get("STAYBOOK_SYNC_BACKOFF_SECONDS", "1.0")),
            refresh_seconds=float(env.get("STAYBOOK_REFRESH_SECONDS", "300")),
            session_ttl_seconds=float(env.get("STAYBOOK_SESSION_TTL_SECONDS", "3600")),
            max_sessions=int(env.get("STAYBOOK_MAX_SESSIONS", "10000")),
            store=store,  # type: ignore[arg-type]
            bookings_path=env.get("STAYBOOK_BOOKINGS_PATH", "data/calendar-bookings.xlsx"),
            availability_path=env.get(
                "STAYBOOK_AVAILABILITY_PATH", "data/calendar-availability.xlsx"
            ),
            http_timeout=int(env.get("STAYBOOK_HTTP_TIMEOUT", "30")),
            github=GitHubConfig(
                owner=env.get("GITHUB_OWNER", "ZeroDegreeStation"),
                repo=env.get("GITHUB_REPO", "Calendar"),
                branch=env.get("GITHUB_BRANCH", "main"),
                api_base=env.get("GITHUB_API_BASE", "https://api.github.com"),
            ),
        )
