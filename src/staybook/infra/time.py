"""Time utilities for consistent timestamp and calendar-day handling."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def local_today(tz_name: str) -> date:
    """Return today's calendar date in the given IANA timezone.

    Past/future checks are made on calendar days in the property's
    local time, not in UTC.
    """
    return utc_now().astimezone(ZoneInfo(tz_name)).date()
