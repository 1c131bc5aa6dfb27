"""Tests for time utilities."""

from datetime import date, datetime, timezone
from unittest.mock import patch

from staybook.infra.time import local_today, utc_now


def test_utc_now_is_aware():
    now = utc_now()
    assert now.tzinfo is not None
    assert now.utcoffset().total_seconds() == 0


def test_local_today_crosses_date_line():
    """16:00 UTC on Jan 1 is already Jan 2 in Tokyo."""
    fixed = datetime(2024, 1, 1, 16, 0, tzinfo=timezone.utc)
    with patch("staybook.infra.time.utc_now", return_value=fixed):
        assert local_today("Asia/Tokyo") == date(2024, 1, 2)
        assert local_today("UTC") == date(2024, 1, 1)
