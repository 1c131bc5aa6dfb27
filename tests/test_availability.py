"""Tests for the availability resolver."""

from datetime import date

import pytest

from helpers import TODAY, make_booking, make_override
from staybook.domain.availability import (
    build_calendar,
    day_status,
    is_selectable,
    remaining_capacity,
)
from staybook.domain.capacity import index_overrides
from staybook.domain.models import DayStatus, OverrideStatus

D = date(2024, 1, 10)
PAST = date(2023, 12, 31)


def status(day, overrides=(), bookings=()):
    return day_status(day, index_overrides(overrides), list(bookings), today=TODAY)


class TestCountBasedStatus:
    def test_no_bookings_available(self):
        assert status(D) == DayStatus.AVAILABLE

    def test_one_booking_limited(self):
        assert status(D, bookings=[make_booking("A", D)]) == DayStatus.LIMITED

    def test_full_is_booked(self):
        bookings = [make_booking("A", D), make_booking("B", D)]
        assert status(D, bookings=bookings) == DayStatus.BOOKED
        assert is_selectable(status(D, bookings=bookings)) is False

    def test_default_capacity_changes_threshold(self):
        bookings = [make_booking("A", D), make_booking("B", D)]
        resolved = day_status(D, {}, bookings, today=TODAY, default_capacity=3)
        assert resolved == DayStatus.LIMITED


class TestOverridePrecedence:
    def test_limited_override_beats_computed_available(self):
        overrides = [make_override(D, OverrideStatus.LIMITED, max_capacity=5)]
        assert status(D, overrides) == DayStatus.LIMITED

    def test_available_override_beats_computed_booked(self):
        overrides = [make_override(D, OverrideStatus.AVAILABLE, max_capacity=1)]
        bookings = [make_booking("A", D)]
        assert status(D, overrides, bookings) == DayStatus.AVAILABLE

    def test_closed_override(self):
        overrides = [make_override(D, OverrideStatus.CLOSED)]
        assert status(D, overrides) == DayStatus.CLOSED

    def test_booked_override(self):
        overrides = [make_override(D, OverrideStatus.BOOKED)]
        assert status(D, overrides) == DayStatus.BOOKED


class TestPastDates:
    @pytest.mark.parametrize("override_status", list(OverrideStatus))
    def test_past_wins_over_any_override(self, override_status):
        overrides = [make_override(PAST, override_status)]
        assert status(PAST, overrides) == DayStatus.PAST

    def test_past_wins_over_bookings(self):
        bookings = [make_booking("A", PAST), make_booking("B", PAST)]
        assert status(PAST, bookings=bookings) == DayStatus.PAST

    def test_today_is_not_past(self):
        assert status(TODAY) == DayStatus.AVAILABLE


class TestSelectable:
    @pytest.mark.parametrize(
        "day_status_value,expected",
        [
            (DayStatus.PAST, False),
            (DayStatus.CLOSED, False),
            (DayStatus.BOOKED, False),
            (DayStatus.LIMITED, True),
            (DayStatus.AVAILABLE, True),
        ],
    )
    def test_selectable_statuses(self, day_status_value, expected):
        assert is_selectable(day_status_value) is expected


class TestRemainingCapacity:
    def test_remaining(self):
        assert remaining_capacity(D, {}, [make_booking("A", D)]) == 1

    def test_clamped_at_zero(self):
        overrides = index_overrides([make_override(D, max_capacity=1)])
        bookings = [make_booking("A", D), make_booking("B", D)]
        assert remaining_capacity(D, overrides, bookings) == 0

    def test_offline_bookings_take_slots(self):
        overrides = index_overrides(
            [make_override(D, max_capacity=3, offline_booked=1)]
        )
        assert remaining_capacity(D, overrides, [make_booking("A", D)]) == 1


class TestBuildCalendar:
    def test_half_open_range(self):
        days = build_calendar(date(2024, 1, 10), date(2024, 1, 13), {}, [], today=TODAY)
        assert [d.date for d in days] == [
            date(2024, 1, 10),
            date(2024, 1, 11),
            date(2024, 1, 12),
        ]

    def test_empty_when_end_not_after_start(self):
        assert build_calendar(D, D, {}, [], today=TODAY) == []

    def test_day_fields(self):
        overrides = index_overrides(
            [make_override(D, OverrideStatus.LIMITED, max_capacity=3, notes="Event", price=15000)]
        )
        (day,) = build_calendar(
            D, date(2024, 1, 11), overrides, [make_booking("A", D)], today=TODAY
        )
        assert day.status == DayStatus.LIMITED
        assert day.capacity == 3
        assert day.booked == 1
        assert day.remaining == 2
        assert day.selectable is True
        assert day.price == 15000
        assert day.notes == "Event"

    def test_offline_bookings_in_booked_count(self):
        overrides = index_overrides(
            [make_override(D, max_capacity=2, offline_booked=1)]
        )
        (day,) = build_calendar(
            D, date(2024, 1, 11), overrides, [make_booking("A", D)], today=TODAY
        )
        assert day.booked == 2
        assert day.remaining == 0

    def test_matches_day_status(self):
        bookings = [make_booking("A", D), make_booking("B", D)]
        days = build_calendar(PAST, date(2024, 1, 15), {}, bookings, today=TODAY)
        for day in days:
            assert day.status == status(day.date, bookings=bookings)
