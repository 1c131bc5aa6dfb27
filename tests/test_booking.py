"""Tests for the booking transaction."""

from datetime import date

import pytest

from helpers import NOW, TODAY, make_booking, make_override
from staybook.domain.booking import (
    BookingRequest,
    CapacityConflictError,
    ValidationError,
    commit_booking,
    find_conflicts,
    generate_booking_id,
)
from staybook.domain.capacity import index_overrides
from staybook.domain.models import BookingStatus, OverrideStatus, Plan

PLAN = Plan(plan_id="weekend-getaway", name="Weekend Getaway", price=12800)
DATES = [date(2024, 1, 10), date(2024, 1, 11), date(2024, 1, 12)]
REQUEST = BookingRequest(
    name="  Hanako Sato ",
    email="hanako@example.com ",
    phone="080-0000-0000",
    guest_count=2,
    special_requests="Late check-in",
)


def fixed_id(prefix):
    return f"{prefix}-FIXED"


def commit(dates=DATES, request=REQUEST, overrides=(), bookings=()):
    return commit_booking(
        request,
        dates,
        PLAN,
        index_overrides(overrides),
        list(bookings),
        today=TODAY,
        now=NOW,
        id_factory=fixed_id,
    )


class TestCommitBooking:
    def test_one_row_per_night_sharing_id(self):
        rows = commit()
        assert [r.date for r in rows] == DATES
        assert {r.booking_id for r in rows} == {"SNOW-FIXED"}

    def test_row_fields(self):
        row = commit()[0]
        assert row.status == BookingStatus.CONFIRMED
        assert row.customer.name == "Hanako Sato"
        assert row.customer.email == "hanako@example.com"
        assert row.guest_count == 2
        assert row.plan_id == "weekend-getaway"
        assert row.unit_price == 12800
        assert row.total_price == 12800 * 3
        assert row.created_at == NOW
        assert row.special_requests == "Late check-in"

    def test_prefix_passed_to_id_factory(self):
        rows = commit_booking(
            REQUEST,
            DATES[:1],
            PLAN,
            {},
            [],
            today=TODAY,
            now=NOW,
            booking_prefix="TEST",
            id_factory=fixed_id,
        )
        assert rows[0].booking_id == "TEST-FIXED"

    def test_full_date_aborts_whole_booking(self):
        bookings = [make_booking("A", DATES[1]), make_booking("B", DATES[1])]
        with pytest.raises(CapacityConflictError) as exc_info:
            commit(bookings=bookings)
        assert exc_info.value.dates == (DATES[1],)

    def test_closed_override_conflicts(self):
        with pytest.raises(CapacityConflictError):
            commit(overrides=[make_override(DATES[0], OverrideStatus.CLOSED)])

    def test_available_label_with_no_free_slot_conflicts(self):
        overrides = [make_override(DATES[0], OverrideStatus.AVAILABLE, max_capacity=1)]
        with pytest.raises(CapacityConflictError) as exc_info:
            commit(overrides=overrides, bookings=[make_booking("A", DATES[0])])
        assert exc_info.value.dates == (DATES[0],)

    def test_offline_bookings_fill_the_date(self):
        overrides = [make_override(DATES[2], max_capacity=2, offline_booked=2)]
        with pytest.raises(CapacityConflictError) as exc_info:
            commit(overrides=overrides)
        assert exc_info.value.dates == (DATES[2],)

    def test_past_date_conflicts(self):
        with pytest.raises(CapacityConflictError):
            commit(dates=[date(2023, 12, 31)])

    def test_cancelled_rows_free_the_slot(self):
        bookings = [
            make_booking("A", DATES[0]),
            make_booking("B", DATES[0], status=BookingStatus.CANCELLED),
        ]
        assert len(commit(bookings=bookings)) == 3


class TestValidation:
    def test_empty_selection(self):
        with pytest.raises(ValidationError) as exc_info:
            commit(dates=[])
        assert exc_info.value.reason_code == "empty_selection"

    def test_missing_fields(self):
        request = BookingRequest(name=" ", email="")
        with pytest.raises(ValidationError) as exc_info:
            commit(request=request)
        assert exc_info.value.reason_code == "missing_fields"
        assert exc_info.value.fields == ("name", "email")

    def test_invalid_guest_count(self):
        request = BookingRequest(name="A", email="a@example.com", guest_count=0)
        with pytest.raises(ValidationError) as exc_info:
            commit(request=request)
        assert exc_info.value.reason_code == "invalid_guest_count"

    def test_validation_runs_before_capacity_check(self):
        bookings = [make_booking("A", DATES[0]), make_booking("B", DATES[0])]
        with pytest.raises(ValidationError):
            commit(request=BookingRequest(name="", email=""), bookings=bookings)


class TestFindConflicts:
    def test_no_conflicts(self):
        assert find_conflicts(DATES, {}, [], today=TODAY) == []

    def test_reports_every_conflicting_date(self):
        bookings = [
            make_booking("A", DATES[0]),
            make_booking("B", DATES[0]),
            make_booking("A", DATES[2]),
            make_booking("B", DATES[2]),
        ]
        assert find_conflicts(DATES, {}, bookings, today=TODAY) == [DATES[0], DATES[2]]


class TestGenerateBookingId:
    def test_format(self):
        booking_id = generate_booking_id("SNOW")
        prefix, suffix = booking_id.split("-")
        assert prefix == "SNOW"
        assert len(suffix) == 12
        assert suffix == suffix.upper()

    def test_unique(self):
        assert len({generate_booking_id() for _ in range(100)}) == 100
