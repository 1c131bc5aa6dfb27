"""Tests for GET /availability and GET /plans."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from helpers import make_booking, make_override
from staybook.api.factory import create_app
from staybook.domain.models import OverrideStatus


@pytest.fixture
def client(engine):
    return TestClient(create_app(role="public", engine=engine, refresh_on_startup=False))


class TestAvailability:
    def test_statuses(self, client, engine):
        engine.load(
            overrides=[make_override(date(2024, 1, 3), OverrideStatus.CLOSED, notes="Maintenance")],
            bookings=[make_booking("A", date(2024, 1, 2))],
        )
        response = client.get(
            "/availability", params={"start": "2023-12-31", "end": "2024-01-04"}
        )
        assert response.status_code == 200
        days = response.json()
        assert [d["date"] for d in days] == [
            "2023-12-31",
            "2024-01-01",
            "2024-01-02",
            "2024-01-03",
        ]
        assert [d["status"] for d in days] == ["Past", "Available", "Limited", "Closed"]
        assert [d["selectable"] for d in days] == [False, True, True, False]
        assert days[2]["remaining"] == 1
        assert days[3]["notes"] == "Maintenance"

    def test_default_range_is_31_days(self, client):
        response = client.get("/availability", params={"start": "2024-01-01"})
        assert len(response.json()) == 31

    def test_end_before_start(self, client):
        response = client.get(
            "/availability", params={"start": "2024-01-10", "end": "2024-01-10"}
        )
        assert response.status_code == 400

    def test_range_too_long(self, client):
        response = client.get(
            "/availability", params={"start": "2024-01-01", "end": "2024-12-31"}
        )
        assert response.status_code == 400

    def test_invalid_date(self, client):
        response = client.get("/availability", params={"start": "tomorrow"})
        assert response.status_code == 422


class TestPlans:
    def test_lists_default_plans(self, client):
        plans = client.get("/plans").json()
        assert {p["plan_id"]: p["price"] for p in plans} == {
            "weekend-getaway": 12800,
            "ski-adventure": 18500,
            "family-package": 32000,
        }
