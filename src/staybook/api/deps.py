"""Request-scoped access to the application's booking engine."""

from fastapi import Request

from staybook.services.booking_engine import BookingEngine


def get_engine(request: Request) -> BookingEngine:
    return request.app.state.engine
