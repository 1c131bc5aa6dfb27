"""Pricing of a selection - single fixed model, integer yen.

room_rate = nights * price_per_night
tax       = round_half_up(room_rate * 10%)
total     = room_rate + tax + service_charge
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

TAX_RATE = Decimal("0.10")
SERVICE_CHARGE = 1000


@dataclass(frozen=True)
class PriceBreakdown:
    nights: int
    price_per_night: int
    room_rate: int
    tax: int
    service_charge: int
    total: int


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def quote(
    nights: int,
    price_per_night: int,
    service_charge: int = SERVICE_CHARGE,
) -> PriceBreakdown:
    """Price *nights* at *price_per_night*.

    An empty selection (0 nights) quotes to zero, service charge included.
    """
    if nights < 0:
        raise ValueError("nights must be >= 0")
    if nights == 0:
        return PriceBreakdown(0, price_per_night, 0, 0, 0, 0)

    room_rate = nights * price_per_night
    tax = round_half_up(Decimal(room_rate) * TAX_RATE)
    return PriceBreakdown(
        nights=nights,
        price_per_night=price_per_night,
        room_rate=room_rate,
        tax=tax,
        service_charge=service_charge,
        total=room_rate + tax + service_charge,
    )
