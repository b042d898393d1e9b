"""Pricing Engine"""
from decimal import Decimal, ROUND_HALF_UP

from domain.enums import Block
from domain.parameters import SystemParameters
from domain.value_objects import PriceBreakdown, ReservationCandidate

HALF_DAY_RATE = Decimal("0.5")


def _round_amount(amount: Decimal) -> int:
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _subtotal(people: int, rate: int, full_days: int, half_days: int) -> int:
    daily = Decimal(rate)
    amount = people * daily * full_days + people * (daily * HALF_DAY_RATE) * half_days
    return _round_amount(amount)


def price(candidate: ReservationCandidate, parameters: SystemParameters) -> PriceBreakdown:
    """Price a stay per person and per day.

    Every night is a full day. A night departure adds one half day; the
    arrival block never changes the charge.
    """
    stay = candidate.stay
    guests = candidate.guests

    full_days = max(0, stay.nights())
    half_days = 1 if stay.departure_block is Block.NIGHT and full_days > 0 else 0

    adult_subtotal = _subtotal(guests.adults, parameters.adult_price_per_day, full_days, half_days)
    child_subtotal = _subtotal(guests.children, parameters.child_price_per_day, full_days, half_days)

    return PriceBreakdown(
        adults=guests.adults,
        children=guests.children,
        full_days=full_days,
        half_days=half_days,
        adult_subtotal=adult_subtotal,
        child_subtotal=child_subtotal,
        total=adult_subtotal + child_subtotal,
    )
