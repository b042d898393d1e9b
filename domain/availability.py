"""Availability Engine.

Derives, for every date of a range, whether its morning and night blocks
are free. A stored reservation holds every half-day slot from its arrival
block through its departure block. When the half-day buffer policy is on,
the slot right after departure is held too (the next morning for a night
departure), and so is the morning of a night arrival. This is what makes a
same-day morning departure and night arrival incompatible while the buffer
is enabled.

The output is recomputed from the ledger on every call; nothing is cached.
"""
from datetime import date, timedelta
from typing import Dict, Iterable, List, Set

from domain.enums import Block, ReservationStatus
from domain.errors import InvalidRangeError
from domain.parameters import SystemParameters
from domain.value_objects import DateBlockState, StayPeriod, iter_dates, slot_index, slot_to_date_block

# A night departure buffers the following morning, so ledger reads and
# date locks reach one day past the dates a stay itself covers.
BUFFER_MARGIN = timedelta(days=1)


def held_slots(stay: StayPeriod, buffer_half_day: bool) -> Set[int]:
    """Slots a stored stay makes unavailable to other bookings"""
    slots = set(stay.occupied_slots())
    if buffer_half_day:
        slots.update(stay.buffer_slots())
    return slots


def compute_availability(
    range_start: date,
    range_end: date,
    reservations: Iterable,
    parameters: SystemParameters,
) -> List[DateBlockState]:
    """Per-date block availability for [range_start, range_end], ascending.

    ``reservations`` is any iterable of objects exposing ``stay`` and
    ``status``; cancelled ones are ignored.
    """
    if range_start > range_end:
        raise InvalidRangeError(
            f"Range start {range_start.isoformat()} is after range end {range_end.isoformat()}"
        )

    states: Dict[date, DateBlockState] = {
        day: DateBlockState(date=day) for day in iter_dates(range_start, range_end)
    }
    first = slot_index(range_start, Block.MORNING)
    last = slot_index(range_end, Block.NIGHT)

    for reservation in reservations:
        if reservation.status == ReservationStatus.CANCELLED:
            continue
        if not reservation.stay.intersects(range_start - BUFFER_MARGIN, range_end + BUFFER_MARGIN):
            continue
        for slot in held_slots(reservation.stay, parameters.buffer_half_day):
            if slot < first or slot > last:
                continue
            day, block = slot_to_date_block(slot)
            if block is Block.MORNING:
                states[day].morning_available = False
            else:
                states[day].night_available = False

    return list(states.values())


def index_by_date(availability: Iterable[DateBlockState]) -> Dict[date, DateBlockState]:
    return {state.date: state for state in availability}
