"""Reservation Validator.

Checks a candidate against a freshly computed availability snapshot and the
system parameters. All rules are evaluated so the caller can report every
problem at once. The validator is pure and keeps no state between calls.
"""
from datetime import date
from typing import Iterable, List, Optional

from pydantic import BaseModel

from domain.availability import index_by_date
from domain.enums import Block
from domain.parameters import SystemParameters
from domain.value_objects import DateBlockState, ReservationCandidate, slot_to_date_block


class ValidationError(BaseModel):
    """One violated business rule"""
    code: str
    message: str

    class Config:
        frozen = True


class DateUnavailableError(ValidationError):
    """A block the candidate needs is already held"""
    code: str = "date_unavailable"
    date: date
    block: Block


class ValidationResult(BaseModel):
    errors: List[ValidationError] = []

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def codes(self) -> List[str]:
        return [error.code for error in self.errors]


def validate(
    candidate: ReservationCandidate,
    current_availability: Iterable[DateBlockState],
    parameters: SystemParameters,
    today: Optional[date] = None,
    occupancy: Optional[Iterable[DateBlockState]] = None,
) -> ValidationResult:
    """Check every booking rule; ``today`` defaults to the property's date.

    ``occupancy`` is the same ledger read with buffers switched off. When it
    is given and the buffer policy is on, the candidate's own turnover
    blocks must not be occupied by another stay either.
    """
    stay = candidate.stay
    guests = candidate.guests
    errors: List[ValidationError] = []

    if stay.arrival_date >= stay.departure_date:
        errors.append(ValidationError(
            code="invalid_dates",
            message="Departure date must be after arrival date",
        ))

    if stay.nights() < parameters.min_nights:
        errors.append(ValidationError(
            code="min_nights",
            message=f"Minimum stay is {parameters.min_nights} nights",
        ))

    if guests.adults < parameters.min_adults:
        errors.append(ValidationError(
            code="min_adults",
            message=f"At least {parameters.min_adults} adults are required",
        ))

    if guests.total > parameters.max_total_people:
        errors.append(ValidationError(
            code="max_total_people",
            message=f"Maximum is {parameters.max_total_people} people (adults + children)",
        ))

    # Ages are not tracked per guest; children only count toward the total.
    if guests.total < 1:
        errors.append(ValidationError(
            code="invalid_guest_count",
            message="At least one guest is required",
        ))

    errors.extend(_unavailable_blocks(candidate, current_availability))
    if parameters.buffer_half_day and occupancy is not None:
        errors.extend(_occupied_turnover_blocks(candidate, occupancy))

    if today is None:
        today = parameters.today()
    if stay.arrival_date < today or stay.departure_date < today:
        errors.append(ValidationError(
            code="past_date",
            message=f"Dates cannot be earlier than {today.isoformat()}",
        ))

    return ValidationResult(errors=errors)


def _unavailable_blocks(
    candidate: ReservationCandidate,
    current_availability: Iterable[DateBlockState],
) -> List[DateUnavailableError]:
    stay = candidate.stay
    if stay.first_slot > stay.last_slot:
        return []

    states = index_by_date(current_availability)
    conflicts = []
    for slot in stay.occupied_slots():
        day, block = slot_to_date_block(slot)
        state = states.get(day)
        # A date outside the snapshot has no known conflict.
        if state is None or state.is_available(block):
            continue
        conflicts.append(DateUnavailableError(
            message=f"{day.isoformat()} ({block.value}) is not available",
            date=day,
            block=block,
        ))
    return conflicts


def _occupied_turnover_blocks(
    candidate: ReservationCandidate,
    occupancy: Iterable[DateBlockState],
) -> List[DateUnavailableError]:
    stay = candidate.stay
    if stay.first_slot > stay.last_slot:
        return []

    states = index_by_date(occupancy)
    conflicts = []
    for slot in stay.buffer_slots():
        day, block = slot_to_date_block(slot)
        state = states.get(day)
        if state is None or state.is_available(block):
            continue
        conflicts.append(DateUnavailableError(
            message=f"{day.isoformat()} ({block.value}) is needed for turnover but is occupied",
            date=day,
            block=block,
        ))
    return conflicts
