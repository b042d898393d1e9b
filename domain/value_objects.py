"""Domain Value Objects"""
from pydantic import BaseModel, Field
from datetime import date, timedelta
from typing import Iterator, Optional, Tuple

from domain.enums import Block


def slot_index(day: date, block: Block) -> int:
    """Half-day slot number; consecutive blocks have consecutive numbers"""
    return day.toordinal() * 2 + block.offset


def slot_to_date_block(slot: int) -> Tuple[date, Block]:
    return date.fromordinal(slot // 2), (Block.MORNING if slot % 2 == 0 else Block.NIGHT)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Every date in [start, end], ascending"""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


class StayPeriod(BaseModel):
    """Value Object for arrival/departure dates and blocks.

    Ordering of the two dates is deliberately not enforced here: an
    inverted stay is reported by the validator together with every other
    violated rule.
    """
    arrival_date: date
    arrival_block: Block
    departure_date: date
    departure_block: Block

    def nights(self) -> int:
        """Calendar-day difference; blocks never add or remove nights"""
        return (self.departure_date - self.arrival_date).days

    @property
    def first_slot(self) -> int:
        return slot_index(self.arrival_date, self.arrival_block)

    @property
    def last_slot(self) -> int:
        return slot_index(self.departure_date, self.departure_block)

    def occupied_slots(self) -> range:
        """Slots held by the guests, from arrival block to departure block"""
        return range(self.first_slot, self.last_slot + 1)

    def buffer_slots(self) -> Tuple[int, ...]:
        """Turnover slots kept free around the stay.

        The block right after departure is always a buffer, so a night
        departure takes the next morning. Before arrival only the same-day
        morning of a night arrival is taken.
        """
        slots = []
        before = self.first_slot - 1
        if slot_to_date_block(before)[0] == self.arrival_date:
            slots.append(before)
        slots.append(self.last_slot + 1)
        return tuple(slots)

    def intersects(self, start: date, end: date) -> bool:
        return self.arrival_date <= end and self.departure_date >= start

    class Config:
        frozen = True


class GuestCount(BaseModel):
    """Value Object for party composition"""
    adults: int = Field(ge=0)
    children: int = Field(ge=0, default=0)

    @property
    def total(self) -> int:
        return self.adults + self.children

    class Config:
        frozen = True


class ReservationCandidate(BaseModel):
    """A proposed stay as submitted by a guest or an administrator"""
    stay: StayPeriod
    guests: GuestCount

    class Config:
        frozen = True


class ClientContact(BaseModel):
    """Contact details owned by a single reservation"""
    name: str = Field(min_length=1)
    whatsapp: str = Field(min_length=1)
    email: str = Field(min_length=3)
    city: str = Field(min_length=1)
    observations: Optional[str] = None

    class Config:
        frozen = True


class DepositInfo(BaseModel):
    """Deposit recorded by the operator when confirming"""
    deposit_amount: int = Field(ge=0)
    deposit_date: date
    deposit_method: Optional[str] = None
    deposit_reference: Optional[str] = None

    class Config:
        frozen = True


class DateBlockState(BaseModel):
    """Derived free/busy signal for one calendar date"""
    date: date
    morning_available: bool = True
    night_available: bool = True

    def is_available(self, block: Block) -> bool:
        if block is Block.MORNING:
            return self.morning_available
        return self.night_available


class PriceBreakdown(BaseModel):
    """Monetary breakdown in whole currency units"""
    adults: int
    children: int
    full_days: int
    half_days: int
    adult_subtotal: int
    child_subtotal: int
    total: int

    class Config:
        frozen = True
