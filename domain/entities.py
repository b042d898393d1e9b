"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime, date, timezone
from typing import Optional, Any

from domain.enums import ReservationStatus, ParameterType
from domain.errors import InvalidStateError
from domain.parameters import cast_parameter
from domain.value_objects import (
    StayPeriod, GuestCount, ClientContact, DepositInfo, ReservationCandidate
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)

    # Value Objects
    stay: StayPeriod
    guest_count: GuestCount
    client: ClientContact

    # Amounts in whole currency units
    estimated_amount: int = Field(ge=0)
    final_amount: Optional[int] = None

    # Status
    status: ReservationStatus = ReservationStatus.REQUESTED

    # Confirmation / cancellation records
    deposit: Optional[DepositInfo] = None
    confirmed_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    refund_eligible: Optional[bool] = None

    # Metadata
    created_at: datetime = Field(default_factory=_utcnow)
    modified_at: datetime = Field(default_factory=_utcnow)
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        candidate: ReservationCandidate,
        client: ClientContact,
        estimated_amount: int,
    ) -> "Reservation":
        """Create a new reservation request.

        Business rules are checked by the validator before this is called;
        only the structural invariants are enforced here.
        """
        if candidate.guests.total < 1:
            raise ValueError("At least one guest is required")

        return Reservation(
            stay=candidate.stay,
            guest_count=candidate.guests,
            client=client,
            estimated_amount=estimated_amount,
            status=ReservationStatus.REQUESTED,
        )

    # ==================== STATE TRANSITION METHODS ====================
    def confirm(self, final_amount: int, deposit: Optional[DepositInfo] = None) -> None:
        """Confirm a requested reservation"""
        if self.status != ReservationStatus.REQUESTED:
            raise InvalidStateError(
                f"Cannot confirm reservation with status {self.status.value}"
            )
        if final_amount < 0:
            raise ValueError("Final amount cannot be negative")

        self.final_amount = final_amount
        self.deposit = deposit
        self.status = ReservationStatus.CONFIRMED
        self.confirmed_at = _utcnow()
        self._touch()

    def cancel(self, reason: str, refund_eligible: bool) -> None:
        """Cancel a requested or confirmed reservation"""
        if not self.is_cancellable():
            raise InvalidStateError(
                f"Cannot cancel reservation with status {self.status.value}"
            )

        self.status = ReservationStatus.CANCELLED
        self.cancellation_reason = reason
        self.refund_eligible = refund_eligible
        self.cancelled_at = _utcnow()
        self._touch()

    def modify(
        self,
        new_stay: Optional[StayPeriod] = None,
        new_guest_count: Optional[GuestCount] = None,
        new_estimated_amount: Optional[int] = None,
    ) -> None:
        """Replace stay and/or party; caller re-validates and re-prices"""
        if not self.is_modifiable():
            raise InvalidStateError(
                f"Cannot modify reservation with status {self.status.value}"
            )

        if new_stay is not None:
            self.stay = new_stay
        if new_guest_count is not None:
            self.guest_count = new_guest_count
        if new_estimated_amount is not None:
            self.estimated_amount = new_estimated_amount
        self._touch()

    # ==================== QUERY METHODS ====================
    def is_modifiable(self) -> bool:
        return self.status in [ReservationStatus.REQUESTED, ReservationStatus.CONFIRMED]

    def is_cancellable(self) -> bool:
        return self.status in [ReservationStatus.REQUESTED, ReservationStatus.CONFIRMED]

    def is_refund_eligible(self, today: date, refundable_days: int) -> bool:
        """Whether cancelling on ``today`` keeps the deposit refundable"""
        return (self.stay.arrival_date - today).days >= refundable_days

    def to_candidate(self) -> ReservationCandidate:
        return ReservationCandidate(stay=self.stay, guests=self.guest_count)

    def get_nights(self) -> int:
        return self.stay.nights()

    def _touch(self) -> None:
        self.modified_at = _utcnow()
        self.version += 1


class SystemParameter(BaseModel):
    """Admin-editable key/value parameter"""
    key: str
    value: str
    type: ParameterType = ParameterType.STRING
    description: Optional[str] = None
    updated_at: datetime = Field(default_factory=_utcnow)

    class Config:
        from_attributes = True

    def typed_value(self) -> Any:
        return cast_parameter(self.key, self.value, self.type)
