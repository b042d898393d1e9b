"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime
from uuid import UUID
from typing import List, Optional

from domain.enums import Block, ReservationStatus, ParameterType
from domain.entities import Reservation
from domain.value_objects import (
    ClientContact, DepositInfo, GuestCount, PriceBreakdown, ReservationCandidate, StayPeriod
)


# ============================================================================
# AVAILABILITY SCHEMAS
# ============================================================================

class DateAvailabilityResponse(BaseModel):
    """Availability of one date"""
    date: date
    morning_available: bool
    night_available: bool


class AvailabilityResponse(BaseModel):
    """Availability response DTO"""
    from_date: date
    to_date: date
    dates: List[DateAvailabilityResponse]


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class ClientRequest(BaseModel):
    """Client contact DTO"""
    name: str = Field(min_length=1)
    whatsapp: str = Field(min_length=1)
    email: str = Field(min_length=3)
    city: str = Field(min_length=1)
    observations: Optional[str] = None

    def to_contact(self) -> ClientContact:
        return ClientContact(**self.model_dump())


class QuoteRequest(BaseModel):
    """Stay and party to price or book"""
    arrival_date: date
    arrival_block: Block
    departure_date: date
    departure_block: Block
    adults: int = Field(ge=0)
    children: int = Field(ge=0, default=0)

    def to_candidate(self) -> ReservationCandidate:
        return ReservationCandidate(
            stay=StayPeriod(
                arrival_date=self.arrival_date,
                arrival_block=self.arrival_block,
                departure_date=self.departure_date,
                departure_block=self.departure_block,
            ),
            guests=GuestCount(adults=self.adults, children=self.children),
        )


class CreateReservationRequest(QuoteRequest):
    """Create reservation request DTO"""
    client: ClientRequest


class ModifyReservationRequest(BaseModel):
    """Modify reservation request DTO; omitted fields keep their value"""
    arrival_date: Optional[date] = None
    arrival_block: Optional[Block] = None
    departure_date: Optional[date] = None
    departure_block: Optional[Block] = None
    adults: Optional[int] = Field(None, ge=0)
    children: Optional[int] = Field(None, ge=0)

    def new_stay(self, current: StayPeriod) -> Optional[StayPeriod]:
        changes = {
            k: v for k, v in self.model_dump(
                include={"arrival_date", "arrival_block", "departure_date", "departure_block"}
            ).items() if v is not None
        }
        return current.model_copy(update=changes) if changes else None

    def new_guest_count(self, current: GuestCount) -> Optional[GuestCount]:
        if self.adults is None and self.children is None:
            return None
        return GuestCount(
            adults=current.adults if self.adults is None else self.adults,
            children=current.children if self.children is None else self.children,
        )


class ConfirmReservationRequest(BaseModel):
    """Confirm reservation request DTO"""
    final_amount: Optional[int] = Field(None, ge=0)
    deposit_info: Optional[DepositInfo] = None


class CancelReservationRequest(BaseModel):
    """Cancel reservation request DTO"""
    reason: str = Field(min_length=1)


class PriceBreakdownResponse(BaseModel):
    adults: int
    children: int
    full_days: int
    half_days: int
    adult_subtotal: int
    child_subtotal: int
    total: int

    @staticmethod
    def from_breakdown(breakdown: PriceBreakdown) -> "PriceBreakdownResponse":
        return PriceBreakdownResponse(**breakdown.model_dump())


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    arrival_date: date
    arrival_block: Block
    departure_date: date
    departure_block: Block
    nights: int
    adults: int
    children: int
    status: ReservationStatus
    estimated_amount: int
    final_amount: Optional[int] = None
    client: ClientContact
    deposit_info: Optional[DepositInfo] = None
    confirmed_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    refund_eligible: Optional[bool] = None
    created_at: datetime
    modified_at: datetime
    version: int

    @staticmethod
    def from_entity(reservation: Reservation) -> "ReservationResponse":
        return ReservationResponse(
            reservation_id=reservation.reservation_id,
            arrival_date=reservation.stay.arrival_date,
            arrival_block=reservation.stay.arrival_block,
            departure_date=reservation.stay.departure_date,
            departure_block=reservation.stay.departure_block,
            nights=reservation.get_nights(),
            adults=reservation.guest_count.adults,
            children=reservation.guest_count.children,
            status=reservation.status,
            estimated_amount=reservation.estimated_amount,
            final_amount=reservation.final_amount,
            client=reservation.client,
            deposit_info=reservation.deposit,
            confirmed_at=reservation.confirmed_at,
            cancellation_reason=reservation.cancellation_reason,
            cancelled_at=reservation.cancelled_at,
            refund_eligible=reservation.refund_eligible,
            created_at=reservation.created_at,
            modified_at=reservation.modified_at,
            version=reservation.version,
        )


class CreateReservationResponse(BaseModel):
    reservation: ReservationResponse
    estimated_amount: int
    price_breakdown: PriceBreakdownResponse


class CancelReservationResponse(BaseModel):
    reservation: ReservationResponse
    refund_eligible: bool


class PageMeta(BaseModel):
    total: int
    page: int
    per_page: int
    last_page: int


class ReservationListResponse(BaseModel):
    data: List[ReservationResponse]
    meta: PageMeta


# ============================================================================
# PARAMETER SCHEMAS
# ============================================================================

class ParameterResponse(BaseModel):
    key: str
    value: str
    type: ParameterType
    description: Optional[str] = None


class UpdateParameterRequest(BaseModel):
    value: str


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    access_token: str
    token_type: str


class UserResponse(BaseModel):
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool = False
