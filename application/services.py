"""Application Services - Business use cases"""
import asyncio
import logging
import time
from uuid import UUID
from datetime import date
from typing import List, Optional, Tuple

from domain.availability import BUFFER_MARGIN, compute_availability
from domain.entities import Reservation, SystemParameter
from domain.enums import ReservationStatus, ParameterType
from domain.errors import (
    ConfigurationError, InvalidRangeError, InvalidStateError, ReservationNotFoundError,
    ReservationRejectedError, TransientError
)
from domain.parameters import PARAMETER_DEFINITIONS, SystemParameters, cast_parameter
from domain.pricing import price
from domain.repositories import ReservationRepository, ParameterRepository
from domain.validation import validate, ValidationResult
from domain.value_objects import (
    ClientContact, DateBlockState, DepositInfo, GuestCount, PriceBreakdown,
    ReservationCandidate, StayPeriod
)
from infrastructure.locking import DateRangeLock

logger = logging.getLogger(__name__)


class ParameterService:
    """Read-mostly access to the system parameters, with a short-lived cache"""

    def __init__(self, repository: ParameterRepository, cache_ttl_seconds: float = 300.0):
        self.repository = repository
        self.cache_ttl_seconds = cache_ttl_seconds
        self._cached: Optional[SystemParameters] = None
        self._cached_at = 0.0

    async def get_parameters(self) -> SystemParameters:
        """Current parameter snapshot"""
        if self._cached is not None and time.monotonic() - self._cached_at < self.cache_ttl_seconds:
            return self._cached

        stored = await self.repository.get_all()
        try:
            snapshot = SystemParameters.from_values(
                {key: parameter.typed_value() for key, parameter in stored.items()}
            )
        except ConfigurationError:
            logger.error("System parameters are missing or malformed", exc_info=True)
            raise

        self._cached = snapshot
        self._cached_at = time.monotonic()
        return snapshot

    async def update_parameter(self, key: str, value: str) -> SystemParameter:
        """Replace one parameter value after checking it still yields a valid snapshot"""
        if key not in PARAMETER_DEFINITIONS:
            raise ConfigurationError(f"Unknown system parameter: {key}")
        parameter_type = PARAMETER_DEFINITIONS[key][0]
        typed = cast_parameter(key, value, parameter_type)

        stored = await self.repository.get_all()
        values = {k: p.typed_value() for k, p in stored.items()}
        values[key] = typed
        candidate = SystemParameters.from_values(values)
        if key == "timezone":
            candidate.zone()

        stored_value = str(typed).lower() if parameter_type == ParameterType.BOOLEAN else str(typed)
        parameter = await self.repository.set(key, stored_value, parameter_type)
        self.clear_cache()
        logger.info("System parameter %s set to %s", key, parameter.value)
        return parameter

    def clear_cache(self) -> None:
        self._cached = None
        self._cached_at = 0.0


class AvailabilityService:
    """Service for availability queries"""

    def __init__(self, repository: ReservationRepository, parameter_service: ParameterService):
        self.repository = repository
        self.parameter_service = parameter_service

    async def get_availability(
        self,
        range_start: date,
        range_end: date,
        exclude_id: Optional[UUID] = None,
        parameters: Optional[SystemParameters] = None
    ) -> List[DateBlockState]:
        """Block availability for every date in [range_start, range_end]"""
        if parameters is None:
            parameters = await self.parameter_service.get_parameters()
        reservations = await self._read_ledger(range_start, range_end, exclude_id)
        return compute_availability(range_start, range_end, reservations, parameters)

    async def get_availability_and_occupancy(
        self,
        range_start: date,
        range_end: date,
        exclude_id: Optional[UUID],
        parameters: SystemParameters
    ) -> Tuple[List[DateBlockState], List[DateBlockState]]:
        """Availability plus the same read without buffers, from one ledger read.

        The occupancy covers one extra day after ``range_end`` so the
        turnover block after a night departure is included.
        """
        reservations = await self._read_ledger(range_start, range_end, exclude_id)
        availability = compute_availability(range_start, range_end, reservations, parameters)
        occupancy = compute_availability(
            range_start,
            range_end + BUFFER_MARGIN,
            reservations,
            parameters.model_copy(update={"buffer_half_day": False})
        )
        return availability, occupancy

    async def _read_ledger(
        self,
        range_start: date,
        range_end: date,
        exclude_id: Optional[UUID]
    ) -> List[Reservation]:
        if range_start > range_end:
            raise InvalidRangeError(
                f"Range start {range_start.isoformat()} is after range end {range_end.isoformat()}"
            )
        return await self.repository.find_overlapping(
            range_start - BUFFER_MARGIN, range_end + BUFFER_MARGIN, exclude_id
        )


class ReservationService:
    """Reservation lifecycle: create, confirm, cancel, modify"""

    def __init__(self,
                 repository: ReservationRepository,
                 parameter_service: ParameterService,
                 lock: Optional[DateRangeLock] = None):
        self.repository = repository
        self.parameter_service = parameter_service
        self.availability_service = AvailabilityService(repository, parameter_service)
        self.lock = lock or DateRangeLock()

    # ==================== QUOTES / VALIDATION ====================
    async def quote(self, candidate: ReservationCandidate) -> PriceBreakdown:
        """Price a candidate without booking it"""
        parameters = await self.parameter_service.get_parameters()
        return price(candidate, parameters)

    async def check_candidate(
        self,
        candidate: ReservationCandidate,
        exclude_id: Optional[UUID] = None,
        today: Optional[date] = None,
        parameters: Optional[SystemParameters] = None
    ) -> ValidationResult:
        """Validate a candidate against availability recomputed from the ledger"""
        if parameters is None:
            parameters = await self.parameter_service.get_parameters()
        stay = candidate.stay
        start = min(stay.arrival_date, stay.departure_date)
        end = max(stay.arrival_date, stay.departure_date)
        availability, occupancy = await self.availability_service.get_availability_and_occupancy(
            start, end, exclude_id, parameters
        )
        return validate(candidate, availability, parameters, today=today, occupancy=occupancy)

    # ==================== LIFECYCLE ====================
    async def create_reservation(
        self,
        candidate: ReservationCandidate,
        client: ClientContact,
        today: Optional[date] = None
    ) -> Tuple[Reservation, PriceBreakdown]:
        """Create a reservation request.

        Validation and insert run while holding the lock for the stay's
        dates, so two overlapping requests cannot both pass validation.
        Nothing is written unless every rule passes.
        """
        parameters = await self.parameter_service.get_parameters()
        stay = candidate.stay
        start = min(stay.arrival_date, stay.departure_date)
        end = max(stay.arrival_date, stay.departure_date)

        async with self.lock.hold(start - BUFFER_MARGIN, end + BUFFER_MARGIN):
            result = await self.check_candidate(candidate, today=today, parameters=parameters)
            if not result.is_valid:
                logger.info(
                    "Reservation request %s..%s rejected: %s",
                    stay.arrival_date, stay.departure_date, ", ".join(result.codes())
                )
                raise ReservationRejectedError(result.errors)

            breakdown = price(candidate, parameters)
            reservation = Reservation.create(
                candidate=candidate,
                client=client,
                estimated_amount=breakdown.total
            )
            try:
                await self.repository.insert(reservation)
            except asyncio.TimeoutError:
                logger.warning("Ledger insert timed out for %s..%s", start, end)
                raise TransientError("Reservation storage timed out, retry shortly")

        logger.info(
            "Reservation %s requested for %s..%s (%s people, estimated %s)",
            reservation.reservation_id, stay.arrival_date, stay.departure_date,
            candidate.guests.total, breakdown.total
        )
        return reservation, breakdown

    async def get_reservation(self, reservation_id: UUID) -> Reservation:
        reservation = await self.repository.find_by_id(reservation_id)
        if not reservation:
            raise ReservationNotFoundError(f"Reservation {reservation_id} not found")
        return reservation

    async def list_reservations(
        self,
        status: Optional[ReservationStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        page: int = 1,
        per_page: int = 15
    ) -> Tuple[List[Reservation], int]:
        return await self.repository.find_all(
            status=status, from_date=from_date, to_date=to_date, page=page, per_page=per_page
        )

    async def confirm_reservation(
        self,
        reservation_id: UUID,
        final_amount: Optional[int] = None,
        deposit: Optional[DepositInfo] = None
    ) -> Reservation:
        """Confirm a requested reservation; prices it when no final amount is given"""
        reservation = await self.get_reservation(reservation_id)
        if final_amount is None:
            parameters = await self.parameter_service.get_parameters()
            final_amount = price(reservation.to_candidate(), parameters).total

        expected_version = reservation.version
        reservation.confirm(final_amount, deposit)
        await self.repository.update_status(
            reservation, ReservationStatus.REQUESTED, expected_version
        )

        logger.info("Reservation %s confirmed (final amount %s)", reservation_id, final_amount)
        return reservation

    async def cancel_reservation(
        self,
        reservation_id: UUID,
        reason: str,
        today: Optional[date] = None
    ) -> Tuple[Reservation, bool]:
        """Cancel a reservation and record whether it is refund-eligible"""
        reservation = await self.get_reservation(reservation_id)
        parameters = await self.parameter_service.get_parameters()
        if today is None:
            today = parameters.today()

        previous_status = reservation.status
        expected_version = reservation.version
        refund_eligible = reservation.is_refund_eligible(
            today, parameters.cancellation_refundable_days
        )
        reservation.cancel(reason, refund_eligible)
        await self.repository.update_status(reservation, previous_status, expected_version)

        logger.info(
            "Reservation %s cancelled from %s (refund eligible: %s)",
            reservation_id, previous_status.value, refund_eligible
        )
        return reservation, refund_eligible

    async def modify_reservation(
        self,
        reservation_id: UUID,
        new_stay: Optional[StayPeriod] = None,
        new_guest_count: Optional[GuestCount] = None,
        today: Optional[date] = None
    ) -> Reservation:
        """Change dates or party of an active reservation, re-validating without itself"""
        reservation = await self.get_reservation(reservation_id)
        if not reservation.is_modifiable():
            raise InvalidStateError(
                f"Cannot modify reservation with status {reservation.status.value}"
            )

        candidate = ReservationCandidate(
            stay=new_stay or reservation.stay,
            guests=new_guest_count or reservation.guest_count
        )
        parameters = await self.parameter_service.get_parameters()
        stay = candidate.stay
        start = min(stay.arrival_date, stay.departure_date, reservation.stay.arrival_date)
        end = max(stay.arrival_date, stay.departure_date, reservation.stay.departure_date)

        async with self.lock.hold(start - BUFFER_MARGIN, end + BUFFER_MARGIN):
            result = await self.check_candidate(
                candidate, exclude_id=reservation_id, today=today, parameters=parameters
            )
            if not result.is_valid:
                logger.info(
                    "Modification of reservation %s rejected: %s",
                    reservation_id, ", ".join(result.codes())
                )
                raise ReservationRejectedError(result.errors)

            reservation = await self.get_reservation(reservation_id)
            expected_version = reservation.version
            reservation.modify(
                new_stay=candidate.stay,
                new_guest_count=candidate.guests,
                new_estimated_amount=price(candidate, parameters).total
            )
            await self.repository.update(reservation, expected_version)

        logger.info("Reservation %s modified (version %s)", reservation_id, reservation.version)
        return reservation
