"""In-Memory Repository Implementations"""
import asyncio
from typing import Optional, List, Dict, Tuple
from uuid import UUID
from datetime import date

from domain.repositories import ReservationRepository, ParameterRepository
from domain.entities import Reservation, SystemParameter
from domain.enums import ReservationStatus, ParameterType
from domain.errors import InvalidStateError, ReservationNotFoundError
from domain.parameters import PARAMETER_DEFINITIONS


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository.

    Entities are copied in and out so callers never mutate stored state
    without going through ``update``/``update_status``. Every call yields to
    the event loop the way a real storage round-trip would.
    """

    def __init__(self):
        self._storage: Dict[UUID, Reservation] = {}

    async def insert(self, reservation: Reservation) -> Reservation:
        """Save reservation to memory"""
        await asyncio.sleep(0)
        if reservation.reservation_id in self._storage:
            raise ValueError("Reservation already exists")
        self._storage[reservation.reservation_id] = reservation.model_copy(deep=True)
        return reservation

    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        await asyncio.sleep(0)
        stored = self._storage.get(reservation_id)
        return stored.model_copy(deep=True) if stored else None

    async def find_overlapping(
        self,
        start: date,
        end: date,
        exclude_id: Optional[UUID] = None
    ) -> List[Reservation]:
        await asyncio.sleep(0)
        results = [
            r.model_copy(deep=True) for r in self._storage.values()
            if r.status != ReservationStatus.CANCELLED
            and r.reservation_id != exclude_id
            and r.stay.intersects(start, end)
        ]
        return sorted(results, key=lambda r: r.stay.arrival_date)

    async def find_all(
        self,
        status: Optional[ReservationStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        page: int = 1,
        per_page: int = 15
    ) -> Tuple[List[Reservation], int]:
        await asyncio.sleep(0)
        matches = []
        for r in self._storage.values():
            if status and r.status != status:
                continue
            if from_date and r.stay.departure_date < from_date:
                continue
            if to_date and r.stay.arrival_date > to_date:
                continue
            matches.append(r)
        matches.sort(key=lambda r: r.created_at, reverse=True)
        offset = (page - 1) * per_page
        page_items = [r.model_copy(deep=True) for r in matches[offset:offset + per_page]]
        return page_items, len(matches)

    async def update_status(
        self,
        reservation: Reservation,
        expected_status: ReservationStatus,
        expected_version: int
    ) -> Reservation:
        await asyncio.sleep(0)
        stored = self._require(reservation.reservation_id)
        if stored.status != expected_status:
            raise InvalidStateError(
                f"Reservation status changed to {stored.status.value} concurrently"
            )
        self._check_version(stored, expected_version)
        self._storage[reservation.reservation_id] = reservation.model_copy(deep=True)
        return reservation

    async def update(self, reservation: Reservation, expected_version: int) -> Reservation:
        """Update reservation"""
        await asyncio.sleep(0)
        stored = self._require(reservation.reservation_id)
        self._check_version(stored, expected_version)
        self._storage[reservation.reservation_id] = reservation.model_copy(deep=True)
        return reservation

    def _require(self, reservation_id: UUID) -> Reservation:
        stored = self._storage.get(reservation_id)
        if stored is None:
            raise ReservationNotFoundError("Reservation not found")
        return stored

    @staticmethod
    def _check_version(stored: Reservation, expected_version: int) -> None:
        if stored.version != expected_version:
            raise InvalidStateError(
                f"Reservation {stored.reservation_id} was changed concurrently "
                f"(version {stored.version}, expected {expected_version})"
            )


class InMemoryParameterRepository(ParameterRepository):
    """In-memory implementation of ParameterRepository, seeded with defaults"""

    def __init__(self, seed: bool = True):
        self._storage: Dict[str, SystemParameter] = {}
        if seed:
            for key, (parameter_type, value, description) in PARAMETER_DEFINITIONS.items():
                self._storage[key] = SystemParameter(
                    key=key, value=value, type=parameter_type, description=description
                )

    async def get(self, key: str) -> Optional[SystemParameter]:
        return self._storage.get(key)

    async def get_all(self) -> Dict[str, SystemParameter]:
        return dict(self._storage)

    async def set(
        self,
        key: str,
        value: str,
        parameter_type: ParameterType,
        description: Optional[str] = None
    ) -> SystemParameter:
        existing = self._storage.get(key)
        if description is None and existing is not None:
            description = existing.description
        parameter = SystemParameter(
            key=key, value=value, type=parameter_type, description=description
        )
        self._storage[key] = parameter
        return parameter
