"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Tuple
from uuid import UUID
from datetime import date

from domain.entities import Reservation, SystemParameter
from domain.enums import ReservationStatus, ParameterType


class ReservationRepository(ABC):
    """Repository interface for the Reservation Ledger"""

    @abstractmethod
    async def insert(self, reservation: Reservation) -> Reservation:
        """Persist a new reservation"""
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def find_overlapping(
        self,
        start: date,
        end: date,
        exclude_id: Optional[UUID] = None
    ) -> List[Reservation]:
        """Non-cancelled reservations whose stay intersects [start, end]"""
        pass

    @abstractmethod
    async def find_all(
        self,
        status: Optional[ReservationStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        page: int = 1,
        per_page: int = 15
    ) -> Tuple[List[Reservation], int]:
        """Page of reservations, newest first, plus the total match count"""
        pass

    @abstractmethod
    async def update_status(
        self,
        reservation: Reservation,
        expected_status: ReservationStatus,
        expected_version: int
    ) -> Reservation:
        """Store a status transition if the stored row still has ``expected_status``
        and ``expected_version``; otherwise raise ``InvalidStateError``"""
        pass

    @abstractmethod
    async def update(self, reservation: Reservation, expected_version: int) -> Reservation:
        """Store a changed reservation if the stored row is still at ``expected_version``"""
        pass


class ParameterRepository(ABC):
    """Repository interface for system parameters"""

    @abstractmethod
    async def get(self, key: str) -> Optional[SystemParameter]:
        pass

    @abstractmethod
    async def get_all(self) -> Dict[str, SystemParameter]:
        pass

    @abstractmethod
    async def set(
        self,
        key: str,
        value: str,
        parameter_type: ParameterType,
        description: Optional[str] = None
    ) -> SystemParameter:
        pass
