"""Domain Enums"""
from enum import Enum


class Block(str, Enum):
    """Half-day cutover window of a calendar day (08:00 / 20:00)"""
    MORNING = "morning"
    NIGHT = "night"

    @property
    def offset(self) -> int:
        """Position of the block inside its day"""
        return 0 if self is Block.MORNING else 1


class ReservationStatus(str, Enum):
    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class ParameterType(str, Enum):
    INTEGER = "integer"
    BOOLEAN = "boolean"
    STRING = "string"
