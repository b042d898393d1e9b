"""Domain Errors"""
from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from domain.validation import ValidationError


class ReservationError(Exception):
    """Base class for every error raised by the booking core"""


class InvalidRangeError(ReservationError, ValueError):
    """Date range whose start is after its end"""


class ReservationRejectedError(ReservationError, ValueError):
    """Candidate reservation violated one or more business rules"""

    def __init__(self, errors: List["ValidationError"]):
        self.errors = list(errors)
        codes = ", ".join(error.code for error in self.errors)
        super().__init__(f"Reservation rejected: {codes}")


class InvalidStateError(ReservationError, ValueError):
    """Illegal lifecycle transition"""


class ReservationNotFoundError(ReservationError, LookupError):
    pass


class TransientError(ReservationError):
    """Storage contention or timeout; the caller may retry"""


class ConfigurationError(ReservationError):
    """Missing or malformed system parameters"""
