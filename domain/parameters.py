"""System parameter snapshot consumed by the pure engines"""
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field

from domain.enums import ParameterType
from domain.errors import ConfigurationError


# key -> (type, seeded value, description)
PARAMETER_DEFINITIONS: Dict[str, tuple] = {
    "adult_price_per_day": (ParameterType.INTEGER, "20000", "Price per adult per day"),
    "child_price_per_day": (ParameterType.INTEGER, "10000", "Price per child per day"),
    "min_adults": (ParameterType.INTEGER, "20", "Minimum number of adults"),
    "max_total_people": (ParameterType.INTEGER, "60", "Maximum adults plus children"),
    "min_nights": (ParameterType.INTEGER, "2", "Minimum number of nights"),
    "buffer_half_day": (ParameterType.BOOLEAN, "true", "Reserve a half-day for cleaning"),
    "max_child_age": (ParameterType.INTEGER, "10", "Maximum age billed as a child"),
    "cancellation_refundable_days": (
        ParameterType.INTEGER, "7", "Minimum days before arrival for a refundable cancellation"
    ),
    "timezone": (ParameterType.STRING, "America/Santiago", "Property timezone"),
}


def cast_parameter(key: str, value: str, parameter_type: ParameterType) -> Any:
    """Cast a stored string value to its declared type"""
    if parameter_type == ParameterType.INTEGER:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Parameter '{key}' is not an integer: {value!r}")
    if parameter_type == ParameterType.BOOLEAN:
        normalized = str(value).strip().lower()
        if normalized not in ("true", "false"):
            raise ConfigurationError(f"Parameter '{key}' is not a boolean: {value!r}")
        return normalized == "true"
    return str(value)


class SystemParameters(BaseModel):
    """Read-only snapshot of the admin-editable parameter set"""
    adult_price_per_day: int = Field(default=20000, ge=0)
    child_price_per_day: int = Field(default=10000, ge=0)
    min_adults: int = Field(default=20, ge=0)
    max_total_people: int = Field(default=60, ge=1)
    min_nights: int = Field(default=2, ge=0)
    buffer_half_day: bool = True
    max_child_age: int = Field(default=10, ge=0)
    cancellation_refundable_days: int = Field(default=7, ge=0)
    timezone: str = "America/Santiago"

    class Config:
        frozen = True

    @classmethod
    def from_values(cls, values: Mapping[str, Any]) -> "SystemParameters":
        """Build a snapshot from typed values; every known key is required"""
        missing = [key for key in PARAMETER_DEFINITIONS if key not in values]
        if missing:
            raise ConfigurationError(f"Missing system parameters: {', '.join(sorted(missing))}")
        try:
            return cls(**{key: values[key] for key in PARAMETER_DEFINITIONS})
        except ValueError as e:
            raise ConfigurationError(f"Malformed system parameters: {e}")

    def zone(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigurationError(f"Unknown timezone: {self.timezone}")

    def today(self, now: Optional[datetime] = None) -> date:
        """Current calendar date at the property"""
        if now is None:
            return datetime.now(self.zone()).date()
        if now.tzinfo is None:
            return now.date()
        return now.astimezone(self.zone()).date()
