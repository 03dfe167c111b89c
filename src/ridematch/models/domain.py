"""Domain models for passengers, vehicles and the shared destination."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional


class InvalidCoordinateError(ValueError):
    """Raised when a latitude/longitude pair cannot be used for routing."""


def validate_coordinate(latitude: float, longitude: float, *, label: str) -> None:
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise InvalidCoordinateError(f"{label}: coordinates must be finite, got ({latitude}, {longitude})")
    if not -90.0 <= latitude <= 90.0:
        raise InvalidCoordinateError(f"{label}: latitude {latitude} is outside [-90, 90]")
    if not -180.0 <= longitude <= 180.0:
        raise InvalidCoordinateError(f"{label}: longitude {longitude} is outside [-180, 180]")


@dataclass(frozen=True, slots=True)
class Passenger:
    """A rider waiting to be picked up on the planning day."""

    id: int
    latitude: float
    longitude: float
    name: str = ""
    address: Optional[str] = None
    is_available: bool = True

    def __post_init__(self) -> None:
        validate_coordinate(self.latitude, self.longitude, label=f"Passenger {self.id}")

    @property
    def location(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)

    @property
    def display_name(self) -> str:
        return self.name or f"Passenger {self.id}"


@dataclass(frozen=True, slots=True)
class Vehicle:
    """A driver's vehicle with its seating capacity and start location."""

    id: int
    capacity: int
    start_latitude: float
    start_longitude: float
    start_address: Optional[str] = None
    driver_name: Optional[str] = None
    is_available: bool = True

    def __post_init__(self) -> None:
        if self.capacity < 0:
            raise ValueError(f"Vehicle {self.id}: capacity must be >= 0, got {self.capacity}")
        validate_coordinate(self.start_latitude, self.start_longitude, label=f"Vehicle {self.id}")

    @property
    def start(self) -> tuple[float, float]:
        return (self.start_latitude, self.start_longitude)


@dataclass(frozen=True, slots=True)
class Destination:
    """The shared drop-off point and the time everyone should arrive there."""

    latitude: float
    longitude: float
    target_time_minutes: int = 8 * 60
    name: str = "Destination"

    def __post_init__(self) -> None:
        validate_coordinate(self.latitude, self.longitude, label=self.name)
        if not 0 <= self.target_time_minutes < 24 * 60:
            raise ValueError(f"target_time_minutes must be within a day, got {self.target_time_minutes}")

    @property
    def location(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


def parse_time_of_day(value: str, default: int = 8 * 60) -> int:
    """Convert "HH:MM[:SS]" to minutes since midnight, falling back to ``default``."""

    try:
        parts = [int(part) for part in value.strip().split(":")]
    except (AttributeError, ValueError):
        return default
    if not parts or len(parts) > 3:
        return default
    hours = parts[0]
    minutes = parts[1] if len(parts) > 1 else 0
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return default
    return hours * 60 + minutes
