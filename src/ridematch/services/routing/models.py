"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple

from ...models.domain import Destination, Passenger, Vehicle

DESTINATION_LABEL = "Destination"


@dataclass(frozen=True, slots=True)
class Leg:
    distance_km: float
    time_min: float


@dataclass(frozen=True, slots=True)
class StopDetail:
    stop_number: int
    passenger_id: Optional[int]
    passenger_name: str
    distance_from_previous_km: float
    time_from_previous_min: float
    cumulative_distance_km: float
    cumulative_time_min: float

    @property
    def is_destination(self) -> bool:
        return self.passenger_id is None


@dataclass(frozen=True, slots=True)
class RouteDetails:
    vehicle_id: int
    total_distance_km: float
    total_time_min: float
    stops: Tuple[StopDetail, ...]
    source: str = "geometric"


@dataclass(slots=True)
class VehicleRoute:
    vehicle: Vehicle
    passengers: List[Passenger]
    route: Optional[RouteDetails]
    pickup_time_minutes: Optional[float] = None

    @property
    def is_used(self) -> bool:
        return bool(self.passengers)


@dataclass(slots=True)
class Solution:
    target_date: date
    destination: Destination
    vehicle_routes: List[VehicleRoute]
    unassigned_passengers: List[Passenger]
    fitness: float
    metadata: dict = field(default_factory=dict)

    @property
    def assigned_count(self) -> int:
        return sum(len(item.passengers) for item in self.vehicle_routes)

    @property
    def used_vehicle_count(self) -> int:
        return sum(1 for item in self.vehicle_routes if item.is_used)

    @property
    def total_distance_km(self) -> float:
        return sum(item.route.total_distance_km for item in self.vehicle_routes if item.route)

    @property
    def total_time_min(self) -> float:
        return sum(item.route.total_time_min for item in self.vehicle_routes if item.route)
