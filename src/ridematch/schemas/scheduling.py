"""Scheduling request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class PassengerModel(BaseModel):
    id: int
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    name: str = ""
    address: Optional[str] = None
    is_available: bool = True


class VehicleModel(BaseModel):
    id: int
    capacity: int = Field(..., ge=0)
    start_latitude: float = Field(..., ge=-90, le=90)
    start_longitude: float = Field(..., ge=-180, le=180)
    start_address: Optional[str] = None
    driver_name: Optional[str] = None
    is_available: bool = True


class DestinationModel(BaseModel):
    name: str = "Destination"
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    target_time: str = Field(default="08:00", description="Arrival target as HH:MM.")


class ScheduleInput(BaseModel):
    """Passengers, vehicles and destination for one planning day."""

    passengers: List[PassengerModel]
    vehicles: List[VehicleModel]
    destination: DestinationModel


class SolveRequest(ScheduleInput):
    population_size: Optional[int] = Field(default=None, ge=2)
    generation_count: Optional[int] = Field(default=None, ge=0)
    departure_time_minutes: Optional[float] = None
    seed: Optional[int] = Field(default=None, description="Pin the random source for reproducible runs.")
    use_live_routing: bool = Field(
        default=False,
        description="Attach final stop detail from OSRM instead of straight-line estimates.",
    )
    persist: bool = False


class StopDetailModel(BaseModel):
    stop_number: int
    passenger_id: Optional[int]
    passenger_name: str
    distance_from_previous_km: float
    time_from_previous_min: float
    cumulative_distance_km: float
    cumulative_time_min: float


class VehicleRouteModel(BaseModel):
    vehicle_id: int
    driver_name: Optional[str]
    capacity: int
    passenger_ids: List[int]
    pickup_time: Optional[str]
    total_distance_km: float
    total_time_min: float
    source: Optional[str]
    stops: List[StopDetailModel]


class SolveResponse(BaseModel):
    status: str
    target_date: Optional[str] = None
    fitness: Optional[float] = None
    assigned_count: int = 0
    used_vehicle_count: int = 0
    total_distance_km: float = 0.0
    total_time_min: float = 0.0
    vehicles: List[VehicleRouteModel] = Field(default_factory=list)
    unassigned_passenger_ids: List[int] = Field(default_factory=list)
    metadata: dict = Field(default_factory=dict)


class ScheduleRunModel(BaseModel):
    id: str
    target_date: str
    created_at: str
    files: List[str] = Field(default_factory=list)
