"""Leg providers: where per-leg distance and time figures come from."""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from ...config import settings
from ..geospatial import Point, haversine_km, travel_time_minutes
from .models import Leg
from .osrm_client import OSRMClient


@runtime_checkable
class RouteLegProvider(Protocol):
    """Resolves start -> waypoints... -> end into one Leg per consecutive pair."""

    name: str

    def resolve_multi_stop_route(self, start: Point, waypoints: Sequence[Point], end: Point) -> list[Leg]:
        ...


class GeometricLegProvider:
    """Great-circle distances driven at a constant speed. Pure and deterministic."""

    name = "geometric"

    def __init__(self, speed_kmh: float | None = None) -> None:
        self.speed_kmh = speed_kmh if speed_kmh is not None else settings.fallback_speed_kmh
        if self.speed_kmh <= 0:
            raise ValueError("speed_kmh must be positive")

    def leg(self, origin: Point, destination: Point) -> Leg:
        distance = haversine_km(origin, destination)
        return Leg(distance_km=distance, time_min=travel_time_minutes(distance, self.speed_kmh))

    def resolve_multi_stop_route(self, start: Point, waypoints: Sequence[Point], end: Point) -> list[Leg]:
        points = [start, *waypoints, end]
        return [self.leg(points[i], points[i + 1]) for i in range(len(points) - 1)]


class OSRMLegProvider:
    """Live road distances from an OSRM server."""

    name = "osrm"

    def __init__(self, client: OSRMClient | None = None) -> None:
        self.client = client or OSRMClient()

    def resolve_multi_stop_route(self, start: Point, waypoints: Sequence[Point], end: Point) -> list[Leg]:
        legs = self.client.route_legs([start, *waypoints, end])
        return [Leg(distance_km=distance, time_min=minutes) for distance, minutes in legs]
