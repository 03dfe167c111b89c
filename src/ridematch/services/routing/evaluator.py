"""Turn a vehicle's ordered passenger list into a stop-by-stop cost breakdown."""

from __future__ import annotations

import logging
import math
from typing import Sequence

from ...models.domain import Destination, Passenger, Vehicle
from .models import DESTINATION_LABEL, Leg, RouteDetails, StopDetail
from .providers import GeometricLegProvider, RouteLegProvider

logger = logging.getLogger(__name__)


def _legs_are_valid(legs: Sequence[Leg], expected: int) -> bool:
    if len(legs) != expected:
        return False
    for leg in legs:
        if not (math.isfinite(leg.distance_km) and math.isfinite(leg.time_min)):
            return False
        if leg.distance_km < 0 or leg.time_min < 0:
            return False
    return True


def build_route_details(
    vehicle: Vehicle,
    passengers: Sequence[Passenger],
    legs: Sequence[Leg],
    *,
    source: str,
) -> RouteDetails:
    """Accumulate legs into StopDetails; the final leg is the destination sentinel."""

    stops: list[StopDetail] = []
    total_distance = 0.0
    total_time = 0.0
    for index, leg in enumerate(legs):
        total_distance += leg.distance_km
        total_time += leg.time_min
        if index < len(passengers):
            passenger = passengers[index]
            passenger_id, passenger_name = passenger.id, passenger.display_name
        else:
            passenger_id, passenger_name = None, DESTINATION_LABEL
        stops.append(
            StopDetail(
                stop_number=index + 1,
                passenger_id=passenger_id,
                passenger_name=passenger_name,
                distance_from_previous_km=leg.distance_km,
                time_from_previous_min=leg.time_min,
                cumulative_distance_km=total_distance,
                cumulative_time_min=total_time,
            )
        )
    return RouteDetails(
        vehicle_id=vehicle.id,
        total_distance_km=total_distance,
        total_time_min=total_time,
        stops=tuple(stops),
        source=source,
    )


class RouteEvaluator:
    """Produces RouteDetails from a leg provider, falling back to geometry on any failure.

    The fallback path never touches the network or the clock, so the solver can
    call :meth:`estimate` inside its fitness loop and tests can rely on exact values.
    """

    def __init__(self, provider: RouteLegProvider | None = None, *, speed_kmh: float | None = None) -> None:
        self.fallback = GeometricLegProvider(speed_kmh)
        self.provider = provider or self.fallback

    @property
    def is_live(self) -> bool:
        return self.provider is not self.fallback

    def estimate(self, vehicle: Vehicle, passengers: Sequence[Passenger], destination: Destination) -> RouteDetails | None:
        if not passengers:
            return None
        legs = self.fallback.resolve_multi_stop_route(
            vehicle.start, [p.location for p in passengers], destination.location
        )
        return build_route_details(vehicle, passengers, legs, source=self.fallback.name)

    def evaluate(self, vehicle: Vehicle, passengers: Sequence[Passenger], destination: Destination) -> RouteDetails | None:
        if not passengers:
            return None
        if not self.is_live:
            return self.estimate(vehicle, passengers, destination)

        try:
            legs = self.provider.resolve_multi_stop_route(
                vehicle.start, [p.location for p in passengers], destination.location
            )
            usable = _legs_are_valid(legs, len(passengers) + 1)
        except Exception as exc:
            logger.warning(
                f"Live routing failed for vehicle {vehicle.id} ({type(exc).__name__}: {exc}). Using geometric fallback."
            )
            return self.estimate(vehicle, passengers, destination)

        if not usable:
            logger.warning(
                f"Live routing returned {len(legs)} unusable legs for vehicle {vehicle.id} "
                f"(expected {len(passengers) + 1}). Using geometric fallback."
            )
            return self.estimate(vehicle, passengers, destination)

        return build_route_details(vehicle, passengers, legs, source=getattr(self.provider, "name", "live"))
