"""Fitness scoring for chromosomes. Lower is better."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ...config import settings
from ..routing.models import Leg
from ..routing.providers import GeometricLegProvider
from .chromosome import Chromosome, RoutingProblem


@dataclass(slots=True)
class FitnessWeights:
    distance: float = field(default_factory=lambda: settings.distance_weight)
    time: float = field(default_factory=lambda: settings.time_weight)
    late_arrival: float = field(default_factory=lambda: settings.late_arrival_weight)
    early_arrival: float = field(default_factory=lambda: settings.early_arrival_weight)
    unassigned_penalty: float = field(default_factory=lambda: settings.unassigned_penalty)


@dataclass(slots=True)
class FitnessBreakdown:
    total_distance_km: float
    total_time_min: float
    arrival_deviation: float
    unassigned_count: int
    score: float


class FitnessEvaluator:
    """Scores chromosomes against geometric leg costs precomputed once per run.

    Leg figures come from the same provider RouteEvaluator falls back to, so a
    vehicle's totals here match ``RouteEvaluator.estimate`` for the same order.
    Instances are read-only after construction and safe to share across threads.
    """

    def __init__(
        self,
        problem: RoutingProblem,
        weights: FitnessWeights | None = None,
        *,
        speed_kmh: float | None = None,
    ) -> None:
        self.problem = problem
        self.weights = weights or FitnessWeights()
        provider = GeometricLegProvider(speed_kmh)
        locations = [passenger.location for passenger in problem.passengers]
        destination = problem.destination.location
        self._from_start: list[list[Leg]] = [
            [provider.leg(vehicle.start, location) for location in locations] for vehicle in problem.vehicles
        ]
        self._between: list[list[Leg]] = [[provider.leg(a, b) for b in locations] for a in locations]
        self._to_destination: list[Leg] = [provider.leg(location, destination) for location in locations]

    def route_totals(self, vehicle_index: int, route: Sequence[int]) -> tuple[float, float]:
        """Distance (km) and time (min) of start -> route... -> destination."""
        if not route:
            return 0.0, 0.0
        legs = [self._from_start[vehicle_index][route[0]]]
        legs.extend(self._between[a][b] for a, b in zip(route, route[1:]))
        legs.append(self._to_destination[route[-1]])
        distance = 0.0
        minutes = 0.0
        for leg in legs:
            distance += leg.distance_km
            minutes += leg.time_min
        return distance, minutes

    def arrival_deviation(self, route_time_min: float) -> float:
        arrival = self.problem.departure_time_minutes + route_time_min
        target = self.problem.target_time_minutes
        if arrival > target:
            return self.weights.late_arrival * (arrival - target)
        return self.weights.early_arrival * (target - arrival)

    def breakdown(self, chromosome: Chromosome) -> FitnessBreakdown:
        total_distance = 0.0
        total_time = 0.0
        deviation = 0.0
        for vehicle_index, route in enumerate(chromosome.routes):
            if not route:
                continue
            distance, minutes = self.route_totals(vehicle_index, route)
            total_distance += distance
            total_time += minutes
            deviation += self.arrival_deviation(minutes)
        unassigned = len(chromosome.unassigned)
        score = (
            self.weights.distance * total_distance
            + self.weights.time * total_time
            + deviation
            + self.weights.unassigned_penalty * unassigned
        )
        return FitnessBreakdown(
            total_distance_km=total_distance,
            total_time_min=total_time,
            arrival_deviation=deviation,
            unassigned_count=unassigned,
            score=score,
        )

    def score(self, chromosome: Chromosome) -> float:
        """Score without touching the chromosome's cache; safe to call from worker pools."""
        return self.breakdown(chromosome).score

    def evaluate(self, chromosome: Chromosome) -> float:
        """Return the cached fitness, computing it first when invalidated."""
        if chromosome.fitness is None:
            chromosome.fitness = self.score(chromosome)
        return chromosome.fitness

    __call__ = evaluate
