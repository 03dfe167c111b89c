"""Solver entry point: from passengers and vehicles to a Solution."""

from __future__ import annotations

import logging
import random
from dataclasses import replace
from datetime import date, timedelta
from typing import Sequence

from ...config import settings
from ...models.domain import Destination, Passenger, Vehicle
from ..routing.evaluator import RouteEvaluator
from ..routing.models import Solution, VehicleRoute
from .chromosome import RoutingProblem
from .fitness import FitnessEvaluator, FitnessWeights
from .genetic import GAConfig, GAResult, GeneticSolver

logger = logging.getLogger(__name__)


def build_problem(
    passengers: Sequence[Passenger],
    vehicles: Sequence[Vehicle],
    destination: Destination,
    target_time_minutes: int | None = None,
    departure_time_minutes: float | None = None,
) -> RoutingProblem | None:
    """Keep only available passengers and vehicles. ``None`` when either set ends up empty."""

    eligible = tuple(passenger for passenger in passengers if passenger.is_available)
    fleet = tuple(vehicle for vehicle in vehicles if vehicle.is_available)
    if not eligible or not fleet:
        return None

    target = destination.target_time_minutes if target_time_minutes is None else target_time_minutes
    departure = target - settings.default_lead_minutes if departure_time_minutes is None else departure_time_minutes
    return RoutingProblem(
        passengers=eligible,
        vehicles=fleet,
        destination=destination,
        target_time_minutes=target,
        departure_time_minutes=departure,
    )


def build_solution(
    problem: RoutingProblem,
    result: GAResult,
    route_evaluator: RouteEvaluator | None = None,
    *,
    target_date: date | None = None,
) -> Solution:
    """Attach final per-stop detail to the best chromosome of a run."""

    evaluator = route_evaluator or RouteEvaluator()
    best = result.best_chromosome
    vehicle_routes: list[VehicleRoute] = []
    sources: set[str] = set()
    for vehicle_index, vehicle in enumerate(problem.vehicles):
        passengers = [problem.passengers[index] for index in best.routes[vehicle_index]]
        details = evaluator.evaluate(vehicle, passengers, problem.destination)
        pickup_time = None
        if details is not None:
            sources.add(details.source)
            pickup_time = problem.target_time_minutes - details.total_time_min
        vehicle_routes.append(
            VehicleRoute(vehicle=vehicle, passengers=passengers, route=details, pickup_time_minutes=pickup_time)
        )

    return Solution(
        target_date=target_date or date.today() + timedelta(days=1),
        destination=replace(problem.destination, target_time_minutes=problem.target_time_minutes),
        vehicle_routes=vehicle_routes,
        unassigned_passengers=[problem.passengers[index] for index in best.unassigned],
        fitness=result.best_fitness,
        metadata={
            "generations": result.generations_run,
            "generation_found": result.generation_found,
            "elapsed_seconds": result.elapsed_seconds,
            "target_time_minutes": problem.target_time_minutes,
            "departure_time_minutes": problem.departure_time_minutes,
            "route_sources": sorted(sources),
        },
    )


def solve(
    passengers: Sequence[Passenger],
    vehicles: Sequence[Vehicle],
    destination: Destination,
    target_time_minutes: int | None = None,
    population_size: int | None = None,
    generation_count: int | None = None,
    *,
    route_evaluator: RouteEvaluator | None = None,
    rng: random.Random | None = None,
    departure_time_minutes: float | None = None,
    target_date: date | None = None,
    config: GAConfig | None = None,
    weights: FitnessWeights | None = None,
) -> Solution | None:
    """Assign passengers to vehicles and order their pickups.

    Returns ``None`` when there is nothing to schedule (no available passengers or
    no available vehicles). When seats run short the best partial assignment is
    returned with the leftovers in ``Solution.unassigned_passengers``.
    """

    problem = build_problem(passengers, vehicles, destination, target_time_minutes, departure_time_minutes)
    if problem is None:
        logger.info(
            f"Nothing to schedule: {len(passengers)} passengers, {len(vehicles)} vehicles supplied "
            f"(after availability filtering at least one set is empty)"
        )
        return None

    config = config or GAConfig()
    if population_size is not None:
        config = replace(config, population_size=population_size)
    if generation_count is not None:
        config = replace(config, generation_count=generation_count)

    if problem.total_capacity < problem.passenger_count:
        logger.warning(
            f"Capacity shortfall: {problem.total_capacity} seats for {problem.passenger_count} passengers; "
            f"{problem.passenger_count - problem.total_capacity} will stay unassigned"
        )

    evaluator = route_evaluator or RouteEvaluator()
    fitness = FitnessEvaluator(problem, weights, speed_kmh=evaluator.fallback.speed_kmh)
    solver = GeneticSolver(problem, config=config, fitness=fitness, rng=rng)
    result = solver.run()

    solution = build_solution(problem, result, evaluator, target_date=target_date)
    solution.metadata["population_size"] = config.population_size
    logger.info(
        f"Assigned {solution.assigned_count} passengers to {solution.used_vehicle_count} vehicles, "
        f"{len(solution.unassigned_passengers)} unassigned"
    )
    return solution
