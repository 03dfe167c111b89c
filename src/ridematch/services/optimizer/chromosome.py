"""Candidate solutions and the capacity-preserving operators that reshape them.

A chromosome holds, per vehicle index, the ordered indices of the passengers it
picks up, plus the passengers that could not be placed anywhere. Passengers and
vehicles are always referenced by their position in the ``RoutingProblem``
tuples, so copying a chromosome never aliases another one's lists.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ...models.domain import Destination, Passenger, Vehicle

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RoutingProblem:
    """Static inputs shared read-only by every chromosome in a run."""

    passengers: Tuple[Passenger, ...]
    vehicles: Tuple[Vehicle, ...]
    destination: Destination
    target_time_minutes: int
    departure_time_minutes: float
    capacities: Tuple[int, ...] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "capacities", tuple(vehicle.capacity for vehicle in self.vehicles))

    @property
    def passenger_count(self) -> int:
        return len(self.passengers)

    @property
    def vehicle_count(self) -> int:
        return len(self.vehicles)

    @property
    def total_capacity(self) -> int:
        return sum(self.capacities)


@dataclass(slots=True)
class Chromosome:
    routes: List[List[int]]
    unassigned: List[int] = field(default_factory=list)
    fitness: Optional[float] = None

    def copy(self) -> Chromosome:
        return Chromosome(
            routes=[list(route) for route in self.routes],
            unassigned=list(self.unassigned),
            fitness=self.fitness,
        )

    def invalidate(self) -> None:
        self.fitness = None

    def vehicle_of(self, passenger_index: int) -> Optional[int]:
        for vehicle_index, route in enumerate(self.routes):
            if passenger_index in route:
                return vehicle_index
        return None

    @property
    def assigned_count(self) -> int:
        return sum(len(route) for route in self.routes)

    def signature(self) -> Tuple[Tuple[int, ...], ...]:
        return tuple(tuple(route) for route in self.routes)


def _open_vehicles(chromosome: Chromosome, problem: RoutingProblem, exclude: Optional[int] = None) -> list[int]:
    return [
        index
        for index, route in enumerate(chromosome.routes)
        if index != exclude and len(route) < problem.capacities[index]
    ]


def _insert_randomly(route: List[int], passenger_index: int, rng: random.Random) -> None:
    route.insert(rng.randint(0, len(route)), passenger_index)


def _place(pending: Sequence[int], chromosome: Chromosome, problem: RoutingProblem, rng: random.Random) -> None:
    for passenger_index in pending:
        candidates = _open_vehicles(chromosome, problem)
        if candidates:
            _insert_randomly(chromosome.routes[rng.choice(candidates)], passenger_index, rng)
        else:
            chromosome.unassigned.append(passenger_index)


def random_chromosome(problem: RoutingProblem, rng: random.Random) -> Chromosome:
    """Place every passenger into a random vehicle that still has a free seat."""

    chromosome = Chromosome(routes=[[] for _ in problem.vehicles])
    order = list(range(problem.passenger_count))
    rng.shuffle(order)
    _place(order, chromosome, problem, rng)
    return chromosome


def is_feasible(chromosome: Chromosome, problem: RoutingProblem) -> bool:
    """Every vehicle within capacity and every passenger present exactly once."""

    if len(chromosome.routes) != problem.vehicle_count:
        return False
    for route, capacity in zip(chromosome.routes, problem.capacities):
        if len(route) > capacity:
            return False
    seen = [index for route in chromosome.routes for index in route] + list(chromosome.unassigned)
    return sorted(seen) == list(range(problem.passenger_count))


def repair(chromosome: Chromosome, problem: RoutingProblem, rng: random.Random) -> Chromosome:
    """Restore capacity and exclusivity in place.

    Duplicates keep their first occurrence in a shuffled vehicle order, overflow
    and missing passengers are re-inserted into vehicles with free seats, and only
    what still does not fit ends up unassigned. Never raises.
    """

    passenger_count = problem.passenger_count
    routes = list(chromosome.routes[: problem.vehicle_count])
    routes.extend([] for _ in range(problem.vehicle_count - len(routes)))

    seen: set[int] = set()
    pending: list[int] = []
    vehicle_order = list(range(problem.vehicle_count))
    rng.shuffle(vehicle_order)
    for vehicle_index in vehicle_order:
        kept: list[int] = []
        for passenger_index in routes[vehicle_index]:
            if passenger_index in seen or not 0 <= passenger_index < passenger_count:
                continue
            seen.add(passenger_index)
            if len(kept) < problem.capacities[vehicle_index]:
                kept.append(passenger_index)
            else:
                pending.append(passenger_index)
        routes[vehicle_index] = kept

    for passenger_index in [*chromosome.unassigned, *range(passenger_count)]:
        if 0 <= passenger_index < passenger_count and passenger_index not in seen:
            seen.add(passenger_index)
            pending.append(passenger_index)

    chromosome.routes = routes
    chromosome.unassigned = []
    rng.shuffle(pending)
    _place(pending, chromosome, problem, rng)
    chromosome.invalidate()
    return chromosome


def crossover(parent_a: Chromosome, parent_b: Chromosome, problem: RoutingProblem, rng: random.Random) -> Chromosome:
    """Inherit each vehicle's passenger list from either parent, then repair."""

    routes = [
        list(parent_a.routes[index] if rng.random() < 0.5 else parent_b.routes[index])
        for index in range(problem.vehicle_count)
    ]
    return repair(Chromosome(routes=routes), problem, rng)


def reassign(
    chromosome: Chromosome,
    problem: RoutingProblem,
    rng: random.Random,
    passenger_index: Optional[int] = None,
) -> bool:
    """Move one passenger to a different vehicle at a random position.

    Only vehicles with a free seat are candidates. When none is left the move is
    relaxed into a swap with a passenger of another vehicle (or, for an unassigned
    passenger, with any assigned one) so the seat count never changes.
    """

    if problem.passenger_count == 0 or problem.vehicle_count == 0:
        return False
    if passenger_index is None:
        passenger_index = rng.randrange(problem.passenger_count)

    current = chromosome.vehicle_of(passenger_index)
    candidates = _open_vehicles(chromosome, problem, exclude=current)
    if candidates:
        if current is None:
            chromosome.unassigned.remove(passenger_index)
        else:
            chromosome.routes[current].remove(passenger_index)
        _insert_randomly(chromosome.routes[rng.choice(candidates)], passenger_index, rng)
        chromosome.invalidate()
        return True

    occupied = [index for index, route in enumerate(chromosome.routes) if route and index != current]
    if not occupied:
        return False
    target = rng.choice(occupied)
    position = rng.randrange(len(chromosome.routes[target]))
    displaced = chromosome.routes[target][position]
    chromosome.routes[target][position] = passenger_index
    if current is None:
        chromosome.unassigned[chromosome.unassigned.index(passenger_index)] = displaced
    else:
        route = chromosome.routes[current]
        route[route.index(passenger_index)] = displaced
    chromosome.invalidate()
    return True


def reorder(chromosome: Chromosome, rng: random.Random, vehicle_index: Optional[int] = None) -> bool:
    """Swap two stops within one vehicle's sequence."""

    if vehicle_index is None:
        candidates = [index for index, route in enumerate(chromosome.routes) if len(route) >= 2]
        if not candidates:
            return False
        vehicle_index = rng.choice(candidates)
    route = chromosome.routes[vehicle_index]
    if len(route) < 2:
        return False
    first, second = rng.sample(range(len(route)), 2)
    route[first], route[second] = route[second], route[first]
    chromosome.invalidate()
    return True
