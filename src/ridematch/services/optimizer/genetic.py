"""Genetic algorithm over passenger assignments and visit orders."""

from __future__ import annotations

import logging
import os
import random
import time
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ...config import settings
from .chromosome import (
    Chromosome,
    RoutingProblem,
    crossover,
    is_feasible,
    random_chromosome,
    reassign,
    reorder,
    repair,
)
from .fitness import FitnessEvaluator

logger = logging.getLogger(__name__)


# Per-process evaluator installed by the pool initializer, so the leg matrices
# are pickled once per worker instead of once per chromosome.
_worker_fitness: FitnessEvaluator | None = None


def _init_worker(fitness: FitnessEvaluator) -> None:
    global _worker_fitness
    _worker_fitness = fitness


def _score_in_worker(chromosome: Chromosome) -> float:
    return _worker_fitness.score(chromosome)


class SolverState(str, Enum):
    INITIALIZED = "initialized"
    EVOLVING = "evolving"
    TERMINATED = "terminated"


@dataclass(slots=True)
class GAConfig:
    """Configuration for the genetic algorithm."""

    population_size: int = field(default_factory=lambda: settings.population_size)
    generation_count: int = field(default_factory=lambda: settings.generation_count)
    elite_count: int = field(default_factory=lambda: settings.elite_count)
    tournament_size: int = field(default_factory=lambda: settings.tournament_size)
    crossover_rate: float = field(default_factory=lambda: settings.crossover_rate)
    reassignment_rate: float = field(default_factory=lambda: settings.reassignment_rate)
    reorder_rate: float = field(default_factory=lambda: settings.reorder_rate)
    max_workers: Optional[int] = field(default_factory=lambda: settings.max_workers)
    use_processes: bool = field(default_factory=lambda: settings.use_processes)

    def __post_init__(self) -> None:
        if self.population_size < 1:
            raise ValueError("population_size must be >= 1")
        if self.generation_count < 0:
            raise ValueError("generation_count must be >= 0")
        if self.tournament_size < 1:
            raise ValueError("tournament_size must be >= 1")
        self.elite_count = max(1, min(self.elite_count, self.population_size))

    @property
    def worker_count(self) -> int:
        return self.max_workers or os.cpu_count() or 1


@dataclass(slots=True)
class GAResult:
    """Outcome of a solver run."""

    best_chromosome: Chromosome
    best_fitness: float
    generation_found: int
    generations_run: int
    elapsed_seconds: float
    best_fitness_history: List[float] = field(default_factory=list)


class GeneticSolver:
    """Evolves a fixed-size population for a fixed number of generations.

    The best chromosome ever seen is kept aside and the top ``elite_count``
    individuals pass unmodified into every next generation, so the best fitness
    never gets worse from one generation to the next.
    """

    def __init__(
        self,
        problem: RoutingProblem,
        *,
        config: GAConfig | None = None,
        fitness: FitnessEvaluator | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.problem = problem
        self.config = config or GAConfig()
        self.fitness = fitness or FitnessEvaluator(problem)
        self.rng = rng or random.Random(settings.random_seed)
        self.generation = 0
        self.best: Optional[Chromosome] = None
        self.best_generation = 0
        self.best_fitness_history: list[float] = []
        self.population: list[Chromosome] = [
            random_chromosome(problem, self.rng) for _ in range(self.config.population_size)
        ]
        self.state = SolverState.INITIALIZED

    def _evaluate_population(self, executor: Executor | None = None) -> None:
        pending = [chromosome for chromosome in self.population if chromosome.fitness is None]
        if executor is None or len(pending) < 2:
            for chromosome in pending:
                self.fitness.evaluate(chromosome)
            return
        if isinstance(executor, ProcessPoolExecutor):
            # Workers hold their own evaluator copy (see _init_worker); only scores come back.
            chunksize = max(1, len(pending) // (self.config.worker_count * 4))
            scores = executor.map(_score_in_worker, pending, chunksize=chunksize)
        else:
            scores = executor.map(self.fitness.score, pending)
        for chromosome, score in zip(pending, scores):
            chromosome.fitness = score

    def _record_best(self) -> None:
        leader = min(self.population, key=lambda chromosome: chromosome.fitness)
        if self.best is None or leader.fitness < self.best.fitness:
            self.best = leader.copy()
            self.best_generation = self.generation
            logger.debug(f"Generation {self.generation}: new best fitness {leader.fitness:.3f}")
        self.best_fitness_history.append(self.best.fitness)

    def _tournament(self) -> Chromosome:
        size = min(self.config.tournament_size, len(self.population))
        contenders = self.rng.sample(self.population, size)
        return min(contenders, key=lambda chromosome: chromosome.fitness)

    def _mutate(self, chromosome: Chromosome) -> None:
        for passenger_index in range(self.problem.passenger_count):
            if self.rng.random() < self.config.reassignment_rate:
                reassign(chromosome, self.problem, self.rng, passenger_index)
        for vehicle_index in range(self.problem.vehicle_count):
            if self.rng.random() < self.config.reorder_rate:
                reorder(chromosome, self.rng, vehicle_index)

    def _offspring(self) -> Chromosome:
        parent_a = self._tournament()
        if self.rng.random() < self.config.crossover_rate:
            parent_b = self._tournament()
            child = crossover(parent_a, parent_b, self.problem, self.rng)
        else:
            child = parent_a.copy()
        self._mutate(child)
        if not is_feasible(child, self.problem):
            logger.debug("Offspring violated capacity or exclusivity, repairing")
            repair(child, self.problem, self.rng)
        return child

    def initialize(self, executor: Executor | None = None) -> None:
        """Score the initial population and record its best member."""
        if self.best is not None:
            return
        self._evaluate_population(executor)
        self._record_best()

    def step(self, executor: Executor | None = None) -> None:
        """Run one generation: select, breed, mutate, replace, evaluate."""
        if self.state is SolverState.TERMINATED:
            raise RuntimeError("Solver has already terminated.")
        self.initialize(executor)
        self.state = SolverState.EVOLVING

        ranked = sorted(self.population, key=lambda chromosome: chromosome.fitness)
        next_population = [chromosome.copy() for chromosome in ranked[: self.config.elite_count]]
        while len(next_population) < self.config.population_size:
            next_population.append(self._offspring())

        self.population = next_population
        self.generation += 1
        self._evaluate_population(executor)
        self._record_best()

    def _make_executor(self) -> Executor | None:
        workers = self.config.worker_count
        if workers < 2:
            return None
        if self.config.use_processes:
            return ProcessPoolExecutor(max_workers=workers, initializer=_init_worker, initargs=(self.fitness,))
        return ThreadPoolExecutor(max_workers=workers)

    def run(self, generation_count: int | None = None) -> GAResult:
        """Evolve for ``generation_count`` generations and return the best chromosome seen."""
        generations = self.config.generation_count if generation_count is None else generation_count
        start = time.time()
        workers = self.config.worker_count
        kind = "process" if self.config.use_processes else "thread"
        logger.info(
            f"Starting GA: {self.problem.passenger_count} passengers, {self.problem.vehicle_count} vehicles, "
            f"population {len(self.population)}, {generations} generations, {workers} "
            f"{kind} workers"
        )

        executor = self._make_executor()
        try:
            self.initialize(executor)
            for _ in range(generations):
                self.step(executor)
        finally:
            if executor is not None:
                executor.shutdown(wait=True)
        self.state = SolverState.TERMINATED

        elapsed = time.time() - start
        logger.info(
            f"GA finished in {elapsed:.2f}s: best fitness {self.best.fitness:.3f} "
            f"found in generation {self.best_generation}, {len(self.best.unassigned)} unassigned"
        )
        return GAResult(
            best_chromosome=self.best.copy(),
            best_fitness=self.best.fitness,
            generation_found=self.best_generation,
            generations_run=self.generation,
            elapsed_seconds=elapsed,
            best_fitness_history=list(self.best_fitness_history),
        )
