"""Genetic-algorithm scheduling of passengers onto vehicles."""

from .genetic import GAConfig, GAResult, GeneticSolver, SolverState
from .service import build_problem, build_solution, solve

__all__ = [
    "GAConfig",
    "GAResult",
    "GeneticSolver",
    "SolverState",
    "build_problem",
    "build_solution",
    "solve",
]
