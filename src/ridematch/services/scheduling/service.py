"""Daily scheduling driver: decides when to solve and where the result goes.

The ``ridematch-scheduler`` command (``ridematch.scheduler``) wires a
``JsonScheduleSource`` and ``FileSolutionSink`` into ``DailyScheduler.serve``;
other hosts can supply their own source and sink.
"""

from __future__ import annotations

import json
import logging
import random
import threading
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Callable, Protocol, Sequence

from ...config import settings
from ...models.domain import Destination, Passenger, Vehicle, parse_time_of_day
from ...persistence.filesystem import ScheduleStorage
from ...schemas.scheduling import ScheduleInput, SolveRequest, SolveResponse
from ..optimizer.genetic import GAConfig
from ..optimizer.service import solve
from ..outputs.solution_formatter import solution_to_csv, solution_to_json
from ..routing.evaluator import RouteEvaluator
from ..routing.models import Solution
from ..routing.providers import OSRMLegProvider

logger = logging.getLogger(__name__)


class ScheduleSource(Protocol):
    def load_destination(self) -> Destination:
        ...

    def load_passengers(self) -> Sequence[Passenger]:
        ...

    def load_vehicles(self) -> Sequence[Vehicle]:
        ...


class SolutionSink(Protocol):
    def save_solution(self, solution: Solution) -> str:
        ...


class FileSolutionSink:
    """Writes each solution into its own run directory under the data root."""

    def __init__(self, storage: ScheduleStorage | None = None) -> None:
        self.storage = storage or ScheduleStorage()

    def save_solution(self, solution: Solution) -> str:
        run_dir = self.storage.save_run(solution.target_date, solution_to_json(solution), solution_to_csv(solution))
        return str(run_dir)


class DailyScheduler:
    """Runs the solver once a day at a configured time of day.

    ``tick`` is meant to be called periodically (the ``serve`` loop does it every
    minute). At most one run is in progress at any time; a trigger that arrives
    while a run is still going is skipped.
    """

    def __init__(
        self,
        source: ScheduleSource,
        sink: SolutionSink,
        *,
        scheduled_time: time | None = None,
        enabled: bool | None = None,
        route_evaluator: RouteEvaluator | None = None,
        config: GAConfig | None = None,
        rng_factory: Callable[[], random.Random] | None = None,
    ) -> None:
        self.source = source
        self.sink = sink
        self.scheduled_time = scheduled_time or settings.scheduled_time
        self.enabled = settings.schedule_enabled if enabled is None else enabled
        self.route_evaluator = route_evaluator
        self.config = config
        self.rng_factory = rng_factory or (lambda: random.Random(settings.random_seed))
        self.last_run_date: date | None = None
        self.last_saved_to: str | None = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def is_due(self, now: datetime) -> bool:
        if not self.enabled:
            return False
        if self.last_run_date == now.date():
            return False
        return now.hour == self.scheduled_time.hour and now.minute == self.scheduled_time.minute

    def tick(self, now: datetime | None = None) -> Solution | None:
        now = now or datetime.now()
        if not self.is_due(now):
            return None
        logger.info(f"Running scheduled route calculation at {now:%Y-%m-%d %H:%M}")
        return self.run_once(now)

    def run_once(self, now: datetime | None = None) -> Solution | None:
        """Load inputs, solve for the next day and hand the solution to the sink."""
        if not self._lock.acquire(blocking=False):
            logger.warning("A scheduling run is already in progress; skipping this trigger")
            return None
        try:
            now = now or datetime.now()
            destination = self.source.load_destination()
            passengers = list(self.source.load_passengers())
            vehicles = list(self.source.load_vehicles())
            logger.info(
                f"Using destination {destination.name} ({destination.latitude}, {destination.longitude}) "
                f"with {len(passengers)} passengers and {len(vehicles)} vehicles"
            )

            solution = solve(
                passengers,
                vehicles,
                destination,
                route_evaluator=self.route_evaluator,
                rng=self.rng_factory(),
                target_date=now.date() + timedelta(days=1),
                config=self.config,
            )
            self.last_run_date = now.date()
            if solution is None:
                logger.info("No passengers or vehicles available for tomorrow - skipping")
                return None

            self.last_saved_to = self.sink.save_solution(solution)
            logger.info(f"Schedule for {solution.target_date} saved to {self.last_saved_to}")
            return solution
        finally:
            self._lock.release()

    def serve(self, stop_event: threading.Event, poll_seconds: float = 60.0) -> None:
        """Poll ``tick`` until ``stop_event`` is set."""
        logger.info(
            f"Scheduler started. Scheduling is {'enabled' if self.enabled else 'disabled'}. "
            f"Scheduled time: {self.scheduled_time:%H:%M:%S}"
        )
        while not stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Error in scheduled run")
            stop_event.wait(poll_seconds)
        logger.info("Scheduler stopped")


def _to_domain(data: ScheduleInput) -> tuple[Destination, list[Passenger], list[Vehicle]]:
    destination = Destination(
        latitude=data.destination.latitude,
        longitude=data.destination.longitude,
        target_time_minutes=parse_time_of_day(data.destination.target_time),
        name=data.destination.name,
    )
    passengers = [Passenger(**item.model_dump()) for item in data.passengers]
    vehicles = [Vehicle(**item.model_dump()) for item in data.vehicles]
    return destination, passengers, vehicles


class JsonScheduleSource:
    """Reads tomorrow's inputs from a JSON file shaped like the solve request body.

    The file is re-read on every run so edits made during the day are picked up.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> tuple[Destination, list[Passenger], list[Vehicle]]:
        with self.path.open("r", encoding="utf-8") as handle:
            data = ScheduleInput.model_validate(json.load(handle))
        return _to_domain(data)

    def load_destination(self) -> Destination:
        return self._read()[0]

    def load_passengers(self) -> Sequence[Passenger]:
        return self._read()[1]

    def load_vehicles(self) -> Sequence[Vehicle]:
        return self._read()[2]


def solve_schedule(payload: SolveRequest) -> SolveResponse:
    """Solve an ad-hoc scheduling request coming through the API."""
    destination, passengers, vehicles = _to_domain(payload)

    route_evaluator = None
    if payload.use_live_routing:
        try:
            route_evaluator = RouteEvaluator(OSRMLegProvider())
        except ValueError as exc:
            logger.warning(f"Live routing unavailable ({exc}). Using straight-line estimates.")

    solution = solve(
        passengers,
        vehicles,
        destination,
        population_size=payload.population_size,
        generation_count=payload.generation_count,
        route_evaluator=route_evaluator,
        rng=random.Random(payload.seed) if payload.seed is not None else None,
        departure_time_minutes=payload.departure_time_minutes,
    )
    if solution is None:
        return SolveResponse(
            status="no_solution",
            metadata={"reason": "No available passengers or vehicles to schedule."},
        )

    data = solution_to_json(solution)
    if payload.persist:
        data["metadata"]["saved_to"] = FileSolutionSink(ScheduleStorage()).save_solution(solution)
    return SolveResponse(status="complete", **data)


def list_schedule_runs(target_date: date | None = None, limit: int | None = None) -> list[dict]:
    return ScheduleStorage().list_runs(target_date=target_date, limit=limit)


def load_schedule_run(run_id: str) -> dict:
    """Summary of a saved run. Raises FileNotFoundError for unknown ids."""
    return ScheduleStorage().load_summary(run_id)
