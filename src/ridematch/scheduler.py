"""Run the daily schedule in the foreground.

    ridematch-scheduler --input riders.json            # wait for the daily time
    ridematch-scheduler --input riders.json --once     # plan tomorrow right now
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from .config import settings
from .persistence.filesystem import ScheduleStorage
from .services.optimizer.genetic import GAConfig
from .services.scheduling.service import DailyScheduler, FileSolutionSink, JsonScheduleSource

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ridematch-scheduler", description=__doc__.splitlines()[0])
    parser.add_argument("--input", type=Path, default=settings.schedule_input_path, help="Schedule input JSON file")
    parser.add_argument("--data-root", type=Path, default=None, help="Where run directories are written")
    parser.add_argument("--once", action="store_true", help="Solve for tomorrow immediately and exit")
    parser.add_argument("--poll-seconds", type=float, default=60.0)
    parser.add_argument("--population", type=int, default=None)
    parser.add_argument("--generations", type=int, default=None)
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def _config_from(args: argparse.Namespace) -> GAConfig:
    config = GAConfig()
    if args.population is not None:
        config = replace(config, population_size=args.population)
    if args.generations is not None:
        config = replace(config, generation_count=args.generations)
    if args.workers is not None:
        config = replace(config, max_workers=args.workers)
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.input is None:
        parser.error("--input is required (or set RIDEMATCH_SCHEDULE_INPUT_PATH)")

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    scheduler = DailyScheduler(
        JsonScheduleSource(args.input),
        FileSolutionSink(ScheduleStorage(args.data_root)),
        config=_config_from(args),
    )

    if args.once:
        solution = scheduler.run_once()
        if solution is None:
            logger.info("Nothing was scheduled")
            return 1
        print(scheduler.last_saved_to)
        return 0

    stop_event = threading.Event()
    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, lambda *_: stop_event.set())
    scheduler.serve(stop_event, poll_seconds=args.poll_seconds)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
