"""Schedule runs stored as directories under ``<data_root>/outputs``.

Each run directory is named ``schedule_<target date>_<UTC timestamp>`` and holds
a ``summary.json`` plus a ``stops.csv`` stop sheet.
"""

from __future__ import annotations

import json
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from ..config import settings

SUMMARY_FILE = "summary.json"
STOPS_FILE = "stops.csv"

_RUN_PREFIX = "schedule"
_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S%fZ"
_RUN_NAME = re.compile(rf"^{_RUN_PREFIX}_(\d{{4}}-\d{{2}}-\d{{2}})_(\d{{8}}T\d{{12}}Z)$")


class ScheduleStorage:
    def __init__(self, root: Path | None = None) -> None:
        self.root = Path(root or settings.data_root).resolve()
        self.output_root = self.root / "outputs"
        self.output_root.mkdir(parents=True, exist_ok=True)

    def make_run_directory(self, target_date: date) -> Path:
        timestamp = datetime.now(timezone.utc).strftime(_TIMESTAMP_FORMAT)
        path = self.output_root / f"{_RUN_PREFIX}_{target_date.isoformat()}_{timestamp}"
        path.mkdir(parents=True, exist_ok=False)
        return path

    def save_run(self, target_date: date, summary: dict[str, Any], stops_csv: str) -> Path:
        """Write one run's summary and stop sheet into a fresh directory."""
        run_dir = self.make_run_directory(target_date)
        with (run_dir / SUMMARY_FILE).open("w", encoding="utf-8") as handle:
            json.dump(summary, handle, ensure_ascii=False, indent=2)
        # csv module output already carries its own line endings.
        with (run_dir / STOPS_FILE).open("w", encoding="utf-8", newline="") as handle:
            handle.write(stops_csv)
        return run_dir

    def list_runs(self, *, target_date: Optional[date] = None, limit: Optional[int] = None) -> List[dict]:
        """Saved runs, latest target date and timestamp first."""
        runs: List[dict] = []
        for run_dir in sorted(self.output_root.iterdir(), key=lambda p: p.name, reverse=True):
            match = _RUN_NAME.match(run_dir.name)
            if not run_dir.is_dir() or match is None:
                continue
            run_date = date.fromisoformat(match.group(1))
            if target_date is not None and run_date != target_date:
                continue
            created_at = datetime.strptime(match.group(2), _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
            runs.append(
                {
                    "id": run_dir.name,
                    "target_date": run_date.isoformat(),
                    "created_at": created_at.isoformat(),
                    "files": sorted(p.name for p in run_dir.iterdir() if p.is_file()),
                }
            )
            if limit and len(runs) >= limit:
                break
        return runs

    def load_summary(self, run_id: str) -> dict[str, Any]:
        if not _RUN_NAME.match(run_id):
            raise FileNotFoundError(f"Unknown schedule run: {run_id}")
        path = self.output_root / run_id / SUMMARY_FILE
        if not path.is_file():
            raise FileNotFoundError(f"Unknown schedule run: {run_id}")
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
