import csv
import io
import json
import random
from datetime import date
from pathlib import Path

import pytest

from ridematch.models.domain import Destination, Passenger, Vehicle
from ridematch.persistence.filesystem import STOPS_FILE, SUMMARY_FILE, ScheduleStorage
from ridematch.services.optimizer import GAConfig, solve
from ridematch.services.outputs.solution_formatter import format_minutes, solution_to_csv, solution_to_json
from ridematch.services.scheduling.service import FileSolutionSink


def _solution():
    passengers = [
        Passenger(id=1, latitude=21.52, longitude=39.22, name="Amal"),
        Passenger(id=2, latitude=21.55, longitude=39.25, name="Badr"),
        Passenger(id=3, latitude=21.57, longitude=39.27, name="Dana"),
    ]
    vehicles = [
        Vehicle(id=7, capacity=2, start_latitude=21.50, start_longitude=39.20, driver_name="Hassan"),
        Vehicle(id=8, capacity=0, start_latitude=21.45, start_longitude=39.15),
    ]
    destination = Destination(latitude=21.60, longitude=39.30, target_time_minutes=450, name="Campus")
    config = GAConfig(population_size=8, generation_count=3, max_workers=1)
    return solve(passengers, vehicles, destination, config=config, rng=random.Random(0), target_date=date(2025, 3, 9))


def test_storage_creates_dated_run_directory(tmp_path: Path) -> None:
    storage = ScheduleStorage(root=tmp_path)
    run_dir = storage.make_run_directory(date(2025, 3, 9))

    assert run_dir.is_dir()
    assert run_dir.parent == tmp_path / "outputs"
    assert run_dir.name.startswith("schedule_2025-03-09_")


def test_storage_writes_summary_and_stop_sheet(tmp_path: Path) -> None:
    storage = ScheduleStorage(root=tmp_path)

    run_dir = storage.save_run(date(2025, 3, 9), {"hello": "world"}, "a,b\r\n1,2\r\n")

    assert (run_dir / SUMMARY_FILE).read_text(encoding="utf-8") == '{\n  "hello": "world"\n}'
    assert (run_dir / STOPS_FILE).read_bytes() == b"a,b\r\n1,2\r\n"
    assert storage.load_summary(run_dir.name) == {"hello": "world"}


def test_storage_lists_runs_latest_first(tmp_path: Path) -> None:
    storage = ScheduleStorage(root=tmp_path)
    older = storage.save_run(date(2025, 3, 9), {"n": 1}, "")
    newer = storage.save_run(date(2025, 3, 10), {"n": 2}, "")
    (tmp_path / "outputs" / "notes").mkdir()

    runs = storage.list_runs()

    assert [run["id"] for run in runs] == [newer.name, older.name]
    assert runs[0]["target_date"] == "2025-03-10"
    assert runs[0]["files"] == [STOPS_FILE, SUMMARY_FILE]
    assert [run["id"] for run in storage.list_runs(target_date=date(2025, 3, 9))] == [older.name]
    assert len(storage.list_runs(limit=1)) == 1


def test_storage_rejects_unknown_or_foreign_run_ids(tmp_path: Path) -> None:
    storage = ScheduleStorage(root=tmp_path)

    with pytest.raises(FileNotFoundError):
        storage.load_summary("schedule_2025-03-09_20250308T200000000000Z")
    with pytest.raises(FileNotFoundError):
        storage.load_summary("../secrets")
def test_format_minutes_wraps_around_midnight() -> None:
    assert format_minutes(None) is None
    assert format_minutes(450) == "07:30"
    assert format_minutes(419.6) == "07:00"
    assert format_minutes(-30) == "23:30"


def test_solution_json_lists_vehicles_and_unassigned() -> None:
    solution = _solution()
    data = solution_to_json(solution)

    assert data["target_date"] == "2025-03-09"
    assert data["destination"]["target_time"] == "07:30"
    assert data["assigned_count"] == 2
    assert len(data["unassigned_passenger_ids"]) == 1
    used = next(item for item in data["vehicles"] if item["vehicle_id"] == 7)
    idle = next(item for item in data["vehicles"] if item["vehicle_id"] == 8)
    assert used["driver_name"] == "Hassan"
    assert used["stops"][-1]["passenger_name"] == "Destination"
    assert used["stops"][-1]["passenger_id"] is None
    assert used["pickup_time"] is not None
    assert idle["stops"] == [] and idle["pickup_time"] is None
    json.dumps(data)


def test_solution_csv_has_one_row_per_stop() -> None:
    solution = _solution()
    rows = list(csv.DictReader(io.StringIO(solution_to_csv(solution))))

    assert len(rows) == 3
    assert {row["vehicle_id"] for row in rows} == {"7"}
    assert [row["stop_number"] for row in rows] == ["1", "2", "3"]
    assert rows[-1]["passenger_id"] == ""


def test_file_sink_writes_summary_and_stops(tmp_path: Path) -> None:
    sink = FileSolutionSink(ScheduleStorage(root=tmp_path))

    saved_to = Path(sink.save_solution(_solution()))

    assert saved_to.parent == tmp_path / "outputs"
    assert saved_to.name.startswith("schedule_2025-03-09_")
    summary = json.loads((saved_to / "summary.json").read_text(encoding="utf-8"))
    assert summary["assigned_count"] == 2
    assert (saved_to / "stops.csv").read_text(encoding="utf-8").startswith("target_date,vehicle_id,stop_number")
