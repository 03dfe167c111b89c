"""Serializers for schedule solutions."""

from __future__ import annotations

import csv
import io
from dataclasses import asdict

from ..routing.models import Solution


def format_minutes(minutes: float | None) -> str | None:
    """Render minutes since midnight as HH:MM (wrapping around the day)."""
    if minutes is None:
        return None
    total = int(round(minutes)) % (24 * 60)
    return f"{total // 60:02d}:{total % 60:02d}"


def solution_to_json(solution: Solution) -> dict:
    return {
        "target_date": solution.target_date.isoformat(),
        "destination": {
            "name": solution.destination.name,
            "latitude": solution.destination.latitude,
            "longitude": solution.destination.longitude,
            "target_time": format_minutes(solution.destination.target_time_minutes),
        },
        "fitness": solution.fitness,
        "assigned_count": solution.assigned_count,
        "used_vehicle_count": solution.used_vehicle_count,
        "total_distance_km": solution.total_distance_km,
        "total_time_min": solution.total_time_min,
        "metadata": solution.metadata,
        "vehicles": [
            {
                "vehicle_id": item.vehicle.id,
                "driver_name": item.vehicle.driver_name,
                "capacity": item.vehicle.capacity,
                "passenger_ids": [passenger.id for passenger in item.passengers],
                "pickup_time": format_minutes(item.pickup_time_minutes),
                "total_distance_km": item.route.total_distance_km if item.route else 0.0,
                "total_time_min": item.route.total_time_min if item.route else 0.0,
                "source": item.route.source if item.route else None,
                "stops": [asdict(stop) for stop in item.route.stops] if item.route else [],
            }
            for item in solution.vehicle_routes
        ],
        "unassigned_passenger_ids": [passenger.id for passenger in solution.unassigned_passengers],
    }


def solution_to_csv(solution: Solution) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "target_date",
        "vehicle_id",
        "stop_number",
        "passenger_id",
        "passenger_name",
        "distance_from_previous_km",
        "time_from_previous_min",
        "cumulative_distance_km",
        "cumulative_time_min",
        "pickup_time",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for item in solution.vehicle_routes:
        if item.route is None:
            continue
        for stop in item.route.stops:
            writer.writerow(
                {
                    "target_date": solution.target_date.isoformat(),
                    "vehicle_id": item.vehicle.id,
                    "stop_number": stop.stop_number,
                    "passenger_id": "" if stop.passenger_id is None else stop.passenger_id,
                    "passenger_name": stop.passenger_name,
                    "distance_from_previous_km": round(stop.distance_from_previous_km, 3),
                    "time_from_previous_min": round(stop.time_from_previous_min, 1),
                    "cumulative_distance_km": round(stop.cumulative_distance_km, 3),
                    "cumulative_time_min": round(stop.cumulative_time_min, 1),
                    "pickup_time": format_minutes(item.pickup_time_minutes),
                }
            )
    return buffer.getvalue()
