import logging

import pytest

from ridematch.models.domain import Destination, Passenger, Vehicle
from ridematch.services.geospatial import haversine_km
from ridematch.services.routing.evaluator import RouteEvaluator
from ridematch.services.routing.models import Leg
from ridematch.services.routing.providers import GeometricLegProvider


def _passenger(pid: int, lat: float, lon: float) -> Passenger:
    return Passenger(id=pid, latitude=lat, longitude=lon, name=f"Passenger {pid}")


VEHICLE = Vehicle(id=10, capacity=4, start_latitude=21.50, start_longitude=39.20)
DESTINATION = Destination(latitude=21.60, longitude=39.30, target_time_minutes=8 * 60)


class FixedProvider:
    name = "fixed"

    def __init__(self, legs):
        self.legs = legs
        self.calls = []

    def resolve_multi_stop_route(self, start, waypoints, end):
        self.calls.append((start, list(waypoints), end))
        return list(self.legs)


class FailingProvider:
    name = "broken"

    def resolve_multi_stop_route(self, start, waypoints, end):
        raise ConnectionError("routing service unreachable")


def test_empty_sequence_returns_no_route():
    evaluator = RouteEvaluator()

    assert evaluator.estimate(VEHICLE, [], DESTINATION) is None
    assert evaluator.evaluate(VEHICLE, [], DESTINATION) is None


def test_single_passenger_total_is_sum_of_two_legs():
    passenger = _passenger(1, 21.55, 39.25)
    d1 = haversine_km(VEHICLE.start, passenger.location)
    d2 = haversine_km(passenger.location, DESTINATION.location)

    details = RouteEvaluator().evaluate(VEHICLE, [passenger], DESTINATION)

    assert details.total_distance_km == pytest.approx(d1 + d2)
    assert details.total_time_min == pytest.approx((d1 + d2) / 30.0 * 60.0)
    assert details.source == "geometric"
    assert len(details.stops) == 2


def test_stop_details_are_numbered_and_cumulative():
    passengers = [_passenger(1, 21.52, 39.22), _passenger(2, 21.55, 39.25), _passenger(3, 21.58, 39.27)]

    details = RouteEvaluator().estimate(VEHICLE, passengers, DESTINATION)

    assert [stop.stop_number for stop in details.stops] == [1, 2, 3, 4]
    assert [stop.passenger_id for stop in details.stops] == [1, 2, 3, None]
    assert details.stops[-1].passenger_name == "Destination"
    assert details.stops[-1].is_destination
    running = 0.0
    for stop in details.stops:
        running += stop.distance_from_previous_km
        assert stop.cumulative_distance_km == pytest.approx(running)
    assert details.stops[-1].cumulative_distance_km == pytest.approx(details.total_distance_km)
    assert details.stops[-1].cumulative_time_min == pytest.approx(details.total_time_min)


def test_estimate_is_deterministic():
    passengers = [_passenger(1, 21.52, 39.22), _passenger(2, 21.55, 39.25)]
    evaluator = RouteEvaluator()

    assert evaluator.estimate(VEHICLE, passengers, DESTINATION) == evaluator.estimate(VEHICLE, passengers, DESTINATION)


def test_live_provider_legs_are_used():
    passengers = [_passenger(1, 21.52, 39.22), _passenger(2, 21.55, 39.25)]
    provider = FixedProvider([Leg(2.0, 5.0), Leg(3.0, 6.0), Leg(4.0, 7.0)])

    details = RouteEvaluator(provider).evaluate(VEHICLE, passengers, DESTINATION)

    assert details.source == "fixed"
    assert details.total_distance_km == pytest.approx(9.0)
    assert details.total_time_min == pytest.approx(18.0)
    assert [stop.cumulative_time_min for stop in details.stops] == [5.0, 11.0, 18.0]
    start, waypoints, end = provider.calls[0]
    assert start == VEHICLE.start
    assert waypoints == [p.location for p in passengers]
    assert end == DESTINATION.location


def test_live_failure_falls_back_to_geometry(caplog):
    passengers = [_passenger(1, 21.52, 39.22)]
    evaluator = RouteEvaluator(FailingProvider())

    with caplog.at_level(logging.WARNING):
        details = evaluator.evaluate(VEHICLE, passengers, DESTINATION)

    assert details == evaluator.estimate(VEHICLE, passengers, DESTINATION)
    assert details.source == "geometric"
    assert "fallback" in caplog.text


@pytest.mark.parametrize(
    "legs",
    [
        [Leg(1.0, 2.0)],
        [Leg(1.0, 2.0), Leg(-1.0, 2.0)],
        [Leg(1.0, 2.0), Leg(float("nan"), 2.0)],
    ],
)
def test_malformed_live_legs_fall_back_to_geometry(legs):
    passengers = [_passenger(1, 21.52, 39.22)]
    evaluator = RouteEvaluator(FixedProvider(legs))

    details = evaluator.evaluate(VEHICLE, passengers, DESTINATION)

    assert details.source == "geometric"


def test_geometric_provider_uses_configured_speed():
    provider = GeometricLegProvider(speed_kmh=60.0)

    leg = provider.leg((0.0, 0.0), (0.0, 1.0))

    assert leg.time_min == pytest.approx(leg.distance_km)
