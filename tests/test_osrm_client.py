import httpx
import pytest

from ridematch.models.domain import Destination, Passenger, Vehicle
from ridematch.services.routing.evaluator import RouteEvaluator
from ridematch.services.routing.osrm_client import OSRMClient, check_health
from ridematch.services.routing.providers import OSRMLegProvider


def _route_payload(legs):
    return {
        "code": "Ok",
        "routes": [
            {
                "distance": sum(distance for distance, _ in legs),
                "duration": sum(duration for _, duration in legs),
                "legs": [{"distance": distance, "duration": duration} for distance, duration in legs],
            }
        ],
    }


def _client(handler, **kwargs) -> OSRMClient:
    return OSRMClient(
        base_url="http://osrm.test/",
        transport=httpx.MockTransport(handler),
        backoff_seconds=0.0,
        **kwargs,
    )


def test_route_legs_converts_units_and_orders_coordinates():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        return httpx.Response(200, json=_route_payload([(1500.0, 120.0), (2500.0, 300.0)]))

    client = _client(handler)
    legs = client.route_legs([(21.5, 39.2), (21.55, 39.25), (21.6, 39.3)])

    assert legs == [pytest.approx((1.5, 2.0)), pytest.approx((2.5, 5.0))]
    assert seen["path"] == "/route/v1/driving/39.2,21.5;39.25,21.55;39.3,21.6"


def test_route_raises_after_retries_on_server_error():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    client = _client(handler, max_retries=1)

    with pytest.raises(httpx.HTTPStatusError):
        client.route([(21.5, 39.2), (21.6, 39.3)])
    assert len(calls) == 2


def test_route_rejects_non_ok_code():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": "NoRoute", "message": "Impossible route"})

    client = _client(handler, max_retries=0)

    with pytest.raises(ValueError, match="Impossible route"):
        client.route([(21.5, 39.2), (21.6, 39.3)])


def test_route_wraps_connection_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler, max_retries=0)

    with pytest.raises(ConnectionError):
        client.route([(21.5, 39.2), (21.6, 39.3)])


def test_client_requires_base_url(monkeypatch):
    from ridematch.services.routing import osrm_client

    monkeypatch.setattr(osrm_client.settings, "osrm_base_url", None)

    with pytest.raises(ValueError):
        OSRMClient()
    assert check_health() is False


def test_evaluator_uses_osrm_legs_and_falls_back_when_down():
    vehicle = Vehicle(id=1, capacity=2, start_latitude=21.5, start_longitude=39.2)
    passenger = Passenger(id=5, latitude=21.55, longitude=39.25)
    destination = Destination(latitude=21.6, longitude=39.3)

    def healthy(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_route_payload([(4000.0, 420.0), (6000.0, 540.0)]))

    def down(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    live = RouteEvaluator(OSRMLegProvider(_client(healthy)))
    details = live.evaluate(vehicle, [passenger], destination)
    assert details.source == "osrm"
    assert details.total_distance_km == pytest.approx(10.0)
    assert details.total_time_min == pytest.approx(16.0)

    offline = RouteEvaluator(OSRMLegProvider(_client(down, max_retries=0)))
    fallback = offline.evaluate(vehicle, [passenger], destination)
    assert fallback.source == "geometric"
    assert fallback == offline.estimate(vehicle, [passenger], destination)
