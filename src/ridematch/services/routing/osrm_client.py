"""OSRM route service client used for live pickup legs."""

from __future__ import annotations

import logging
import time
from typing import Any, Sequence

import httpx

from ...config import settings
from ..geospatial import Point

logger = logging.getLogger(__name__)

_ROUTE_PARAMS = {"overview": "false", "steps": "false", "annotations": "false"}


def _coordinate_path(points: Sequence[Point]) -> str:
    # OSRM wants lon,lat pairs separated by semicolons.
    return ";".join(f"{lon},{lat}" for lat, lon in points)


class OSRMClient:
    """Synchronous client for ``/route/v1``, one short-lived connection per call."""

    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        base_url = base_url or settings.osrm_base_url
        if not base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.base_url = base_url.rstrip("/")
        self.profile = profile or settings.osrm_profile
        self.timeout = settings.osrm_timeout_seconds if timeout is None else timeout
        self.max_retries = settings.osrm_max_retries if max_retries is None else max_retries
        self.backoff_seconds = settings.osrm_backoff_seconds if backoff_seconds is None else backoff_seconds
        self.transport = transport

    def _get_client(self) -> httpx.Client:
        # Fitness workers may call in from several threads; never share a pool.
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 3.0)),
            limits=httpx.Limits(max_connections=1, max_keepalive_connections=0),
            transport=self.transport,
        )

    def _pause(self, attempt: int, reason: str) -> None:
        delay = self.backoff_seconds * (2 ** (attempt - 1))
        logger.debug(f"OSRM {reason}, retrying in {delay:.1f}s (attempt {attempt}/{self.max_retries})")
        time.sleep(delay)

    def _fetch(self, client: httpx.Client, url: str) -> dict[str, Any]:
        response = client.get(url, params=_ROUTE_PARAMS)
        response.raise_for_status()
        payload = response.json()
        if payload.get("code") != "Ok":
            raise ValueError(f"OSRM route request failed: {payload.get('message', 'Unknown OSRM route error')}")
        if not payload.get("routes"):
            raise ValueError("OSRM route response contains no routes.")
        return payload

    def route(self, points: Sequence[Point]) -> dict[str, Any]:
        """Fetch the road route visiting ``points`` (lat, lon) in the given order.

        Timeouts are re-raised once retries run out and network failures surface as
        ``ConnectionError``. Bad statuses and non-``Ok`` answers are retried too.
        """
        if len(points) < 2:
            raise ValueError("At least two coordinates are required for OSRM route.")

        url = f"{self.base_url}/route/v1/{self.profile}/{_coordinate_path(points)}"
        with self._get_client() as client:
            attempt = 0
            while True:
                attempt += 1
                final = attempt > self.max_retries
                try:
                    return self._fetch(client, url)
                except httpx.TimeoutException as exc:
                    if final:
                        logger.warning(f"OSRM route request timed out after {attempt} attempts: {exc}")
                        raise
                    self._pause(attempt, "timeout")
                except (httpx.NetworkError, OSError) as exc:
                    if final:
                        raise ConnectionError(f"Failed to connect to OSRM service at {self.base_url}: {exc}") from exc
                    self._pause(attempt, f"network error ({exc})")
                except (httpx.HTTPError, ValueError) as exc:
                    if final:
                        raise
                    self._pause(attempt, f"error ({exc})")

    def route_legs(self, points: Sequence[Point]) -> list[tuple[float, float]]:
        """(distance_km, duration_min) for each consecutive pair of ``points``."""
        legs = self.route(points)["routes"][0].get("legs") or []
        return [(float(leg["distance"]) / 1000.0, float(leg["duration"]) / 60.0) for leg in legs]


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM with a two-point route; public servers have no /health endpoint."""
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    sample = [(52.517037, 13.388860), (52.496891, 13.385983)]
    url = f"{base.rstrip('/')}/route/v1/{settings.osrm_profile}/{_coordinate_path(sample)}"
    try:
        response = httpx.get(url, params={"overview": "false"}, timeout=settings.osrm_timeout_seconds)
        response.raise_for_status()
        return response.json().get("code") == "Ok"
    except (httpx.HTTPError, ValueError):
        return False
