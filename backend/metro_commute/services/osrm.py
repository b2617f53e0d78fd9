"""OSRM road-routing client

Sole responsibility: talk to OSRM over HTTP and return normalized routes.
- (lat, lon) Points -> OSRM "lon,lat;lon,lat"
- /route/v1/{profile} URL construction
- error normalization (RoutingServiceError); no retries
"""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional

import httpx

from metro_commute.exceptions import RoutingServiceError
from metro_commute.logging_config import log_http_error, log_http_response
from metro_commute.models.types import Point, Polyline, to_polyline

logger = logging.getLogger(__name__)

PROFILES = ("foot", "driving", "bike")


@dataclass(frozen=True)
class RoadRoute:
    """One route returned by OSRM

    distance in km, duration in seconds.
    """
    path: Polyline
    distance: float
    duration: Optional[float]


def profile_for_mode(mode: str) -> str:
    """OSRM travel profile for a leg mode"""
    if mode in ("driving", "car"):
        return "driving"
    if mode in ("bike", "cycling"):
        return "bike"
    return "foot"


class OSRMClient:
    """
    OSRM adapter

    The httpx client is shared across requests; call close() on shutdown.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @staticmethod
    def format_coordinates(points: List[Point]) -> str:
        """Points -> OSRM format 'lon,lat;lon,lat;...'"""
        return ";".join(f"{p.lon},{p.lat}" for p in points)

    async def route(
        self,
        start: Point,
        end: Point,
        profile: str = "foot",
        alternatives: bool = True,
    ) -> List[RoadRoute]:
        """
        Call /route and return every route OSRM proposes

        Args:
            start: origin
            end: destination
            profile: foot / driving / bike
            alternatives: ask for alternative routes

        Returns:
            routes in OSRM order (primary first)

        Raises:
            RoutingServiceError: transport error, timeout, non-200, code != Ok, no routes
        """
        if profile not in PROFILES:
            raise ValueError(f"Unknown profile: {profile}")

        coordinates = self.format_coordinates([start, end])
        url = f"{self.base_url}/route/v1/{profile}/{coordinates}"
        params = {
            "overview": "full",
            "geometries": "geojson",
            "alternatives": "true" if alternatives else "false",
            "steps": "false",
        }

        started = time.perf_counter()
        try:
            response = await self._client.get(url, params=params, timeout=self.timeout)
        except httpx.HTTPError as e:
            log_http_error(logger, url, e)
            raise RoutingServiceError(f"OSRM request failed: {e}") from e

        log_http_response(logger, url, response.status_code, (time.perf_counter() - started) * 1000)

        if response.status_code != 200:
            raise RoutingServiceError(f"OSRM HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise RoutingServiceError(f"OSRM returned invalid JSON: {e}") from e

        if data.get("code") != "Ok":
            raise RoutingServiceError(f"OSRM error: {data.get('message', data.get('code', 'Unknown error'))}")

        routes = data.get("routes") or []
        if not routes:
            raise RoutingServiceError("No routes found from OSRM")

        return [
            RoadRoute(
                path=to_polyline(r["geometry"]["coordinates"]),
                distance=float(r.get("distance") or 0.0) / 1000.0,
                duration=float(r["duration"]) if r.get("duration") is not None else None,
            )
            for r in routes
        ]

    async def is_available(self) -> bool:
        """Cheap reachability check for /health"""
        try:
            response = await self._client.get(f"{self.base_url}/", timeout=min(self.timeout, 3.0))
            return response.status_code < 500
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        await self._client.aclose()
