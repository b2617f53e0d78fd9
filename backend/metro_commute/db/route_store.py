"""Spatial store interface

The planner only depends on these primitives:
- distance from a point to each route and the closest point on it
- minimum distance between two route geometries (with the closest points)

Both the in-process index (memory_store) and PostGIS (postgis) implement it.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from metro_commute.models.types import Point, RouteFeature, RouteProximity, to_polyline

logger = logging.getLogger(__name__)

# Transit modes with their own tariff; any other route tag is priced as bus
FARE_MODES = ("jeepney", "bus")


class SpatialSession(ABC):
    """Request-scoped view of the store (one DB connection for PostGIS)"""

    @abstractmethod
    async def measure_routes(
        self,
        source: Point,
        dest: Point,
        source_weight: float = 2.0,
        limit: Optional[int] = None,
    ) -> List[RouteProximity]:
        """
        Distance (km) from source/dest to named routes, with closest points

        Args:
            source: request source
            dest: request destination
            source_weight: weight of the source distance in the ranking score
            limit: keep only the best `limit` routes by
                   source_weight * d_source + d_dest (ties by id); None -> all

        Returns:
            one RouteProximity per kept route
        """

    @abstractmethod
    async def closest_points_between(
        self,
        route_a: RouteFeature,
        route_b: RouteFeature
    ) -> Optional[Tuple[Point, Point, float]]:
        """
        Closest pair of points between two routes

        Returns:
            (point on route_a, point on route_b, distance km) or None
        """

    @abstractmethod
    async def list_route_names(self) -> List[str]:
        """Distinct route names, sorted"""

    @abstractmethod
    async def get_route_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        """{"properties": ..., "geometry": GeoJSON} or None"""


class SpatialStore(ABC):
    """Long-lived owner of route geometries"""

    async def initialize(self) -> None:
        """Open connections / load data"""

    async def close(self) -> None:
        """Release resources"""

    @abstractmethod
    def is_available(self) -> bool:
        """Store ready for queries"""

    @abstractmethod
    def session(self):
        """
        Scoped session

        Usage:
            async with store.session() as session:
                proximities = await session.measure_routes(source, dest)
        """


# ========== GeoJSON helpers ==========

def route_from_feature(feature_id: int, properties: Dict[str, Any], geometry: Dict[str, Any]) -> Optional[RouteFeature]:
    """
    Build a RouteFeature from GeoJSON parts

    Args:
        feature_id: store id
        properties: feature properties (OSM tags: name, ref, route)
                    route tags other than jeepney/bus become "bus"
        geometry: GeoJSON LineString / MultiLineString

    Returns:
        RouteFeature or None (unnamed or non-linear features)
    """
    properties = properties or {}
    name = properties.get("name")
    if not name or not geometry:
        return None

    geom_type = geometry.get("type")
    coords = geometry.get("coordinates") or []

    if geom_type == "LineString":
        parts = (to_polyline(coords),)
    elif geom_type == "MultiLineString":
        parts = tuple(to_polyline(part) for part in coords if part)
    else:
        return None

    parts = tuple(part for part in parts if part)
    if not parts:
        return None

    mode = str(properties.get("mode") or properties.get("route") or "bus").lower()
    if mode not in FARE_MODES:
        logger.debug(f"Route {name}: mode '{mode}' priced as bus")
        mode = "bus"

    return RouteFeature(
        id=int(feature_id),
        name=str(name),
        ref=str(properties.get("ref") or ""),
        mode=mode,
        geometry=parts,
        properties=dict(properties),
    )


@asynccontextmanager
async def no_connection_session(session: SpatialSession) -> AsyncIterator[SpatialSession]:
    """Session context for stores that need no connection checkout"""
    yield session
