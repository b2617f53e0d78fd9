"""In-process spatial store

Loads route features from a GeoJSON FeatureCollection and answers the spatial
primitives with shapely. Each query scales geometries to a local
equirectangular frame around its own reference latitude (lon * cos(lat0)):
the query point for point-to-route searches, the middle of both routes for
route-to-route searches. Closest-point searches are therefore metric wherever
the routes lie; reported distances are great-circle km between the resulting
points.
"""

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from shapely import affinity
from shapely.geometry import LineString, MultiLineString
from shapely.geometry import Point as ShapelyPoint
from shapely.geometry.base import BaseGeometry
from shapely.ops import nearest_points

from metro_commute.db.route_store import (
    SpatialSession,
    SpatialStore,
    no_connection_session,
    route_from_feature,
)
from metro_commute.exceptions import SpatialStoreError
from metro_commute.models.types import Point, RouteFeature, RouteProximity, line_string
from metro_commute.utils.geo import point_distance_km

logger = logging.getLogger(__name__)


def lon_scale_at(lat: float) -> float:
    """Metric x-scale of one degree of longitude relative to latitude"""
    return math.cos(math.radians(lat))


class MemoryRouteStore(SpatialStore):
    """Route geometries held in memory"""

    def __init__(self, geojson_path: Optional[str] = None):
        self.geojson_path = geojson_path
        self.routes: List[RouteFeature] = []
        # {route_id: geometry in lon/lat degrees}
        self._geometries: Dict[int, BaseGeometry] = {}
        self._initialized = False

    # ----------------
    # loading
    # ----------------
    async def initialize(self) -> None:
        if self._initialized:
            return
        if self.geojson_path:
            self.load_from_file(self.geojson_path)
        else:
            self.load_features([])

    def load_from_file(self, path: str) -> None:
        """
        Load a GeoJSON FeatureCollection

        Raises:
            SpatialStoreError: file missing or not valid GeoJSON
        """
        file_path = Path(path)
        if not file_path.exists():
            raise SpatialStoreError(f"Route file not found: {file_path}")

        try:
            with open(file_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SpatialStoreError(f"Route file unreadable: {e}") from e

        self.load_features(data.get("features", []))

    def load_features(self, features: Sequence[Dict[str, Any]]) -> None:
        """
        Index GeoJSON features

        Store ids are always the 1-based feature positions, so they are unique
        whatever ids the file carries. A feature's own GeoJSON id is kept in
        its properties under "id" (unless the properties already have one).
        """
        routes = []
        for i, feature in enumerate(features, start=1):
            properties = dict(feature.get("properties") or {})
            if feature.get("id") is not None:
                properties.setdefault("id", feature["id"])

            route = route_from_feature(i, properties, feature.get("geometry") or {})
            if route is not None:
                routes.append(route)

        self.routes = routes
        self._geometries = {route.id: self._to_shape(route) for route in routes}
        self._initialized = True

        logger.info(f"Routes loaded: {len(self.routes)} of {len(features)} features")

    @staticmethod
    def _to_shape(route: RouteFeature) -> BaseGeometry:
        parts = [part if len(part) > 1 else part * 2 for part in route.geometry]
        if len(parts) == 1:
            return LineString(parts[0])
        return MultiLineString(parts)

    def _local(self, route: RouteFeature, lon_scale: float) -> BaseGeometry:
        return affinity.scale(self._geometries[route.id], xfact=lon_scale, yfact=1.0, origin=(0, 0))

    # ----------------
    # store interface
    # ----------------
    def is_available(self) -> bool:
        return self._initialized

    def session(self):
        if not self._initialized:
            raise SpatialStoreError("Route store not initialized")
        return no_connection_session(MemorySession(self))

    def has_route(self, route: RouteFeature) -> bool:
        return route.id in self._geometries

    def closest_point(self, route: RouteFeature, point: Point) -> Tuple[Point, float]:
        """Closest point on the route to point and its distance (km)"""
        lon_scale = lon_scale_at(point.lat)
        on_route, _ = nearest_points(
            self._local(route, lon_scale),
            ShapelyPoint(point.lon * lon_scale, point.lat),
        )
        closest = Point(lat=on_route.y, lon=on_route.x / lon_scale)
        return closest, point_distance_km(point, closest)

    def closest_between(self, route_a: RouteFeature, route_b: RouteFeature) -> Tuple[Point, Point, float]:
        """Closest pair of points between two routes and their distance (km)"""
        _, min_a, _, max_a = self._geometries[route_a.id].bounds
        _, min_b, _, max_b = self._geometries[route_b.id].bounds
        lon_scale = lon_scale_at((min(min_a, min_b) + max(max_a, max_b)) / 2)

        on_a, on_b = nearest_points(self._local(route_a, lon_scale), self._local(route_b, lon_scale))
        point_a = Point(lat=on_a.y, lon=on_a.x / lon_scale)
        point_b = Point(lat=on_b.y, lon=on_b.x / lon_scale)
        return point_a, point_b, point_distance_km(point_a, point_b)


class MemorySession(SpatialSession):
    """Session over MemoryRouteStore (no connection to manage)"""

    def __init__(self, store: MemoryRouteStore):
        self.store = store

    async def measure_routes(
        self,
        source: Point,
        dest: Point,
        source_weight: float = 2.0,
        limit: Optional[int] = None,
    ) -> List[RouteProximity]:
        results = []
        for route in self.store.routes:
            to_source, d_source = self.store.closest_point(route, source)
            to_dest, d_dest = self.store.closest_point(route, dest)
            results.append(RouteProximity(
                route=route,
                distance_from_source=d_source,
                distance_from_dest=d_dest,
                closest_point_to_source=to_source,
                closest_point_to_dest=to_dest,
            ))

        results.sort(key=lambda p: (source_weight * p.distance_from_source + p.distance_from_dest, p.route.id))
        return results if limit is None else results[:limit]

    async def closest_points_between(
        self,
        route_a: RouteFeature,
        route_b: RouteFeature
    ) -> Optional[Tuple[Point, Point, float]]:
        if not (self.store.has_route(route_a) and self.store.has_route(route_b)):
            return None
        return self.store.closest_between(route_a, route_b)

    async def list_route_names(self) -> List[str]:
        return sorted({route.name for route in self.store.routes})

    async def get_route_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        for route in self.store.routes:
            if route.name == name:
                if len(route.geometry) == 1:
                    geometry = line_string(route.geometry[0])
                else:
                    geometry = {
                        "type": "MultiLineString",
                        "coordinates": [[[c[0], c[1]] for c in part] for part in route.geometry],
                    }
                return {"properties": route.properties, "geometry": geometry}
        return None
