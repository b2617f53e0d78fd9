"""PostGIS spatial store

Route features live in the route_features table (see
scripts/routes/import_geojson.py). Each planning request checks one
connection out of the asyncpg pool and releases it on every exit path.
Distances are computed on geography (metres) and reported in km.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import asyncpg

from metro_commute.db.route_store import SpatialSession, SpatialStore, route_from_feature
from metro_commute.exceptions import SpatialStoreError
from metro_commute.models.types import Point, RouteFeature, RouteProximity

logger = logging.getLogger(__name__)

_STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)

MEASURE_ROUTES_SQL = """
    WITH source_point AS (
        SELECT ST_SetSRID(ST_MakePoint($1, $2), 4326) AS geom
    ),
    dest_point AS (
        SELECT ST_SetSRID(ST_MakePoint($3, $4), 4326) AS geom
    )
    SELECT
        rf.id,
        rf.properties::text AS properties,
        ST_AsGeoJSON(rf.geometry) AS geometry,
        ST_Distance(rf.geometry::geography, sp.geom::geography) / 1000.0 AS distance_from_source,
        ST_Distance(rf.geometry::geography, dp.geom::geography) / 1000.0 AS distance_from_dest,
        ST_AsGeoJSON(ST_ClosestPoint(rf.geometry, sp.geom)) AS closest_point_to_source,
        ST_AsGeoJSON(ST_ClosestPoint(rf.geometry, dp.geom)) AS closest_point_to_dest
    FROM route_features rf, source_point sp, dest_point dp
    WHERE rf.properties->>'name' IS NOT NULL
    ORDER BY
        $5::float8 * ST_Distance(rf.geometry::geography, sp.geom::geography)
            + ST_Distance(rf.geometry::geography, dp.geom::geography),
        rf.id
    LIMIT $6::bigint
"""

CLOSEST_BETWEEN_SQL = """
    SELECT
        ST_AsGeoJSON(ST_ClosestPoint(a.geometry, b.geometry)) AS source_point,
        ST_AsGeoJSON(ST_ClosestPoint(b.geometry, a.geometry)) AS dest_point,
        ST_Distance(a.geometry::geography, b.geometry::geography) / 1000.0 AS transfer_distance
    FROM route_features a, route_features b
    WHERE a.id = $1 AND b.id = $2
"""

ROUTE_NAMES_SQL = """
    SELECT DISTINCT properties->>'name' AS name
    FROM route_features
    WHERE properties->>'name' IS NOT NULL
    ORDER BY name
"""

ROUTE_BY_NAME_SQL = """
    SELECT properties::text AS properties, ST_AsGeoJSON(geometry) AS geometry
    FROM route_features
    WHERE properties->>'name' = $1
    LIMIT 1
"""


def _point_from_geojson(text: str) -> Point:
    return Point.from_coord(json.loads(text)["coordinates"])


class PostGISRouteStore(SpatialStore):
    """Route store backed by a PostGIS database"""

    def __init__(self, dsn: str, min_size: int = 1, max_size: int = 10, command_timeout: float = 30.0):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.pool: Optional[asyncpg.Pool] = None

    async def initialize(self) -> None:
        """Create the connection pool"""
        if self.pool is not None:
            return
        try:
            self.pool = await asyncpg.create_pool(
                dsn=self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout,
            )
            logger.info("PostGIS connection pool initialized")
        except _STORE_ERRORS as e:
            logger.error(f"PostGIS pool initialization failed: {e}")
            self.pool = None

    async def close(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            self.pool = None

    def is_available(self) -> bool:
        return self.pool is not None

    @asynccontextmanager
    async def session(self) -> AsyncIterator["PostGISSession"]:
        """Check out one connection for the duration of a request"""
        if self.pool is None:
            raise SpatialStoreError("PostGIS pool not initialized")

        try:
            connection = await self.pool.acquire()
        except _STORE_ERRORS as e:
            raise SpatialStoreError(f"Could not acquire connection: {e}") from e

        try:
            yield PostGISSession(connection)
        finally:
            await self.pool.release(connection)


class PostGISSession(SpatialSession):
    """Queries on a single checked-out connection"""

    def __init__(self, connection: Any):
        self.connection = connection

    async def _fetch(self, query: str, *args) -> List[Any]:
        try:
            return await self.connection.fetch(query, *args)
        except _STORE_ERRORS as e:
            raise SpatialStoreError(f"Spatial query failed: {e}") from e

    async def measure_routes(
        self,
        source: Point,
        dest: Point,
        source_weight: float = 2.0,
        limit: Optional[int] = None,
    ) -> List[RouteProximity]:
        """Ranked and capped in SQL (LIMIT NULL returns every route)"""
        rows = await self._fetch(
            MEASURE_ROUTES_SQL,
            source.lon, source.lat, dest.lon, dest.lat,
            float(source_weight), limit,
        )

        results = []
        for row in rows:
            route = route_from_feature(
                row["id"],
                json.loads(row["properties"]) if row["properties"] else {},
                json.loads(row["geometry"]) if row["geometry"] else {},
            )
            if route is None:
                continue
            results.append(RouteProximity(
                route=route,
                distance_from_source=float(row["distance_from_source"]),
                distance_from_dest=float(row["distance_from_dest"]),
                closest_point_to_source=_point_from_geojson(row["closest_point_to_source"]),
                closest_point_to_dest=_point_from_geojson(row["closest_point_to_dest"]),
            ))
        return results

    async def closest_points_between(
        self,
        route_a: RouteFeature,
        route_b: RouteFeature
    ) -> Optional[Tuple[Point, Point, float]]:
        rows = await self._fetch(CLOSEST_BETWEEN_SQL, route_a.id, route_b.id)
        if not rows:
            return None
        row = rows[0]
        return (
            _point_from_geojson(row["source_point"]),
            _point_from_geojson(row["dest_point"]),
            float(row["transfer_distance"]),
        )

    async def list_route_names(self) -> List[str]:
        rows = await self._fetch(ROUTE_NAMES_SQL)
        return [row["name"] for row in rows]

    async def get_route_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        rows = await self._fetch(ROUTE_BY_NAME_SQL, name)
        if not rows:
            return None
        row = rows[0]
        return {
            "properties": json.loads(row["properties"]) if row["properties"] else {},
            "geometry": json.loads(row["geometry"]),
        }
