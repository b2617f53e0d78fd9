from .route_store import SpatialStore, SpatialSession, route_from_feature
from .memory_store import MemoryRouteStore
from .postgis import PostGISRouteStore

__all__ = [
    "SpatialStore",
    "SpatialSession",
    "route_from_feature",
    "MemoryRouteStore",
    "PostGISRouteStore",
    "create_store",
]


def create_store(settings) -> SpatialStore:
    """Spatial store for the configured backend"""
    if settings.SPATIAL_BACKEND == "postgis":
        return PostGISRouteStore(
            settings.DATABASE_URL,
            min_size=settings.DB_POOL_MIN_SIZE,
            max_size=settings.DB_POOL_MAX_SIZE,
        )
    return MemoryRouteStore(settings.ROUTES_GEOJSON_PATH)
