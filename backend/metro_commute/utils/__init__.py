"""Backend utility modules"""

from .fare import calculate_fare, detect_bus_type
from .geo import (
    haversine_km,
    coord_distance_km,
    point_distance_km,
    path_length_km,
    interpolate_points,
    midpoint,
    find_large_jumps,
    validate_path,
)

__all__ = [
    # fare
    "calculate_fare",
    "detect_bus_type",
    # geo
    "haversine_km",
    "coord_distance_km",
    "point_distance_km",
    "path_length_km",
    "interpolate_points",
    "midpoint",
    "find_large_jumps",
    "validate_path",
]
