"""Geometry utilities

Great-circle distances, polyline length, interpolation and large-jump repair.
Coordinates are (lon, lat) pairs, distances are kilometres.
"""

import logging
import math
from typing import List, Sequence, Tuple

from metro_commute.models.types import Coord, Point, Polyline

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
# Metres per degree of latitude (spherical approximation)
METERS_PER_DEGREE = 111320.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Distance between two coordinates (km)

    Haversine formula
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def coord_distance_km(a: Sequence[float], b: Sequence[float]) -> float:
    """Distance between two (lon, lat) pairs"""
    return haversine_km(a[1], a[0], b[1], b[0])


def point_distance_km(a: Point, b: Point) -> float:
    return haversine_km(a.lat, a.lon, b.lat, b.lon)


def path_length_km(path: Sequence[Sequence[float]]) -> float:
    """Total length of a polyline; 0 for fewer than two points"""
    if not path or len(path) < 2:
        return 0.0
    return sum(coord_distance_km(path[i], path[i + 1]) for i in range(len(path) - 1))


def interpolate_points(start: Sequence[float], end: Sequence[float], segments: int) -> List[Coord]:
    """
    Interior points splitting start -> end into equal segments

    Endpoints are not included: segments=4 returns 3 points.
    """
    points: List[Coord] = []
    for i in range(1, segments):
        ratio = i / segments
        lon = start[0] + (end[0] - start[0]) * ratio
        lat = start[1] + (end[1] - start[1]) * ratio
        points.append((lon, lat))
    return points


def segments_for(distance_km: float, spacing_km: float, minimum: int = 1) -> int:
    """Segment count so that no piece is longer than spacing_km"""
    if distance_km <= 0 or spacing_km <= 0:
        return minimum
    return max(minimum, math.ceil(distance_km / spacing_km))


def straight_line(start: Sequence[float], end: Sequence[float], spacing_km: float) -> Polyline:
    """Straight line from start to end with points at most spacing_km apart"""
    segments = segments_for(coord_distance_km(start, end), spacing_km)
    points = [(float(start[0]), float(start[1]))]
    points.extend(interpolate_points(start, end, segments))
    points.append((float(end[0]), float(end[1])))
    return tuple(points)


def midpoint(a: Point, b: Point) -> Point:
    """Planar midpoint (adequate for city-scale distances)"""
    return Point(lat=a.lat + (b.lat - a.lat) * 0.5, lon=a.lon + (b.lon - a.lon) * 0.5)


def find_large_jumps(path: Sequence[Sequence[float]], threshold_km: float) -> List[Tuple[int, float]]:
    """(index, distance) for every consecutive pair farther apart than threshold_km"""
    jumps = []
    for i in range(1, len(path)):
        distance = coord_distance_km(path[i - 1], path[i])
        if distance > threshold_km:
            jumps.append((i, distance))
    return jumps


def validate_path(
    path: Sequence[Sequence[float]],
    threshold_km: float = 1.0,
    spacing_km: float = 0.3,
) -> Polyline:
    """
    Repair large jumps in a polyline

    Any consecutive pair farther apart than threshold_km gets interpolated
    points (about one per spacing_km) so that the returned path has no gap
    above the threshold.

    Args:
        path: (lon, lat) pairs
        threshold_km: large-jump threshold
        spacing_km: target spacing of inserted points (must be <= threshold)

    Returns:
        repaired path as a tuple of (lon, lat) tuples
    """
    if not path:
        return ()

    spacing_km = min(spacing_km, threshold_km)
    repaired: List[Coord] = [(float(path[0][0]), float(path[0][1]))]

    for coord in path[1:]:
        prev = repaired[-1]
        distance = coord_distance_km(prev, coord)
        if distance > threshold_km:
            logger.debug(f"Large jump of {distance:.2f} km repaired")
            repaired.extend(interpolate_points(prev, coord, segments_for(distance, spacing_km, 3)))
        repaired.append((float(coord[0]), float(coord[1])))

    return tuple(repaired)


def to_local_meters(coord: Sequence[float], origin: Sequence[float]) -> Tuple[float, float]:
    """Equirectangular (east, north) metres of coord relative to origin"""
    cos_lat = math.cos(math.radians(origin[1]))
    east = (coord[0] - origin[0]) * METERS_PER_DEGREE * cos_lat
    north = (coord[1] - origin[1]) * METERS_PER_DEGREE
    return east, north


def from_local_meters(east: float, north: float, origin: Sequence[float]) -> Coord:
    """Inverse of to_local_meters"""
    cos_lat = math.cos(math.radians(origin[1]))
    lon = origin[0] + east / (METERS_PER_DEGREE * cos_lat)
    lat = origin[1] + north / METERS_PER_DEGREE
    return (lon, lat)
