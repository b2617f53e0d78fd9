"""Route segment extraction

Cuts the part of a route polyline between a boarding and an alighting point.
Route geometries imported from OSM are often MultiLineStrings whose parts do
not join up, so walking the flattened vertices can produce large jumps;
these are interpolated away and the result is validated again.
"""

import logging
from typing import List, Sequence, Tuple

from metro_commute.config import PlannerConfig
from metro_commute.exceptions import GeometryError
from metro_commute.models.types import Coord, Point, Polyline, RouteFeature
from metro_commute.utils.geo import (
    coord_distance_km,
    interpolate_points,
    segments_for,
    straight_line,
    validate_path,
)

logger = logging.getLogger(__name__)

# Boundary points closer than this are treated as the same point
SAME_POINT_KM = 0.001


def _nearest_vertex(vertices: Sequence[Coord], target: Coord) -> Tuple[int, float]:
    """(index, km) of the vertex nearest to target"""
    best_index = -1
    best_distance = float("inf")
    for i, vertex in enumerate(vertices):
        distance = coord_distance_km(vertex, target)
        if distance < best_distance:
            best_distance = distance
            best_index = i
    return best_index, best_distance


def _walk_vertices(
    vertices: Sequence[Coord],
    start_index: int,
    end_index: int,
    config: PlannerConfig,
) -> List[Coord]:
    """Vertices from start_index to end_index (either direction), jumps filled"""
    step = 1 if end_index >= start_index else -1
    walked: List[Coord] = [vertices[start_index]]

    for i in range(start_index + step, end_index + step, step):
        prev = walked[-1]
        coord = vertices[i]
        distance = coord_distance_km(prev, coord)
        if distance > config.large_jump_km:
            logger.info(f"Large jump of {distance:.2f} km at index {i}")
            walked.extend(interpolate_points(prev, coord, segments_for(distance, config.jump_spacing_km, 3)))
        walked.append(coord)

    return walked


def _splice(a: Coord, b: Coord, gap_km: float, config: PlannerConfig) -> List[Coord]:
    """Interior points between a boundary point and its nearest vertex"""
    if gap_km <= config.boundary_splice_km:
        return []
    return interpolate_points(a, b, segments_for(gap_km, config.boundary_splice_km))


def _extract(vertices: Sequence[Coord], start: Coord, end: Coord, config: PlannerConfig) -> Polyline:
    if not vertices:
        raise GeometryError("No coordinates found in route geometry")

    start_index, start_gap = _nearest_vertex(vertices, start)
    end_index, end_gap = _nearest_vertex(vertices, end)
    if start_index < 0 or end_index < 0:
        raise GeometryError("Could not find start or end point in route")

    coords: List[Coord] = [start]
    coords.extend(_splice(start, vertices[start_index], start_gap, config))
    coords.extend(_walk_vertices(vertices, start_index, end_index, config))
    coords.extend(_splice(vertices[end_index], end, end_gap, config))
    coords.append(end)

    return validate_path(coords, config.large_jump_km, config.validation_spacing_km)


def fallback_segment(start: Coord, end: Coord, config: PlannerConfig) -> Polyline:
    """Direct interpolated line used when extraction fails"""
    return straight_line(start, end, config.jump_spacing_km)


def extract_segment(
    route: RouteFeature,
    start_point: Point,
    end_point: Point,
    config: PlannerConfig,
) -> Polyline:
    """
    Part of a route between two points, free of large jumps

    The segment always starts exactly at start_point and ends exactly at
    end_point. Direction along the route follows the order of the nearest
    vertices.

    Args:
        route: transit route
        start_point: boarding point (usually on the route)
        end_point: alighting point (usually on the route)
        config: engine config (jump / splice thresholds)

    Returns:
        (lon, lat) polyline
    """
    start = start_point.to_coord()
    end = end_point.to_coord()

    if coord_distance_km(start, end) < SAME_POINT_KM:
        return (start, end)

    try:
        return _extract(route.coordinates, start, end, config)
    except (GeometryError, IndexError, ValueError) as e:
        logger.warning(f"Segment extraction failed for route {route.id} ({route.name}): {e}")
        return fallback_segment(start, end, config)
