"""Internal data structures

Pydantic models (schemas.py) are for the API; these frozen dataclasses are
used inside the planning pipeline. Coordinates inside polylines are
(lon, lat) pairs, GeoJSON order.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

Coord = Tuple[float, float]          # (lon, lat)
Polyline = Tuple[Coord, ...]


@dataclass(frozen=True)
class Point:
    """WGS84 coordinate"""
    lat: float
    lon: float

    @classmethod
    def from_coord(cls, coord: Sequence[float]) -> "Point":
        """[lon, lat] -> Point"""
        return cls(lat=float(coord[1]), lon=float(coord[0]))

    def to_coord(self) -> Coord:
        """Point -> (lon, lat)"""
        return (self.lon, self.lat)


def to_polyline(coords: Sequence[Sequence[float]]) -> Polyline:
    """Normalize a coordinate list to a tuple of (lon, lat) tuples"""
    return tuple((float(c[0]), float(c[1])) for c in coords)


def line_string(path: Sequence[Sequence[float]]) -> Dict[str, Any]:
    """GeoJSON LineString dict"""
    return {"type": "LineString", "coordinates": [[c[0], c[1]] for c in path]}


@dataclass(frozen=True)
class RouteFeature:
    """Fixed transit line loaded from the spatial store

    geometry is a list of parts: one part for a LineString, several for a
    MultiLineString.
    """
    id: int
    name: str
    ref: str = ""
    mode: str = "bus"
    geometry: Tuple[Polyline, ...] = ()
    properties: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def coordinates(self) -> Polyline:
        """All vertices, parts concatenated in order"""
        flat: List[Coord] = []
        for part in self.geometry:
            flat.extend(part)
        return tuple(flat)


class RouteType(str, Enum):
    """Candidate classification by proximity to the request endpoints"""
    DIRECT = "direct"
    SOURCE = "source"
    DESTINATION = "destination"
    OTHER = "other"


@dataclass(frozen=True)
class RouteProximity:
    """Raw store measurement of one route against source/destination"""
    route: RouteFeature
    distance_from_source: float
    distance_from_dest: float
    closest_point_to_source: Point
    closest_point_to_dest: Point


@dataclass(frozen=True)
class CandidateRoute:
    """Route annotated with proximity data for one request"""
    route: RouteFeature
    distance_from_source: float
    distance_from_dest: float
    closest_point_to_source: Point
    closest_point_to_dest: Point
    route_type: RouteType
    score: float

    @property
    def id(self) -> int:
        return self.route.id

    @property
    def name(self) -> str:
        return self.route.name


@dataclass(frozen=True)
class TransferCandidate:
    """Pair of routes close enough to walk between"""
    source_route: CandidateRoute
    dest_route: CandidateRoute
    source_transfer_point: Point
    dest_transfer_point: Point
    transfer_distance: float


class LegType(str, Enum):
    WALKING = "walking"
    TRANSIT = "transit"
    DRIVING = "driving"


@dataclass(frozen=True)
class Leg:
    """One homogeneous-mode segment of a journey

    distance in km, duration in seconds, fare in PHP.
    """
    type: LegType
    mode: str
    name: str
    path: Polyline
    distance: float = 0.0
    ref: Optional[str] = None
    duration: Optional[float] = None
    fare: int = 0


@dataclass(frozen=True)
class CommuteOption:
    """Complete journey from source to destination"""
    type: str
    legs: Tuple[Leg, ...]
    total_distance: float = 0.0
    total_fare: int = 0
    duration: Optional[float] = None


@dataclass(frozen=True)
class CommutePlan:
    """Planner result for one request"""
    source: Point
    destination: Point
    options: Tuple[CommuteOption, ...]
