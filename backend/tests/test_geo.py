"""Geometry utility tests"""

import pytest

from metro_commute.models.types import Point
from metro_commute.utils.geo import (
    coord_distance_km,
    find_large_jumps,
    from_local_meters,
    haversine_km,
    interpolate_points,
    midpoint,
    path_length_km,
    segments_for,
    straight_line,
    to_local_meters,
    validate_path,
)


class TestDistances:
    """haversine / coord / path length"""

    def test_haversine_zero(self):
        assert haversine_km(14.5995, 120.9842, 14.5995, 120.9842) == 0.0

    def test_haversine_equator_hundredth_degree(self):
        assert haversine_km(0.0, 0.0, 0.0, 0.01) == pytest.approx(1.112, abs=0.001)

    def test_haversine_manila(self):
        assert haversine_km(14.5995, 120.9842, 14.6091, 120.9822) == pytest.approx(1.089, abs=0.01)

    def test_coord_distance_uses_lon_lat_order(self):
        a = (120.9842, 14.5995)
        b = (120.9822, 14.6091)
        assert coord_distance_km(a, b) == pytest.approx(haversine_km(14.5995, 120.9842, 14.6091, 120.9822))

    def test_path_length_sums_segments(self):
        path = [(0.0, 0.0), (0.01, 0.0), (0.02, 0.0)]
        assert path_length_km(path) == pytest.approx(2 * 1.112, abs=0.002)

    def test_path_length_short_paths(self):
        assert path_length_km([]) == 0.0
        assert path_length_km([(0.0, 0.0)]) == 0.0


class TestInterpolation:
    """interpolate_points / straight_line / midpoint"""

    def test_interior_points_only(self):
        points = interpolate_points((0.0, 0.0), (4.0, 8.0), 4)
        assert points == [(1.0, 2.0), (2.0, 4.0), (3.0, 6.0)]

    def test_single_segment_has_no_interior(self):
        assert interpolate_points((0.0, 0.0), (1.0, 1.0), 1) == []

    def test_segments_for_minimum(self):
        assert segments_for(0.0, 0.5) == 1
        assert segments_for(0.2, 0.5, 3) == 3
        assert segments_for(2.1, 0.5) == 5

    def test_straight_line_spacing(self):
        line = straight_line((0.0, 0.0), (0.05, 0.0), 0.5)
        assert line[0] == (0.0, 0.0)
        assert line[-1] == (0.05, 0.0)
        assert all(coord_distance_km(a, b) <= 0.5 for a, b in zip(line, line[1:]))

    def test_midpoint(self):
        m = midpoint(Point(lat=14.0, lon=120.0), Point(lat=15.0, lon=121.0))
        assert m == Point(lat=14.5, lon=120.5)


class TestValidatePath:
    """Large-jump detection and repair"""

    def test_find_large_jumps(self):
        path = [(0.0, 0.0), (0.001, 0.0), (0.05, 0.0)]
        jumps = find_large_jumps(path, 1.0)
        assert len(jumps) == 1
        assert jumps[0][0] == 2

    def test_repairs_gap(self):
        path = [(0.0, 0.0), (0.05, 0.0)]
        repaired = validate_path(path, 1.0, 0.3)

        assert repaired[0] == (0.0, 0.0)
        assert repaired[-1] == (0.05, 0.0)
        assert find_large_jumps(repaired, 1.0) == []
        assert len(repaired) > 2

    def test_clean_path_unchanged(self):
        path = ((0.0, 0.0), (0.001, 0.0), (0.002, 0.0))
        assert validate_path(path) == path

    def test_empty_path(self):
        assert validate_path([]) == ()

    def test_returns_tuples(self):
        repaired = validate_path([[0.0, 0.0], [0.001, 0.0]])
        assert repaired == ((0.0, 0.0), (0.001, 0.0))


class TestLocalFrame:
    """Equirectangular metre frame"""

    def test_round_trip(self):
        origin = (120.9842, 14.5995)
        coord = (120.9900, 14.6100)
        east, north = to_local_meters(coord, origin)
        lon, lat = from_local_meters(east, north, origin)

        assert lon == pytest.approx(coord[0], abs=1e-9)
        assert lat == pytest.approx(coord[1], abs=1e-9)

    def test_north_is_positive(self):
        east, north = to_local_meters((0.0, 0.001), (0.0, 0.0))
        assert east == pytest.approx(0.0)
        assert north == pytest.approx(111.32)
