"""Shared fixtures: small GeoJSON route networks and in-memory stores

The transfer network sits on the equator so that 0.01 degree is about
1.11 km in both directions:

    source (0, 0)                                  dest (0, 0.05)
    Taft Bus           (0.000, 0.002) -> (0.030, 0.002)   near source only
    Divisoria Jeepney  (0.031, 0.003) -> (0.050, 0.003)   near dest only
    Far Route          (0.000, 0.050) -> (0.050, 0.050)   near neither

Taft Bus and Divisoria Jeepney come within ~0.16 km of each other.
"""

import pytest

from metro_commute.config import PlannerConfig
from metro_commute.db.memory_store import MemoryRouteStore
from metro_commute.models.types import Point


def line_feature(name, coordinates, route="bus", ref="", feature_id=None):
    feature = {
        "type": "Feature",
        "properties": {"name": name, "route": route, "ref": ref},
        "geometry": {"type": "LineString", "coordinates": coordinates},
    }
    if feature_id is not None:
        feature["id"] = feature_id
    return feature


def build_store(features):
    store = MemoryRouteStore()
    store.load_features(features)
    return store


@pytest.fixture
def config():
    return PlannerConfig(routing_enabled=False)


@pytest.fixture
def source():
    return Point(lat=0.0, lon=0.0)


@pytest.fixture
def dest():
    return Point(lat=0.0, lon=0.05)


@pytest.fixture
def transfer_features():
    return [
        line_feature("Taft Bus", [[0.0, 0.002], [0.03, 0.002]], route="bus", ref="B1"),
        line_feature("Divisoria Jeepney", [[0.031, 0.003], [0.05, 0.003]], route="jeepney", ref="J5"),
        line_feature("Far Route", [[0.0, 0.05], [0.05, 0.05]], route="bus"),
    ]


@pytest.fixture
def transfer_store(transfer_features):
    return build_store(transfer_features)


@pytest.fixture
def direct_store():
    return build_store([
        line_feature("Espana Jeepney", [[-0.001, 0.001], [0.02, 0.001], [0.051, 0.001]], route="jeepney", ref="J7"),
    ])


@pytest.fixture
def empty_store():
    return build_store([])


@pytest.fixture
def manila_points():
    """Rizal Park area -> Quiapo area"""
    return Point(lat=14.5995, lon=120.9842), Point(lat=14.6091, lon=120.9822)


@pytest.fixture
def manila_store():
    return build_store([
        line_feature(
            "Quiapo - Divisoria Jeepney",
            [[120.9850, 14.5950], [120.9845, 14.6000], [120.9835, 14.6050], [120.9825, 14.6100], [120.9820, 14.6150]],
            route="jeepney",
            ref="J12",
        ),
        line_feature(
            "P2P Roxas Boulevard",
            [[120.9790, 14.5600], [120.9800, 14.5800], [120.9820, 14.5990]],
            route="bus",
        ),
    ])
