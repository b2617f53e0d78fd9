"""Commute planner

Runs one planning request end to end:
validate -> candidates -> transfers -> assemble -> enhance -> price -> rank.

The store session is held only for the spatial queries; leg enhancement
runs after it has been released.
"""

import asyncio
import logging
import math
import random
import time
from dataclasses import replace
from typing import Any, List, Optional

from metro_commute.config import PlannerConfig
from metro_commute.db.route_store import SpatialStore
from metro_commute.exceptions import InvalidCoordinatesError, SpatialStoreError
from metro_commute.logging_config import log_timing
from metro_commute.models.types import CommuteOption, CommutePlan, Leg, Point
from metro_commute.services.assembler import annotate_option, assemble, rank_options
from metro_commute.services.candidates import find_candidates, split_candidates
from metro_commute.services.enhancer import PathEnhancer
from metro_commute.services.osrm import OSRMClient
from metro_commute.services.transfers import find_transfers

logger = logging.getLogger(__name__)


def validate_coordinates(lat: Any, lon: Any, label: str = "point") -> Point:
    """
    Check a coordinate pair before any spatial query

    Raises:
        InvalidCoordinatesError: missing, non-numeric, non-finite or out of range
    """
    if lat is None or lon is None or isinstance(lat, bool) or isinstance(lon, bool):
        raise InvalidCoordinatesError(f"Missing {label} coordinates")

    try:
        lat_value = float(lat)
        lon_value = float(lon)
    except (TypeError, ValueError):
        raise InvalidCoordinatesError(f"Invalid {label} coordinates: ({lat}, {lon})")

    if not (math.isfinite(lat_value) and math.isfinite(lon_value)):
        raise InvalidCoordinatesError(f"Invalid {label} coordinates: ({lat}, {lon})")
    if not -90.0 <= lat_value <= 90.0:
        raise InvalidCoordinatesError(f"{label} latitude out of range: {lat_value}")
    if not -180.0 <= lon_value <= 180.0:
        raise InvalidCoordinatesError(f"{label} longitude out of range: {lon_value}")

    return Point(lat=lat_value, lon=lon_value)


def _replace_legs(options: List[CommuteOption], legs: List[Leg]) -> List[CommuteOption]:
    """Write flattened legs back to their options, in order"""
    result = []
    position = 0
    for option in options:
        count = len(option.legs)
        result.append(replace(option, legs=tuple(legs[position:position + count])))
        position += count
    return result


class CommutePlanner:
    """
    Multi-modal commute planner

    Args:
        store: spatial store (already initialized)
        routing_client: OSRM client, or None for synthetic paths only
        config: engine config
        seed: fixed random seed for synthetic paths (None -> per request)
    """

    def __init__(
        self,
        store: SpatialStore,
        routing_client: Optional[OSRMClient],
        config: Optional[PlannerConfig] = None,
        seed: Optional[int] = None,
    ):
        self.store = store
        self.routing_client = routing_client
        self.config = config or PlannerConfig()
        self.seed = seed

    def _enhancer(self) -> PathEnhancer:
        seed = self.seed if self.seed is not None else time.time_ns()
        return PathEnhancer(self.routing_client, self.config, random.Random(seed))

    async def plan(
        self,
        source: Point,
        dest: Point,
        discount: bool = False,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CommutePlan:
        """
        Ranked commute options between two points

        Args:
            source: origin
            dest: destination
            discount: apply the passenger discount to transit fares
            cancel_event: set when the client goes away

        Returns:
            CommutePlan with at least config.min_options options

        Raises:
            InvalidCoordinatesError: bad coordinates
            SpatialStoreError: store unavailable
        """
        source = validate_coordinates(source.lat, source.lon, "source")
        dest = validate_coordinates(dest.lat, dest.lon, "destination")
        logger.info(f"Planning ({source.lat}, {source.lon}) -> ({dest.lat}, {dest.lon}), discount={discount}")

        try:
            async with self.store.session() as session:
                with log_timing("candidate search", logger):
                    candidates = await find_candidates(session, source, dest, self.config)

                direct, source_side, dest_side = split_candidates(candidates, self.config)

                with log_timing("transfer pairing", logger):
                    transfers = await find_transfers(session, source_side, dest_side, self.config)
        except (OSError, asyncio.TimeoutError) as e:
            raise SpatialStoreError(f"Spatial store unavailable: {e}") from e

        with log_timing("option assembly", logger):
            options = assemble(source, dest, direct, transfers, self.config)

        with log_timing("leg enhancement", logger):
            legs = [leg for option in options for leg in option.legs]
            enhanced = await self._enhancer().enhance_all(legs, cancel_event)
            options = _replace_legs(options, enhanced)

        with log_timing("pricing", logger):
            options = [annotate_option(option, discount, self.config) for option in options]
            options = rank_options(options)

        logger.info(f"Planned {len(options)} options: {[o.type for o in options]}")
        return CommutePlan(source=source, destination=dest, options=tuple(options))
