"""Leg path enhancement

Replaces two-point (straight) legs with road geometry from OSRM. When the
call fails or the request deadline passes, the leg gets a synthetic
path instead: a near-straight line with small seeded perpendicular jitter,
optionally smoothed with a cubic spline. Routing failures are never retried
and never fail the request.
"""

import asyncio
import logging
import math
import random
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy.interpolate import splev, splprep

from metro_commute.config import PlannerConfig
from metro_commute.exceptions import RoutingServiceError
from metro_commute.models.types import Coord, Leg, Point, Polyline
from metro_commute.services.osrm import OSRMClient, RoadRoute, profile_for_mode
from metro_commute.utils.geo import (
    coord_distance_km,
    from_local_meters,
    path_length_km,
    to_local_meters,
    validate_path,
)

logger = logging.getLogger(__name__)

# Spline evaluation density relative to the control points
SMOOTHING_SAMPLES_PER_POINT = 4


def select_route(routes: Sequence[RoadRoute], profile: str) -> RoadRoute:
    """
    Pick the route to use from OSRM's answer

    Non-driving profiles take the first alternative when there is one: the
    primary foot/bike route from a generic router often doubles back along
    the main road.
    """
    if profile != "driving" and len(routes) > 1:
        return routes[1]
    return routes[0]


def _smooth(local: List[Tuple[float, float]]) -> List[Tuple[float, float]]:
    """Interpolating cubic spline through the control points (local metres)"""
    if len(local) < 4:
        return local

    x = np.array([p[0] for p in local])
    y = np.array([p[1] for p in local])

    try:
        tck, _ = splprep([x, y], s=0, k=min(3, len(local) - 1))
        u = np.linspace(0.0, 1.0, len(local) * SMOOTHING_SAMPLES_PER_POINT)
        sx, sy = splev(u, tck)
    except (ValueError, TypeError) as e:
        logger.debug(f"Spline smoothing failed, using raw points: {e}")
        return local

    return list(zip(np.asarray(sx).tolist(), np.asarray(sy).tolist()))


def synthetic_path(
    start: Coord,
    end: Coord,
    config: PlannerConfig,
    rng: random.Random,
) -> Polyline:
    """
    Near-straight fallback path between two points

    Intermediate points get a random perpendicular offset of at most
    config.max_offset_m_per_km metres per km of leg length. The bound is
    re-applied after smoothing so the spline cannot overshoot it.

    Args:
        start: (lon, lat)
        end: (lon, lat)
        config: engine config
        rng: seeded random source

    Returns:
        (lon, lat) polyline from start to end
    """
    length_km = coord_distance_km(start, end)
    if length_km < config.synthetic_straight_below_km:
        return (tuple(start), tuple(end))

    num_points = max(
        config.synthetic_min_points,
        min(config.synthetic_max_points, math.ceil(length_km * config.synthetic_points_per_km)),
    )
    max_offset_m = config.max_offset_m_per_km * length_km

    # Local frame centred on start: u along the line, n perpendicular
    end_x, end_y = to_local_meters(end, start)
    norm = math.hypot(end_x, end_y)
    ux, uy = end_x / norm, end_y / norm
    nx, ny = -uy, ux

    local = [(0.0, 0.0)]
    for i in range(1, num_points - 1):
        t = i / (num_points - 1)
        offset = rng.uniform(-max_offset_m, max_offset_m)
        local.append((end_x * t + nx * offset, end_y * t + ny * offset))
    local.append((end_x, end_y))

    if config.smooth_synthetic_paths:
        local = _smooth(local)

    coords: List[Coord] = [tuple(start)]
    for x, y in local[1:-1]:
        along = min(max(x * ux + y * uy, 0.0), norm)
        across = min(max(x * nx + y * ny, -max_offset_m), max_offset_m)
        coords.append(from_local_meters(ux * along + nx * across, uy * along + ny * across, start))
    coords.append(tuple(end))

    return validate_path(coords, config.large_jump_km, config.validation_spacing_km)


class PathEnhancer:
    """
    Street-aware geometry for two-point legs

    Args:
        client: OSRM client (None disables external routing)
        config: engine config
        rng: seeded random source for synthetic fallback paths
    """

    def __init__(
        self,
        client: Optional[OSRMClient],
        config: PlannerConfig,
        rng: Optional[random.Random] = None,
    ):
        self.client = client
        self.config = config
        self.rng = rng or random.Random()

    def fallback(self, leg: Leg, rng: Optional[random.Random] = None) -> Leg:
        """Leg with a synthetic path; distance recomputed from the path"""
        path = synthetic_path(leg.path[0], leg.path[-1], self.config, rng or self.rng)
        return replace(leg, path=path, distance=path_length_km(path))

    async def enhance_leg(self, leg: Leg, rng: Optional[random.Random] = None) -> Leg:
        """
        Road geometry for a two-point leg

        Legs with any other number of points are returned unchanged.

        Returns:
            leg with OSRM path/distance/duration, or the synthetic fallback
        """
        if len(leg.path) != 2:
            return leg

        if self.client is None or not self.config.routing_enabled:
            return self.fallback(leg, rng)

        start = Point.from_coord(leg.path[0])
        end = Point.from_coord(leg.path[1])
        profile = profile_for_mode(leg.mode)

        try:
            routes = await asyncio.wait_for(
                self.client.route(start, end, profile, alternatives=profile != "driving"),
                timeout=self.config.routing_timeout,
            )
        except (RoutingServiceError, asyncio.TimeoutError) as e:
            logger.warning(f"Street-aware routing failed for {leg.name}: {e or type(e).__name__}")
            return self.fallback(leg, rng)

        chosen = select_route(routes, profile)
        if len(chosen.path) < 2:
            return self.fallback(leg, rng)

        path = validate_path(chosen.path, self.config.large_jump_km, self.config.validation_spacing_km)
        return replace(
            leg,
            path=path,
            distance=chosen.distance or path_length_km(path),
            duration=chosen.duration,
        )

    async def enhance_all(
        self,
        legs: Sequence[Leg],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[Leg]:
        """
        Enhance legs concurrently

        One task per two-point leg, at most config.max_concurrency in flight.
        When config.request_deadline elapses or cancel_event is set, pending
        calls are cancelled and those legs use the synthetic fallback.

        Returns:
            legs in input order
        """
        # Seeds drawn in input order keep fallbacks deterministic under concurrency
        seeds = [self.rng.getrandbits(32) for _ in legs]
        results = list(legs)

        semaphore = asyncio.Semaphore(max(1, self.config.max_concurrency))

        async def run(index: int) -> Leg:
            async with semaphore:
                return await self.enhance_leg(legs[index], random.Random(seeds[index]))

        tasks = {
            i: asyncio.create_task(run(i))
            for i, leg in enumerate(legs)
            if len(leg.path) == 2
        }
        if not tasks:
            return results

        stop_task = asyncio.create_task(cancel_event.wait()) if cancel_event is not None else None
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.request_deadline
        pending = set(tasks.values())

        try:
            while pending:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    logger.warning(f"Request deadline reached with {len(pending)} legs pending")
                    break

                wait_on = set(pending)
                if stop_task is not None:
                    wait_on.add(stop_task)

                done, _ = await asyncio.wait(wait_on, timeout=remaining, return_when=asyncio.FIRST_COMPLETED)
                if stop_task is not None and stop_task in done:
                    logger.warning(f"Planning cancelled with {len(pending - done)} legs pending")
                    break
                pending -= done
        finally:
            for task in pending:
                task.cancel()
            if stop_task is not None:
                stop_task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        for i, task in tasks.items():
            if task.done() and not task.cancelled() and task.exception() is None:
                results[i] = task.result()
            else:
                if task.done() and not task.cancelled():
                    logger.error(f"Leg enhancement error: {task.exception()!r}")
                results[i] = self.fallback(legs[i], random.Random(seeds[i]))

        return results
