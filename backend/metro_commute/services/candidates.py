"""Candidate route finder

Ranks transit routes by proximity to the request endpoints. Boarding
proximity matters more than alighting proximity, so the source distance is
weighted (score = source_weight * d_source + d_dest).
"""

import logging
from typing import List, Optional, Tuple

from metro_commute.config import PlannerConfig
from metro_commute.db.route_store import SpatialSession
from metro_commute.models.types import CandidateRoute, Point, RouteProximity, RouteType

logger = logging.getLogger(__name__)


def classify_route(distance_from_source: float, distance_from_dest: float, near_km: float) -> RouteType:
    """
    Classify a route by which endpoints it passes near

    Args:
        distance_from_source: km from source to route
        distance_from_dest: km from destination to route
        near_km: proximity threshold

    Returns:
        DIRECT (both), SOURCE, DESTINATION or OTHER
    """
    near_source = distance_from_source < near_km
    near_dest = distance_from_dest < near_km

    if near_source and near_dest:
        return RouteType.DIRECT
    if near_source:
        return RouteType.SOURCE
    if near_dest:
        return RouteType.DESTINATION
    return RouteType.OTHER


def rank_candidates(
    proximities: List[RouteProximity],
    config: PlannerConfig,
    limit: int,
) -> List[CandidateRoute]:
    """Score, order (ties by route id) and cap store measurements"""
    candidates = []
    for p in proximities:
        score = config.source_weight * p.distance_from_source + p.distance_from_dest
        candidates.append(CandidateRoute(
            route=p.route,
            distance_from_source=p.distance_from_source,
            distance_from_dest=p.distance_from_dest,
            closest_point_to_source=p.closest_point_to_source,
            closest_point_to_dest=p.closest_point_to_dest,
            route_type=classify_route(p.distance_from_source, p.distance_from_dest, config.near_route_km),
            score=score,
        ))

    candidates.sort(key=lambda c: (c.score, c.route.id))
    return candidates[:limit]


async def find_candidates(
    session: SpatialSession,
    source: Point,
    dest: Point,
    config: PlannerConfig,
    k: Optional[int] = None,
) -> List[CandidateRoute]:
    """
    Routes nearest to source and destination

    Args:
        session: spatial store session
        source: request source
        dest: request destination
        config: engine config
        k: result cap (None -> config.candidate_limit)

    Returns:
        candidates ordered by weighted score; empty when the store has no routes

    Raises:
        SpatialStoreError: store unreachable
    """
    limit = config.candidate_limit if k is None else k
    proximities = await session.measure_routes(source, dest, config.source_weight, limit)

    if not proximities:
        logger.info("No routes in store - walking/driving options only")
        return []

    candidates = rank_candidates(proximities, config, limit)
    logger.info(f"Candidates: {len(candidates)} routes")
    return candidates


def split_candidates(
    candidates: List[CandidateRoute],
    config: PlannerConfig,
) -> Tuple[List[CandidateRoute], List[CandidateRoute], List[CandidateRoute]]:
    """
    Split ranked candidates by classification

    Returns:
        (direct, source-side, destination-side); side lists capped at
        config.max_routes_per_side
    """
    direct = [c for c in candidates if c.route_type == RouteType.DIRECT]
    source_side = [c for c in candidates if c.route_type == RouteType.SOURCE]
    dest_side = [c for c in candidates if c.route_type == RouteType.DESTINATION]

    logger.info(
        f"Direct: {len(direct)}, source-side: {len(source_side)}, "
        f"destination-side: {len(dest_side)}"
    )

    return (
        direct,
        source_side[:config.max_routes_per_side],
        dest_side[:config.max_routes_per_side],
    )
