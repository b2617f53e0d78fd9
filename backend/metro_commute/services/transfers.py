"""Transfer pairing

Pairs source-side and destination-side routes whose geometries pass close to
each other. With at most a handful of routes per side, a pairwise scan is
enough.
"""

import logging
from typing import List

from metro_commute.config import PlannerConfig
from metro_commute.db.route_store import SpatialSession
from metro_commute.models.types import CandidateRoute, TransferCandidate

logger = logging.getLogger(__name__)


async def find_transfers(
    session: SpatialSession,
    source_candidates: List[CandidateRoute],
    dest_candidates: List[CandidateRoute],
    config: PlannerConfig,
) -> List[TransferCandidate]:
    """
    Feasible single-transfer route pairs

    Args:
        session: spatial store session
        source_candidates: routes near the source only
        dest_candidates: routes near the destination only
        config: engine config (transfer threshold, result cap)

    Returns:
        up to config.max_transfers pairs, shortest transfer walk first
    """
    transfers: List[TransferCandidate] = []

    for source_route in source_candidates[:config.max_routes_per_side]:
        for dest_route in dest_candidates[:config.max_routes_per_side]:
            if source_route.id == dest_route.id:
                continue

            closest = await session.closest_points_between(source_route.route, dest_route.route)
            if closest is None:
                continue

            source_point, dest_point, distance = closest
            if distance >= config.transfer_threshold_km:
                continue

            transfers.append(TransferCandidate(
                source_route=source_route,
                dest_route=dest_route,
                source_transfer_point=source_point,
                dest_transfer_point=dest_point,
                transfer_distance=distance,
            ))

    transfers.sort(key=lambda t: (t.transfer_distance, t.source_route.id, t.dest_route.id))

    logger.info(f"Transfer pairs: {len(transfers)} (keeping {min(len(transfers), config.max_transfers)})")
    return transfers[:config.max_transfers]
