"""Option assembly and ranking

Builds complete journeys from direct candidates and transfer pairs, tops up
the list with walking / driving / jeepney options, then prices and orders
them. Walking and driving legs are created as two-point straight lines and
get their real geometry from the enhancer afterwards.
"""

import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from metro_commute.config import PlannerConfig
from metro_commute.models.types import (
    CandidateRoute,
    CommuteOption,
    Leg,
    LegType,
    Point,
    TransferCandidate,
)
from metro_commute.services.segments import extract_segment
from metro_commute.utils.fare import calculate_fare, detect_bus_type
from metro_commute.utils.geo import midpoint, path_length_km, point_distance_km, validate_path

logger = logging.getLogger(__name__)

ACCESS_WALK_NAME = "Ride Tricycle/Walk"
TRANSFER_WALK_NAME = "Transfer walk"
WALK_NAME = "Walk to destination"
DRIVE_NAME = "Drive to destination"
JEEPNEY_NAME = "Jeepney Route"
JEEPNEY_REF = "J1"


# ========== Leg builders ==========

def walking_leg(start: Point, end: Point, name: str = ACCESS_WALK_NAME) -> Leg:
    """Two-point walking leg (enhanced later)"""
    return Leg(
        type=LegType.WALKING,
        mode="walking",
        name=name,
        path=(start.to_coord(), end.to_coord()),
        distance=point_distance_km(start, end),
    )


def transit_leg(route: CandidateRoute, board: Point, alight: Point, config: PlannerConfig) -> Leg:
    """Ride along a route between boarding and alighting points"""
    path = extract_segment(route.route, board, alight, config)
    return Leg(
        type=LegType.TRANSIT,
        mode=route.route.mode,
        name=route.name,
        ref=route.route.ref,
        path=path,
        distance=path_length_km(path),
    )


def _option(option_type: str, legs: Sequence[Leg]) -> CommuteOption:
    return CommuteOption(
        type=option_type,
        legs=tuple(legs),
        total_distance=sum(leg.distance for leg in legs),
    )


# ========== Option builders ==========

def build_direct_options(
    source: Point,
    dest: Point,
    direct: Sequence[CandidateRoute],
    config: PlannerConfig,
) -> List[CommuteOption]:
    """walk -> ride -> walk for the best direct routes"""
    options = []
    for candidate in direct[:config.max_direct_options]:
        board = candidate.closest_point_to_source
        alight = candidate.closest_point_to_dest
        options.append(_option("transit", [
            walking_leg(source, board),
            transit_leg(candidate, board, alight, config),
            walking_leg(alight, dest),
        ]))
    return options


def build_transfer_options(
    source: Point,
    dest: Point,
    transfers: Sequence[TransferCandidate],
    config: PlannerConfig,
) -> List[CommuteOption]:
    """walk -> ride -> transfer walk -> ride -> walk for the best transfer pairs"""
    options = []
    for transfer in transfers[:config.max_transfer_options]:
        first = transfer.source_route
        second = transfer.dest_route
        first_board = first.closest_point_to_source
        second_alight = second.closest_point_to_dest

        options.append(_option("transfer", [
            walking_leg(source, first_board),
            transit_leg(first, first_board, transfer.source_transfer_point, config),
            walking_leg(transfer.source_transfer_point, transfer.dest_transfer_point, TRANSFER_WALK_NAME),
            transit_leg(second, transfer.dest_transfer_point, second_alight, config),
            walking_leg(second_alight, dest),
        ]))
    return options


def walking_option(source: Point, dest: Point) -> CommuteOption:
    return _option("walking", [walking_leg(source, dest, WALK_NAME)])


def driving_option(source: Point, dest: Point) -> CommuteOption:
    """Straight-line driving proxy"""
    leg = Leg(
        type=LegType.DRIVING,
        mode="driving",
        name=DRIVE_NAME,
        path=(source.to_coord(), dest.to_coord()),
        distance=point_distance_km(source, dest),
    )
    return _option("driving", [leg])


def jeepney_option(source: Point, dest: Point) -> CommuteOption:
    """Single synthesized jeepney hop through the midpoint"""
    middle = midpoint(source, dest)
    leg = Leg(
        type=LegType.TRANSIT,
        mode="jeepney",
        name=JEEPNEY_NAME,
        ref=JEEPNEY_REF,
        path=(source.to_coord(), middle.to_coord(), dest.to_coord()),
        distance=point_distance_km(source, middle) + point_distance_km(middle, dest),
    )
    return _option("jeepney", [leg])


def ensure_minimum_options(
    options: List[CommuteOption],
    source: Point,
    dest: Point,
    config: PlannerConfig,
) -> List[CommuteOption]:
    """
    Top up the option list to config.min_options

    Adds, in order: a driving option if none exists, a jeepney option if still
    short, and a walking option if none exists.
    """
    if len(options) >= config.min_options:
        return options

    result = list(options)
    if not any(o.type == "driving" for o in result):
        result.append(driving_option(source, dest))

    if len(result) < config.min_options and not any(o.type == "jeepney" for o in result):
        result.append(jeepney_option(source, dest))

    if not any(o.type == "walking" for o in result):
        result.append(walking_option(source, dest))

    return result


def assemble(
    source: Point,
    dest: Point,
    direct: Sequence[CandidateRoute],
    transfers: Sequence[TransferCandidate],
    config: PlannerConfig,
) -> List[CommuteOption]:
    """
    Unpriced options for one request

    Args:
        source: request source
        dest: request destination
        direct: direct candidates, best first
        transfers: transfer pairs, best first
        config: engine config

    Returns:
        at least config.min_options options (paths not yet enhanced)
    """
    options = build_direct_options(source, dest, direct, config)
    options.extend(build_transfer_options(source, dest, transfers, config))
    options.append(walking_option(source, dest))

    options = ensure_minimum_options(options, source, dest, config)
    logger.info(f"Assembled {len(options)} options")
    return options


# ========== Pricing / ranking ==========

def estimate_duration(mode: str, distance_km: float, config: PlannerConfig) -> float:
    """Seconds at the average speed for the mode"""
    speed = config.speeds_kmh.get(mode) or config.speeds_kmh["default"]
    return distance_km / speed * 3600


def annotate_leg(leg: Leg, discount: bool, config: PlannerConfig) -> Leg:
    path = validate_path(leg.path, config.large_jump_km, config.validation_spacing_km)

    if leg.type == LegType.TRANSIT:
        sub_type: Optional[str] = detect_bus_type(leg.name) if leg.mode == "bus" else None
        fare = calculate_fare(leg.mode, leg.distance, sub_type, discount, config.fares)
    else:
        fare = calculate_fare(leg.mode, leg.distance, table=config.fares)

    duration = leg.duration
    if duration is None:
        duration = estimate_duration(leg.mode, leg.distance, config)

    return replace(leg, path=path, fare=fare, duration=duration)


def annotate_option(option: CommuteOption, discount: bool, config: PlannerConfig) -> CommuteOption:
    """
    Price an option

    Validates every leg path, sets leg fares and missing durations, and
    recomputes the option totals.
    """
    legs = tuple(annotate_leg(leg, discount, config) for leg in option.legs)
    return replace(
        option,
        legs=legs,
        total_distance=sum(leg.distance for leg in legs),
        total_fare=sum(leg.fare for leg in legs),
        duration=sum(leg.duration or 0.0 for leg in legs),
    )


def rank_options(options: Sequence[CommuteOption]) -> List[CommuteOption]:
    """Shortest total distance first (stable)"""
    return sorted(options, key=lambda o: o.total_distance)
