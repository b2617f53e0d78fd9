"""Fare calculation utilities

Pure functions mapping (mode, distance, sub-type, discount) to a
passenger fare in whole pesos.
"""

import math
from typing import Optional

from metro_commute.config import DEFAULT_FARE_TABLE, FareTable, TieredFare


def _ceil_money(value: float) -> int:
    """Round up to the next whole peso (tolerant to float noise)"""
    return math.ceil(round(value, 6))


def _round_half_up(value: float) -> int:
    return math.floor(round(value, 6) + 0.5)


def _extra_km(distance_km: float, tier: TieredFare, rounding: str) -> int:
    """Whole kilometres charged beyond the base distance"""
    extra = max(0.0, distance_km - tier.base_distance_km)
    if rounding == "ceil":
        return math.ceil(round(extra, 6))
    return math.floor(round(extra, 6))


def _tiered_fare(
    distance_km: float,
    tier: TieredFare,
    discount: bool,
    table: FareTable,
) -> int:
    fare = float(tier.base_rate)
    if not tier.flat:
        fare += _extra_km(distance_km, tier, table.extra_km_rounding) * tier.per_km_rate

    if discount:
        fare *= (1 - table.discount_rate)

    return _ceil_money(fare)


def detect_bus_type(name: Optional[str]) -> str:
    """
    Bus sub-type from the route name

    Args:
        name: route name (e.g. "P2P Alabang - Makati", "Aircon Bus 12")

    Returns:
        "p2p", "aircon" or "ordinary"
    """
    lower_name = (name or "").lower()
    if "p2p" in lower_name:
        return "p2p"
    if "airconditioned" in lower_name or "aircon" in lower_name:
        return "aircon"
    return "ordinary"


def calculate_fare(
    mode: str,
    distance_km: float,
    sub_type: Optional[str] = None,
    discount: bool = False,
    table: FareTable = DEFAULT_FARE_TABLE,
) -> int:
    """
    Fare for one leg

    - walking: free
    - driving: distance * per-km cost, rounded to nearest (never discounted)
    - jeepney: base fare + per-km rate beyond the base distance
    - bus: tiered by sub-type (ordinary/aircon), p2p is flat

    Passenger fares apply the discount (student/senior/PWD) before rounding
    up to the next whole peso.

    Args:
        mode: leg mode
        distance_km: leg distance (km)
        sub_type: bus sub-type (None -> table default)
        discount: apply the discount rate
        table: tariff

    Returns:
        fare in whole pesos
    """
    distance_km = max(0.0, distance_km or 0.0)

    if mode == "walking":
        return 0

    if mode in ("driving", "car"):
        return _round_half_up(distance_km * table.driving_per_km)

    if mode == "jeepney":
        return _tiered_fare(distance_km, table.jeepney, discount, table)

    if mode == "bus":
        tier = table.bus.get(sub_type or table.default_bus_type) or table.bus[table.default_bus_type]
        return _tiered_fare(distance_km, tier, discount, table)

    return 0
