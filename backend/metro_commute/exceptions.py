"""Commute planner custom exceptions"""


class CommuteError(Exception):
    """Base planner exception"""
    pass


class InvalidCoordinatesError(CommuteError):
    """Missing, non-numeric or out-of-range coordinates (client error)"""
    pass


class SpatialStoreError(CommuteError):
    """Spatial store unavailable or query failed (fatal for the request)"""
    pass


class RoutingServiceError(CommuteError):
    """External road-routing failure or timeout (always recovered)"""
    pass


class GeometryError(CommuteError):
    """Degenerate or unusable route geometry (always recovered)"""
    pass
