"""Route planning services"""
from .osrm import OSRMClient, RoadRoute, profile_for_mode
from .enhancer import PathEnhancer, synthetic_path
from .planner import CommutePlanner, validate_coordinates

__all__ = [
    "OSRMClient",
    "RoadRoute",
    "profile_for_mode",
    "PathEnhancer",
    "synthetic_path",
    "CommutePlanner",
    "validate_coordinates",
]
