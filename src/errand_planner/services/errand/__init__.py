"""Errand route planning core."""

from .clustering import ClusterConfig, detect_clusters
from .corridor import CorridorConfig, RouteCorridorExtractor, build_corridor
from .resolver import CorridorSearchConfig, PlaceResolver
from .service import ErrandPlanner, RouteOptionsConfig

__all__ = [
    "ClusterConfig",
    "CorridorConfig",
    "CorridorSearchConfig",
    "ErrandPlanner",
    "PlaceResolver",
    "RouteCorridorExtractor",
    "RouteOptionsConfig",
    "build_corridor",
    "detect_clusters",
]
