"""Domain models for places, corridors, clusters and assembled routes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(slots=True, frozen=True)
class Coordinates:
    lat: float
    lng: float


@dataclass(slots=True, frozen=True)
class NamedLocation:
    name: str
    location: Coordinates


@dataclass(slots=True, frozen=True)
class Anchor:
    """A user-named saved location such as "home" or "work"."""

    name: str
    location: Coordinates


class DestinationSource(str, Enum):
    ANCHOR = "anchor"
    GEOCODE = "geocode"
    PLACES = "places"


class DetourStatus(str, Enum):
    NO_DETOUR = "NO_DETOUR"
    MINIMAL = "MINIMAL"
    ACCEPTABLE = "ACCEPTABLE"
    NOT_RECOMMENDED = "NOT_RECOMMENDED"


class DetourCategory(str, Enum):
    MINIMAL = "MINIMAL"
    SIGNIFICANT = "SIGNIFICANT"
    FAR = "FAR"


@dataclass(slots=True, frozen=True)
class PlaceCandidate:
    """A geocoded place returned by the place search provider."""

    place_id: str
    name: str
    location: Coordinates
    address: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    types: tuple[str, ...] = ()
    is_open: Optional[bool] = None


CategoryCandidates = dict[str, list[PlaceCandidate]]
"""Category label (the stop query as the user typed it) -> candidates, deduplicated by place id."""


@dataclass(slots=True, frozen=True)
class GeocodeResult:
    address: str
    location: Coordinates


@dataclass(slots=True, frozen=True)
class DirectionsLeg:
    distance_m: float
    duration_min: float
    start_location: Coordinates
    end_location: Coordinates


@dataclass(slots=True, frozen=True)
class DirectionsResult:
    polyline: str
    total_distance_m: float
    total_duration_min: float
    legs: tuple[DirectionsLeg, ...] = ()


@dataclass(slots=True, frozen=True)
class CorridorPoint:
    lat: float
    lng: float
    distance_from_origin_m: float

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(self.lat, self.lng)


@dataclass(slots=True, frozen=True)
class RouteCorridor:
    """Sampled geometry of the direct origin -> destination route."""

    polyline: str
    decoded_path: tuple[Coordinates, ...]
    corridor_points: tuple[CorridorPoint, ...]
    total_distance_m: float
    total_duration_min: float
    origin: Coordinates
    destination: Coordinates


@dataclass(slots=True, frozen=True)
class ResolvedDestination:
    name: str
    location: Coordinates
    source: DestinationSource


@dataclass(slots=True, frozen=True)
class ResolvedStop:
    query: str
    place: PlaceCandidate


@dataclass(slots=True, frozen=True)
class StopCluster:
    """One candidate combination of stops, at most one per category. Lower score is better."""

    id: str
    stops: tuple[PlaceCandidate, ...]
    categories: tuple[str, ...]
    centroid: Coordinates
    radius_m: float
    max_pairwise_distance_m: float
    distance_from_route_m: float
    score: float


@dataclass(slots=True, frozen=True)
class DetourBudget:
    total_m: float
    used_m: float
    remaining_m: float

    @classmethod
    def from_usage(cls, total_m: float, used_m: float = 0.0) -> "DetourBudget":
        return cls(total_m=total_m, used_m=used_m, remaining_m=max(0.0, total_m - used_m))


@dataclass(slots=True, frozen=True)
class StopInput:
    id: str
    location: Coordinates


@dataclass(slots=True, frozen=True)
class OptimizedLeg:
    from_id: str
    to_id: str
    distance_m: float


@dataclass(slots=True, frozen=True)
class OptimizationResult:
    sequence: tuple[str, ...]
    legs: tuple[OptimizedLeg, ...]
    total_distance_m: float

    @property
    def stop_ids(self) -> list[str]:
        return list(self.sequence[1:-1])


@dataclass(slots=True, frozen=True)
class OrderedStop:
    """Stop metadata handed to the route assembler."""

    place: PlaceCandidate
    detour_cost_m: float
    status: DetourStatus
    order: int


@dataclass(slots=True, frozen=True)
class RouteStop:
    id: str
    name: str
    location: Coordinates
    mile_marker: float
    detour_cost_m: float
    status: DetourStatus
    order: int
    address: Optional[str] = None
    category: Optional[str] = None
    rating: Optional[float] = None
    is_open: Optional[bool] = None


@dataclass(slots=True, frozen=True)
class Waypoint:
    id: str
    location: Coordinates
    type: str
    stop_id: Optional[str] = None


@dataclass(slots=True, frozen=True)
class RouteLeg:
    id: str
    start_waypoint: str
    end_waypoint: str
    distance_mi: float
    duration_min: float
    polyline: str


@dataclass(slots=True, frozen=True)
class Route:
    """Final assembled route. A re-plan produces a new instance."""

    id: str
    origin: NamedLocation
    destination: NamedLocation
    stops: tuple[RouteStop, ...]
    waypoints: tuple[Waypoint, ...]
    legs: tuple[RouteLeg, ...]
    total_distance_mi: float
    total_time_min: float
    polyline: str
    detour_budget: DetourBudget
    created_at: datetime


@dataclass(slots=True, frozen=True)
class OptionStop:
    name: str
    location: Coordinates
    place_id: str
    address: Optional[str] = None


@dataclass(slots=True, frozen=True)
class RouteOption:
    id: str
    label: str
    is_recommended: bool
    total_time_min: float
    total_distance_mi: float
    extra_time_min: float
    cluster_radius_km: float
    stops: tuple[OptionStop, ...]
    route: Route


@dataclass(slots=True, frozen=True)
class ExcludedStop:
    name: str
    reason: str


@dataclass(slots=True, frozen=True)
class DetourWarning:
    stop_name: str
    message: str
    detour_minutes: float
    category: DetourCategory


@dataclass(slots=True, frozen=True)
class PlanningResult:
    route: Route
    route_options: tuple[RouteOption, ...]
    destination: NamedLocation
    direct_time_min: float
    excluded_stops: tuple[ExcludedStop, ...] = ()
    warnings: tuple[DetourWarning, ...] = ()


@dataclass(slots=True, frozen=True)
class StopSuggestion:
    id: str
    name: str
    location: Coordinates
    mile_marker: float
    category: str
    order: int
    address: Optional[str] = None
    rating: Optional[float] = None
    is_open: Optional[bool] = None
    detour_cost_m: float = 0.0
    status: DetourStatus = DetourStatus.NO_DETOUR


@dataclass(slots=True, frozen=True)
class SuggestionResult:
    suggestions: tuple[StopSuggestion, ...] = ()
    category_counts: dict[str, int] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class PreviewLeg:
    distance_mi: float
    duration_min: float


@dataclass(slots=True, frozen=True)
class RoutePreview:
    polyline: str
    total_distance_mi: float
    total_duration_min: float
    legs: tuple[PreviewLeg, ...] = ()


@dataclass(slots=True, frozen=True)
class Disambiguation:
    candidates: tuple[PlaceCandidate, ...]
    recommended_id: Optional[str] = None
    reason: Optional[str] = None


@dataclass(slots=True, frozen=True)
class DestinationSpec:
    """Destination as requested: free text, with coordinates when the caller already has them."""

    name: str
    location: Optional[Coordinates] = None
