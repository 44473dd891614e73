"""Route corridor extraction: the direct route plus sampled search anchors."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from ...errors import RouteNotFoundError
from ...models.domain import Coordinates, CorridorPoint, DirectionsResult, RouteCorridor
from ..geospatial import distance_to_path_m, haversine_m, interpolate, meters_to_miles, path_length_m
from ..maps.providers import DirectionsProvider
from ..polyline import decode_polyline

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CorridorConfig:
    sampling_interval_m: float = 2000.0
    max_points: int = 25
    min_points: int = 3


def _point(location: Coordinates, distance_m: float) -> CorridorPoint:
    return CorridorPoint(lat=location.lat, lng=location.lng, distance_from_origin_m=distance_m)


def sample_uniform_points(path: Sequence[Coordinates], n: int) -> list[CorridorPoint]:
    """``n`` points evenly spaced by arc length, endpoints included.

    Paths with at most ``n`` vertices return every vertex.
    """
    if not path:
        return []
    if len(path) <= n:
        points = []
        distance = 0.0
        for index, vertex in enumerate(path):
            if index > 0:
                distance += haversine_m(path[index - 1], vertex)
            points.append(_point(vertex, distance))
        return points

    total = path_length_m(path)
    interval = total / (n - 1)
    points = [_point(path[0], 0.0)]

    accumulated = 0.0
    path_index = 1
    for i in range(1, n - 1):
        target = interval * i
        while path_index < len(path):
            segment = haversine_m(path[path_index - 1], path[path_index])
            if accumulated + segment >= target:
                ratio = (target - accumulated) / segment if segment > 0 else 0.0
                points.append(_point(interpolate(path[path_index - 1], path[path_index], ratio), target))
                break
            accumulated += segment
            path_index += 1

    points.append(_point(path[-1], total))
    return points


def sample_corridor_points(path: Sequence[Coordinates], config: CorridorConfig | None = None) -> list[CorridorPoint]:
    """Sample search anchors roughly every ``sampling_interval_m`` along ``path``.

    The origin is always first. A vertex is only sampled when more than half an
    interval of path remains after it, and sampling stops one short of
    ``max_points`` so the destination still fits. The destination is always the
    last point; when it lies within 0.3 intervals of the last sample (a route
    that doubles back) it replaces that sample instead of crowding it. Short
    routes that yield fewer than ``min_points`` fall back to uniform arc-length
    sampling.

    Distances are measured along the decoded polyline, so the destination's
    ``distance_from_origin_m`` is the polyline length and can differ slightly
    from the provider's reported route distance.
    """
    cfg = config or CorridorConfig()
    if not path:
        return []
    if len(path) == 1:
        return [_point(path[0], 0.0)]

    # Suffix lengths so the "remaining distance" check stays linear.
    remaining_after = [0.0] * len(path)
    for i in range(len(path) - 2, -1, -1):
        remaining_after[i] = remaining_after[i + 1] + haversine_m(path[i], path[i + 1])

    points = [_point(path[0], 0.0)]
    accumulated = 0.0
    last_sampled = 0.0

    for i in range(1, len(path)):
        accumulated += haversine_m(path[i - 1], path[i])
        if accumulated - last_sampled >= cfg.sampling_interval_m:
            if remaining_after[i] > cfg.sampling_interval_m * 0.5:
                points.append(_point(path[i], accumulated))
                last_sampled = accumulated
            if len(points) >= cfg.max_points - 1:
                break

    total = remaining_after[0]
    last = path[-1]
    if len(points) > 1 and haversine_m(points[-1].coordinates, last) <= cfg.sampling_interval_m * 0.3:
        points[-1] = _point(last, total)
    else:
        points.append(_point(last, total))

    if len(points) < cfg.min_points and len(path) >= cfg.min_points:
        return sample_uniform_points(path, cfg.min_points)
    return points


def build_corridor(
    origin: Coordinates,
    destination: Coordinates,
    directions: DirectionsResult,
    config: CorridorConfig | None = None,
) -> RouteCorridor:
    """Corridor for an already-fetched direct route."""
    decoded = decode_polyline(directions.polyline)
    corridor_points = sample_corridor_points(decoded, config)
    logger.info(
        f"[build_corridor] Route {meters_to_miles(directions.total_distance_m):.1f}mi, "
        f"{directions.total_duration_min:.0f}min; decoded {len(decoded)} points, "
        f"sampled {len(corridor_points)} corridor points"
    )
    return RouteCorridor(
        polyline=directions.polyline,
        decoded_path=tuple(decoded),
        corridor_points=tuple(corridor_points),
        total_distance_m=directions.total_distance_m,
        total_duration_min=directions.total_duration_min,
        origin=origin,
        destination=destination,
    )


def distance_to_route(location: Coordinates, corridor: RouteCorridor) -> float:
    """Distance in meters from ``location`` to the route path.

    Falls back to the nearest corridor point when the decoded polyline is
    empty; ``inf`` when neither is available.
    """
    if corridor.decoded_path:
        return distance_to_path_m(location, corridor.decoded_path)
    if corridor.corridor_points:
        return min(haversine_m(location, point.coordinates) for point in corridor.corridor_points)
    return math.inf


def find_nearest_corridor_point(location: Coordinates, corridor: RouteCorridor) -> Optional[CorridorPoint]:
    if not corridor.corridor_points:
        return None
    return min(corridor.corridor_points, key=lambda point: haversine_m(location, point.coordinates))


def corridor_midpoint(corridor: RouteCorridor) -> Coordinates:
    """Corridor point closest to half the route length; the origin for an empty corridor."""
    if not corridor.corridor_points:
        return corridor.origin
    half = corridor.corridor_points[-1].distance_from_origin_m / 2.0
    nearest = min(corridor.corridor_points, key=lambda point: abs(point.distance_from_origin_m - half))
    return nearest.coordinates


class RouteCorridorExtractor:
    def __init__(self, directions: DirectionsProvider) -> None:
        self.directions = directions

    def extract_corridor(
        self,
        origin: Coordinates,
        destination: Coordinates,
        config: CorridorConfig | None = None,
    ) -> RouteCorridor:
        logger.info(
            f"[extract_corridor] Getting route: ({origin.lat}, {origin.lng}) -> ({destination.lat}, {destination.lng})"
        )
        result = self.directions.get_directions(origin, destination)
        if result is None:
            raise RouteNotFoundError(
                "Could not get directions for corridor extraction",
                suggestions=["Check that both locations are reachable by car"],
            )
        return build_corridor(origin, destination, result, config)
