"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from ..models.domain import Coordinates

EARTH_RADIUS_KM = 6371.0
EARTH_RADIUS_M = EARTH_RADIUS_KM * 1000.0
METERS_PER_MILE = 1609.34


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_m(a: Coordinates, b: Coordinates) -> float:
    return haversine_km(a.lat, a.lng, b.lat, b.lng) * 1000.0


def meters_to_miles(meters: float) -> float:
    return meters / METERS_PER_MILE


def projection_param(p: Coordinates, a: Coordinates, b: Coordinates) -> float:
    """Projection parameter of ``p`` onto segment ``ab`` in the (lat, lng) plane.

    0 is at ``a``, 1 is at ``b``; values outside [0, 1] fall before or after the segment.
    This is a planar approximation, not a geodesic projection.
    """

    dx = b.lat - a.lat
    dy = b.lng - a.lng
    d2 = dx * dx + dy * dy
    if d2 == 0:
        return 0.0
    vx = p.lat - a.lat
    vy = p.lng - a.lng
    return (vx * dx + vy * dy) / d2


def interpolate(a: Coordinates, b: Coordinates, ratio: float) -> Coordinates:
    return Coordinates(a.lat + (b.lat - a.lat) * ratio, a.lng + (b.lng - a.lng) * ratio)


def point_to_segment_m(p: Coordinates, a: Coordinates, b: Coordinates) -> float:
    """Haversine distance from ``p`` to its planar projection on segment ``ab``."""

    t = projection_param(p, a, b)
    if t <= 0:
        return haversine_m(p, a)
    if t >= 1:
        return haversine_m(p, b)
    return haversine_m(p, interpolate(a, b, t))


def distance_to_path_m(p: Coordinates, path: Sequence[Coordinates]) -> float:
    """Minimum distance from ``p`` to any segment of ``path``; ``inf`` for an empty path."""

    if not path:
        return math.inf
    if len(path) == 1:
        return haversine_m(p, path[0])

    best = math.inf
    for start, end in zip(path, path[1:]):
        distance = point_to_segment_m(p, start, end)
        if distance < best:
            best = distance
    return best


def path_length_m(path: Sequence[Coordinates]) -> float:
    return sum(haversine_m(start, end) for start, end in zip(path, path[1:]))


def centroid(points: Sequence[Coordinates]) -> Coordinates:
    if not points:
        return Coordinates(0.0, 0.0)
    return Coordinates(
        sum(point.lat for point in points) / len(points),
        sum(point.lng for point in points) / len(points),
    )


def pairwise_distances_m(points: Sequence[Coordinates]) -> np.ndarray:
    """Symmetric haversine distance matrix (meters) for ``points``."""

    if not points:
        return np.zeros((0, 0))
    lat = np.radians(np.array([point.lat for point in points], dtype=float))
    lng = np.radians(np.array([point.lng for point in points], dtype=float))

    d_phi = lat[:, None] - lat[None, :]
    d_lambda = lng[:, None] - lng[None, :]
    a = np.sin(d_phi / 2) ** 2 + np.cos(lat)[:, None] * np.cos(lat)[None, :] * np.sin(d_lambda / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(np.clip(1 - a, 0.0, None)))
    return EARTH_RADIUS_M * c
