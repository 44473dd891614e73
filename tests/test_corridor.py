import math

import pytest

from errand_planner.errors import RouteNotFoundError
from errand_planner.models.domain import Coordinates, DirectionsResult, RouteCorridor
from errand_planner.services.errand.corridor import (
    CorridorConfig,
    RouteCorridorExtractor,
    build_corridor,
    corridor_midpoint,
    distance_to_route,
    find_nearest_corridor_point,
    sample_corridor_points,
    sample_uniform_points,
)
from errand_planner.services.geospatial import haversine_m, path_length_m
from errand_planner.services.polyline import encode_polyline

from fakes import FakeDirections, straight_path


def _directions(path):
    length = path_length_m(path)
    return DirectionsResult(polyline=encode_polyline(path), total_distance_m=length, total_duration_min=length / 1000)


def test_long_straight_route_samples_every_interval_and_destination():
    path = straight_path(40.0, 40.2, -105.0, 40)

    points = sample_corridor_points(path)

    assert len(points) == 11
    assert points[0].coordinates == path[0]
    assert points[-1].coordinates == path[-1]
    assert points[-1].distance_from_origin_m == pytest.approx(path_length_m(path))
    distances = [point.distance_from_origin_m for point in points]
    assert distances == sorted(distances)


def test_sampling_respects_max_points():
    path = straight_path(40.0, 40.2, -105.0, 40)

    points = sample_corridor_points(path, CorridorConfig(max_points=5))

    assert len(points) == 5
    assert points[-1].coordinates == path[-1]


def test_route_doubling_back_still_ends_at_destination():
    # North for ~4 km, then a hook that ends ~230 m from the last sampled vertex.
    path = straight_path(0.0, 0.036, 0.0, 18) + [
        Coordinates(0.036, 0.004),
        Coordinates(0.034, 0.004),
        Coordinates(0.034, 0.0005),
    ]

    points = sample_corridor_points(path)

    assert len(points) == 3
    assert points[0].coordinates == path[0]
    assert points[-1].coordinates == path[-1]
    assert points[-1].distance_from_origin_m == pytest.approx(path_length_m(path))
    distances = [point.distance_from_origin_m for point in points]
    assert distances == sorted(distances)


def test_short_route_falls_back_to_every_vertex():
    path = [Coordinates(40.0, -105.0), Coordinates(40.001, -105.0), Coordinates(40.002, -105.0)]

    points = sample_corridor_points(path)

    assert [point.coordinates for point in points] == path


def test_single_vertex_and_empty_paths():
    assert sample_corridor_points([]) == []
    only = sample_corridor_points([Coordinates(1.0, 2.0)])
    assert len(only) == 1
    assert only[0].distance_from_origin_m == 0.0


def test_uniform_sampling_interpolates_by_arc_length():
    path = [
        Coordinates(40.0, -105.0),
        Coordinates(40.002, -105.0),
        Coordinates(40.010, -105.0),
        Coordinates(40.018, -105.0),
    ]

    points = sample_uniform_points(path, 3)

    assert len(points) == 3
    assert points[1].lat == pytest.approx(40.009, abs=1e-6)
    assert points[1].distance_from_origin_m == pytest.approx(path_length_m(path) / 2)
    assert points[2].coordinates == path[-1]


def test_build_corridor_keeps_route_totals():
    path = straight_path(40.0, 40.1, -105.0, 20)
    directions = _directions(path)

    corridor = build_corridor(path[0], path[-1], directions)

    assert corridor.polyline == directions.polyline
    assert len(corridor.decoded_path) == len(path)
    assert corridor.total_distance_m == directions.total_distance_m
    assert corridor.origin == path[0]
    assert corridor.destination == path[-1]


def test_distance_to_route_uses_path_then_points():
    path = straight_path(40.0, 40.1, -105.0, 20)
    corridor = build_corridor(path[0], path[-1], _directions(path))
    near = Coordinates(40.05, -104.99)

    assert distance_to_route(near, corridor) == pytest.approx(haversine_m(near, Coordinates(40.05, -105.0)), rel=1e-3)

    no_path = RouteCorridor(
        polyline="",
        decoded_path=(),
        corridor_points=corridor.corridor_points,
        total_distance_m=0.0,
        total_duration_min=0.0,
        origin=path[0],
        destination=path[-1],
    )
    expected = min(haversine_m(near, point.coordinates) for point in corridor.corridor_points)
    assert distance_to_route(near, no_path) == pytest.approx(expected)

    empty = RouteCorridor("", (), (), 0.0, 0.0, path[0], path[-1])
    assert distance_to_route(near, empty) == math.inf
    assert find_nearest_corridor_point(near, empty) is None
    assert corridor_midpoint(empty) == path[0]


def test_corridor_midpoint_is_near_half_distance():
    path = straight_path(40.0, 40.2, -105.0, 40)
    corridor = build_corridor(path[0], path[-1], _directions(path))

    midpoint = corridor_midpoint(corridor)

    assert midpoint.lat == pytest.approx(40.1, abs=0.011)
    nearest = find_nearest_corridor_point(Coordinates(40.0, -105.0), corridor)
    assert nearest.distance_from_origin_m == 0.0


def test_extractor_raises_when_no_route():
    extractor = RouteCorridorExtractor(FakeDirections(no_route=True))

    with pytest.raises(RouteNotFoundError) as excinfo:
        extractor.extract_corridor(Coordinates(40.0, -105.0), Coordinates(40.1, -105.0))

    assert excinfo.value.code == "ROUTE_NOT_FOUND"


def test_extractor_builds_corridor_from_provider():
    directions = FakeDirections()
    corridor = RouteCorridorExtractor(directions).extract_corridor(Coordinates(40.0, -105.0), Coordinates(40.1, -105.0))

    assert len(directions.calls) == 1
    assert corridor.total_distance_m == pytest.approx(haversine_m(Coordinates(40.0, -105.0), Coordinates(40.1, -105.0)))
    assert len(corridor.corridor_points) >= 2
