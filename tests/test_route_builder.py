import pytest

from errand_planner.models.domain import (
    Coordinates,
    DetourBudget,
    DetourStatus,
    DirectionsLeg,
    DirectionsResult,
    NamedLocation,
    OrderedStop,
)
from errand_planner.services.errand.route_builder import build_route

from fakes import place

ORIGIN = NamedLocation("Origin", Coordinates(40.0, -105.0))
DESTINATION = NamedLocation("Office", Coordinates(40.1, -105.0))


def _directions(*distances):
    legs = tuple(
        DirectionsLeg(distance, distance / 1000, Coordinates(40.0, -105.0), Coordinates(40.1, -105.0))
        for distance in distances
    )
    return DirectionsResult("_p~iF~ps|U", sum(distances), sum(leg.duration_min for leg in legs), legs)


def _ordered(*places):
    return [OrderedStop(place=p, detour_cost_m=120.0, status=DetourStatus.MINIMAL, order=i) for i, p in enumerate(places)]


def test_mile_markers_accumulate_leg_distance():
    stops = _ordered(
        place("coffee", 40.02, -105.0, types=("cafe", "food"), rating=4.5),
        place("gas", 40.05, -105.0),
    )

    route = build_route(ORIGIN, DESTINATION, stops, _directions(1609.34, 3218.68, 1000.0), DetourBudget.from_usage(800))

    assert [stop.mile_marker for stop in route.stops] == pytest.approx([1.0, 3.0])
    assert route.stops[0].category == "cafe"
    assert route.stops[1].category is None
    assert route.stops[0].rating == 4.5
    assert route.total_distance_mi == pytest.approx((1609.34 + 3218.68 + 1000.0) / 1609.34)
    assert route.detour_budget.remaining_m == 800


def test_waypoints_and_legs_are_linked():
    stops = _ordered(place("coffee", 40.02, -105.0))

    route = build_route(ORIGIN, DESTINATION, stops, _directions(2000.0, 3000.0), DetourBudget.from_usage(400))

    assert [wp.id for wp in route.waypoints] == ["wp-0", "wp-1", "wp-2"]
    assert [wp.type for wp in route.waypoints] == ["start", "stop", "destination"]
    assert route.waypoints[1].stop_id == "coffee"
    assert [(leg.start_waypoint, leg.end_waypoint) for leg in route.legs] == [("wp-0", "wp-1"), ("wp-1", "wp-2")]
    assert route.id.startswith("route-")
    assert route.created_at.tzinfo is not None


def test_missing_legs_contribute_nothing():
    stops = _ordered(place("a", 40.02, -105.0), place("b", 40.03, -105.0))

    route = build_route(ORIGIN, DESTINATION, stops, _directions(1609.34), DetourBudget.from_usage(400))

    assert [stop.mile_marker for stop in route.stops] == pytest.approx([1.0, 1.0])
    assert len(route.legs) == 1


def test_routes_get_unique_ids():
    directions = _directions(1000.0)
    budget = DetourBudget.from_usage(400)

    first = build_route(ORIGIN, DESTINATION, [], directions, budget)
    second = build_route(ORIGIN, DESTINATION, [], directions, budget)

    assert first.id != second.id
    assert first.stops == ()
