"""Assembly of the final Route from directions and ordered stop metadata."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Sequence

from ...models.domain import (
    DetourBudget,
    DirectionsResult,
    NamedLocation,
    OrderedStop,
    Route,
    RouteLeg,
    RouteStop,
    Waypoint,
)
from ..geospatial import meters_to_miles


def build_route(
    origin: NamedLocation,
    destination: NamedLocation,
    ordered_stops: Sequence[OrderedStop],
    directions: DirectionsResult,
    detour_budget: DetourBudget,
) -> Route:
    """Pure assembly; no lookups.

    Stop ``i`` sits at the end of directions leg ``i``, so its mile marker is
    the sum of legs ``0..i``. Missing legs contribute zero distance.
    """
    waypoints = [Waypoint(id="wp-0", location=origin.location, type="start")]
    stops: list[RouteStop] = []

    accumulated_m = 0.0
    for index, ordered in enumerate(ordered_stops):
        if index < len(directions.legs):
            accumulated_m += directions.legs[index].distance_m
        place = ordered.place
        waypoints.append(
            Waypoint(id=f"wp-{index + 1}", location=place.location, type="stop", stop_id=place.place_id)
        )
        stops.append(
            RouteStop(
                id=place.place_id,
                name=place.name,
                location=place.location,
                mile_marker=meters_to_miles(accumulated_m),
                detour_cost_m=ordered.detour_cost_m,
                status=ordered.status,
                order=ordered.order,
                address=place.address,
                category=place.types[0] if place.types else None,
                rating=place.rating,
                is_open=place.is_open,
            )
        )
    waypoints.append(Waypoint(id=f"wp-{len(ordered_stops) + 1}", location=destination.location, type="destination"))

    legs = tuple(
        RouteLeg(
            id=f"leg-{index}",
            start_waypoint=waypoints[index].id if index < len(waypoints) else f"wp-{index}",
            end_waypoint=waypoints[index + 1].id if index + 1 < len(waypoints) else f"wp-{index + 1}",
            distance_mi=meters_to_miles(leg.distance_m),
            duration_min=leg.duration_min,
            polyline=directions.polyline,
        )
        for index, leg in enumerate(directions.legs)
    )

    return Route(
        id=f"route-{uuid.uuid4().hex}",
        origin=origin,
        destination=destination,
        stops=tuple(stops),
        waypoints=tuple(waypoints),
        legs=legs,
        total_distance_mi=meters_to_miles(directions.total_distance_m),
        total_time_min=directions.total_duration_min,
        polyline=directions.polyline,
        detour_budget=detour_budget,
        created_at=datetime.now(timezone.utc),
    )
