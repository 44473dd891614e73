"""Serializers for planning outputs."""

from __future__ import annotations

from ...models.domain import (
    Coordinates,
    Disambiguation,
    NamedLocation,
    PlaceCandidate,
    PlanningResult,
    Route,
    RouteOption,
    RoutePreview,
    SuggestionResult,
)


def _coordinates(location: Coordinates) -> dict:
    return {"lat": location.lat, "lng": location.lng}


def _named(location: NamedLocation) -> dict:
    return {"name": location.name, "location": _coordinates(location.location)}


def route_to_json(route: Route) -> dict:
    return {
        "id": route.id,
        "origin": _named(route.origin),
        "destination": _named(route.destination),
        "stops": [
            {
                "id": stop.id,
                "name": stop.name,
                "address": stop.address,
                "location": _coordinates(stop.location),
                "mile_marker": stop.mile_marker,
                "detour_cost_m": stop.detour_cost_m,
                "status": stop.status.value,
                "category": stop.category,
                "rating": stop.rating,
                "is_open": stop.is_open,
                "order": stop.order,
            }
            for stop in route.stops
        ],
        "waypoints": [
            {
                "id": waypoint.id,
                "location": _coordinates(waypoint.location),
                "type": waypoint.type,
                "stop_id": waypoint.stop_id,
            }
            for waypoint in route.waypoints
        ],
        "legs": [
            {
                "id": leg.id,
                "start_waypoint": leg.start_waypoint,
                "end_waypoint": leg.end_waypoint,
                "distance_mi": leg.distance_mi,
                "duration_min": leg.duration_min,
                "polyline": leg.polyline,
            }
            for leg in route.legs
        ],
        "total_distance_mi": route.total_distance_mi,
        "total_time_min": route.total_time_min,
        "polyline": route.polyline,
        "detour_budget": {
            "total_m": route.detour_budget.total_m,
            "used_m": route.detour_budget.used_m,
            "remaining_m": route.detour_budget.remaining_m,
        },
        "created_at": route.created_at.isoformat(),
    }


def route_option_to_json(option: RouteOption) -> dict:
    return {
        "id": option.id,
        "label": option.label,
        "is_recommended": option.is_recommended,
        "total_time_min": option.total_time_min,
        "total_distance_mi": option.total_distance_mi,
        "extra_time_min": option.extra_time_min,
        "cluster_radius_km": option.cluster_radius_km,
        "stops": [
            {
                "name": stop.name,
                "address": stop.address,
                "location": _coordinates(stop.location),
                "place_id": stop.place_id,
            }
            for stop in option.stops
        ],
        "route": route_to_json(option.route),
    }


def planning_result_to_json(result: PlanningResult) -> dict:
    payload = {
        "route": route_to_json(result.route),
        "route_options": [route_option_to_json(option) for option in result.route_options],
        "destination": _named(result.destination),
        "direct_time_min": result.direct_time_min,
    }
    if result.excluded_stops:
        payload["excluded_stops"] = [{"name": item.name, "reason": item.reason} for item in result.excluded_stops]
    if result.warnings:
        payload["warnings"] = [
            {
                "stop_name": warning.stop_name,
                "message": warning.message,
                "detour_minutes": warning.detour_minutes,
                "category": warning.category.value,
            }
            for warning in result.warnings
        ]
    return payload


def suggestions_to_json(result: SuggestionResult) -> dict:
    return {
        "suggestions": [
            {
                "id": suggestion.id,
                "name": suggestion.name,
                "address": suggestion.address,
                "location": _coordinates(suggestion.location),
                "mile_marker": suggestion.mile_marker,
                "detour_cost_m": suggestion.detour_cost_m,
                "status": suggestion.status.value,
                "category": suggestion.category,
                "rating": suggestion.rating,
                "is_open": suggestion.is_open,
                "order": suggestion.order,
            }
            for suggestion in result.suggestions
        ],
        "category_counts": dict(result.category_counts),
    }


def preview_to_json(preview: RoutePreview) -> dict:
    return {
        "polyline": preview.polyline,
        "total_distance_mi": preview.total_distance_mi,
        "total_duration_min": preview.total_duration_min,
        "legs": [{"distance_mi": leg.distance_mi, "duration_min": leg.duration_min} for leg in preview.legs],
    }


def place_to_json(place: PlaceCandidate) -> dict:
    return {
        "id": place.place_id,
        "name": place.name,
        "address": place.address,
        "location": _coordinates(place.location),
        "rating": place.rating,
        "review_count": place.review_count,
        "types": list(place.types),
        "is_open": place.is_open,
    }


def disambiguation_to_json(result: Disambiguation) -> dict:
    return {
        "candidates": [place_to_json(place) for place in result.candidates],
        "recommended_id": result.recommended_id,
        "reason": result.reason,
    }
