"""Errand planning endpoints."""

from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Depends, status

from ...schemas.errands import NavigateRequest, PreviewRequest, RecalculateRequest, SuggestRequest
from ...services.errand.service import DEFAULT_SUGGESTION_CATEGORIES, ErrandPlanner
from ...services.maps import GoogleMapsClient, PlaceSearchService
from ...services.outputs.route_formatter import (
    planning_result_to_json,
    preview_to_json,
    route_to_json,
    suggestions_to_json,
)

router = APIRouter(prefix="/errands", tags=["errands"])


@lru_cache(maxsize=1)
def get_planner() -> ErrandPlanner:
    """Planner wired to the Google clients. Overridden in tests."""
    maps = GoogleMapsClient()
    return ErrandPlanner(directions=maps, geocoder=maps, place_search=PlaceSearchService())


@router.post("/navigate", status_code=status.HTTP_200_OK)
def navigate(payload: NavigateRequest, planner: ErrandPlanner = Depends(get_planner)) -> dict:
    result = planner.navigate_with_stops(
        origin=payload.origin.to_domain(),
        destination=payload.destination.to_domain(),
        stops=[stop.name for stop in payload.stops],
        anchors=[anchor.to_domain() for anchor in payload.anchors],
        voice_mode=payload.voice_mode,
    )
    return planning_result_to_json(result)


@router.post("/suggest", status_code=status.HTTP_200_OK)
def suggest(payload: SuggestRequest, planner: ErrandPlanner = Depends(get_planner)) -> dict:
    result = planner.suggest_stops_on_route(
        payload.origin.to_domain(),
        payload.destination.to_domain(),
        categories=payload.categories or DEFAULT_SUGGESTION_CATEGORIES,
        limit=payload.limit,
    )
    return suggestions_to_json(result)


@router.post("/recalculate", status_code=status.HTTP_200_OK)
def recalculate(payload: RecalculateRequest, planner: ErrandPlanner = Depends(get_planner)) -> dict:
    route = planner.recalculate(
        payload.origin.to_domain(),
        payload.destination.to_domain(),
        [stop.to_domain() for stop in payload.stops],
    )
    return {"route": route_to_json(route)}


@router.post("/preview", status_code=status.HTTP_200_OK)
def preview(payload: PreviewRequest, planner: ErrandPlanner = Depends(get_planner)) -> dict:
    result = planner.preview(
        payload.origin.to_domain(),
        payload.destination.to_domain(),
        [stop.to_domain().location for stop in payload.stops],
    )
    return preview_to_json(result)
