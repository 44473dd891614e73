"""Place lookup endpoints: picking between look-alike places and browsing nearby ones."""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, Query, status

from ...models.domain import Coordinates
from ...schemas.places import DisambiguateRequest
from ...services.errand.service import ErrandPlanner
from ...services.maps import PlaceSearchService
from ...services.outputs.route_formatter import disambiguation_to_json, place_to_json
from .errands import get_planner

router = APIRouter(prefix="/places", tags=["places"])
logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_place_search() -> PlaceSearchService:
    return PlaceSearchService()


@router.post("/disambiguate", status_code=status.HTTP_200_OK)
def disambiguate(payload: DisambiguateRequest, planner: ErrandPlanner = Depends(get_planner)) -> dict:
    logger.info(f"[disambiguate] '{payload.query}': {len(payload.candidates)} candidates")
    result = planner.resolver.disambiguate(
        payload.candidates,
        origin=payload.origin.to_domain() if payload.origin else None,
    )
    return disambiguation_to_json(result)


@router.get("/nearby", status_code=status.HTTP_200_OK)
def nearby(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    category: str = Query(..., min_length=1, description="Google place type, e.g. 'cafe' or 'gas_station'."),
    radius: float = Query(5000, gt=0, le=50000),
    limit: int = Query(10, ge=1, le=20),
    place_search: PlaceSearchService = Depends(get_place_search),
) -> dict:
    places = place_search.nearby_places(Coordinates(lat, lng), category, radius_m=radius, limit=limit)
    return {"places": [place_to_json(place) for place in places]}
