"""Google Places web-service client (text search, nearby search, details)."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ...config import settings
from ...models.domain import Coordinates, PlaceCandidate
from .cache import TTLCache
from .google_client import MAPS_API_BASE, GoogleApiClient

PLACES_API_BASE = f"{MAPS_API_BASE}/place"
DETAIL_FIELDS = "place_id,name,formatted_address,geometry,rating,user_ratings_total,types,opening_hours"

logger = logging.getLogger(__name__)


def place_from_payload(item: dict, address_field: str = "formatted_address", place_id: str = "") -> Optional[PlaceCandidate]:
    location = (item.get("geometry") or {}).get("location")
    if not location:
        return None
    opening_hours = item.get("opening_hours") or {}
    review_count = item.get("user_ratings_total")
    return PlaceCandidate(
        place_id=item.get("place_id") or place_id,
        name=item.get("name") or "",
        location=Coordinates(float(location.get("lat", 0.0)), float(location.get("lng", 0.0))),
        address=item.get(address_field),
        rating=item.get("rating"),
        review_count=int(review_count) if review_count is not None else None,
        types=tuple(item.get("types") or ()),
        is_open=opening_hours.get("open_now"),
    )


def places_from_payload(payload: dict, limit: int, address_field: str = "formatted_address") -> list[PlaceCandidate]:
    places: list[PlaceCandidate] = []
    for item in (payload.get("results") or [])[:limit]:
        place = place_from_payload(item, address_field=address_field)
        if place is not None:
            places.append(place)
    return places


class GooglePlacesClient(GoogleApiClient):
    service_name = "Google Places"
    key_env_hint = "ERRAND_GOOGLE_PLACES_API_KEY or ERRAND_GOOGLE_MAPS_API_KEY"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._details_cache = TTLCache(settings.place_cache_ttl_seconds)

    def _default_api_key(self) -> Optional[str]:
        return settings.places_api_key

    def text_search(
        self,
        query: str,
        location: Coordinates,
        radius_m: float = 10000,
        limit: int = 20,
    ) -> list[PlaceCandidate]:
        payload = self._get_json(
            f"{PLACES_API_BASE}/textsearch/json",
            {
                "query": query,
                "location": f"{location.lat},{location.lng}",
                "radius": str(int(radius_m)),
            },
        )
        return places_from_payload(payload, limit)

    def nearby_search(
        self,
        location: Coordinates,
        place_type: str,
        radius_m: float = 5000,
        limit: int = 20,
    ) -> list[PlaceCandidate]:
        payload = self._get_json(
            f"{PLACES_API_BASE}/nearbysearch/json",
            {
                "location": f"{location.lat},{location.lng}",
                "radius": str(int(radius_m)),
                "type": place_type,
            },
        )
        return places_from_payload(payload, limit, address_field="vicinity")

    def place_details(self, place_id: str) -> Optional[PlaceCandidate]:
        key = f"place:{place_id}"
        cached = self._details_cache.get(key)
        if cached is not None:
            return cached

        payload = self._get_json(
            f"{PLACES_API_BASE}/details/json",
            {"place_id": place_id, "fields": DETAIL_FIELDS},
        )
        place = place_from_payload(payload.get("result") or {}, place_id=place_id)
        if place is None:
            logger.info(f"[place_details] No geometry for place {place_id}")
            return None
        self._details_cache.set(key, place)
        return place
