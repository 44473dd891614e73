"""Ranked place search on top of the Places client."""

from __future__ import annotations

from typing import Optional, Sequence

from ...models.domain import Coordinates, PlaceCandidate
from ..geospatial import haversine_m
from .places_client import GooglePlacesClient

PROXIMITY_REFERENCE_M = 5000.0
MIN_FETCH = 20


def relevance_score(place: PlaceCandidate, reference: Coordinates) -> float:
    """Proximity (0.5..1.0) plus rating (0..0.3) plus popularity (0..0.2)."""
    distance_ratio = min(haversine_m(reference, place.location) / PROXIMITY_REFERENCE_M, 1.0)
    proximity = 1.0 - distance_ratio * 0.5
    rating = ((place.rating or 0.0) / 5.0) * 0.3
    popularity = min((place.review_count or 0) / 100.0, 1.0) * 0.2
    return proximity + rating + popularity


def rank_candidates(candidates: Sequence[PlaceCandidate], reference: Coordinates) -> list[PlaceCandidate]:
    return sorted(candidates, key=lambda place: relevance_score(place, reference), reverse=True)


class PlaceSearchService:
    def __init__(self, client: GooglePlacesClient | None = None) -> None:
        self.client = client or GooglePlacesClient()

    def search_places(
        self,
        query: str,
        center: Coordinates,
        radius_m: float,
        limit: int = 5,
    ) -> list[PlaceCandidate]:
        raw = self.client.text_search(query, center, radius_m, max(limit, MIN_FETCH))
        return rank_candidates(raw, center)[:limit]

    def place_details(self, place_id: str) -> Optional[PlaceCandidate]:
        return self.client.place_details(place_id)

    def nearby_places(
        self,
        center: Coordinates,
        place_type: str,
        radius_m: float = 5000,
        limit: int = 10,
    ) -> list[PlaceCandidate]:
        """Places of a Google place type (``cafe``, ``gas_station``) around ``center``, best first."""
        raw = self.client.nearby_search(center, place_type, radius_m, max(limit, MIN_FETCH))
        return rank_candidates(raw, center)[:limit]
