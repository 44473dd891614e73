"""Contracts for the external map collaborators used by the planner."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ...models.domain import Coordinates, DirectionsResult, GeocodeResult, PlaceCandidate


class DirectionsProvider(Protocol):
    def get_directions(
        self,
        origin: Coordinates,
        destination: Coordinates,
        waypoints: Sequence[Coordinates] = (),
    ) -> Optional[DirectionsResult]:
        """Driving directions through ``waypoints`` in the given order, or ``None`` if no route exists."""
        ...


class GeocodingProvider(Protocol):
    def geocode(self, address: str) -> Optional[GeocodeResult]:
        ...


class PlaceSearchProvider(Protocol):
    def search_places(
        self,
        query: str,
        center: Coordinates,
        radius_m: float,
        limit: int = 10,
    ) -> list[PlaceCandidate]:
        """Ranked candidates for ``query`` near ``center``; may be empty."""
        ...


class PlaceDetailsProvider(Protocol):
    def place_details(self, place_id: str) -> Optional[PlaceCandidate]:
        ...
