"""Resolution of destination and stop text to concrete places."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import httpx

from ...errors import LocationUnavailableError, PlanningError
from ...models.domain import (
    Anchor,
    CategoryCandidates,
    CorridorPoint,
    Coordinates,
    DestinationSource,
    Disambiguation,
    PlaceCandidate,
    ResolvedDestination,
    ResolvedStop,
    RouteCorridor,
)
from ..geospatial import haversine_m
from ..maps.providers import GeocodingProvider, PlaceDetailsProvider, PlaceSearchProvider

logger = logging.getLogger(__name__)

# (radius in meters, label) pairs; widening stops at the first tier with results.
DESTINATION_SEARCH_TIERS: tuple[tuple[float, str], ...] = ((5_000, "5km"), (15_000, "15km"), (50_000, "50km"))
STOP_SEARCH_TIERS: tuple[tuple[float, str], ...] = ((5_000, "5km"), (15_000, "15km"), (30_000, "30km"))
CANDIDATES_PER_TIER = 10

UNRESOLVED_SUGGESTIONS = ("Check the address or place name", "Try a different spelling")


@dataclass(slots=True, frozen=True)
class CorridorSearchConfig:
    search_radius_m: float = 5000.0
    max_candidates_per_category: int = 10
    results_per_search: int = 5
    corridor_point_skip: int = 1


def match_anchor(text: str, anchors: Sequence[Anchor]) -> Optional[Anchor]:
    """Case-insensitive anchor lookup: exact name first, then substring either way."""
    needle = text.lower().strip()
    if not needle:
        return None
    for anchor in anchors:
        if anchor.name.lower().strip() == needle:
            return anchor
    for anchor in anchors:
        name = anchor.name.lower().strip()
        if name and (needle in name or name in needle):
            return anchor
    return None


def nearest_to(location: Coordinates, places: Sequence[PlaceCandidate]) -> PlaceCandidate:
    return min(places, key=lambda place: haversine_m(location, place.location))


def select_search_points(corridor: RouteCorridor, skip: int) -> list[CorridorPoint]:
    """Corridor points to search from: the first, every ``skip``-th interior point, and the last."""
    points = list(corridor.corridor_points)
    if len(points) <= 3 or skip <= 1:
        return points

    selected = [points[0]]
    for i in range(skip, len(points) - 1, skip):
        selected.append(points[i])
    if selected[-1] is not points[-1]:
        selected.append(points[-1])
    return selected


class PlaceResolver:
    def __init__(
        self,
        geocoder: GeocodingProvider,
        place_search: PlaceSearchProvider,
        place_details: PlaceDetailsProvider | None = None,
    ) -> None:
        self.geocoder = geocoder
        self.place_search = place_search
        if place_details is None and hasattr(place_search, "place_details"):
            place_details = place_search  # type: ignore[assignment]
        self.place_details = place_details

    match_anchor = staticmethod(match_anchor)

    def _tiered_nearest(
        self,
        query: str,
        location: Coordinates,
        tiers: Sequence[tuple[float, str]],
        operation: str,
    ) -> Optional[PlaceCandidate]:
        for radius_m, label in tiers:
            candidates = self.place_search.search_places(query, location, radius_m, CANDIDATES_PER_TIER)
            if candidates:
                nearest = nearest_to(location, candidates)
                distance_km = haversine_m(location, nearest.location) / 1000.0
                logger.info(
                    f"[{operation}] Found {len(candidates)} '{query}' candidates within {label}, "
                    f"picked nearest '{nearest.name}' at {distance_km:.1f}km"
                )
                return nearest
            logger.info(f"[{operation}] No '{query}' within {label}, expanding search")
        return None

    def resolve_destination(
        self,
        text: str,
        anchors: Sequence[Anchor] = (),
        hint_location: Coordinates | None = None,
    ) -> ResolvedDestination:
        """Resolve destination text via anchors, then geocoding, then tiered place search near the hint."""
        anchor = match_anchor(text, anchors)
        if anchor is not None:
            return ResolvedDestination(name=anchor.name, location=anchor.location, source=DestinationSource.ANCHOR)

        geocoded = self.geocoder.geocode(text)
        if geocoded is not None:
            return ResolvedDestination(name=geocoded.address, location=geocoded.location, source=DestinationSource.GEOCODE)

        if hint_location is not None:
            place = self._tiered_nearest(text, hint_location, DESTINATION_SEARCH_TIERS, "resolve_destination")
            if place is not None:
                return ResolvedDestination(name=place.name, location=place.location, source=DestinationSource.PLACES)

        raise LocationUnavailableError(
            f"Could not resolve destination: {text}",
            suggestions=UNRESOLVED_SUGGESTIONS,
        )

    def resolve_stops(
        self,
        queries: Sequence[str],
        location: Coordinates,
        budget_m: float,
    ) -> list[ResolvedStop]:
        """Nearest place per query using tiered search; unmatched queries are omitted."""
        logger.info(f"[resolve_stops] Resolving {len(queries)} stops with tiered search, budget={budget_m:.0f}m")
        resolved: list[ResolvedStop] = []
        for query in queries:
            place = self._tiered_nearest(query, location, STOP_SEARCH_TIERS, "resolve_stops")
            if place is None:
                logger.warning(f"[resolve_stops] No results for '{query}' in any tier")
                continue
            resolved.append(ResolvedStop(query=query, place=place))
        logger.info(f"[resolve_stops] Resolved {len(resolved)}/{len(queries)} stops")
        return resolved

    def resolve_stops_along_corridor(
        self,
        queries: Sequence[str],
        corridor: RouteCorridor,
        config: CorridorSearchConfig | None = None,
    ) -> CategoryCandidates:
        """Collect up to ``max_candidates_per_category`` unique places per query along the corridor.

        A failed search at one corridor point counts as zero results for that
        point; it never aborts the whole collection.
        """
        cfg = config or CorridorSearchConfig()
        candidates: CategoryCandidates = {query: [] for query in queries}
        seen: dict[str, set[str]] = {query: set() for query in queries}

        search_points = select_search_points(corridor, cfg.corridor_point_skip)
        logger.info(
            f"[resolve_stops_along_corridor] Categories: {', '.join(queries)}; "
            f"{len(search_points)}/{len(corridor.corridor_points)} search points, "
            f"radius={cfg.search_radius_m:.0f}m, max_per_category={cfg.max_candidates_per_category}"
        )

        for index, point in enumerate(search_points, start=1):
            for query in queries:
                bucket = candidates[query]
                if len(bucket) >= cfg.max_candidates_per_category:
                    continue
                try:
                    results = self.place_search.search_places(
                        query,
                        point.coordinates,
                        cfg.search_radius_m,
                        cfg.results_per_search,
                    )
                except (PlanningError, httpx.HTTPError) as exc:
                    logger.warning(
                        f"[resolve_stops_along_corridor] Search for '{query}' at point "
                        f"{index}/{len(search_points)} failed: {exc}"
                    )
                    continue

                for place in results:
                    if place.place_id in seen[query]:
                        continue
                    seen[query].add(place.place_id)
                    bucket.append(place)
                    if len(bucket) >= cfg.max_candidates_per_category:
                        break

        for query in queries:
            count = len(candidates[query])
            if count == 0:
                logger.warning(f"[resolve_stops_along_corridor] No candidates for '{query}' along the corridor")
            else:
                logger.info(f"[resolve_stops_along_corridor] {query}: {count} candidates")
        return candidates

    def disambiguate(self, place_ids: Sequence[str], origin: Coordinates | None = None) -> Disambiguation:
        """Fetch details for ``place_ids`` and recommend one: closest to ``origin``, else highest rated."""
        if self.place_details is None:
            raise PlanningError("Place details are not available for disambiguation")

        details = [place for place in (self.place_details.place_details(pid) for pid in place_ids) if place]
        if not details:
            return Disambiguation(candidates=())

        if origin is not None:
            recommended = nearest_to(origin, details)
            reason = "Closest to your location"
        else:
            recommended = max(details, key=lambda place: place.rating or 0.0)
            reason = "Highest rated"
        return Disambiguation(candidates=tuple(details), recommended_id=recommended.place_id, reason=reason)
