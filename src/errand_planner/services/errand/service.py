"""Errand planning orchestration: destination, corridor, candidates, clusters, ranked route options."""

from __future__ import annotations

import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Optional, Sequence

from ...config import settings
from ...errors import RouteNotFoundError
from ...models.domain import (
    Anchor,
    Coordinates,
    DestinationSpec,
    DetourBudget,
    DetourWarning,
    DirectionsResult,
    ExcludedStop,
    NamedLocation,
    OptionStop,
    OrderedStop,
    PlaceCandidate,
    PlanningResult,
    PreviewLeg,
    Route,
    RouteCorridor,
    RouteOption,
    RoutePreview,
    StopCluster,
    StopInput,
    StopSuggestion,
    SuggestionResult,
)
from ..geospatial import haversine_m, meters_to_miles
from ..maps.providers import DirectionsProvider, GeocodingProvider, PlaceSearchProvider
from .clustering import ClusterConfig, detect_clusters
from .corridor import build_corridor, corridor_midpoint
from .detour import calculate_buffer, categorize_detour, detour_warning_message, get_detour_status
from .optimization import optimize_stop_order
from .resolver import CorridorSearchConfig, PlaceResolver, match_anchor
from .route_builder import build_route

logger = logging.getLogger(__name__)

ORIGIN_NAME = "Origin"
TRIP_WARNING_NAME = "Total trip"
NOT_ON_CORRIDOR_REASON = "No places found along route corridor"
NOT_NEAR_ORIGIN_REASON = "No places found near origin"
UNROUTABLE_REASON = "Could not compute a driving route through this stop"
DEFAULT_SUGGESTION_CATEGORIES = ("coffee", "gas", "grocery")


@dataclass(slots=True, frozen=True)
class RouteOptionsConfig:
    max_extra_time_min: float = 10.0
    max_cluster_radius_km: float = 5.0
    max_options: int = 3
    voice_max_options: int = 1
    clusters_to_evaluate: int = 3
    corridor_search_radius_m: float = 5000.0
    corridor_max_candidates: int = 8
    tightness_weight: float = 0.6
    route_proximity_weight: float = 0.4
    first_stop_hint_radius_m: float = 10000.0


@dataclass(slots=True, frozen=True)
class EvaluatedCluster:
    """A cluster after its stops were ordered and routed for real."""

    cluster: StopCluster
    ordered_stops: tuple[PlaceCandidate, ...]
    directions: DirectionsResult
    extra_minutes: float

    @property
    def total_duration_min(self) -> float:
        return self.directions.total_duration_min


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def order_places(origin: Coordinates, destination: Coordinates, places: Sequence[PlaceCandidate]) -> list[PlaceCandidate]:
    by_id = {place.place_id: place for place in places}
    result = optimize_stop_order(
        origin,
        destination,
        [StopInput(id=place.place_id, location=place.location) for place in places],
    )
    return [by_id[stop_id] for stop_id in result.stop_ids]


def stops_with_detours(
    places: Sequence[PlaceCandidate],
    origin: Coordinates,
    destination: Coordinates,
    directions: DirectionsResult,
    buffer_m: float,
) -> list[OrderedStop]:
    """Per-stop detour cost: legs in and out of the stop minus the straight line it interrupts."""
    ordered: list[OrderedStop] = []
    for index, place in enumerate(places):
        previous = origin if index == 0 else places[index - 1].location
        following = destination if index == len(places) - 1 else places[index + 1].location
        leg_in = directions.legs[index].distance_m if index < len(directions.legs) else 0.0
        leg_out = directions.legs[index + 1].distance_m if index + 1 < len(directions.legs) else 0.0
        detour_cost = max(0.0, leg_in + leg_out - haversine_m(previous, following))
        ordered.append(
            OrderedStop(
                place=place,
                detour_cost_m=detour_cost,
                status=get_detour_status(detour_cost, buffer_m),
                order=index + 1,
            )
        )
    return ordered


def trip_warnings(extra_minutes: float) -> tuple[DetourWarning, ...]:
    category = categorize_detour(extra_minutes)
    message = detour_warning_message(category, extra_minutes)
    if message is None:
        return ()
    return (
        DetourWarning(
            stop_name=TRIP_WARNING_NAME,
            message=message,
            detour_minutes=extra_minutes,
            category=category,
        ),
    )


def _option_stops(places: Sequence[PlaceCandidate]) -> tuple[OptionStop, ...]:
    return tuple(
        OptionStop(name=place.name, location=place.location, place_id=place.place_id, address=place.address)
        for place in places
    )


class ErrandPlanner:
    """Plans driving routes with errand stops between an origin and a destination.

    Stateless between calls; one instance can serve concurrent requests.
    """

    def __init__(
        self,
        directions: DirectionsProvider,
        geocoder: GeocodingProvider,
        place_search: PlaceSearchProvider,
        options: RouteOptionsConfig | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.directions = directions
        self.resolver = PlaceResolver(geocoder, place_search)
        self.options = options or RouteOptionsConfig()
        self.max_workers = max_workers or settings.cluster_evaluation_workers

    def navigate_with_stops(
        self,
        origin: Coordinates,
        destination: DestinationSpec,
        stops: Sequence[str],
        anchors: Sequence[Anchor] = (),
        voice_mode: bool = False,
    ) -> PlanningResult:
        logger.info(
            f"[navigate_with_stops] Origin ({origin.lat}, {origin.lng}) -> '{destination.name}'; "
            f"stops: {', '.join(stops) or 'none'}"
        )
        dest = self._resolve_destination(origin, destination, stops, anchors)

        direct = self.directions.get_directions(origin, dest.location)
        if direct is None:
            raise RouteNotFoundError(
                f"No driving route to {dest.name}",
                suggestions=["Check that both locations are reachable by car"],
            )
        corridor = build_corridor(origin, dest.location, direct)
        buffer_m = calculate_buffer(corridor.total_distance_m)
        logger.info(
            f"[navigate_with_stops] Direct route {meters_to_miles(corridor.total_distance_m):.1f}mi, "
            f"{corridor.total_duration_min:.1f}min; detour buffer {buffer_m:.0f}m"
        )

        if not stops:
            return self._direct_result(origin, dest, direct, buffer_m)

        candidates = self.resolver.resolve_stops_along_corridor(
            stops,
            corridor,
            CorridorSearchConfig(
                search_radius_m=self.options.corridor_search_radius_m,
                max_candidates_per_category=self.options.corridor_max_candidates,
            ),
        )
        excluded = [ExcludedStop(name=query, reason=NOT_ON_CORRIDOR_REASON) for query in stops if not candidates.get(query)]
        if len(excluded) == len(stops):
            logger.info("[navigate_with_stops] No candidates for any stop, returning direct route")
            return self._direct_result(origin, dest, direct, buffer_m, excluded)

        clusters = detect_clusters(
            {query: places for query, places in candidates.items() if places},
            corridor,
            ClusterConfig(
                tightness_weight=self.options.tightness_weight,
                route_proximity_weight=self.options.route_proximity_weight,
                max_clusters=self.options.clusters_to_evaluate,
            ),
        )
        if not clusters:
            logger.warning("[navigate_with_stops] No clusters found, falling back to individual stops")
            return self._fallback_to_individual_stops(origin, dest, stops, corridor, direct, buffer_m, excluded)

        evaluated = self.evaluate_clusters(
            clusters[: self.options.clusters_to_evaluate], origin, dest.location, corridor.total_duration_min
        )
        if not evaluated:
            logger.warning("[navigate_with_stops] No clusters could be evaluated, falling back to individual stops")
            return self._fallback_to_individual_stops(origin, dest, stops, corridor, direct, buffer_m, excluded)

        options = self.build_route_options(evaluated, origin, dest, corridor, buffer_m, voice_mode)
        best = options[0]
        for option in options:
            logger.info(
                f"[navigate_with_stops] {option.label}: {option.total_time_min:.1f}min, "
                f"{option.total_distance_mi:.1f}mi (+{option.extra_time_min:.1f}min)"
            )

        return PlanningResult(
            route=best.route,
            route_options=tuple(options),
            destination=dest,
            direct_time_min=corridor.total_duration_min,
            excluded_stops=tuple(excluded),
            warnings=trip_warnings(best.extra_time_min),
        )

    def _resolve_destination(
        self,
        origin: Coordinates,
        destination: DestinationSpec,
        stops: Sequence[str],
        anchors: Sequence[Anchor],
    ) -> NamedLocation:
        if destination.location is not None:
            return NamedLocation(destination.name, destination.location)

        anchor = match_anchor(destination.name, anchors)
        if anchor is not None:
            return NamedLocation(anchor.name, anchor.location)

        hint = origin
        if stops:
            # Search for the destination where the first stop is, not where the driver is.
            first_stop = self.resolver.resolve_stops([stops[0]], origin, self.options.first_stop_hint_radius_m)
            if first_stop:
                hint = first_stop[0].place.location
                logger.info(f"[navigate_with_stops] Resolving destination near first stop '{first_stop[0].place.name}'")
            else:
                logger.warning(f"[navigate_with_stops] First stop '{stops[0]}' not found; resolving destination near origin")

        resolved = self.resolver.resolve_destination(destination.name, anchors, hint)
        logger.info(
            f"[navigate_with_stops] Destination '{resolved.name}' ({resolved.source.value}) "
            f"at ({resolved.location.lat}, {resolved.location.lng})"
        )
        return NamedLocation(resolved.name, resolved.location)

    def _direct_result(
        self,
        origin: Coordinates,
        dest: NamedLocation,
        direct: DirectionsResult,
        buffer_m: float,
        excluded: Sequence[ExcludedStop] = (),
    ) -> PlanningResult:
        route = build_route(
            NamedLocation(ORIGIN_NAME, origin), dest, [], direct, DetourBudget.from_usage(buffer_m)
        )
        option = RouteOption(
            id="direct",
            label="Direct Route",
            is_recommended=True,
            total_time_min=direct.total_duration_min,
            total_distance_mi=meters_to_miles(direct.total_distance_m),
            extra_time_min=0.0,
            cluster_radius_km=0.0,
            stops=(),
            route=route,
        )
        return PlanningResult(
            route=route,
            route_options=(option,),
            destination=dest,
            direct_time_min=direct.total_duration_min,
            excluded_stops=tuple(excluded),
        )

    def _evaluate_cluster(
        self,
        cluster: StopCluster,
        origin: Coordinates,
        destination: Coordinates,
        direct_duration_min: float,
    ) -> Optional[EvaluatedCluster]:
        ordered = order_places(origin, destination, cluster.stops)
        directions = self.directions.get_directions(origin, destination, [place.location for place in ordered])
        if directions is None:
            logger.warning(f"[evaluate_clusters] No route through cluster {cluster.id}")
            return None
        extra = max(0.0, directions.total_duration_min - direct_duration_min)
        logger.info(
            f"[evaluate_clusters] Cluster {cluster.id}: {directions.total_duration_min:.1f}min total, +{extra:.1f}min"
        )
        return EvaluatedCluster(cluster=cluster, ordered_stops=tuple(ordered), directions=directions, extra_minutes=extra)

    def evaluate_clusters(
        self,
        clusters: Sequence[StopCluster],
        origin: Coordinates,
        destination: Coordinates,
        direct_duration_min: float,
    ) -> list[EvaluatedCluster]:
        """Route every cluster concurrently; failures are dropped, the rest sorted by total duration."""
        if not clusters:
            return []
        start_time = time.time()
        results: dict[int, EvaluatedCluster] = {}

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(clusters))) as executor:
            future_to_index = {
                executor.submit(self._evaluate_cluster, cluster, origin, destination, direct_duration_min): index
                for index, cluster in enumerate(clusters)
            }
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    evaluated = future.result()
                except Exception as exc:
                    logger.warning(f"[evaluate_clusters] Failed to evaluate cluster {clusters[index].id}: {exc}")
                    continue
                if evaluated is not None:
                    results[index] = evaluated

        ranked = sorted(results.items(), key=lambda item: (item[1].total_duration_min, item[0]))
        logger.info(
            f"[evaluate_clusters] Evaluated {len(ranked)}/{len(clusters)} clusters "
            f"in {time.time() - start_time:.2f}s"
        )
        return [evaluated for _, evaluated in ranked]

    def build_route_options(
        self,
        evaluated: Sequence[EvaluatedCluster],
        origin: Coordinates,
        dest: NamedLocation,
        corridor: RouteCorridor,
        buffer_m: float,
        voice_mode: bool = False,
    ) -> list[RouteOption]:
        """Ranked options; alternatives far slower or more spread out than the best are skipped."""
        max_options = self.options.voice_max_options if voice_mode else self.options.max_options
        best_time = evaluated[0].total_duration_min if evaluated else 0.0
        options: list[RouteOption] = []

        for index, candidate in enumerate(evaluated):
            if len(options) >= max_options:
                break
            cluster = candidate.cluster
            if index > 0 and candidate.total_duration_min - best_time > self.options.max_extra_time_min:
                logger.info(f"[build_route_options] Skipping {cluster.id}: too slow vs best")
                continue
            radius_km = cluster.max_pairwise_distance_m / 1000.0
            if index > 0 and radius_km > self.options.max_cluster_radius_km:
                logger.info(f"[build_route_options] Skipping {cluster.id}: stops {radius_km:.1f}km apart")
                continue

            route = self._route_through(
                origin, dest, candidate.ordered_stops, candidate.directions, corridor, buffer_m
            )
            position = len(options)
            options.append(
                RouteOption(
                    id=cluster.id,
                    label="Recommended" if position == 0 else f"Alternative {position}",
                    is_recommended=position == 0,
                    total_time_min=candidate.total_duration_min,
                    total_distance_mi=meters_to_miles(candidate.directions.total_distance_m),
                    extra_time_min=candidate.extra_minutes,
                    cluster_radius_km=radius_km,
                    stops=_option_stops(candidate.ordered_stops),
                    route=route,
                )
            )
        return options

    def _route_through(
        self,
        origin: Coordinates,
        dest: NamedLocation,
        ordered: Sequence[PlaceCandidate],
        directions: DirectionsResult,
        corridor: RouteCorridor,
        buffer_m: float,
    ) -> Route:
        extra_m = max(0.0, directions.total_distance_m - corridor.total_distance_m)
        return build_route(
            NamedLocation(ORIGIN_NAME, origin),
            dest,
            stops_with_detours(ordered, origin, dest.location, directions, buffer_m),
            directions,
            DetourBudget.from_usage(buffer_m, _round_half_up(extra_m)),
        )

    def _fallback_to_individual_stops(
        self,
        origin: Coordinates,
        dest: NamedLocation,
        stops: Sequence[str],
        corridor: RouteCorridor,
        direct: DirectionsResult,
        buffer_m: float,
        excluded: list[ExcludedStop],
    ) -> PlanningResult:
        """Nearest single place per query around the origin, routed in greedy order."""
        resolved = self.resolver.resolve_stops(stops, origin, buffer_m)
        resolved_queries = {stop.query for stop in resolved}
        already_excluded = {item.name for item in excluded}
        excluded = excluded + [
            ExcludedStop(name=query, reason=NOT_NEAR_ORIGIN_REASON)
            for query in stops
            if query not in resolved_queries and query not in already_excluded
        ]
        if not resolved:
            return self._direct_result(origin, dest, direct, buffer_m, excluded)

        ordered = order_places(origin, dest.location, [stop.place for stop in resolved])
        full = self.directions.get_directions(origin, dest.location, [place.location for place in ordered])
        if full is None:
            logger.warning("[fallback_to_individual_stops] No route through resolved stops, returning direct route")
            excluded += [ExcludedStop(name=stop.query, reason=UNROUTABLE_REASON) for stop in resolved]
            return self._direct_result(origin, dest, direct, buffer_m, excluded)

        extra_minutes = max(0.0, full.total_duration_min - corridor.total_duration_min)
        route = self._route_through(origin, dest, ordered, full, corridor, buffer_m)
        option = RouteOption(
            id="fallback",
            label="Recommended",
            is_recommended=True,
            total_time_min=full.total_duration_min,
            total_distance_mi=meters_to_miles(full.total_distance_m),
            extra_time_min=extra_minutes,
            cluster_radius_km=0.0,
            stops=_option_stops(ordered),
            route=route,
        )
        return PlanningResult(
            route=route,
            route_options=(option,),
            destination=dest,
            direct_time_min=corridor.total_duration_min,
            excluded_stops=tuple(excluded),
            warnings=trip_warnings(extra_minutes),
        )

    def suggest_stops_on_route(
        self,
        origin: Coordinates,
        destination: Coordinates,
        categories: Sequence[str] = DEFAULT_SUGGESTION_CATEGORIES,
        limit: int = 10,
    ) -> SuggestionResult:
        """Nearest place per category around the route midpoint, ordered by distance from the origin."""
        direct = self.directions.get_directions(origin, destination)
        if direct is None:
            return SuggestionResult()
        corridor = build_corridor(origin, destination, direct)
        buffer_m = calculate_buffer(direct.total_distance_m)
        midpoint = corridor_midpoint(corridor)

        found: list[tuple[float, str, PlaceCandidate]] = []
        for category in categories:
            for stop in self.resolver.resolve_stops([category], midpoint, buffer_m):
                found.append((haversine_m(origin, stop.place.location), category, stop.place))
        found.sort(key=lambda item: item[0])

        counts = {category: 0 for category in categories}
        suggestions = []
        for order, (distance_m, category, place) in enumerate(found[:limit], start=1):
            counts[category] = counts.get(category, 0) + 1
            suggestions.append(
                StopSuggestion(
                    id=place.place_id,
                    name=place.name,
                    location=place.location,
                    mile_marker=meters_to_miles(distance_m),
                    category=category,
                    order=order,
                    address=place.address,
                    rating=place.rating,
                    is_open=place.is_open,
                )
            )
        return SuggestionResult(suggestions=tuple(suggestions), category_counts=counts)

    def recalculate(self, origin: Coordinates, destination: Coordinates, stops: Sequence[StopInput]) -> Route:
        """Re-order and re-route stops the caller already resolved."""
        by_id = {stop.id: stop for stop in stops}
        sequence = optimize_stop_order(origin, destination, stops).stop_ids
        ordered = [
            PlaceCandidate(place_id=stop_id, name=f"Stop {position}", location=by_id[stop_id].location)
            for position, stop_id in enumerate(sequence, start=1)
        ]
        directions = self.directions.get_directions(origin, destination, [place.location for place in ordered])
        if directions is None:
            raise RouteNotFoundError("Could not get route", suggestions=["Remove a stop and try again"])
        buffer_m = calculate_buffer(directions.total_distance_m)
        return build_route(
            NamedLocation(ORIGIN_NAME, origin),
            NamedLocation("Destination", destination),
            stops_with_detours(ordered, origin, destination, directions, buffer_m),
            directions,
            DetourBudget.from_usage(buffer_m),
        )

    def preview(self, origin: Coordinates, destination: Coordinates, stops: Sequence[Coordinates] = ()) -> RoutePreview:
        """Directions through ``stops`` in the given order; no resolution or re-ordering."""
        directions = self.directions.get_directions(origin, destination, list(stops))
        if directions is None:
            raise RouteNotFoundError("Could not get route")
        return RoutePreview(
            polyline=directions.polyline,
            total_distance_mi=meters_to_miles(directions.total_distance_m),
            total_duration_min=directions.total_duration_min,
            legs=tuple(
                PreviewLeg(distance_mi=meters_to_miles(leg.distance_m), duration_min=leg.duration_min)
                for leg in directions.legs
            ),
        )
