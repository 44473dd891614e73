"""Cluster detection: combinations of one stop per category that sit close together near the route."""

from __future__ import annotations

import itertools
import logging
import math
from dataclasses import dataclass
from typing import Sequence

from ...models.domain import CategoryCandidates, PlaceCandidate, RouteCorridor, StopCluster
from ..geospatial import centroid, haversine_m, pairwise_distances_m
from .corridor import distance_to_route

# Distances are normalised against 10 km before weighting.
SCORE_NORMALIZATION_M = 10_000.0
MIN_PRUNED_PER_CATEGORY = 3
MAX_PRUNED_PER_CATEGORY = 10

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ClusterConfig:
    tightness_weight: float = 0.5
    route_proximity_weight: float = 0.5
    max_clusters: int = 10
    max_combinations: int = 500


def _single_category_clusters(
    places: Sequence[PlaceCandidate],
    category: str,
    corridor: RouteCorridor,
    cfg: ClusterConfig,
) -> list[StopCluster]:
    clusters = []
    for index, place in enumerate(places):
        route_distance = distance_to_route(place.location, corridor)
        clusters.append(
            StopCluster(
                id=f"cluster-single-{index}",
                stops=(place,),
                categories=(category,),
                centroid=place.location,
                radius_m=0.0,
                max_pairwise_distance_m=0.0,
                distance_from_route_m=route_distance,
                score=route_distance * cfg.route_proximity_weight,
            )
        )
    clusters.sort(key=lambda cluster: cluster.score)
    return clusters[: cfg.max_clusters]


def pruned_size(max_combinations: int, category_count: int) -> int:
    """Per-category cap that keeps the product near ``max_combinations``, clamped to [3, 10]."""
    target = int(math.floor(max_combinations ** (1.0 / category_count)))
    return max(MIN_PRUNED_PER_CATEGORY, min(target, MAX_PRUNED_PER_CATEGORY))


def prune_candidates(
    candidates: CategoryCandidates,
    corridor: RouteCorridor,
    max_combinations: int,
) -> CategoryCandidates:
    keep = pruned_size(max_combinations, len(candidates))
    logger.info(f"[prune_candidates] Reducing to max {keep} per category")

    pruned: CategoryCandidates = {}
    for category, places in candidates.items():
        if len(places) <= keep:
            pruned[category] = list(places)
            continue
        ranked = sorted(places, key=lambda place: distance_to_route(place.location, corridor))
        pruned[category] = ranked[:keep]
    return pruned


def evaluate_combination(
    stops: Sequence[PlaceCandidate],
    categories: Sequence[str],
    corridor: RouteCorridor,
    cfg: ClusterConfig,
    index: int,
) -> StopCluster:
    locations = [stop.location for stop in stops]
    center = centroid(locations)
    radius = max((haversine_m(center, location) for location in locations), default=0.0)
    max_pairwise = float(pairwise_distances_m(locations).max()) if len(locations) > 1 else 0.0
    route_distance = distance_to_route(center, corridor)

    score = (max_pairwise / SCORE_NORMALIZATION_M) * cfg.tightness_weight + (
        route_distance / SCORE_NORMALIZATION_M
    ) * cfg.route_proximity_weight

    return StopCluster(
        id=f"cluster-{index}",
        stops=tuple(stops),
        categories=tuple(categories),
        centroid=center,
        radius_m=radius,
        max_pairwise_distance_m=max_pairwise,
        distance_from_route_m=route_distance,
        score=score,
    )


def detect_clusters(
    candidates: CategoryCandidates,
    corridor: RouteCorridor,
    config: ClusterConfig | None = None,
) -> list[StopCluster]:
    """Rank stop combinations (one per category), best first.

    Categories without candidates are dropped. A single category yields
    single-stop clusters ranked by distance to the route. When the full
    cartesian product would exceed ``max_combinations`` each category is
    pruned to the candidates nearest the route first.
    """
    cfg = config or ClusterConfig()
    for category, places in candidates.items():
        logger.info(f"[detect_clusters] {category}: {len(places)} candidates")

    empty = [category for category, places in candidates.items() if not places]
    if empty and len(candidates) > 1:
        for category in empty:
            logger.warning(f"[detect_clusters] Category '{category}' has no candidates; dropping it")
        candidates = {category: places for category, places in candidates.items() if places}

    categories = list(candidates)
    if not categories:
        return []
    if len(categories) == 1:
        return _single_category_clusters(candidates[categories[0]], categories[0], corridor, cfg)

    total = math.prod(len(candidates[category]) for category in categories)
    logger.info(f"[detect_clusters] Total possible combinations: {total}")
    working = candidates
    if total > cfg.max_combinations:
        working = prune_candidates(candidates, corridor, cfg.max_combinations)

    clusters = [
        evaluate_combination(combo, categories, corridor, cfg, index)
        for index, combo in enumerate(itertools.product(*(working[category] for category in categories)))
    ]
    logger.info(f"[detect_clusters] Evaluated {len(clusters)} combinations")

    # list.sort is stable, so equal scores keep generation order.
    clusters.sort(key=lambda cluster: cluster.score)
    top = clusters[: cfg.max_clusters]

    for rank, cluster in enumerate(top[:5], start=1):
        logger.debug(
            f"[detect_clusters] #{rank}: score={cluster.score:.2f}, radius={cluster.radius_m / 1000:.1f}km, "
            f"route_distance={cluster.distance_from_route_m / 1000:.1f}km, "
            f"stops: {', '.join(stop.name for stop in cluster.stops)}"
        )
    return top
