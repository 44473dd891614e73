import pytest

from errand_planner.models.domain import Coordinates, DirectionsResult
from errand_planner.services.errand.clustering import (
    ClusterConfig,
    detect_clusters,
    prune_candidates,
    pruned_size,
)
from errand_planner.services.errand.corridor import build_corridor
from errand_planner.services.geospatial import path_length_m
from errand_planner.services.polyline import encode_polyline

from fakes import place, straight_path


def _corridor():
    path = straight_path(40.0, 40.2, -105.0, 40)
    length = path_length_m(path)
    directions = DirectionsResult(encode_polyline(path), length, length / 1000)
    return build_corridor(path[0], path[-1], directions)


def test_pruned_size_is_clamped():
    assert pruned_size(500, 2) == 10
    assert pruned_size(500, 3) == 7
    assert pruned_size(500, 6) == 3


def test_single_category_ranks_by_route_distance():
    corridor = _corridor()
    candidates = {
        "coffee": [
            place("far", 40.1, -104.97),
            place("near", 40.1, -104.999),
            place("mid", 40.1, -104.99),
        ]
    }

    clusters = detect_clusters(candidates, corridor)

    assert [cluster.stops[0].place_id for cluster in clusters] == ["near", "mid", "far"]
    assert clusters[0].id.startswith("cluster-single-")
    assert clusters[0].radius_m == 0.0
    assert clusters[0].categories == ("coffee",)


def test_tight_cluster_near_route_wins():
    corridor = _corridor()
    candidates = {
        "coffee": [place("coffee-a", 40.05, -105.001), place("coffee-b", 40.15, -104.98)],
        "gas": [place("gas-a", 40.051, -105.001), place("gas-b", 40.02, -104.95)],
    }

    clusters = detect_clusters(candidates, corridor)

    assert len(clusters) == 4
    best = clusters[0]
    assert {stop.place_id for stop in best.stops} == {"coffee-a", "gas-a"}
    assert best.categories == ("coffee", "gas")
    assert best.max_pairwise_distance_m == pytest.approx(111, abs=2)
    scores = [cluster.score for cluster in clusters]
    assert scores == sorted(scores)


def test_stops_at_same_location_have_zero_spread():
    corridor = _corridor()
    candidates = {"coffee": [place("coffee-a", 40.1, -105.0)], "gas": [place("gas-a", 40.1, -105.0)]}

    clusters = detect_clusters(candidates, corridor)

    assert len(clusters) == 1
    assert clusters[0].max_pairwise_distance_m == 0
    assert clusters[0].radius_m == 0
    assert clusters[0].centroid == Coordinates(40.1, -105.0)


def test_narrow_cluster_ranks_ahead_of_wide_one_on_route():
    corridor = _corridor()
    # Both pairs are centred on the route; only their spread differs (~100 m vs ~100 km).
    candidates = {
        "coffee": [place("coffee-a", 40.1, -105.0006), place("coffee-b", 40.1, -105.5868)],
        "gas": [place("gas-a", 40.1, -104.9994), place("gas-b", 40.1, -104.4132)],
    }

    clusters = detect_clusters(candidates, corridor)

    assert {stop.place_id for stop in clusters[0].stops} == {"coffee-a", "gas-a"}
    assert {stop.place_id for stop in clusters[-1].stops} == {"coffee-b", "gas-b"}
    assert clusters[0].max_pairwise_distance_m == pytest.approx(100, abs=5)
    assert clusters[-1].max_pairwise_distance_m == pytest.approx(100_000, rel=0.01)
    assert clusters[0].distance_from_route_m == pytest.approx(0, abs=1)
    assert clusters[-1].distance_from_route_m == pytest.approx(0, abs=1)


def test_empty_category_is_dropped():
    corridor = _corridor()
    candidates = {"coffee": [place("coffee-a", 40.05, -105.001)], "pharmacy": []}

    clusters = detect_clusters(candidates, corridor)

    assert len(clusters) == 1
    assert clusters[0].categories == ("coffee",)
    assert detect_clusters({"coffee": []}, corridor) == []
    assert detect_clusters({}, corridor) == []


def test_large_candidate_sets_are_pruned_before_combining():
    corridor = _corridor()
    candidates = {
        category: [place(f"{category}-{i}", 40.01 + i * 0.015, -105.0 + 0.001 * (i + 1)) for i in range(10)]
        for category in ("coffee", "gas", "grocery")
    }

    clusters = detect_clusters(candidates, corridor, ClusterConfig(max_clusters=1000))

    assert len(clusters) == 7 ** 3
    pruned = prune_candidates(candidates, corridor, 500)
    kept = {p.place_id for p in pruned["coffee"]}
    assert kept == {f"coffee-{i}" for i in range(7)}


def test_max_clusters_caps_output():
    corridor = _corridor()
    candidates = {
        "coffee": [place(f"c{i}", 40.05 + i * 0.01, -105.0) for i in range(4)],
        "gas": [place(f"g{i}", 40.05 + i * 0.01, -105.001) for i in range(4)],
    }

    clusters = detect_clusters(candidates, corridor, ClusterConfig(max_clusters=3))

    assert len(clusters) == 3
    assert all(isinstance(cluster.centroid, Coordinates) for cluster in clusters)
