import json

import httpx
import pytest

from errand_planner.errors import ApiKeyRejectedError, MissingApiKeyError, QuotaExceededError, UpstreamError
from errand_planner.models.domain import Coordinates
from errand_planner.services.maps.cache import TTLCache, cache_key
from errand_planner.services.maps.google_client import (
    GoogleMapsClient,
    directions_from_payload,
    parse_duration_seconds,
    round_minutes,
)
from errand_planner.services.maps.places_client import GooglePlacesClient
from errand_planner.services.maps.place_search import PlaceSearchService, rank_candidates, relevance_score

from fakes import place

ORIGIN = Coordinates(40.0, -105.0)
DESTINATION = Coordinates(40.2, -105.0)

ROUTE_PAYLOAD = {
    "routes": [
        {
            "duration": "1500s",
            "distanceMeters": 22300,
            "polyline": {"encodedPolyline": "_p~iF~ps|U_ulLnnqC"},
            "legs": [
                {
                    "distanceMeters": 10000,
                    "duration": "630s",
                    "startLocation": {"latLng": {"latitude": 40.0, "longitude": -105.0}},
                    "endLocation": {"latLng": {"latitude": 40.1, "longitude": -105.0}},
                },
                {
                    "distanceMeters": 12300,
                    "duration": "870s",
                    "startLocation": {"latLng": {"latitude": 40.1, "longitude": -105.0}},
                    "endLocation": {"latLng": {"latitude": 40.2, "longitude": -105.0}},
                },
            ],
        }
    ]
}


def _client(handler, cls=GoogleMapsClient, api_key="test-key", max_retries=2):
    return cls(api_key=api_key, max_retries=max_retries, backoff_seconds=0, transport=httpx.MockTransport(handler))


def test_duration_parsing_and_rounding():
    assert parse_duration_seconds("754s") == 754
    assert parse_duration_seconds("12.5s") == 12.5
    assert parse_duration_seconds("PT5M") == 0
    assert parse_duration_seconds(None) == 0
    assert round_minutes(90) == 2
    assert round_minutes(89) == 1


def test_directions_payload_mapping():
    result = directions_from_payload(ROUTE_PAYLOAD)

    assert result.total_distance_m == 22300
    assert result.total_duration_min == 25
    assert [leg.duration_min for leg in result.legs] == [11, 15]
    assert result.legs[0].end_location == Coordinates(40.1, -105.0)
    assert directions_from_payload({"routes": []}) is None
    assert directions_from_payload({}) is None


def test_directions_totals_fall_back_to_leg_sums():
    payload = {"routes": [{"legs": [{"distanceMeters": 500, "duration": "120s"}, {"distanceMeters": 700, "duration": "180s"}]}]}

    result = directions_from_payload(payload)

    assert result.total_distance_m == 1200
    assert result.total_duration_min == 5
    assert result.polyline == ""


def test_get_directions_sends_waypoints_and_caches():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=ROUTE_PAYLOAD)

    client = _client(handler)
    stop = Coordinates(40.1, -105.001)

    first = client.get_directions(ORIGIN, DESTINATION, [stop])
    second = client.get_directions(ORIGIN, DESTINATION, [stop])

    assert first == second
    assert len(requests) == 1
    request = requests[0]
    assert request.headers["X-Goog-Api-Key"] == "test-key"
    assert "routes.legs.duration" in request.headers["X-Goog-FieldMask"]
    body = json.loads(request.content)
    assert body["travelMode"] == "DRIVE"
    assert body["intermediates"][0]["location"]["latLng"] == {"latitude": 40.1, "longitude": -105.001}


def test_no_routes_returns_none():
    client = _client(lambda request: httpx.Response(200, json={}))

    assert client.get_directions(ORIGIN, DESTINATION) is None


def test_missing_key_raises_before_any_request():
    def handler(request):
        raise AssertionError("no request expected")

    client = _client(handler, api_key="  ")

    with pytest.raises(MissingApiKeyError) as excinfo:
        client.get_directions(ORIGIN, DESTINATION)

    assert excinfo.value.status_code == 503
    assert not excinfo.value.retryable


def test_quota_exceeded_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429, json={"error": "quota"})

    with pytest.raises(QuotaExceededError):
        _client(handler).get_directions(ORIGIN, DESTINATION)
    assert len(calls) == 1


def test_server_errors_are_retried():
    responses = iter([httpx.Response(500), httpx.Response(503), httpx.Response(200, json=ROUTE_PAYLOAD)])

    result = _client(lambda request: next(responses)).get_directions(ORIGIN, DESTINATION)

    assert result.total_distance_m == 22300


def test_retries_exhausted_raise_upstream_error():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError) as excinfo:
        _client(handler, max_retries=1).get_directions(ORIGIN, DESTINATION)

    assert len(calls) == 2
    assert excinfo.value.retryable


def test_geocode_status_checked():
    def handler(request):
        assert request.url.params["key"] == "test-key"
        address = request.url.params["address"]
        if address == "denied":
            return httpx.Response(200, json={"status": "REQUEST_DENIED", "error_message": "bad key"})
        if address == "busy":
            return httpx.Response(200, json={"status": "OVER_QUERY_LIMIT"})
        if address == "broken":
            return httpx.Response(200, json={"status": "UNKNOWN_ERROR", "error_message": "try again"})
        if address == "nowhere":
            return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})
        return httpx.Response(
            200,
            json={
                "status": "OK",
                "results": [{"formatted_address": "1 Main St", "geometry": {"location": {"lat": 40.1, "lng": -105.1}}}],
            },
        )

    client = _client(handler)

    assert client.geocode("1 main").location == Coordinates(40.1, -105.1)
    assert client.geocode("nowhere") is None
    with pytest.raises(ApiKeyRejectedError, match="bad key") as excinfo:
        client.geocode("denied")
    assert excinfo.value.code == "API_KEY_REJECTED"
    assert not excinfo.value.retryable
    with pytest.raises(QuotaExceededError) as excinfo:
        client.geocode("busy")
    assert excinfo.value.status_code == 429
    with pytest.raises(UpstreamError, match="try again") as excinfo:
        client.geocode("broken")
    assert excinfo.value.retryable


@pytest.mark.parametrize("status", [401, 403])
def test_rejected_key_is_not_retried(status):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(status, json={"error": {"status": "PERMISSION_DENIED"}})

    with pytest.raises(ApiKeyRejectedError) as excinfo:
        _client(handler).get_directions(ORIGIN, DESTINATION)

    assert len(calls) == 1
    assert excinfo.value.status_code == 503
    assert not excinfo.value.retryable


def test_places_text_search_maps_results():
    def handler(request):
        assert request.url.path.endswith("/place/textsearch/json")
        assert request.url.params["radius"] == "5000"
        return httpx.Response(
            200,
            json={
                "status": "OK",
                "results": [
                    {
                        "place_id": "p1",
                        "name": "Bean There",
                        "formatted_address": "2 Main St",
                        "geometry": {"location": {"lat": 40.01, "lng": -105.0}},
                        "rating": 4.6,
                        "user_ratings_total": 250,
                        "types": ["cafe"],
                        "opening_hours": {"open_now": True},
                    },
                    {"place_id": "p2", "name": "No Geometry"},
                ],
            },
        )

    places = _client(handler, cls=GooglePlacesClient).text_search("coffee", ORIGIN, 5000)

    assert [p.place_id for p in places] == ["p1"]
    assert places[0].review_count == 250
    assert places[0].is_open is True
    assert places[0].types == ("cafe",)


def test_places_nearby_search_uses_type_and_vicinity():
    def handler(request):
        assert request.url.path.endswith("/place/nearbysearch/json")
        assert request.url.params["type"] == "gas_station"
        assert request.url.params["location"] == "40.0,-105.0"
        return httpx.Response(
            200,
            json={
                "status": "OK",
                "results": [
                    {
                        "place_id": "g1",
                        "name": "Fill Up",
                        "vicinity": "9 Pine Rd",
                        "geometry": {"location": {"lat": 40.002, "lng": -105.0}},
                    }
                ],
            },
        )

    places = _client(handler, cls=GooglePlacesClient).nearby_search(ORIGIN, "gas_station", 5000)

    assert [p.place_id for p in places] == ["g1"]
    assert places[0].address == "9 Pine Rd"


def test_relevance_prefers_close_well_rated_places():
    close = place("close", 40.001, -105.0, rating=4.0, review_count=50)
    far = place("far", 40.04, -105.0, rating=4.0, review_count=50)
    popular = place("popular", 40.001, -105.0, rating=5.0, review_count=1000)

    assert relevance_score(popular, ORIGIN) > relevance_score(close, ORIGIN) > relevance_score(far, ORIGIN)
    assert relevance_score(place("x", 40.0, -105.0), ORIGIN) == pytest.approx(1.0)
    assert [p.place_id for p in rank_candidates([far, close, popular], ORIGIN)] == ["popular", "close", "far"]


def test_place_search_service_fetches_wide_and_trims():
    class StubClient:
        def __init__(self):
            self.limits = []

        def text_search(self, query, location, radius_m, limit):
            self.limits.append(limit)
            return [place(f"p{i}", 40.0 + i * 0.001, -105.0) for i in range(8)]

    stub = StubClient()
    results = PlaceSearchService(stub).search_places("coffee", ORIGIN, 5000, limit=3)

    assert stub.limits == [20]
    assert [p.place_id for p in results] == ["p0", "p1", "p2"]


def test_ttl_cache_expiry_and_eviction():
    now = [0.0]
    cache = TTLCache(10, max_entries=2, clock=lambda: now[0])

    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)
    assert cache.get("a") is None
    assert cache.get("c") == 3

    now[0] = 11.0
    assert cache.get("b") is None
    assert len(cache) == 1

    disabled = TTLCache(0)
    disabled.set("a", 1)
    assert len(disabled) == 0
    assert cache_key("a", 1) == cache_key("a", 1) != cache_key("a", 2)
