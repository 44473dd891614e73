"""HTTP clients for the Google Maps Platform (Routes v2 and Geocoding)."""

from __future__ import annotations

import logging
import math
import re
import time
from typing import Any, Optional, Sequence

import httpx

from ...config import settings
from ...errors import ApiKeyRejectedError, MissingApiKeyError, QuotaExceededError, UpstreamError
from ...models.domain import Coordinates, DirectionsLeg, DirectionsResult, GeocodeResult
from .cache import TTLCache, cache_key

MAPS_API_BASE = "https://maps.googleapis.com/maps/api"
ROUTES_API_URL = "https://routes.googleapis.com/directions/v2:computeRoutes"
ROUTES_FIELD_MASK = ",".join(
    [
        "routes.duration",
        "routes.distanceMeters",
        "routes.polyline.encodedPolyline",
        "routes.legs.startLocation",
        "routes.legs.endLocation",
        "routes.legs.distanceMeters",
        "routes.legs.duration",
    ]
)
ACCEPTED_STATUSES = {"OK", "ZERO_RESULTS"}

_DURATION_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)s$")

logger = logging.getLogger(__name__)


class GoogleApiClient:
    """Shared request plumbing: key check, retries with backoff, error mapping."""

    service_name = "Google Maps"
    key_env_hint = "ERRAND_GOOGLE_MAPS_API_KEY"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else self._default_api_key()
        self.timeout = timeout if timeout is not None else settings.google_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.google_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.google_backoff_seconds
        self._transport = transport

    def _default_api_key(self) -> Optional[str]:
        return settings.google_maps_api_key

    def _get_client(self) -> httpx.Client:
        # One client per call; the planner issues requests from worker threads.
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0), transport=self._transport)

    def _require_key(self) -> str:
        if not self.api_key or not self.api_key.strip():
            raise MissingApiKeyError(
                f"{self.key_env_hint} is not set.",
                suggestions=[
                    f"Set {self.key_env_hint} in .env or the environment",
                    "Get a key at https://console.cloud.google.com/apis/credentials",
                ],
            )
        return self.api_key

    def _send(self, method: str, url: str, **kwargs: Any) -> dict:
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.request(method, url, **kwargs)
                except httpx.TransportError as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise UpstreamError(
                            f"{self.service_name} is not reachable: {exc}",
                            suggestions=["Retry later"],
                        ) from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(
                        f"[{self.service_name}] Network error, retrying in {wait_time:.1f}s "
                        f"(attempt {attempt}/{self.max_retries}): {exc}"
                    )
                    time.sleep(wait_time)
                    continue

                if response.status_code == 429:
                    raise QuotaExceededError(
                        f"{self.service_name} API quota exceeded.",
                        suggestions=["Retry later", "Check your API quota in Google Cloud Console"],
                    )
                if response.status_code in (401, 403):
                    raise self._key_rejected(f"HTTP {response.status_code}")
                if response.status_code >= 500:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise UpstreamError(f"{self.service_name} API error: {response.status_code}")
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(
                        f"[{self.service_name}] HTTP {response.status_code}, retrying in {wait_time:.1f}s "
                        f"(attempt {attempt}/{self.max_retries})"
                    )
                    time.sleep(wait_time)
                    continue
                if response.status_code >= 400:
                    raise UpstreamError(f"{self.service_name} API error: {response.status_code} {response.text}")

                try:
                    return response.json()
                except ValueError as exc:
                    raise UpstreamError(f"{self.service_name} API returned invalid JSON") from exc
        finally:
            client.close()

    def _get_json(self, url: str, params: dict[str, str]) -> dict:
        """GET a legacy web-service endpoint and validate its ``status`` field."""
        key = self._require_key()
        payload = self._send("GET", url, params={**params, "key": key})
        status = payload.get("status")
        if status in ACCEPTED_STATUSES:
            return payload
        detail = payload.get("error_message") or str(status)
        if status == "OVER_QUERY_LIMIT":
            raise QuotaExceededError(
                f"{self.service_name} API quota exceeded: {detail}",
                suggestions=["Retry later", "Check your API quota in Google Cloud Console"],
            )
        if status == "REQUEST_DENIED":
            raise self._key_rejected(detail)
        raise UpstreamError(f"{self.service_name} API: {detail}")

    def _key_rejected(self, detail: str) -> ApiKeyRejectedError:
        return ApiKeyRejectedError(
            f"{self.service_name} rejected the API key: {detail}",
            suggestions=[
                f"Check that {self.key_env_hint} is valid",
                "Enable the required APIs for the key in Google Cloud Console",
            ],
        )


def parse_duration_seconds(value: Optional[str]) -> float:
    """Parse a protobuf duration string such as ``"754s"``; anything else is 0."""
    if not value:
        return 0.0
    match = _DURATION_PATTERN.match(value)
    return float(match.group(1)) if match else 0.0


def round_minutes(seconds: float) -> int:
    # Half-up, so 90s is 2 minutes rather than banker's-rounded.
    return int(math.floor(seconds / 60.0 + 0.5))


def _lat_lng(payload: Optional[dict]) -> Coordinates:
    payload = payload or {}
    lat_lng = payload.get("latLng", payload)
    return Coordinates(float(lat_lng.get("latitude", 0.0)), float(lat_lng.get("longitude", 0.0)))


def directions_from_payload(payload: dict) -> Optional[DirectionsResult]:
    """Map a computeRoutes response to a ``DirectionsResult``; ``None`` when no route."""
    routes = payload.get("routes") or []
    if not routes:
        return None
    route = routes[0]

    legs = tuple(
        DirectionsLeg(
            distance_m=float(leg.get("distanceMeters", 0)),
            duration_min=round_minutes(parse_duration_seconds(leg.get("duration"))),
            start_location=_lat_lng(leg.get("startLocation")),
            end_location=_lat_lng(leg.get("endLocation")),
        )
        for leg in route.get("legs") or []
    )

    total_distance = route.get("distanceMeters")
    if total_distance is None:
        total_distance = sum(leg.distance_m for leg in legs)
    total_duration = round_minutes(parse_duration_seconds(route.get("duration"))) or sum(
        leg.duration_min for leg in legs
    )
    polyline = (route.get("polyline") or {}).get("encodedPolyline", "")

    return DirectionsResult(
        polyline=polyline,
        total_distance_m=float(total_distance),
        total_duration_min=float(total_duration),
        legs=legs,
    )


def geocode_from_payload(payload: dict, fallback_address: str = "") -> Optional[GeocodeResult]:
    results = payload.get("results") or []
    if not results:
        return None
    first = results[0]
    location = (first.get("geometry") or {}).get("location")
    if not location:
        return None
    return GeocodeResult(
        address=first.get("formatted_address") or fallback_address,
        location=Coordinates(float(location.get("lat", 0.0)), float(location.get("lng", 0.0))),
    )


def _waypoint_body(point: Coordinates) -> dict:
    return {"location": {"latLng": {"latitude": point.lat, "longitude": point.lng}}}


class GoogleMapsClient(GoogleApiClient):
    """Directions and geocoding backed by Google. Responses are cached in memory."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._route_cache = TTLCache(settings.route_cache_ttl_seconds)
        self._geocode_cache = TTLCache(settings.geocode_cache_ttl_seconds)

    def get_directions(
        self,
        origin: Coordinates,
        destination: Coordinates,
        waypoints: Sequence[Coordinates] = (),
    ) -> Optional[DirectionsResult]:
        via = "|".join(f"{point.lat},{point.lng}" for point in waypoints)
        key = f"route:{origin.lat}:{origin.lng}:{destination.lat}:{destination.lng}:{via}"
        cached = self._route_cache.get(key)
        if cached is not None:
            return cached

        api_key = self._require_key()
        body: dict[str, Any] = {
            "origin": _waypoint_body(origin),
            "destination": _waypoint_body(destination),
            "travelMode": "DRIVE",
            "polylineQuality": "OVERVIEW",
            "polylineEncoding": "ENCODED_POLYLINE",
        }
        if waypoints:
            body["intermediates"] = [_waypoint_body(point) for point in waypoints]

        payload = self._send(
            "POST",
            ROUTES_API_URL,
            json=body,
            headers={"X-Goog-Api-Key": api_key, "X-Goog-FieldMask": ROUTES_FIELD_MASK},
        )
        result = directions_from_payload(payload)
        if result is None:
            logger.info(
                f"[get_directions] No route from ({origin.lat:.5f}, {origin.lng:.5f}) "
                f"to ({destination.lat:.5f}, {destination.lng:.5f}) via {len(waypoints)} waypoints"
            )
            return None
        self._route_cache.set(key, result)
        return result

    def geocode(self, address: str) -> Optional[GeocodeResult]:
        key = f"geocode:{cache_key(address)[:24]}"
        cached = self._geocode_cache.get(key)
        if cached is not None:
            return cached

        payload = self._get_json(f"{MAPS_API_BASE}/geocode/json", {"address": address})
        result = geocode_from_payload(payload, fallback_address=address)
        if result is not None:
            self._geocode_cache.set(key, result)
        return result

    def reverse_geocode(self, location: Coordinates) -> Optional[GeocodeResult]:
        key = f"reverse:{location.lat}:{location.lng}"
        cached = self._geocode_cache.get(key)
        if cached is not None:
            return cached

        payload = self._get_json(f"{MAPS_API_BASE}/geocode/json", {"latlng": f"{location.lat},{location.lng}"})
        result = geocode_from_payload(payload)
        if result is not None:
            self._geocode_cache.set(key, result)
        return result
