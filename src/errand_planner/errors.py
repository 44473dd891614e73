"""Error taxonomy shared by the planning core and the HTTP adapter."""

from __future__ import annotations

from typing import Sequence


class PlanningError(Exception):
    """Base error carrying a machine-readable code and user-facing suggestions."""

    code = "PLANNING_ERROR"
    status_code = 500
    retryable = False

    def __init__(self, message: str, *, suggestions: Sequence[str] | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestions = list(suggestions or [])
        if code:
            self.code = code

    def to_dict(self) -> dict:
        payload: dict = {"code": self.code, "message": self.message}
        if self.suggestions:
            payload["suggestions"] = list(self.suggestions)
        return payload


class LocationUnavailableError(PlanningError):
    """Destination or stop text matched nothing after anchors, geocoding and tiered search."""

    code = "LOCATION_UNAVAILABLE"
    status_code = 400


class RouteNotFoundError(PlanningError):
    """The directions provider found no driving route between the requested points."""

    code = "ROUTE_NOT_FOUND"
    status_code = 422


class UpstreamUnavailableError(PlanningError):
    code = "UPSTREAM_UNAVAILABLE"
    status_code = 502
    retryable = True


class MissingApiKeyError(UpstreamUnavailableError):
    code = "MISSING_API_KEY"
    status_code = 503
    retryable = False


class QuotaExceededError(UpstreamUnavailableError):
    code = "API_QUOTA_EXCEEDED"
    status_code = 429


class UpstreamError(UpstreamUnavailableError):
    code = "UPSTREAM_ERROR"


class ApiKeyRejectedError(UpstreamUnavailableError):
    """The provider refused the configured key; retrying will not help."""

    code = "API_KEY_REJECTED"
    status_code = 503
    retryable = False
