"""External map collaborators."""

from .google_client import GoogleMapsClient
from .place_search import PlaceSearchService
from .places_client import GooglePlacesClient
from .providers import DirectionsProvider, GeocodingProvider, PlaceDetailsProvider, PlaceSearchProvider

__all__ = [
    "DirectionsProvider",
    "GeocodingProvider",
    "GoogleMapsClient",
    "GooglePlacesClient",
    "PlaceDetailsProvider",
    "PlaceSearchProvider",
    "PlaceSearchService",
]
