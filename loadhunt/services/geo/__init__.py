"""Geocoding and distance. get_geocoder() returns the process-wide geocoder (shared cache)."""
import logging
import threading

from loadhunt.config import settings
from loadhunt.core.engine_config import GEOCODE_CACHE_TTL_SECONDS
from loadhunt.services.geo.distance import haversine_miles
from loadhunt.services.geo.geocoder import (
    Coordinates,
    Geocoder,
    GeocodingUnavailable,
    LocationCache,
    MapboxGeocoder,
)

logger = logging.getLogger(__name__)

_geocoder: Geocoder | None = None
_lock = threading.Lock()


def get_geocoder() -> Geocoder:
    """Process-wide geocoder built from settings on first use."""
    global _geocoder
    with _lock:
        if _geocoder is None:
            _geocoder = MapboxGeocoder(
                settings.mapbox_token,
                base_url=settings.mapbox_base_url,
                timeout=settings.geocode_timeout_seconds,
                cache=LocationCache(ttl_seconds=GEOCODE_CACHE_TTL_SECONDS),
            )
            if not settings.mapbox_token:
                logger.warning("MAPBOX_TOKEN not set: radius matching disabled, postal-code matching only")
        return _geocoder


def set_geocoder(geocoder: Geocoder | None) -> None:
    """Replace the process-wide geocoder (tests, alternate providers)."""
    global _geocoder
    with _lock:
        _geocoder = geocoder


__all__ = [
    "Coordinates",
    "Geocoder",
    "GeocodingUnavailable",
    "LocationCache",
    "MapboxGeocoder",
    "get_geocoder",
    "haversine_miles",
    "set_geocoder",
]
