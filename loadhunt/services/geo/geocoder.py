"""
Geocoder: free-text location (postal code or "City, ST") -> lat/lng via Mapbox.

Results are cached by query string for the process lifetime (optional TTL), including
"not found" results. Transient failures (network, 429, 5xx) are not cached so the backup
rematch pass can retry. Concurrent lookups of the same string share one HTTP call.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

# Wait this long for another thread's in-flight lookup of the same string
_INFLIGHT_WAIT_SECONDS = 10.0


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float


class GeocodingUnavailable(Exception):
    """Provider unreachable, rate-limited, or erroring; result must not be cached."""


class Geocoder(Protocol):
    def resolve(self, query: str) -> Coordinates | None:
        """Coordinates for the query, or None when unknown or unavailable."""
        ...


class LocationCache:
    """Thread-safe query -> Coordinates | None cache. ttl_seconds=0 means entries never expire."""

    def __init__(self, ttl_seconds: int = 0) -> None:
        self._ttl = ttl_seconds
        self._entries: dict[str, tuple[Coordinates | None, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> tuple[bool, Coordinates | None]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None
            value, stored_at = entry
            if self._ttl and time.monotonic() - stored_at > self._ttl:
                del self._entries[key]
                return False, None
            return True, value

    def set(self, key: str, value: Coordinates | None) -> None:
        with self._lock:
            self._entries[key] = (value, time.monotonic())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class MapboxGeocoder:
    """Mapbox Geocoding v5 client with a shared cache and per-string in-flight dedupe."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.mapbox.com",
        timeout: float = 5.0,
        cache: LocationCache | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self.cache = cache or LocationCache()
        self._inflight: dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    def is_configured(self) -> bool:
        return bool(self._token)

    def resolve(self, query: str) -> Coordinates | None:
        key = (query or "").strip()
        if not key:
            return None
        hit, value = self.cache.get(key)
        if hit:
            return value
        if not self.is_configured():
            logger.debug("Geocoder: no MAPBOX_TOKEN; skipping lookup for %r", key)
            return None

        with self._lock:
            event = self._inflight.get(key)
            owner = event is None
            if owner:
                event = threading.Event()
                self._inflight[key] = event
        if not owner:
            # Another thread is resolving this string; a miss after the wait is tolerated
            event.wait(_INFLIGHT_WAIT_SECONDS)
            _hit, value = self.cache.get(key)
            return value

        try:
            coords = self._fetch(key)
            self.cache.set(key, coords)
            if coords is None:
                logger.info("Geocoder: no result for %r (cached)", key)
            return coords
        except GeocodingUnavailable as e:
            logger.warning("Geocoder unavailable for %r (not cached): %s", key, e)
            return None
        finally:
            with self._lock:
                self._inflight.pop(key, None)
            event.set()

    def _fetch(self, query: str) -> Coordinates | None:
        url = f"{self._base_url}/geocoding/v5/mapbox.places/{quote(query, safe='')}.json"
        params = {"access_token": self._token, "country": "US", "limit": "1"}
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as c:
                r = c.get(url, params=params)
        except httpx.HTTPError as e:
            raise GeocodingUnavailable(str(e)) from e
        if r.status_code == 429 or r.status_code >= 500:
            raise GeocodingUnavailable(f"Mapbox API error: {r.status_code}")
        if not r.is_success:
            # Bad token or malformed query: retrying will not help, but do not cache either
            raise GeocodingUnavailable(f"Mapbox API error: {r.status_code} {r.text[:200] if r.text else ''}")
        try:
            data = r.json()
        except ValueError as e:
            raise GeocodingUnavailable(f"Mapbox returned non-JSON body: {e}") from e
        features = data.get("features") or []
        if not features:
            return None
        center = features[0].get("center") or []
        if len(center) < 2:
            return None
        lng, lat = center[0], center[1]
        return Coordinates(lat=float(lat), lng=float(lng))
