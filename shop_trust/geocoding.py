"""
Google Maps Geocoding adapter (reverse and forward).

No API key is not an error: the adapter logs a warning and returns None,
and the calling step treats that exactly like "no match found".
HTTP and JSON failures do raise; `call_with_timeout` turns them into
ProviderDegradation upstream.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from .models import GeocodeResult

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GoogleGeocoder:
    """Reverse and forward geocoding against the Google Geocoding JSON API."""

    def __init__(
        self,
        api_key: str | None,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        self.api_key = api_key
        self._client = client or httpx.Client(timeout=timeout)

    def reverse_geocode(self, lat: float, lon: float) -> Optional[GeocodeResult]:
        if not self.api_key:
            logger.warning("GOOGLE_MAPS_API_KEY is not configured; skipping reverse geocoding")
            return None
        return self._query({"latlng": f"{lat},{lon}"})

    def forward_geocode(self, address: str) -> Optional[GeocodeResult]:
        if not self.api_key:
            logger.warning("GOOGLE_MAPS_API_KEY is not configured; skipping forward geocoding")
            return None
        if not address or not address.strip():
            return None
        result = self._query({"address": address.strip()})
        if result is None or result.point is None:
            logger.info("Forward geocoding found no coordinates for %r", address)
            return None
        return result

    def _query(self, params: dict[str, str]) -> Optional[GeocodeResult]:
        response = self._client.get(GEOCODE_URL, params={**params, "key": self.api_key or ""})
        response.raise_for_status()
        data: dict[str, Any] = response.json()

        status = data.get("status")
        results = data.get("results") or []
        if status != "OK" or not results:
            logger.info("Geocoding returned status=%s with %d result(s)", status, len(results))
            return None

        return _parse_result(results[0])


def _parse_result(best: dict[str, Any]) -> GeocodeResult:
    """Pull the formatted address and, when numeric, the location."""
    location = (best.get("geometry") or {}).get("location") or {}
    lat = location.get("lat")
    lon = location.get("lng")
    return GeocodeResult(
        formatted_address=best.get("formatted_address") or "",
        lat=lat if isinstance(lat, (int, float)) else None,
        lon=lon if isinstance(lon, (int, float)) else None,
    )
