"""
Great-circle distance between two WGS84 coordinates.

Haversine on a spherical Earth. Good to well under 0.5% at the sub-100 km
ranges we care about, which is plenty for 100 m proximity checks.
"""

from __future__ import annotations

import math

from .models import GeoPoint

EARTH_RADIUS_M = 6_371_000.0

# Every proximity check in the pipeline uses the same tolerance
PROXIMITY_TOLERANCE_M = 100.0


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in meters between (lat1, lon1) and (lat2, lon2)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # Clamp: float error can push `a` a hair past 1 for antipodal points
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def point_distance(a: GeoPoint, b: GeoPoint) -> float:
    """`distance_meters` for two GeoPoints."""
    return distance_meters(a.lat, a.lon, b.lat, b.lon)


def within_tolerance(distance: float | None, tolerance: float = PROXIMITY_TOLERANCE_M) -> bool:
    """True only for a known distance inside the tolerance. Unknown is never close."""
    return distance is not None and distance <= tolerance
