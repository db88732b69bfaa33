"""
Geospatial primitives.

We keep a tiny geometry layer here so the route and incident modules can do
distance calculations without pulling in heavier GIS dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import asin, cos, isfinite, radians, sin, sqrt

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_MILE = 1609.34


@dataclass(frozen=True)
class LatLng:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float

    def is_finite(self) -> bool:
        return isfinite(self.lat) and isfinite(self.lng)


def haversine_m(a: LatLng, b: LatLng) -> float:
    """Compute great-circle distance in meters between two points."""
    lat1 = radians(a.lat)
    lat2 = radians(b.lat)
    dlat = radians(b.lat - a.lat)
    dlng = radians(b.lng - a.lng)

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlng / 2) ** 2
    # Rounding can push h slightly outside [0, 1] for identical or antipodal points.
    # Comparisons (not min/max) so a NaN coordinate still yields NaN.
    if h > 1.0:
        h = 1.0
    elif h < 0.0:
        h = 0.0
    return 2 * EARTH_RADIUS_M * asin(sqrt(h))


def haversine_miles(a: LatLng, b: LatLng) -> float:
    """Compute great-circle distance in statute miles between two points."""
    return haversine_m(a, b) / METERS_PER_MILE
