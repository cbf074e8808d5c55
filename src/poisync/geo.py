"""Great-circle distance and search-area helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass

from poisync._constants import EARTH_RADIUS_M
from poisync.models.location import Coordinate


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance in meters between *a* and *b*.

    Symmetric, zero for identical points, defined for every valid coordinate.
    """
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Clamp: rounding can push h marginally outside [0, 1] for antipodal points.
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned latitude/longitude rectangle in decimal degrees."""

    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    def to_rect_filter(self) -> str:
        """Render as the places API ``rect:minLon,minLat,maxLon,maxLat`` filter."""
        return f"rect:{self.min_lon},{self.min_lat},{self.max_lon},{self.max_lat}"

    def contains(self, point: Coordinate) -> bool:
        return self.min_lat <= point.latitude <= self.max_lat and self.min_lon <= point.longitude <= self.max_lon


def bounding_box(center: Coordinate, radius_meters: float) -> BoundingBox:
    """Rectangle enclosing the circle of *radius_meters* around *center*.

    The longitude half-width is widened by ``1 / cos(latitude)`` to account
    for meridian convergence.
    """
    lat_delta = (radius_meters / EARTH_RADIUS_M) * (180.0 / math.pi)
    lon_delta = lat_delta / math.cos(math.radians(center.latitude))
    return BoundingBox(
        min_lat=center.latitude - lat_delta,
        min_lon=center.longitude - lon_delta,
        max_lat=center.latitude + lat_delta,
        max_lon=center.longitude + lon_delta,
    )
