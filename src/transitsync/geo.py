"""Great-circle distance between fixes."""

from __future__ import annotations

import math

from transitsync.models.location import Coordinates

# Earth radius in meters (WGS84 mean)
EARTH_RADIUS_M = 6_371_000.0


def haversine_distance_m(a: Coordinates, b: Coordinates) -> float:
    """Return the great-circle distance between *a* and *b* in meters."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlng = math.radians(b.lng - a.lng)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
