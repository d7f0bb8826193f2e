"""
Sparrow Routing - Geodesic helpers.
"""

import math
from typing import Sequence

from .models import Coordinate

EARTH_RADIUS_METERS = 6_371_000.0


def haversine_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in meters."""
    lat1, lon1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lon2 = math.radians(b.latitude), math.radians(b.longitude)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(h)))


def path_length_meters(points: Sequence[Coordinate]) -> float:
    """Sum of great-circle legs along an ordered sequence of points."""
    return sum(
        haversine_meters(points[i], points[i + 1])
        for i in range(len(points) - 1)
    )
