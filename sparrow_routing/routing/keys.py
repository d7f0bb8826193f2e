"""
Sparrow Routing - Request fingerprints

Cache keys are built from the exact coordinate values. Requests that differ by
a single floating-point ULP get different keys; GPS jitter therefore never
shares a cache entry.
"""

from typing import Sequence

from ..core.models import Coordinate, RouteRequest


def _point(coordinate: Coordinate) -> str:
    # repr() is the shortest string that round-trips the float exactly
    return f"{coordinate.latitude!r},{coordinate.longitude!r}"


def build_key(
    origin: Coordinate,
    destination: Coordinate,
    waypoints: Sequence[Coordinate] = ()
) -> str:
    """
    Build the cache key for a request.

    Format: ``"{o.lat},{o.lon}->{d.lat},{d.lon}:{w1.lat},{w1.lon}|{w2.lat},{w2.lon}"``
    """
    waypoints_key = "|".join(_point(w) for w in waypoints)
    return f"{_point(origin)}->{_point(destination)}:{waypoints_key}"


def key_for(request: RouteRequest) -> str:
    """Cache key of a (structured) route request."""
    return build_key(request.origin, request.destination, request.waypoints)
