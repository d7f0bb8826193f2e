"""
Sparrow Routing - Best Route Selection

Picks the route with the lowest effective duration (duration plus known
traffic delay). Missing traffic data counts as zero delay. On exact ties the
earliest route in input order wins; there is no secondary sort key.
"""

from typing import Optional, Sequence

from ..core.models import Route


def effective_duration(route: Route) -> int:
    """Duration plus live-traffic delay, in seconds."""
    return route.duration_seconds + (route.traffic_delay_seconds or 0)


def select_best(routes: Sequence[Route]) -> Optional[Route]:
    """Return the fastest route, or None for an empty sequence."""
    best: Optional[Route] = None
    best_duration = 0

    for route in routes:
        duration = effective_duration(route)
        # Strict comparison keeps the first route on ties
        if best is None or duration < best_duration:
            best = route
            best_duration = duration

    return best
