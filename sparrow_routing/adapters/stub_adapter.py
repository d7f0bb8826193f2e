"""
Sparrow Routing - Stub Route Provider

Deterministic in-process provider used for local runs and tests.
No network calls, no provider keys required.
"""

import asyncio
from typing import List, Sequence

from .base import BaseRouteProvider
from ..core.geo import path_length_meters
from ..core.models import Coordinate, Route, RouteType, StructuredRouteRequest


class StubRouteProvider(BaseRouteProvider):
    """
    Straight-line routes at a fixed average speed.

    The route follows origin -> waypoints -> destination along great circles.
    One route is returned per requested route type on structured requests.
    """

    supports_structured_requests = True

    def __init__(
        self,
        name: str,
        speed_kmh: float = 40.0,
        traffic_delay_seconds: int = 0,
        latency_seconds: float = 0.0,
    ):
        super().__init__(name)
        self.speed_kmh = speed_kmh
        self.traffic_delay_seconds = traffic_delay_seconds
        self.latency_seconds = latency_seconds
        self.calls = 0

    def _build_route(self, points: List[Coordinate], route_type: RouteType, index: int) -> Route:
        distance = int(round(path_length_meters(points)))
        duration = int(round(distance / (self.speed_kmh * 1000 / 3600)))

        return Route(
            provider=self.name,
            duration_seconds=duration,
            distance_meters=distance,
            traffic_delay_seconds=self.traffic_delay_seconds or None,
            polyline=None,
            route_id=f"{self.name}-{route_type.value}-{index}",
            route_type=route_type,
            summary=f"{self.name} {route_type.value} route",
            metadata={"stub": True},
        )

    async def fetch(
        self,
        origin: Coordinate,
        destination: Coordinate,
        waypoints: Sequence[Coordinate] = ()
    ) -> List[Route]:
        self.calls += 1
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        points = [origin, *waypoints, destination]
        return [self._build_route(points, RouteType.FAST, 0)]

    async def fetch_structured(self, request: StructuredRouteRequest) -> List[Route]:
        self.calls += 1
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        points = [request.origin, *request.waypoints, request.destination]
        return [
            self._build_route(points, route_type, index)
            for index, route_type in enumerate(request.route_types)
        ]
