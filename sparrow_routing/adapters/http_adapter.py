"""
Sparrow Routing - HTTP Route Provider

Client for a routing gateway that answers with a provider-neutral JSON body:

    GET {base_url}/routes?origin=lat,lon&destination=lat,lon&via=lat,lon|lat,lon
    Authorization: Bearer <api key>

    {"routes": [{"id": "r1", "duration": 600, "distance": 5400,
                 "traffic_delay": 45, "polyline": "...", "summary": "N1",
                 "route_type": "fast"}]}

Timeouts are enforced by httpx and surface as provider failures. No retries
happen here; the resolver moves on to the next provider instead.
"""

import json
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .base import BaseRouteProvider, ProviderConfig
from ..core.errors import (
    ConnectionTimeoutError,
    ProviderUnavailableError,
    ReadTimeoutError,
    ResponseParseError,
    RoutingException,
    create_error_from_provider,
)
from ..core.models import Coordinate, Route, RouteType, StructuredRouteRequest
from ..observability.logging import get_logger

logger = get_logger(__name__)


# ============================================================
# Gateway payload
# ============================================================

class RoutePayload(BaseModel):
    """One route in a gateway response."""
    model_config = ConfigDict(extra="allow")

    id: str = ""
    duration: int = Field(ge=0)
    distance: int = Field(ge=0)
    traffic_delay: Optional[int] = Field(default=None, ge=0)
    polyline: Optional[str] = None
    summary: str = ""
    route_type: RouteType = RouteType.FAST


class RouteListPayload(BaseModel):
    """Gateway response body."""
    routes: List[RoutePayload] = Field(default_factory=list)


# ============================================================
# Provider
# ============================================================

class HttpRouteProvider(BaseRouteProvider):
    """
    Routing gateway client over httpx.

    Supports:
    - Plain origin/destination/waypoint requests
    - Structured requests (route types, transport mode, departure time, tolls)
    """

    supports_structured_requests = True
    ROUTES_PATH = "/routes"

    def __init__(
        self,
        config: ProviderConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(config.name)
        if not config.base_url:
            raise ValueError(f"Provider {config.name!r} requires a base_url")

        self.config = config
        headers = {"Accept": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"

        self.client = httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            headers=headers,
            timeout=config.timeout,
            transport=transport,
        )

    async def fetch(
        self,
        origin: Coordinate,
        destination: Coordinate,
        waypoints: Sequence[Coordinate] = ()
    ) -> List[Route]:
        request = StructuredRouteRequest(origin, destination, tuple(waypoints))
        return await self._get_routes(request.to_query_params())

    async def fetch_structured(self, request: StructuredRouteRequest) -> List[Route]:
        return await self._get_routes(request.to_query_params())

    async def aclose(self):
        if not self.client.is_closed:
            await self.client.aclose()

    async def _get_routes(self, params: Dict[str, str]) -> List[Route]:
        try:
            response = await self.client.get(self.ROUTES_PATH, params=params)
        except httpx.ConnectTimeout:
            raise ConnectionTimeoutError(self.name)
        except httpx.TimeoutException:
            raise ReadTimeoutError(self.name)
        except httpx.TransportError as e:
            raise ProviderUnavailableError(self.name, type(e).__name__)

        if response.status_code >= 400:
            raise self._error_from_response(response)

        try:
            payload = RouteListPayload.model_validate(response.json())
        except (json.JSONDecodeError, ValueError, ValidationError) as e:
            raise ResponseParseError(self.name, type(e).__name__)

        routes = [self._to_route(item) for item in payload.routes]
        logger.debug(
            "Provider response parsed",
            provider=self.name,
            route_count=len(routes),
            status_code=response.status_code,
        )
        return routes

    def _error_from_response(self, response: httpx.Response) -> RoutingException:
        """Map an HTTP error response to a routing error."""
        body: Dict[str, Any] = {}
        try:
            data = response.json()
            if isinstance(data, dict):
                body = data.get("error", data) if isinstance(data.get("error"), dict) else data
        except ValueError:
            body = {"message": response.text[:200]}

        retry_after = response.headers.get("retry-after")
        if retry_after is not None:
            body = {**body, "retry-after": retry_after}

        return create_error_from_provider(self.name, response.status_code, body)

    def _to_route(self, item: RoutePayload) -> Route:
        return Route(
            provider=self.name,
            duration_seconds=item.duration,
            distance_meters=item.distance,
            traffic_delay_seconds=item.traffic_delay,
            polyline=item.polyline,
            route_id=item.id,
            route_type=item.route_type,
            summary=item.summary,
            metadata=dict(item.model_extra or {}),
        )
