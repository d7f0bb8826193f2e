"""
Sparrow Routing - Route Provider Base

Abstract base class for routing providers.
Each provider (primary, secondary, tertiary, ...) implements this interface
and is held by the resolver in a fixed-order sequence.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..core.models import Coordinate, Route, StructuredRouteRequest


@dataclass
class ProviderConfig:
    """Configuration for a provider client."""
    name: str
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout: float = 10.0


class BaseRouteProvider(ABC):
    """
    Abstract base class for routing providers.

    Each provider must implement:
    - fetch: candidate routes for origin, destination and waypoints

    Contract:
    - Return an empty list when the provider has no route; that is not an error
    - Raise (preferably a ProviderFailureError) on transport, auth or parse
      failures, including the provider's own timeout
    - Never retry internally; the resolver falls back to the next provider
    """

    # Whether fetch_structured honours routing preferences
    supports_structured_requests: bool = False

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def fetch(
        self,
        origin: Coordinate,
        destination: Coordinate,
        waypoints: Sequence[Coordinate] = ()
    ) -> List[Route]:
        """
        Fetch candidate routes.

        Args:
            origin: Start point
            destination: End point
            waypoints: Ordered intermediate stops

        Returns:
            Zero or more routes
        """
        pass

    async def fetch_structured(self, request: StructuredRouteRequest) -> List[Route]:
        """
        Fetch routes for a request with routing preferences.

        Providers without native support ignore the preferences.
        """
        return await self.fetch(request.origin, request.destination, request.waypoints)

    async def aclose(self):
        """Release network resources held by the provider."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
