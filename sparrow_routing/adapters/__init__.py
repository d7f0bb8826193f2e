"""
Sparrow Routing Adapters Module

Routing provider clients. Each one turns an origin, destination and waypoints
into provider-neutral Route objects.
"""

from .base import BaseRouteProvider, ProviderConfig
from .http_adapter import HttpRouteProvider, RouteListPayload, RoutePayload
from .stub_adapter import StubRouteProvider

__all__ = [
    "BaseRouteProvider",
    "ProviderConfig",
    "HttpRouteProvider",
    "RouteListPayload",
    "RoutePayload",
    "StubRouteProvider",
]
