"""
Sparrow Routing - Multi-Provider Route Resolution

Obtains driving routes from several independent routing providers with
caching, provider health tracking, automatic fallback and best-route
selection.
"""

from .config import (
    CacheConfig,
    ConfigurationError,
    HealthConfig,
    ProviderEndpoint,
    RoutingSettings,
    load_settings,
    validate_settings,
)
from .core.models import Coordinate, Route, RouteRequest, RouteType, StructuredRouteRequest
from .routing import BestRouteResult, ResolveResult, RouteResolver, create_resolver

__version__ = "1.0.0"

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "HealthConfig",
    "ProviderEndpoint",
    "RoutingSettings",
    "load_settings",
    "validate_settings",
    "Coordinate",
    "Route",
    "RouteRequest",
    "RouteType",
    "StructuredRouteRequest",
    "BestRouteResult",
    "ResolveResult",
    "RouteResolver",
    "create_resolver",
]
