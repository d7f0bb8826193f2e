"""
Sparrow Routing Core Module

Provider-neutral data models and the error taxonomy.
"""

from .models import (
    # Enums
    ProviderSlot,
    RouteType,
    DEFAULT_PREFERENCE_RANKS,

    # Requests
    Coordinate,
    RouteRequest,
    StructuredRouteRequest,

    # Routes
    Route,
    as_waypoints,
)

from .errors import (
    # Error types
    ErrorType,
    ErrorDetails,
    RoutingException,

    # Infra errors
    InfraError,
    ProviderFailureError,
    ConnectionTimeoutError,
    ReadTimeoutError,
    UpstreamError,
    RateLimitedError,
    ProviderUnavailableError,
    ResponseParseError,
    AllProvidersExhaustedError,

    # Semantic errors
    SemanticError,
    InvalidCoordinateError,
    ProviderAuthError,
    ProviderRequestError,

    # Factories
    create_error_from_provider,
    wrap_provider_exception,
)

__all__ = [
    # Enums
    "ProviderSlot",
    "RouteType",
    "DEFAULT_PREFERENCE_RANKS",

    # Requests
    "Coordinate",
    "RouteRequest",
    "StructuredRouteRequest",

    # Routes
    "Route",
    "as_waypoints",

    # Errors
    "ErrorType",
    "ErrorDetails",
    "RoutingException",
    "InfraError",
    "ProviderFailureError",
    "ConnectionTimeoutError",
    "ReadTimeoutError",
    "UpstreamError",
    "RateLimitedError",
    "ProviderUnavailableError",
    "ResponseParseError",
    "AllProvidersExhaustedError",
    "SemanticError",
    "InvalidCoordinateError",
    "ProviderAuthError",
    "ProviderRequestError",
    "create_error_from_provider",
    "wrap_provider_exception",
]
