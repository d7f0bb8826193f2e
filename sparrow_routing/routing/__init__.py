"""
Sparrow Routing - Routing Module

Multi-provider route resolution with:
- TTL and size bounded route cache
- Health-gated provider ordering
- Sequential fallback across providers
- Best-route selection
"""

from .cache import CacheEntry, RouteCache
from .factory import build_providers, create_resolver
from .fallback import (
    AttemptOutcome,
    BestRouteResult,
    FallbackChain,
    ProviderAttempt,
    ResolveResult,
)
from .health import ProviderHealth, ProviderHealthTracker, UNHEALTHY_SCORE
from .keys import build_key, key_for
from .resolver import RouteResolver
from .selector import effective_duration, select_best

__all__ = [
    # Resolver
    "RouteResolver",
    "create_resolver",
    "build_providers",
    # Cache
    "RouteCache",
    "CacheEntry",
    "build_key",
    "key_for",
    # Health
    "ProviderHealth",
    "ProviderHealthTracker",
    "UNHEALTHY_SCORE",
    # Fallback
    "AttemptOutcome",
    "ProviderAttempt",
    "FallbackChain",
    "ResolveResult",
    "BestRouteResult",
    # Selection
    "effective_duration",
    "select_best",
]
