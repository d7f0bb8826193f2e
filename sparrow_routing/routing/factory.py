"""
Sparrow Routing - Resolver Factory

Builds a ready-to-use RouteResolver from RoutingSettings.
"""

import time
from typing import Callable, List, Optional

from ..adapters.base import BaseRouteProvider, ProviderConfig
from ..adapters.http_adapter import HttpRouteProvider
from ..adapters.stub_adapter import StubRouteProvider
from ..config import RoutingSettings, load_settings, validate_settings
from ..core.models import DEFAULT_PREFERENCE_RANKS
from ..observability.logging import get_logger
from ..observability.metrics import MetricsCollector, get_metrics
from ..observability.tracing import TracingManager
from .cache import RouteCache
from .health import ProviderHealthTracker
from .resolver import RouteResolver

logger = get_logger(__name__)


def build_providers(settings: RoutingSettings) -> List[BaseRouteProvider]:
    """Provider clients for every usable slot, most preferred first."""
    providers: List[BaseRouteProvider] = []

    for endpoint in settings.configured_providers():
        if settings.use_stub_providers:
            providers.append(StubRouteProvider(endpoint.name))
            continue

        providers.append(
            HttpRouteProvider(
                ProviderConfig(
                    name=endpoint.name,
                    base_url=endpoint.base_url,
                    api_key=endpoint.api_key,
                    timeout=settings.provider_timeout_seconds,
                )
            )
        )

    return providers


def create_resolver(
    settings: Optional[RoutingSettings] = None,
    metrics: Optional[MetricsCollector] = None,
    tracing: Optional[TracingManager] = None,
    clock: Callable[[], float] = time.time,
) -> RouteResolver:
    """
    Create a RouteResolver.

    Args:
        settings: Routing settings (read from the environment if omitted)
        metrics: Prometheus collector (the process-wide one if omitted)
        tracing: Tracing manager (the process-wide one if omitted)
        clock: Time source for cache freshness and health timestamps

    Raises:
        ConfigurationError: settings cannot produce a working resolver
    """
    settings = settings or load_settings()
    for warning in validate_settings(settings):
        logger.warning("Routing configuration warning", detail=warning)

    metrics = metrics or get_metrics()
    providers = build_providers(settings)
    names = [provider.name for provider in providers]

    ranks = {
        name: DEFAULT_PREFERENCE_RANKS.get(name, 0)
        for name in names
    }

    structured = settings.structured_provider
    if structured is not None and structured not in names:
        structured = None

    resolver = RouteResolver(
        providers,
        cache=RouteCache(settings.cache, clock=clock, metrics=metrics),
        health=ProviderHealthTracker(settings.health, clock=clock, metrics=metrics),
        preference_ranks=ranks,
        structured_provider=structured,
        metrics=metrics,
        tracing=tracing,
        clock=clock,
    )

    logger.info(
        "Route resolver created",
        providers=names,
        structured_provider=structured,
        stub_providers=settings.use_stub_providers,
    )
    return resolver
