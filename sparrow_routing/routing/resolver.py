"""
Sparrow Routing - Route Resolver

Orchestrates one route lookup across the configured providers:

    resolve(origin, destination, waypoints)
      -> cache hit?            return cached routes (no provider call, no health change)
      -> ordered provider loop (order fixed per call from current health)
           non-empty routes -> cache.put, record_success, return
           empty list       -> next provider, health untouched
           exception        -> record_failure, next provider
      -> every provider done -> AllProvidersExhaustedError in the result

Providers are awaited one at a time; a single resolve never calls two
providers concurrently. Cache and health are shared between concurrent
resolves and guard themselves with their own locks, which are never held
across an await.
"""

import time
import uuid
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..adapters.base import BaseRouteProvider
from ..core.errors import RoutingException, wrap_provider_exception
from ..core.models import Coordinate, Route, StructuredRouteRequest, as_waypoints
from ..observability.logging import LogContext, TimedOperation, get_logger
from ..observability.metrics import MetricsCollector
from ..observability.tracing import TracingManager, get_tracing_manager, trace_provider_call
from .cache import RouteCache
from .fallback import (
    AttemptOutcome,
    BestRouteResult,
    FallbackChain,
    ProviderAttempt,
    ResolveResult,
)
from .health import ProviderHealth, ProviderHealthTracker
from .keys import build_key
from .selector import select_best

logger = get_logger(__name__)


class RouteResolver:
    """
    Multi-provider route resolver.

    Features:
    - Response cache keyed by exact coordinates
    - Health-gated provider ordering with static preference ranks
    - Sequential fallback with per-attempt bookkeeping
    - Structured requests routed to the most capable provider first
    """

    def __init__(
        self,
        providers: Sequence[BaseRouteProvider],
        cache: Optional[RouteCache] = None,
        health: Optional[ProviderHealthTracker] = None,
        preference_ranks: Optional[Mapping[str, int]] = None,
        structured_provider: Optional[str] = None,
        metrics: Optional[MetricsCollector] = None,
        tracing: Optional[TracingManager] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the resolver.

        Args:
            providers: Provider clients, most preferred first
            cache: Route cache (a default one is created if omitted)
            health: Health tracker (a default one is created if omitted)
            preference_ranks: Static rank per provider name, higher preferred.
                Defaults to ranks derived from the order of ``providers``.
            structured_provider: Provider tried first by ``resolve_structured``
            metrics: Prometheus collector; nothing is recorded when omitted
            tracing: Tracing manager; the process-wide one when omitted
            clock: Time source for default cache and health tracker
        """
        if not providers:
            raise ValueError("RouteResolver needs at least one provider")

        self._providers: Dict[str, BaseRouteProvider] = {}
        for provider in providers:
            if provider.name in self._providers:
                raise ValueError(f"Duplicate provider name: {provider.name!r}")
            self._providers[provider.name] = provider

        if preference_ranks is None:
            count = len(providers)
            preference_ranks = {
                provider.name: count - index
                for index, provider in enumerate(providers)
            }
        elif set(preference_ranks) != set(self._providers):
            raise ValueError("preference_ranks must rank exactly the configured providers")
        self.preference_ranks: Dict[str, int] = dict(preference_ranks)

        if structured_provider is not None and structured_provider not in self._providers:
            raise ValueError(f"Unknown structured provider: {structured_provider!r}")
        self.structured_provider = structured_provider

        self._metrics = metrics
        self._tracing = tracing
        self.cache = cache if cache is not None else RouteCache(clock=clock, metrics=metrics)
        self.health = health if health is not None else ProviderHealthTracker(clock=clock, metrics=metrics)

    @property
    def provider_names(self) -> List[str]:
        return list(self._providers)

    def get_provider(self, name: str) -> BaseRouteProvider:
        return self._providers[name]

    # ============================================================
    # Public API
    # ============================================================

    async def resolve(
        self,
        origin: Coordinate,
        destination: Coordinate,
        waypoints: Optional[Sequence[Coordinate]] = ()
    ) -> ResolveResult:
        """
        Resolve routes from the cache or the first provider that has some.

        Provider errors never propagate; they are returned inside the result.
        """
        waypoints = as_waypoints(waypoints)
        request_id = self._new_request_id()

        return await self._run(
            "resolve",
            request_id,
            waypoints,
            lambda: self._resolve_standard(origin, destination, waypoints, request_id),
        )

    async def resolve_structured(self, request: StructuredRouteRequest) -> ResolveResult:
        """
        Resolve a request carrying routing preferences.

        The structured provider is asked first with the full request. If it
        has no routes or fails, the standard resolve path runs for the same
        origin, destination and waypoints. Structured results are not cached.
        """
        request_id = self._new_request_id()

        return await self._run(
            "resolve_structured",
            request_id,
            request.waypoints,
            lambda: self._resolve_structured(request, request_id),
        )

    async def get_best(
        self,
        origin: Coordinate,
        destination: Coordinate,
        waypoints: Optional[Sequence[Coordinate]] = ()
    ) -> BestRouteResult:
        """Resolve, then pick the route with the lowest duration plus traffic delay."""
        resolution = await self.resolve(origin, destination, waypoints)
        if not resolution.success:
            return BestRouteResult(success=False, error=resolution.error, resolution=resolution)

        return BestRouteResult(
            success=True,
            route=select_best(resolution.routes),
            resolution=resolution,
        )

    def clear_cache(self):
        """Drop every cached route."""
        self.cache.clear()
        logger.info("Route cache cleared")

    def get_provider_status(self) -> Dict[str, bool]:
        """Health flag of every configured provider."""
        return self.health.statuses(self._providers)

    def get_provider_health(self) -> Dict[str, ProviderHealth]:
        """Health record copies of every configured provider."""
        return {name: self.health.health(name) for name in self._providers}

    async def aclose(self):
        """Close every provider's network resources."""
        for provider in self._providers.values():
            await provider.aclose()

    async def __aenter__(self) -> "RouteResolver":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    # ============================================================
    # Resolution paths
    # ============================================================

    async def _run(
        self,
        entry_point: str,
        request_id: str,
        waypoints: Sequence[Coordinate],
        resolve: Callable[[], Awaitable[ResolveResult]]
    ) -> ResolveResult:
        """Run one resolution with log context, span and metrics around it."""
        started = time.perf_counter()
        token = LogContext.set_current(LogContext(request_id=request_id, operation=entry_point))
        tracing = self._tracing or get_tracing_manager()

        try:
            with tracing.start_span(
                "route.resolve",
                attributes={
                    "routing.request_id": request_id,
                    "routing.entry_point": entry_point,
                    "routing.waypoints": len(waypoints),
                },
            ) as span:
                trace_ctx = tracing.get_current_trace_context()
                if trace_ctx is not None:
                    LogContext.get_current().update(
                        trace_id=trace_ctx.trace_id,
                        span_id=trace_ctx.span_id,
                    )
                result = await resolve()
                outcome = self._outcome(result)
                span.set_attribute("routing.outcome", outcome)
                if result.provider:
                    span.set_attribute("routing.provider", result.provider)
        finally:
            LogContext.reset(token)

        duration = time.perf_counter() - started
        if self._metrics is not None:
            self._metrics.record_resolution(outcome, duration, entry_point=entry_point)

        return result

    async def _resolve_structured(
        self,
        request: StructuredRouteRequest,
        request_id: str
    ) -> ResolveResult:
        if self.structured_provider is None:
            return await self._resolve_standard(
                request.origin, request.destination, request.waypoints, request_id
            )

        name = self.structured_provider
        provider = self._providers[name]

        attempt, routes = await self._call_provider(
            provider,
            lambda: provider.fetch_structured(request),
            structured=True,
        )

        if attempt.outcome is AttemptOutcome.SUCCESS:
            self.health.record_success(name)
            return ResolveResult(
                success=True,
                routes=routes,
                provider=name,
                attempts=[attempt],
                request_id=request_id,
            )

        if attempt.outcome is AttemptOutcome.FAILURE:
            self.health.record_failure(name)

        logger.info(
            "Structured provider had no routes, using standard resolution",
            provider=name,
            outcome=attempt.outcome.value,
        )
        return await self._resolve_standard(
            request.origin,
            request.destination,
            request.waypoints,
            request_id,
            prior_attempts=[attempt],
        )

    async def _resolve_standard(
        self,
        origin: Coordinate,
        destination: Coordinate,
        waypoints: Tuple[Coordinate, ...],
        request_id: str,
        prior_attempts: Optional[List[ProviderAttempt]] = None
    ) -> ResolveResult:
        key = build_key(origin, destination, waypoints)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Route cache hit", cache_key=key, route_count=len(cached))
            return ResolveResult(
                success=True,
                routes=cached,
                from_cache=True,
                attempts=list(prior_attempts or []),
                request_id=request_id,
            )

        order = self.health.ordered_providers(self.preference_ranks)
        logger.debug("Route cache miss", cache_key=key, provider_order=order)

        chain = FallbackChain(order, request_id=request_id, prior_attempts=prior_attempts)

        while True:
            name = chain.get_next()
            if name is None:
                break

            provider = self._providers[name]
            attempt, routes = await self._call_provider(
                provider,
                lambda: provider.fetch(origin, destination, waypoints),
            )
            chain.record(attempt)

            if attempt.outcome is AttemptOutcome.SUCCESS:
                self.cache.put(key, routes)
                self.health.record_success(name)
                return chain.succeeded(name, routes)

            if attempt.outcome is AttemptOutcome.FAILURE:
                self.health.record_failure(name)

        result = chain.exhausted()
        last_error = result.error.last_error
        logger.warning(
            "All routing providers exhausted",
            providers_tried=result.error.providers_tried,
            last_error_code=last_error.code if last_error else None,
        )
        return result

    async def _call_provider(
        self,
        provider: BaseRouteProvider,
        fetch: Callable[[], Awaitable[List[Route]]],
        structured: bool = False
    ) -> Tuple[ProviderAttempt, List[Route]]:
        """
        Call one provider and classify the outcome.

        Health is left to the caller. Any exception raised by the provider is
        captured as the attempt's error.
        """
        request_id = self._current_request_id()
        operation = "fetch_structured" if structured else "fetch"
        routes: List[Route] = []
        error: Optional[RoutingException] = None
        timer = TimedOperation(
            f"provider.{operation}",
            logger,
            extra={"provider": provider.name},
        )

        with timer, trace_provider_call(provider.name, operation, tracing=self._tracing) as span:
            try:
                routes = list(await fetch())
            except Exception as e:
                error = wrap_provider_exception(provider.name, e, request_id)
                span.record_exception(e)

            if error is not None:
                outcome = AttemptOutcome.FAILURE
            elif routes:
                outcome = AttemptOutcome.SUCCESS
            else:
                outcome = AttemptOutcome.EMPTY

            span.set_attribute("routing.outcome", outcome.value)
            span.set_attribute("routing.route_count", len(routes))

        duration = timer.duration_ms / 1000
        duration_ms = int(timer.duration_ms)

        if self._metrics is not None:
            self._metrics.record_provider_attempt(provider.name, outcome.value, duration)

        if outcome is AttemptOutcome.FAILURE:
            logger.warning(
                "Provider call failed",
                provider=provider.name,
                operation=operation,
                error_code=error.code,
                error=str(error),
                duration_ms=duration_ms,
            )
        else:
            logger.info(
                "Provider call completed",
                provider=provider.name,
                operation=operation,
                outcome=outcome.value,
                route_count=len(routes),
                duration_ms=duration_ms,
            )

        attempt = ProviderAttempt(
            provider=provider.name,
            outcome=outcome,
            duration_ms=duration_ms,
            route_count=len(routes),
            error=error,
            structured=structured,
        )
        return attempt, routes

    # ============================================================
    # Helpers
    # ============================================================

    @staticmethod
    def _new_request_id() -> str:
        return f"route_{uuid.uuid4().hex[:24]}"

    @staticmethod
    def _current_request_id() -> str:
        ctx = LogContext.get_current()
        return ctx.request_id if ctx else ""

    @staticmethod
    def _outcome(result: ResolveResult) -> str:
        if result.from_cache:
            return "cache_hit"
        return "success" if result.success else "exhausted"
