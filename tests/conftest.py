"""
Sparrow Routing - Pytest Configuration

Configures:
- Integration test markers (skip by default)
- Fake clock and scripted providers for unit tests
- Fresh Prometheus registry and non-global tracer per test
"""

import os
import pytest
from typing import Any, Callable, List, Optional, Sequence, Union

from prometheus_client import CollectorRegistry

from sparrow_routing.adapters.base import BaseRouteProvider
from sparrow_routing.core.models import Coordinate, Route, RouteType, StructuredRouteRequest
from sparrow_routing.observability.logging import LogContext
from sparrow_routing.observability.metrics import MetricsCollector
from sparrow_routing.observability.tracing import TracingManager
from sparrow_routing.routing.resolver import RouteResolver


# ============================================================
# Environment Configuration
# ============================================================

def _is_truthy(value: Optional[str]) -> bool:
    """Check if environment variable is truthy."""
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "on")


RUN_INTEGRATION = _is_truthy(os.getenv("RUN_INTEGRATION"))


# ============================================================
# Pytest Markers
# ============================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires RUN_INTEGRATION=1)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless RUN_INTEGRATION=1."""
    skip_integration = pytest.mark.skip(
        reason="Integration test - set RUN_INTEGRATION=1 to run"
    )

    for item in items:
        if "integration" in item.keywords and not RUN_INTEGRATION:
            item.add_marker(skip_integration)


# ============================================================
# Test Doubles
# ============================================================

class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


Response = Union[Sequence[Route], BaseException]


class ScriptedProvider(BaseRouteProvider):
    """
    Provider that replays scripted responses.

    Each call consumes the next response; the last one repeats. A response is
    either a list of routes or an exception instance to raise.
    """

    def __init__(
        self,
        name: str,
        responses: Optional[List[Response]] = None,
        structured_responses: Optional[List[Response]] = None,
        supports_structured: bool = False,
    ):
        super().__init__(name)
        self.responses = list(responses or [[]])
        self.structured_responses = list(structured_responses or [[]])
        self.supports_structured_requests = supports_structured
        self.calls: List[tuple] = []
        self.structured_calls: List[StructuredRouteRequest] = []
        self.closed = False

    @staticmethod
    def _next(responses: List[Response]) -> List[Route]:
        item = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(item, BaseException):
            raise item
        return list(item)

    async def fetch(self, origin, destination, waypoints=()):
        self.calls.append((origin, destination, tuple(waypoints)))
        return self._next(self.responses)

    async def fetch_structured(self, request):
        self.structured_calls.append(request)
        return self._next(self.structured_responses)

    async def aclose(self):
        self.closed = True

    @property
    def call_count(self) -> int:
        return len(self.calls) + len(self.structured_calls)


def make_route(
    provider: str = "primary",
    duration: int = 600,
    traffic_delay: Optional[int] = None,
    distance: int = 5000,
    route_id: str = "",
    route_type: RouteType = RouteType.FAST,
) -> Route:
    """Build a Route with sensible defaults."""
    return Route(
        provider=provider,
        duration_seconds=duration,
        distance_meters=distance,
        traffic_delay_seconds=traffic_delay,
        route_id=route_id or f"{provider}-{duration}",
        route_type=route_type,
    )


# ============================================================
# Fixtures
# ============================================================

@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fresh_registry() -> CollectorRegistry:
    """Create a fresh registry for each test."""
    return CollectorRegistry()


@pytest.fixture
def metrics(fresh_registry) -> MetricsCollector:
    """Create a metrics collector with a fresh registry."""
    return MetricsCollector(registry=fresh_registry)


@pytest.fixture
def tracing() -> TracingManager:
    """Tracing manager that does not replace the global tracer provider."""
    manager = TracingManager(service_name="test-service", set_global=False)
    yield manager
    manager.shutdown()


@pytest.fixture
def origin() -> Coordinate:
    return Coordinate(52.52, 13.405)


@pytest.fixture
def destination() -> Coordinate:
    return Coordinate(52.5163, 13.3777)


@pytest.fixture
def make_resolver(fake_clock, metrics, tracing) -> Callable[..., RouteResolver]:
    """Factory for resolvers wired to the fake clock and test collectors."""

    def _make(providers: Sequence[BaseRouteProvider], **kwargs: Any) -> RouteResolver:
        kwargs.setdefault("clock", fake_clock)
        kwargs.setdefault("metrics", metrics)
        kwargs.setdefault("tracing", tracing)
        return RouteResolver(providers, **kwargs)

    return _make


@pytest.fixture(autouse=True)
def clear_log_context():
    yield
    LogContext.clear()
