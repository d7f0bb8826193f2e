"""
Sparrow Routing - Fallback Chain

Bookkeeping for one resolve call: which providers were tried, what each one
did, and which error is surfaced when none produced routes.

Outcomes per attempt:
- SUCCESS: non-empty route list (terminal)
- EMPTY: provider answered with no routes; not an error, no health penalty
- FAILURE: provider raised; recorded against its health

When every provider fails or is empty, the caller receives a single
AllProvidersExhaustedError carrying the last concrete failure, if any.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..core.errors import AllProvidersExhaustedError, RoutingException
from ..core.models import Route


class AttemptOutcome(str, Enum):
    """Outcome of a single provider call."""
    SUCCESS = "success"
    EMPTY = "empty"
    FAILURE = "failure"


@dataclass
class ProviderAttempt:
    """Record of one provider call."""
    provider: str
    outcome: AttemptOutcome
    duration_ms: int
    route_count: int = 0
    error: Optional[RoutingException] = None
    structured: bool = False


@dataclass
class ResolveResult:
    """
    Result of a route resolution.

    Exactly one of ``routes`` (non-empty) or ``error`` is meaningful,
    depending on ``success``.
    """
    success: bool
    routes: List[Route] = field(default_factory=list)
    error: Optional[AllProvidersExhaustedError] = None
    provider: Optional[str] = None  # None on cache hits and failures
    from_cache: bool = False
    attempts: List[ProviderAttempt] = field(default_factory=list)
    request_id: str = ""

    @property
    def is_error(self) -> bool:
        return not self.success

    def get_or_raise(self) -> List[Route]:
        """Return the routes, raising the aggregated error on failure."""
        if self.success:
            return self.routes
        raise self.error

    @property
    def providers_called(self) -> List[str]:
        return [attempt.provider for attempt in self.attempts]


@dataclass
class BestRouteResult:
    """Result of a best-route query."""
    success: bool
    route: Optional[Route] = None
    error: Optional[AllProvidersExhaustedError] = None
    resolution: Optional[ResolveResult] = None

    @property
    def is_error(self) -> bool:
        return not self.success

    def get_or_raise(self) -> Optional[Route]:
        if self.success:
            return self.route
        raise self.error


class FallbackChain:
    """
    Sequential walk over an ordered provider list for one resolve call.

    The order is fixed at construction; it is never recomputed mid-walk.
    """

    def __init__(
        self,
        order: List[str],
        request_id: str = "",
        prior_attempts: Optional[List[ProviderAttempt]] = None
    ):
        self.order = list(order)
        self.request_id = request_id
        self.attempts: List[ProviderAttempt] = list(prior_attempts or [])
        self.current_index = 0

    def get_next(self) -> Optional[str]:
        """Next provider to try, or None if the chain is exhausted."""
        if self.current_index >= len(self.order):
            return None
        provider = self.order[self.current_index]
        self.current_index += 1
        return provider

    def record(self, attempt: ProviderAttempt):
        self.attempts.append(attempt)

    @property
    def last_error(self) -> Optional[RoutingException]:
        """Most recent provider error, including prior (structured) attempts."""
        for attempt in reversed(self.attempts):
            if attempt.error is not None:
                return attempt.error
        return None

    def is_exhausted(self) -> bool:
        return self.current_index >= len(self.order)

    def remaining_count(self) -> int:
        return max(0, len(self.order) - self.current_index)

    def succeeded(self, provider: str, routes: List[Route]) -> ResolveResult:
        return ResolveResult(
            success=True,
            routes=list(routes),
            provider=provider,
            attempts=self.attempts,
            request_id=self.request_id,
        )

    def exhausted(self) -> ResolveResult:
        """Build the aggregated failure result."""
        tried: List[str] = []
        for attempt in self.attempts:
            if attempt.provider not in tried:
                tried.append(attempt.provider)

        return ResolveResult(
            success=False,
            error=AllProvidersExhaustedError(
                providers=tried,
                last_error=self.last_error,
                request_id=self.request_id,
            ),
            attempts=self.attempts,
            request_id=self.request_id,
        )
