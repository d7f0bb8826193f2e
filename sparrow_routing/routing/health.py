"""
Sparrow Routing - Provider Health Tracking

Per-provider reliability state, kept for the lifetime of the process.

Rules:
- Success: healthy, failure streak reset to 0
- Failure: streak + 1; unhealthy once the streak reaches the threshold
  (default 3, so two consecutive failures are tolerated)
- Ordering: health is a hard gate. Unhealthy providers score -1 and sort after
  every healthy one; the fixed preference rank only orders healthy providers.
"""

import time
from dataclasses import dataclass, replace
from threading import Lock
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from ..config import HealthConfig
from ..core.models import DEFAULT_PREFERENCE_RANKS
from ..observability.logging import get_logger
from ..observability.metrics import MetricsCollector

logger = get_logger(__name__)


@dataclass
class ProviderHealth:
    """Health record of a single provider."""
    is_healthy: bool = True
    consecutive_failures: int = 0
    last_success_at: Optional[float] = None
    last_failure_at: Optional[float] = None


UNHEALTHY_SCORE = -1


class ProviderHealthTracker:
    """
    Tracks and ranks provider reliability.

    Records are created lazily on first use and never deleted. Callers only
    ever receive copies.
    """

    def __init__(
        self,
        config: Optional[HealthConfig] = None,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsCollector] = None
    ):
        self.config = config or HealthConfig()
        self._clock = clock
        self._metrics = metrics
        self._records: Dict[str, ProviderHealth] = {}
        self._lock = Lock()

    def _get_record(self, provider: str) -> ProviderHealth:
        """Get or create a provider record (must hold lock)."""
        record = self._records.get(provider)
        if record is None:
            record = ProviderHealth()
            self._records[provider] = record
        return record

    def record_success(self, provider: str):
        """Record a successful provider call."""
        with self._lock:
            record = self._get_record(provider)
            was_healthy = record.is_healthy

            record.is_healthy = True
            record.consecutive_failures = 0
            record.last_success_at = self._clock()

            self._publish(provider, record)

        if not was_healthy:
            logger.info("Provider recovered", provider=provider)

    def record_failure(self, provider: str):
        """Record a failed provider call."""
        with self._lock:
            record = self._get_record(provider)
            was_healthy = record.is_healthy

            record.consecutive_failures += 1
            record.is_healthy = record.consecutive_failures < self.config.failure_threshold
            record.last_failure_at = self._clock()
            failures = record.consecutive_failures
            now_healthy = record.is_healthy

            self._publish(provider, record)

        if was_healthy and not now_healthy:
            logger.warning(
                "Provider marked unhealthy",
                provider=provider,
                consecutive_failures=failures,
            )

    def health(self, provider: str) -> ProviderHealth:
        """Current health of ``provider`` (healthy if never seen)."""
        with self._lock:
            return replace(self._get_record(provider))

    def is_healthy(self, provider: str) -> bool:
        return self.health(provider).is_healthy

    def ordered_providers(
        self,
        preference_ranks: Optional[Mapping[str, int]] = None
    ) -> List[str]:
        """
        Order providers for one resolution attempt.

        Args:
            preference_ranks: Static rank per provider name (higher preferred).
                Its iteration order decides ties among unhealthy providers.

        Returns:
            Provider names, healthy ones by rank descending, then unhealthy ones
        """
        ranks = dict(preference_ranks if preference_ranks is not None else DEFAULT_PREFERENCE_RANKS)

        with self._lock:
            scores = {
                name: rank if self._get_record(name).is_healthy else UNHEALTHY_SCORE
                for name, rank in ranks.items()
            }

        # sorted() is stable, also with reverse=True
        return sorted(ranks, key=lambda name: scores[name], reverse=True)

    def statuses(self, providers: Iterable[str]) -> Dict[str, bool]:
        """Health flag for each of ``providers``."""
        with self._lock:
            return {name: self._get_record(name).is_healthy for name in providers}

    def snapshot(self) -> Dict[str, ProviderHealth]:
        """Copies of every record seen so far."""
        with self._lock:
            return {name: replace(record) for name, record in self._records.items()}

    def _publish(self, provider: str, record: ProviderHealth):
        """Mirror a record to metrics (must hold lock)."""
        if self._metrics is not None:
            self._metrics.set_provider_health(
                provider, record.is_healthy, record.consecutive_failures
            )
