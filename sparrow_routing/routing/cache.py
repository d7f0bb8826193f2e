"""
Sparrow Routing - Route Cache

Time- and size-bounded memoization of provider responses keyed by request
fingerprint.

Rules:
- An entry is served only while ``now - cached_at < ttl``. A stale entry is a
  miss; it stays in place until the next ``put`` for its key supersedes it or
  eviction removes it.
- After an insertion that takes the cache above ``max_size``, exactly one
  entry (oldest ``cached_at``, first found on ties) is evicted.
"""

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..config import CacheConfig
from ..core.models import Route
from ..observability.logging import get_logger
from ..observability.metrics import MetricsCollector

logger = get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Routes cached for one request key."""
    routes: Tuple[Route, ...]
    cached_at: float


class RouteCache:
    """
    Thread-safe route cache.

    Every operation holds the cache lock for its whole duration, so mutations
    of one key are atomic with respect to each other.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsCollector] = None
    ):
        self.config = config or CacheConfig()
        self._clock = clock
        self._metrics = metrics
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = Lock()

    @property
    def ttl_seconds(self) -> float:
        return self.config.ttl_seconds

    @property
    def max_size(self) -> int:
        return self.config.max_size

    def get(self, key: str) -> Optional[List[Route]]:
        """Return the cached routes for ``key`` if present and fresh."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._record("miss")
                return None

            age = self._clock() - entry.cached_at
            if age >= self.config.ttl_seconds:
                self._record("miss")
                logger.debug("Stale cache entry ignored", cache_key=key, age_seconds=round(age, 3))
                return None

            self._record("hit")
            return list(entry.routes)

    def put(self, key: str, routes: Sequence[Route]):
        """Insert or overwrite ``key``, evicting the oldest entry when over capacity."""
        with self._lock:
            self._entries[key] = CacheEntry(routes=tuple(routes), cached_at=self._clock())
            self._record("store")

            if len(self._entries) > self.config.max_size:
                oldest_key = min(self._entries, key=lambda k: self._entries[k].cached_at)
                del self._entries[oldest_key]
                self._record("evict")
                logger.debug("Evicted oldest cache entry", cache_key=oldest_key)

    def clear(self):
        """Remove every entry."""
        with self._lock:
            self._entries.clear()
            self._record("clear")

    def keys(self) -> List[str]:
        """Keys physically present, fresh or stale."""
        with self._lock:
            return list(self._entries.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def _record(self, event: str):
        """Mirror a cache event to metrics (must hold lock)."""
        if self._metrics is not None:
            self._metrics.record_cache_event(event, entries=len(self._entries))
