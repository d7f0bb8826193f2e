"""
Sparrow Routing - Prometheus Metrics

Metrics collection with the Prometheus client library.

Metrics exposed:
- sparrow_route_resolutions_total: Counter of resolve calls by outcome
- sparrow_route_resolution_duration_seconds: Histogram of resolve latency
- sparrow_provider_attempts_total: Counter of provider calls by provider and outcome
- sparrow_provider_attempt_duration_seconds: Histogram of provider call latency
- sparrow_route_cache_events_total: Counter of cache hits/misses/stores/evictions/clears
- sparrow_route_cache_entries: Gauge of physically present cache entries
- sparrow_provider_healthy: Gauge of provider health (1 healthy, 0 unhealthy)
- sparrow_provider_consecutive_failures: Gauge of the failure streak per provider

Usage:
    from sparrow_routing.observability.metrics import get_metrics, metrics_text

    metrics = get_metrics()
    metrics.record_resolution(outcome="success", duration_seconds=0.4)

    # Exposition format for a scrape handler owned by the host application
    body = metrics_text()
"""

from typing import Optional

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    CollectorRegistry,
    generate_latest,
    REGISTRY,
)


class MetricsCollector:
    """
    Central metrics collector using the Prometheus client.

    Pass a fresh CollectorRegistry in tests; the process-wide instance uses
    the default registry.
    """

    _instance: Optional["MetricsCollector"] = None

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry

        # outcome = cache_hit / success / exhausted
        self.resolutions_total = Counter(
            "sparrow_route_resolutions_total",
            "Total number of route resolutions",
            labelnames=["outcome", "entry_point"],
            registry=registry,
        )

        # Routing APIs typically answer between 50ms and a few seconds
        self.resolution_duration = Histogram(
            "sparrow_route_resolution_duration_seconds",
            "Route resolution duration in seconds",
            labelnames=["entry_point"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, float("inf")),
            registry=registry,
        )

        # outcome = success / empty / failure
        self.provider_attempts = Counter(
            "sparrow_provider_attempts_total",
            "Total provider calls",
            labelnames=["provider", "outcome"],
            registry=registry,
        )

        self.provider_attempt_duration = Histogram(
            "sparrow_provider_attempt_duration_seconds",
            "Provider call duration in seconds",
            labelnames=["provider"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, float("inf")),
            registry=registry,
        )

        # event = hit / miss / store / evict / clear
        self.cache_events = Counter(
            "sparrow_route_cache_events_total",
            "Route cache events",
            labelnames=["event"],
            registry=registry,
        )

        self.cache_entries = Gauge(
            "sparrow_route_cache_entries",
            "Entries physically present in the route cache",
            registry=registry,
        )

        self.provider_healthy = Gauge(
            "sparrow_provider_healthy",
            "Provider health (1=healthy, 0=unhealthy)",
            labelnames=["provider"],
            registry=registry,
        )

        self.provider_consecutive_failures = Gauge(
            "sparrow_provider_consecutive_failures",
            "Consecutive failures per provider",
            labelnames=["provider"],
            registry=registry,
        )

    @classmethod
    def get_instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Reset singleton (for testing)."""
        cls._instance = None

    def record_resolution(
        self,
        outcome: str,
        duration_seconds: float,
        entry_point: str = "resolve",
    ):
        """Record a completed resolve call."""
        self.resolutions_total.labels(outcome=outcome, entry_point=entry_point).inc()
        self.resolution_duration.labels(entry_point=entry_point).observe(duration_seconds)

    def record_provider_attempt(
        self,
        provider: str,
        outcome: str,
        duration_seconds: float,
    ):
        """Record one provider call."""
        self.provider_attempts.labels(provider=provider, outcome=outcome).inc()
        self.provider_attempt_duration.labels(provider=provider).observe(duration_seconds)

    def record_cache_event(self, event: str, entries: Optional[int] = None):
        """Record a cache event and, when known, the current entry count."""
        self.cache_events.labels(event=event).inc()
        if entries is not None:
            self.cache_entries.set(entries)

    def set_provider_health(
        self,
        provider: str,
        is_healthy: bool,
        consecutive_failures: int,
    ):
        """Mirror a provider's health record."""
        self.provider_healthy.labels(provider=provider).set(1 if is_healthy else 0)
        self.provider_consecutive_failures.labels(provider=provider).set(consecutive_failures)


# Module-level functions for convenience
_metrics_instance: Optional[MetricsCollector] = None


def setup_metrics(registry: CollectorRegistry = REGISTRY) -> MetricsCollector:
    """
    Setup metrics collection.

    Safe to call multiple times - returns the existing instance for the same
    registry.
    """
    global _metrics_instance

    if _metrics_instance is not None and _metrics_instance.registry is registry:
        return _metrics_instance

    _metrics_instance = MetricsCollector(registry)
    MetricsCollector._instance = _metrics_instance
    return _metrics_instance


def get_metrics() -> MetricsCollector:
    """Get the metrics collector instance, creating it on first use."""
    global _metrics_instance
    if _metrics_instance is None:
        _metrics_instance = MetricsCollector.get_instance()
    return _metrics_instance


def metrics_text(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Render metrics in the Prometheus exposition format."""
    if registry is None:
        registry = get_metrics().registry
    return generate_latest(registry)
