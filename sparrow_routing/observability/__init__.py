"""
Sparrow Routing - Observability Module

- Prometheus metrics (Counter, Histogram, Gauge)
- OpenTelemetry tracing
- Structured JSON logging with context injection

Usage:
    from sparrow_routing.observability import get_logger, get_metrics, get_tracing_manager

    logger = get_logger(__name__)
    metrics = get_metrics()
    tracing = get_tracing_manager()
"""

from .metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
    metrics_text,
)
from .tracing import (
    TracingManager,
    TraceContext,
    get_tracing_manager,
    setup_tracing,
    trace_provider_call,
)
from .logging import (
    StructuredLogger,
    JSONFormatter,
    LogContext,
    TimedOperation,
    get_logger,
    setup_logging,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "setup_metrics",
    "metrics_text",
    # Tracing
    "TracingManager",
    "TraceContext",
    "get_tracing_manager",
    "setup_tracing",
    "trace_provider_call",
    # Logging
    "StructuredLogger",
    "JSONFormatter",
    "LogContext",
    "TimedOperation",
    "get_logger",
    "setup_logging",
]
