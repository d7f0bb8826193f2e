"""
Sparrow Routing - OpenTelemetry Tracing

Features:
- Span per resolve call and per provider attempt
- OTLP exporter support (Jaeger, Tempo, etc.)
- Console export for debugging

Usage:
    from sparrow_routing.observability.tracing import setup_tracing, get_tracing_manager

    # Setup at startup
    setup_tracing(service_name="sparrow-routing", otlp_endpoint="http://localhost:4317")

    # Create spans
    tracing = get_tracing_manager()
    with tracing.start_span("route.resolve") as span:
        span.set_attribute("route.waypoints", 2)
"""

import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION
from opentelemetry.trace import SpanKind

# Optional OTLP exporter (requires opentelemetry-exporter-otlp)
try:
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    OTLP_AVAILABLE = True
except ImportError:
    OTLP_AVAILABLE = False


@dataclass
class TraceContext:
    """Identifiers of a span, for log correlation."""
    trace_id: str
    span_id: str

    @classmethod
    def from_span(cls, span) -> "TraceContext":
        ctx = span.get_span_context()
        return cls(
            trace_id=format(ctx.trace_id, "032x"),
            span_id=format(ctx.span_id, "016x"),
        )


class TracingManager:
    """
    Central tracing manager using OpenTelemetry.

    Singleton pattern for global access.
    """

    _instance: Optional["TracingManager"] = None

    def __init__(
        self,
        service_name: str = "sparrow-routing",
        service_version: str = "1.0.0",
        otlp_endpoint: Optional[str] = None,
        console_export: bool = False,
        set_global: bool = True,
    ):
        """
        Initialize tracing.

        Args:
            service_name: Name of the service
            service_version: Version of the service
            otlp_endpoint: OTLP collector endpoint (e.g., http://localhost:4317)
            console_export: Whether to export spans to console (for debugging)
            set_global: Register the provider as the global tracer provider
        """
        self.service_name = service_name
        self.service_version = service_version

        resource = Resource.create({
            SERVICE_NAME: service_name,
            SERVICE_VERSION: service_version,
        })

        self.provider = TracerProvider(resource=resource)

        if otlp_endpoint and OTLP_AVAILABLE:
            otlp_exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
            self.provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

        if console_export:
            self.provider.add_span_processor(
                SimpleSpanProcessor(ConsoleSpanExporter())
            )

        if set_global:
            trace.set_tracer_provider(self.provider)

        self.tracer = self.provider.get_tracer(service_name, service_version)

    @classmethod
    def get_instance(cls) -> "TracingManager":
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Reset singleton (for testing)."""
        cls._instance = None

    def start_span(
        self,
        name: str,
        kind: SpanKind = SpanKind.INTERNAL,
        attributes: Optional[Dict[str, Any]] = None,
    ):
        """Start a span as the current span; use as a context manager."""
        return self.tracer.start_as_current_span(
            name,
            kind=kind,
            attributes=attributes,
        )

    def start_client_span(
        self,
        name: str,
        attributes: Optional[Dict[str, Any]] = None,
    ):
        """Start a client span for outgoing provider calls."""
        return self.start_span(name, kind=SpanKind.CLIENT, attributes=attributes)

    def get_current_trace_context(self) -> Optional[TraceContext]:
        span = trace.get_current_span()
        if span and span.get_span_context().is_valid:
            return TraceContext.from_span(span)
        return None

    def shutdown(self):
        """Shutdown the tracer provider."""
        self.provider.shutdown()


# Module-level functions for convenience
_tracing_instance: Optional[TracingManager] = None


def setup_tracing(
    service_name: str = "sparrow-routing",
    service_version: str = "1.0.0",
    otlp_endpoint: Optional[str] = None,
    console_export: bool = False,
) -> TracingManager:
    """
    Setup tracing. Call once at application startup.

    ``OTEL_EXPORTER_OTLP_ENDPOINT`` and ``OTEL_CONSOLE_EXPORT=true`` are
    honoured when the arguments are not given.
    """
    global _tracing_instance

    if otlp_endpoint is None:
        otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    if os.getenv("OTEL_CONSOLE_EXPORT", "").lower() == "true":
        console_export = True

    _tracing_instance = TracingManager(
        service_name=service_name,
        service_version=service_version,
        otlp_endpoint=otlp_endpoint,
        console_export=console_export,
    )
    TracingManager._instance = _tracing_instance
    return _tracing_instance


def get_tracing_manager() -> TracingManager:
    """Get the tracing manager instance, creating it on first use."""
    global _tracing_instance
    if _tracing_instance is None:
        _tracing_instance = TracingManager.get_instance()
    return _tracing_instance


@contextmanager
def trace_provider_call(
    provider: str,
    operation: str = "fetch",
    tracing: Optional[TracingManager] = None,
):
    """
    Context manager for tracing a provider call.

    Usage:
        with trace_provider_call("primary") as span:
            routes = await provider.fetch(...)
            span.set_attribute("routing.route_count", len(routes))
    """
    tracing = tracing or get_tracing_manager()

    with tracing.start_client_span(
        name=f"route.provider.{provider}",
        attributes={
            "routing.provider": provider,
            "routing.operation": operation,
        },
    ) as span:
        yield span
