"""
Sparrow Routing - Observability Tests

Tests for the observability stack:
- Prometheus metrics
- OpenTelemetry tracing
- Structured logging
- Resolver integration (spans and log context)
"""

import json
import logging

import pytest
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from prometheus_client import CollectorRegistry

from sparrow_routing.core.errors import UpstreamError
from sparrow_routing.observability.logging import (
    JSONFormatter,
    LogContext,
    TimedOperation,
    get_logger,
    setup_logging,
)
from sparrow_routing.observability.metrics import (
    MetricsCollector,
    get_metrics,
    metrics_text,
    setup_metrics,
)
from sparrow_routing.observability.tracing import (
    TraceContext,
    TracingManager,
    get_tracing_manager,
    setup_tracing,
    trace_provider_call,
)

from conftest import ScriptedProvider, make_route


# ============================================================
# Metrics Tests
# ============================================================

class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_record_resolution(self, metrics):
        metrics.record_resolution("success", 0.25)

        sample = metrics.resolutions_total.labels(
            outcome="success",
            entry_point="resolve",
        )._value.get()
        assert sample == 1.0

    def test_record_provider_attempt(self, metrics):
        metrics.record_provider_attempt("primary", "failure", 0.1)
        metrics.record_provider_attempt("primary", "failure", 0.2)

        sample = metrics.provider_attempts.labels(
            provider="primary",
            outcome="failure",
        )._value.get()
        assert sample == 2.0

    def test_provider_health_gauges(self, metrics):
        metrics.set_provider_health("secondary", False, 3)
        assert metrics.provider_healthy.labels(provider="secondary")._value.get() == 0.0
        assert metrics.provider_consecutive_failures.labels(provider="secondary")._value.get() == 3.0

    def test_cache_event_without_entries(self, metrics):
        metrics.record_cache_event("clear")
        assert metrics.cache_events.labels(event="clear")._value.get() == 1.0
        assert metrics.cache_entries._value.get() == 0.0

    def test_exposition_format(self, fresh_registry, metrics):
        metrics.record_resolution("exhausted", 1.0)
        body = metrics_text(fresh_registry).decode()

        assert "sparrow_route_resolutions_total" in body
        assert 'outcome="exhausted"' in body

    def test_separate_registries_do_not_collide(self):
        MetricsCollector(registry=CollectorRegistry())
        MetricsCollector(registry=CollectorRegistry())

    def test_setup_metrics_reuses_instance_per_registry(self, fresh_registry):
        first = setup_metrics(fresh_registry)

        assert setup_metrics(fresh_registry) is first
        assert get_metrics() is first
        assert setup_metrics(CollectorRegistry()) is not first


# ============================================================
# Tracing Tests
# ============================================================

class TestTracingManager:
    """Tests for TracingManager."""

    @pytest.fixture
    def exporter(self, tracing):
        exporter = InMemorySpanExporter()
        tracing.provider.add_span_processor(SimpleSpanProcessor(exporter))
        return exporter

    def test_setup_tracing_honours_console_env(self, monkeypatch):
        monkeypatch.setenv("OTEL_CONSOLE_EXPORT", "true")
        manager = setup_tracing(service_name="test-setup")
        try:
            assert get_tracing_manager() is manager
            assert TracingManager.get_instance() is manager
            assert manager.service_name == "test-setup"
        finally:
            manager.shutdown()
            TracingManager.reset_instance()

    def test_span_creation(self, tracing):
        with tracing.start_span("test-operation") as span:
            span.set_attribute("test.key", "test-value")
            ctx = TraceContext.from_span(span)

            assert len(ctx.trace_id) == 32
            assert len(ctx.span_id) == 16
            assert tracing.get_current_trace_context() == ctx

    def test_trace_provider_call(self, tracing, exporter):
        with trace_provider_call("primary", tracing=tracing) as span:
            span.set_attribute("routing.route_count", 2)

        spans = exporter.get_finished_spans()
        assert [s.name for s in spans] == ["route.provider.primary"]
        assert spans[0].attributes["routing.provider"] == "primary"
        assert spans[0].attributes["routing.operation"] == "fetch"

    @pytest.mark.asyncio
    async def test_resolver_spans(self, make_resolver, tracing, exporter, origin, destination):
        providers = [
            ScriptedProvider("primary", [UpstreamError("primary", 500)]),
            ScriptedProvider("secondary", [[make_route("secondary")]]),
        ]
        resolver = make_resolver(providers)

        await resolver.resolve(origin, destination)

        spans = {s.name: s for s in exporter.get_finished_spans()}
        assert set(spans) == {
            "route.resolve",
            "route.provider.primary",
            "route.provider.secondary",
        }
        assert spans["route.resolve"].attributes["routing.outcome"] == "success"
        assert spans["route.provider.primary"].attributes["routing.outcome"] == "failure"
        assert spans["route.provider.secondary"].attributes["routing.route_count"] == 1
        assert spans["route.provider.primary"].parent.span_id == spans["route.resolve"].context.span_id


# ============================================================
# Logging Tests
# ============================================================

class TestStructuredLogging:
    """Tests for structured logging."""

    @pytest.fixture(autouse=True)
    def setup_logging_fixture(self):
        setup_logging(level="DEBUG", json_output=True)
        yield
        LogContext.clear()

    def _record(self, msg="Test message", **extra):
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname="test.py",
            lineno=10,
            msg=msg,
            args=(),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_formatter(self):
        data = json.loads(JSONFormatter().format(self._record()))

        assert data["level"] == "INFO"
        assert data["message"] == "Test message"
        assert "timestamp" in data

    def test_log_context_injection(self):
        token = LogContext.set_current(LogContext(request_id="route_123", provider="primary"))
        try:
            data = json.loads(JSONFormatter().format(self._record()))
        finally:
            LogContext.reset(token)

        assert data["request_id"] == "route_123"
        assert data["provider"] == "primary"
        assert LogContext.get_current() is None

    def test_sensitive_field_redaction(self):
        formatter = JSONFormatter(redact_sensitive=True)
        record = self._record(api_key="key123", authorization="Bearer abc", cache_key="1.0,2.0->3.0,4.0:")

        data = json.loads(formatter.format(record))

        assert data["api_key"] == "[REDACTED]"
        assert data["authorization"] == "[REDACTED]"
        assert data["cache_key"] == "1.0,2.0->3.0,4.0:"

    def test_structured_logger_fields(self, caplog):
        logger = get_logger("sparrow_routing.tests")
        with caplog.at_level(logging.INFO, logger="sparrow_routing"):
            logger.info("Provider call completed", provider="primary", route_count=2)

        record = caplog.records[-1]
        assert record.provider == "primary"
        assert record.route_count == 2

    def test_timed_operation(self):
        import time

        logger = get_logger("sparrow_routing.tests")

        with TimedOperation("test_op", logger) as timer:
            time.sleep(0.02)

        assert timer.duration_ms is not None
        assert timer.duration_ms >= 15

    @pytest.mark.asyncio
    async def test_resolver_logs_carry_request_id(self, make_resolver, caplog, origin, destination):
        resolver = make_resolver([ScriptedProvider("primary", [UpstreamError("primary", 500)])])

        with caplog.at_level(logging.DEBUG, logger="sparrow_routing"):
            result = await resolver.resolve(origin, destination)

        failures = [r for r in caplog.records if r.getMessage() == "Provider call failed"]
        assert failures
        assert failures[0].request_id == result.request_id
        assert failures[0].error_code == "upstream_500"

        exhausted = [r for r in caplog.records if r.getMessage() == "All routing providers exhausted"]
        assert exhausted[0].providers_tried == ["primary"]

    @pytest.mark.asyncio
    async def test_resolver_logs_carry_trace_and_timing(
        self, make_resolver, tracing, caplog, origin, destination
    ):
        exporter = InMemorySpanExporter()
        tracing.provider.add_span_processor(SimpleSpanProcessor(exporter))
        resolver = make_resolver([ScriptedProvider("primary", [[make_route("primary")]])])

        with caplog.at_level(logging.DEBUG, logger="sparrow_routing"):
            await resolver.resolve(origin, destination)

        root = next(s for s in exporter.get_finished_spans() if s.name == "route.resolve")
        completed = [r for r in caplog.records if r.getMessage() == "Provider call completed"]
        assert completed[0].trace_id == format(root.context.trace_id, "032x")

        timed = [r for r in caplog.records if r.getMessage() == "provider.fetch completed"]
        assert timed[0].provider == "primary"
        assert timed[0].duration_ms >= 0
