"""
Unit tests for the OpenTelemetry tracing helpers.

Note: OpenTelemetry has global state that can only be set once per process.
Span capture uses a module-scoped tracer provider.
"""

from unittest.mock import patch

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import SpanKind, StatusCode

import sidecar_injector.observability.tracing as tracing_module
from sidecar_injector.observability.tracing import (
    extract_trace_context,
    is_tracing_enabled,
    setup_tracing,
    shutdown_tracing,
    traced_span,
)


@pytest.fixture(scope="module")
def exporter():
    """Module-scoped in-memory exporter installed on the global provider."""
    in_memory = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(in_memory))
    trace.set_tracer_provider(provider)
    return in_memory


@pytest.fixture(autouse=True)
def reset_tracing_state(monkeypatch):
    monkeypatch.setattr(tracing_module, "_state", tracing_module._TracingState())


class TestSetupTracing:
    def test_disabled_returns_none(self):
        assert setup_tracing(enabled=False) is None
        assert is_tracing_enabled() is False

    def test_enabled_configures_provider(self):
        with (
            patch.object(tracing_module, "OTLPSpanExporter") as mock_exporter,
            patch.object(tracing_module.trace, "set_tracer_provider") as mock_set,
        ):
            provider = setup_tracing(
                enabled=True, endpoint="http://collector:4317", use_simple_processor=True
            )

        assert provider is not None
        mock_exporter.assert_called_once_with(endpoint="http://collector:4317", insecure=True)
        mock_set.assert_called_once_with(provider)
        assert is_tracing_enabled() is True

        shutdown_tracing()
        assert is_tracing_enabled() is False

    def test_second_setup_is_noop(self):
        setup_tracing(enabled=False)
        with patch.object(tracing_module, "TracerProvider") as mock_provider:
            setup_tracing(enabled=True)
        mock_provider.assert_not_called()


class TestTracedSpan:
    def test_success_sets_ok_status(self, exporter):
        exporter.clear()
        with traced_span("reload_configuration", {"config.generation": 2}):
            pass

        (span,) = exporter.get_finished_spans()
        assert span.name == "reload_configuration"
        assert span.attributes["config.generation"] == 2
        assert span.status.status_code == StatusCode.OK

    def test_exception_recorded_and_reraised(self, exporter):
        exporter.clear()
        with pytest.raises(RuntimeError):
            with traced_span("admission_review", kind=SpanKind.SERVER):
                raise RuntimeError("decode failed")

        (span,) = exporter.get_finished_spans()
        assert span.kind == SpanKind.SERVER
        assert span.status.status_code == StatusCode.ERROR
        assert span.events[0].name == "exception"

    def test_parent_from_request_headers(self, exporter):
        exporter.clear()
        trace_id = "4bf92f3577b34da6a3ce929d0e0e4736"
        context = extract_trace_context(
            {"traceparent": f"00-{trace_id}-00f067aa0ba902b7-01"}
        )
        with traced_span("admission_review", context=context):
            pass

        (span,) = exporter.get_finished_spans()
        assert format(span.context.trace_id, "032x") == trace_id
