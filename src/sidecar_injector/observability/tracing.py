"""
OpenTelemetry tracing for the sidecar injector.

Tracing is off by default. When enabled, spans are exported over OTLP/gRPC:
- ``admission_review`` (SERVER) per webhook request, parented on the API
  server's ``traceparent`` header when it sends one
- ``reload_configuration`` per hot reload

With tracing off, ``traced_span`` still works against the no-op tracer, so
call sites never check whether tracing is enabled.
"""

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanProcessor,
)
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import Span, SpanKind, Status, StatusCode, Tracer
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

logger = logging.getLogger(__name__)

TRACER_NAME = "sidecar_injector"

AttributeValue = str | bool | int | float


@dataclass
class _TracingState:
    configured: bool = False
    provider: TracerProvider | None = None


_state = _TracingState()
_propagator = TraceContextTextMapPropagator()


def _build_provider(
    endpoint: str,
    service_name: str,
    sample_rate: float,
    insecure: bool,
    use_simple_processor: bool,
) -> TracerProvider:
    # ParentBased follows the API server's sampling decision when it sends one
    provider = TracerProvider(
        resource=Resource.create({"service.name": service_name}),
        sampler=ParentBased(root=TraceIdRatioBased(sample_rate)),
    )
    exporter = OTLPSpanExporter(endpoint=endpoint, insecure=insecure)
    processor: SpanProcessor = (
        SimpleSpanProcessor(exporter)
        if use_simple_processor
        else BatchSpanProcessor(exporter)
    )
    provider.add_span_processor(processor)
    return provider


def setup_tracing(
    enabled: bool = False,
    endpoint: str = "http://localhost:4317",
    service_name: str = "sidecar-injector",
    sample_rate: float = 1.0,
    insecure: bool = True,
    use_simple_processor: bool = False,
) -> TracerProvider | None:
    """
    Install the global tracer provider (once per process).

    Args:
        enabled: Export spans; when False only the no-op tracer is used
        endpoint: OTLP collector endpoint (gRPC)
        service_name: ``service.name`` resource attribute
        sample_rate: Fraction of root spans sampled (0.0-1.0)
        insecure: Connect to the collector without TLS
        use_simple_processor: Export synchronously (tests)

    Returns:
        The installed provider, or None when tracing is disabled
    """
    if _state.configured:
        return _state.provider
    _state.configured = True

    if not enabled:
        logger.info("OpenTelemetry tracing is disabled")
        return None

    _state.provider = _build_provider(
        endpoint, service_name, sample_rate, insecure, use_simple_processor
    )
    trace.set_tracer_provider(_state.provider)
    logger.info(
        f"OpenTelemetry tracing enabled: endpoint={endpoint}, "
        f"service={service_name}, sample_rate={sample_rate}"
    )
    return _state.provider


def shutdown_tracing() -> None:
    """Flush pending spans and forget the provider."""
    provider, _state.provider = _state.provider, None
    _state.configured = False
    if provider is not None:
        logger.info("Flushing and shutting down OpenTelemetry tracing")
        provider.shutdown()


def get_tracer() -> Tracer:
    """Tracer for injector spans (no-op if tracing is disabled)."""
    return trace.get_tracer(TRACER_NAME)


def extract_trace_context(headers: Mapping[str, str]) -> Context:
    """Extract W3C trace context from inbound request headers."""
    return _propagator.extract(headers)


@contextmanager
def traced_span(
    name: str,
    attributes: Mapping[str, AttributeValue] | None = None,
    kind: SpanKind = SpanKind.INTERNAL,
    context: Context | None = None,
) -> Iterator[Span]:
    """
    Run a block inside a span; the span ends OK, or ERROR with the exception.

    Args:
        name: Span name
        attributes: Initial span attributes
        kind: Span kind (SERVER for admission reviews)
        context: Parent context (e.g. extracted from request headers)
    """
    with get_tracer().start_as_current_span(
        name,
        context=context,
        kind=kind,
        attributes=dict(attributes or {}),
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise
        span.set_status(Status(StatusCode.OK))


def is_tracing_enabled() -> bool:
    """True when spans are being exported."""
    return _state.provider is not None
