"""
Prometheus metrics for the sidecar injector.

All metrics live in one dedicated registry (not the prometheus_client global
one) so tests and embedding applications never see duplicate registrations.
``MetricsServer`` exposes the registry together with the probe endpoints.
"""

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from aiohttp.web import Request, Response, json_response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from sidecar_injector.utils.http_server import HTTPService

logger = logging.getLogger(__name__)

_registry = CollectorRegistry()

# Admission handling
ADMISSION_REQUESTS_TOTAL = Counter(
    "sidecar_injector_admission_requests_total",
    "Total number of admission reviews handled",
    ["operation", "result"],
    registry=_registry,
)

ADMISSION_DURATION = Histogram(
    "sidecar_injector_admission_duration_seconds",
    "Time spent building admission responses",
    ["result"],
    buckets=[0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.5],
    registry=_registry,
)

PATCH_OPERATIONS_TOTAL = Counter(
    "sidecar_injector_patch_operations_total",
    "Total number of JSON-Patch operations emitted",
    ["op"],
    registry=_registry,
)

REJECTED_REQUESTS_TOTAL = Counter(
    "sidecar_injector_rejected_requests_total",
    "Requests rejected before decoding (empty body or wrong content type)",
    ["reason"],
    registry=_registry,
)

# Hot reload
CONFIG_RELOADS_TOTAL = Counter(
    "sidecar_injector_config_reloads_total",
    "Total number of configuration/certificate reload attempts",
    ["result", "category"],
    registry=_registry,
)

CONFIG_RELOAD_LAST_SUCCESS_TIMESTAMP = Gauge(
    "sidecar_injector_config_reload_last_success_timestamp",
    "Unix timestamp of the last successful reload",
    registry=_registry,
)

CONFIG_GENERATION = Gauge(
    "sidecar_injector_config_generation",
    "Generation of the active configuration (increments on each reload)",
    registry=_registry,
)

CERTIFICATE_EXPIRY_TIMESTAMP = Gauge(
    "sidecar_injector_certificate_expiry_timestamp",
    "Unix timestamp when the active serving certificate expires",
    registry=_registry,
)

WATCHER_ERRORS_TOTAL = Counter(
    "sidecar_injector_watcher_errors_total",
    "Total number of filesystem watcher errors",
    registry=_registry,
)

# Liveness heartbeat
HEALTH_FILE_WRITES_TOTAL = Counter(
    "sidecar_injector_health_file_writes_total",
    "Total number of health file writes",
    ["result"],
    registry=_registry,
)


def get_metrics_registry() -> CollectorRegistry:
    """Registry holding every sidecar injector metric."""
    return _registry


class MetricsCollector:
    """Recording helpers so call sites never touch label names directly."""

    @contextmanager
    def track_admission(self, operation: str | None) -> Iterator[dict[str, str]]:
        """
        Time one admission review.

        Yields a mutable dict; set ``result`` in it to label the outcome
        (``injected``, ``skipped`` or ``error``). An exception leaves it at
        ``error``.
        """
        outcome = {"result": "error"}
        start_time = time.monotonic()
        try:
            yield outcome
        finally:
            elapsed = time.monotonic() - start_time
            ADMISSION_REQUESTS_TOTAL.labels(
                operation=operation or "UNKNOWN", result=outcome["result"]
            ).inc()
            ADMISSION_DURATION.labels(result=outcome["result"]).observe(elapsed)

    def record_patch_operations(self, ops: list[str]) -> None:
        for op in ops:
            PATCH_OPERATIONS_TOTAL.labels(op=op).inc()

    def record_rejected_request(self, reason: str) -> None:
        REJECTED_REQUESTS_TOTAL.labels(reason=reason).inc()

    def record_reload_success(
        self, generation: int, certificate_expiry: datetime | None
    ) -> None:
        CONFIG_RELOADS_TOTAL.labels(result="success", category="none").inc()
        CONFIG_RELOAD_LAST_SUCCESS_TIMESTAMP.set_to_current_time()
        self.record_active_config(generation, certificate_expiry)

    def record_reload_failure(self, category: str) -> None:
        CONFIG_RELOADS_TOTAL.labels(result="failure", category=category).inc()

    def record_active_config(
        self, generation: int, certificate_expiry: datetime | None
    ) -> None:
        """Publish the generation and certificate expiry now being served."""
        CONFIG_GENERATION.set(generation)
        if certificate_expiry is not None:
            CERTIFICATE_EXPIRY_TIMESTAMP.set(certificate_expiry.timestamp())

    def record_watcher_error(self) -> None:
        WATCHER_ERRORS_TOTAL.inc()

    def record_health_write(self, success: bool) -> None:
        HEALTH_FILE_WRITES_TOTAL.labels(
            result="success" if success else "failure"
        ).inc()


class MetricsServer(HTTPService):
    """Plain-HTTP server for Prometheus scraping and kubelet probes."""

    name = "Metrics server"

    def __init__(
        self,
        port: int = 8081,
        host: str = "0.0.0.0",
        ready_check: Callable[[], bool] | None = None,
    ):
        """
        Initialize metrics server.

        Args:
            port: Port to serve metrics on
            host: Host interface to bind to
            ready_check: Returns True once the webhook can serve admissions
        """
        super().__init__(host, port)
        self.ready_check = ready_check
        self.app.router.add_get("/metrics", self._metrics_handler)
        self.app.router.add_get("/ready", self._ready_handler)
        self.app.router.add_get("/healthz", self._healthz_handler)

    async def _metrics_handler(self, request: Request) -> Response:
        try:
            payload = generate_latest(get_metrics_registry())
        except Exception as e:
            logger.error(f"Failed to render metrics: {e}")
            return Response(
                text=f"Error generating metrics: {type(e).__name__}", status=500
            )
        # CONTENT_TYPE_LATEST carries a charset, which content_type= rejects
        return Response(body=payload, headers={"Content-Type": CONTENT_TYPE_LATEST})

    async def _ready_handler(self, request: Request) -> Response:
        """Readiness: 503 until the webhook listener is up, and again on shutdown."""
        ready = self.ready_check is None or self.ready_check()
        return json_response(
            {"status": "ready" if ready else "not_ready", "timestamp": time.time()},
            status=200 if ready else 503,
        )

    async def _healthz_handler(self, request: Request) -> Response:
        return Response(text="ok")


# Global metrics collector instance
metrics_collector = MetricsCollector()
