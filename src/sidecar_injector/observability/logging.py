"""
Structured logging utilities for the sidecar injector.

While an admission review is processed the correlation ID is the review's
UID, so every line logged for one request (policy decision, patch, errors)
can be grepped together. Lines logged outside a request carry ``-``.

Any ``extra=`` attribute passed to a logging call is emitted as a top-level
JSON key by ``StructuredFormatter``.
"""

import json
import logging
import re
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime

NO_CORRELATION_ID = "-"

# Admission UID of the request being handled by the current task
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

# Access-log request lines for probe and scrape endpoints
HEALTH_PROBE_PATHS = ("/healthz", "/ready", "/metrics")
_PROBE_REQUEST = re.compile(
    r'"(?:GET|HEAD) (?:' + "|".join(map(re.escape, HEALTH_PROBE_PATHS)) + r")[ ?]"
)

# Attributes every LogRecord has; anything else came from ``extra=``
_RECORD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "correlation_id",
    "taskName",
}

# Chatty third-party loggers kept at WARNING
QUIET_LOGGERS = ("watchdog", "aiohttp.access", "aiohttp.server", "aiohttp.web")


class HealthProbeFilter(logging.Filter):
    """
    Drops aiohttp access-log lines for probe and metrics requests.

    Kubelet probes and Prometheus scrapes hit these endpoints every few
    seconds; admission requests are still logged.
    """

    def __init__(self, suppress_health_logs: bool = True):
        super().__init__()
        self.suppress_health_logs = suppress_health_logs

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.suppress_health_logs:
            return True
        return _PROBE_REQUEST.search(record.getMessage()) is None


class CorrelationIDFilter(logging.Filter):
    """Stamps each record with the current admission UID (or ``-``)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or NO_CORRELATION_ID
        return True


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line for log aggregation systems.

    The timestamp is the record's creation time, not the time it was
    formatted.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
        }
        log_data.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES
        )
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def generate_correlation_id() -> str:
    """Short random ID for requests that carry no UID."""
    return uuid.uuid4().hex[:8]


def set_correlation_id(corr_id: str) -> str:
    """
    Set the correlation ID for the current task.

    aiohttp runs each request in its own task, so the value never leaks
    between concurrent requests.

    Returns:
        The correlation ID that was set
    """
    correlation_id.set(corr_id)
    return corr_id


def get_correlation_id() -> str:
    """Get the current correlation ID, or empty string if none set."""
    return correlation_id.get()


def _build_formatter(json_output: bool, with_correlation: bool) -> logging.Formatter:
    if json_output:
        return StructuredFormatter()
    fields = ["%(asctime)s", "%(name)s", "%(levelname)s", "%(message)s"]
    if with_correlation:
        fields.insert(1, "%(correlation_id)s")
    return logging.Formatter(" - ".join(fields))


def setup_structured_logging(
    log_level: str = "INFO",
    enable_json_formatting: bool = True,
    correlation_id_enabled: bool = True,
    log_health_probes: bool = False,
) -> None:
    """
    Replace the root logger's handlers with a single stderr handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_json_formatting: Emit JSON lines instead of plain text
        correlation_id_enabled: Stamp records with the admission UID
        log_health_probes: Keep access-log lines for probe endpoints
    """
    handler = logging.StreamHandler()
    handler.setFormatter(
        _build_formatter(enable_json_formatting, correlation_id_enabled)
    )
    if correlation_id_enabled:
        handler.addFilter(CorrelationIDFilter())
    handler.addFilter(HealthProbeFilter(suppress_health_logs=not log_health_probes))

    root_logger = logging.getLogger()
    root_logger.handlers[:] = [handler]
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
