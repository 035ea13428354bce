"""
Observability utilities for the sidecar injector.

This module provides metrics, the liveness heartbeat, tracing and
structured logging capabilities for production monitoring and troubleshooting.
"""

from .health import HealthFileWriter
from .logging import setup_structured_logging
from .metrics import MetricsServer, get_metrics_registry

__all__ = [
    "MetricsServer",
    "get_metrics_registry",
    "HealthFileWriter",
    "setup_structured_logging",
]
