"""
Liveness heartbeat for the sidecar injector.

An external liveness probe checks that a file is refreshed periodically. The
reload coordinator calls ``HealthFileWriter.write`` on every health tick;
because the coordinator's event loop drives the tick, a stuck loop stops the
heartbeat and the probe restarts the pod.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from sidecar_injector.constants import HEALTH_CHECK_PAYLOAD
from sidecar_injector.observability.metrics import metrics_collector

logger = logging.getLogger(__name__)


@dataclass
class HealthCheckResult:
    """Result of a health check operation."""

    name: str
    status: str  # "healthy", "unhealthy"
    message: str
    duration: float = 0.0
    timestamp: float = 0.0


class HealthFileWriter:
    """Overwrites the health file with a fixed payload."""

    def __init__(self, path: str, payload: bytes = HEALTH_CHECK_PAYLOAD):
        self.path = Path(path)
        self.payload = payload

    def write(self) -> HealthCheckResult:
        """
        Write the heartbeat payload.

        Failures are logged and reported in the result; they never raise.
        """
        start_time = time.time()
        try:
            self.path.write_bytes(self.payload)
        except OSError as e:
            logger.error(f"Health check update of {str(self.path)!r} failed: {e}")
            metrics_collector.record_health_write(success=False)
            return HealthCheckResult(
                name="health_file",
                status="unhealthy",
                message=f"Failed to write health file: {e}",
                duration=time.time() - start_time,
                timestamp=time.time(),
            )

        metrics_collector.record_health_write(success=True)
        return HealthCheckResult(
            name="health_file",
            status="healthy",
            message=f"Wrote {self.path}",
            duration=time.time() - start_time,
            timestamp=time.time(),
        )
