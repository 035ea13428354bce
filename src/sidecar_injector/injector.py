#!/usr/bin/env python3
"""
Sidecar Injector - Main entry point for the mutating admission webhook.

The injector serves a single mutation endpoint that adds the configured
sidecar containers, volumes and image pull secrets to pods annotated with
``sidecar-injector-mesher.io/inject: "yes"``. The sidecar configuration and
the serving certificate are hot-reloaded when their files change.

Usage:
    python -m sidecar_injector
    # Or with the console script:
    sidecar-injector

Environment Variables:
    SIDECAR_CONFIG_FILE: YAML/JSON sidecar configuration
    TLS_CERT_FILE / TLS_KEY_FILE: PEM serving certificate and key
    HEALTH_CHECK_FILE / HEALTH_CHECK_INTERVAL_SECONDS: liveness heartbeat
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
"""

import asyncio
import logging
import signal
import sys

from sidecar_injector.errors import InjectorError
from sidecar_injector.models.scheme import build_scheme
from sidecar_injector.observability.health import HealthFileWriter
from sidecar_injector.observability.logging import setup_structured_logging
from sidecar_injector.observability.metrics import MetricsServer, metrics_collector
from sidecar_injector.observability.tracing import setup_tracing, shutdown_tracing
from sidecar_injector.services.reload_coordinator import ReloadCoordinator
from sidecar_injector.services.state import ConfigStore
from sidecar_injector.settings import Settings
from sidecar_injector.settings import settings as injector_settings
from sidecar_injector.utils.file_watcher import FileWatcher
from sidecar_injector.utils.sidecar_config import load_sidecar_spec
from sidecar_injector.utils.tls import load_tls_credentials
from sidecar_injector.webhooks.server import WebhookServer

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings = injector_settings) -> None:
    """Configure structured logging for the injector based on settings."""
    setup_structured_logging(
        log_level=settings.log_level.upper(),
        enable_json_formatting=settings.json_logs,
        correlation_id_enabled=settings.correlation_ids,
        log_health_probes=settings.log_health_probes,
    )


def configure_tracing(settings: Settings = injector_settings) -> None:
    """Configure OpenTelemetry tracing based on settings."""
    setup_tracing(
        enabled=settings.tracing_enabled,
        endpoint=settings.tracing_endpoint,
        service_name=settings.tracing_service_name,
        sample_rate=settings.tracing_sample_rate,
    )


def load_initial_store(settings: Settings) -> ConfigStore:
    """
    Load the startup configuration.

    Raises:
        InjectorError: If the sidecar configuration or the certificate pair
            cannot be loaded (fatal at startup)
    """
    sidecar = load_sidecar_spec(settings.sidecar_config_file)
    tls = load_tls_credentials(settings.cert_file, settings.key_file)
    logger.info(
        f"Loaded sidecar configuration from {settings.sidecar_config_file} "
        f"and certificate {tls.fingerprint} (expires {tls.not_valid_after})"
    )
    store = ConfigStore(sidecar, tls)
    metrics_collector.record_active_config(
        store.current.generation, tls.not_valid_after
    )
    return store


def install_signal_handlers(stop: asyncio.Event) -> None:
    """Set ``stop`` on SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()

    def request_stop(signame: str) -> None:
        logger.info(f"Received {signame}, shutting down")
        stop.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, request_stop, signum.name)


async def run_injector(settings: Settings = injector_settings) -> None:
    """
    Run the webhook and the reload coordinator until a stop signal arrives.

    Raises:
        InjectorError: If the initial configuration cannot be loaded
    """
    logger.info("Starting Sidecar Injector...")

    store = load_initial_store(settings)
    stop = asyncio.Event()
    install_signal_handlers(stop)

    server = WebhookServer(
        store,
        build_scheme(),
        host=settings.webhook_host,
        port=settings.webhook_port,
        path=settings.webhook_path,
    )

    metrics_server: MetricsServer | None = None
    if settings.metrics_enabled:
        metrics_server = MetricsServer(
            port=settings.metrics_port,
            host=settings.metrics_host,
            ready_check=lambda: server.running and not stop.is_set(),
        )
        try:
            await metrics_server.start()
        except Exception as e:
            # Don't fail injector startup if metrics server fails
            logger.warning(f"Continuing without metrics server: {e}")
            metrics_server = None

    health_writer = None
    if settings.health_check_enabled:
        health_writer = HealthFileWriter(settings.health_check_file)

    coordinator = ReloadCoordinator(
        store,
        FileWatcher(
            [settings.sidecar_config_file, settings.cert_file, settings.key_file]
        ),
        sidecar_config_file=settings.sidecar_config_file,
        cert_file=settings.cert_file,
        key_file=settings.key_file,
        debounce_seconds=settings.reload_debounce_seconds,
        health_writer=health_writer,
        health_interval=settings.health_check_interval_seconds,
        server=server,
    )

    try:
        await server.start()
        await coordinator.run(stop)
    finally:
        if metrics_server is not None:
            await metrics_server.stop()
        logger.info("Sidecar Injector stopped")


def main() -> None:
    """
    Main entry point for the injector.

    This function:
    1. Configures logging and tracing
    2. Loads the initial sidecar configuration and certificate
    3. Serves the webhook until SIGINT/SIGTERM
    """
    configure_logging()
    configure_tracing()

    try:
        asyncio.run(run_injector())
    except InjectorError as e:
        logger.error(f"Failed to start Sidecar Injector: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Sidecar Injector failed with error: {e}")
        sys.exit(1)
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    main()
