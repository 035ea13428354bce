"""
Hot-reload coordinator.

A single asyncio task owns every change to the active configuration. It
multiplexes four event sources onto one queue:
- filesystem events from the watcher (created/modified arm the debounce timer)
- the debounce timer (fires one reload per burst of changes)
- the optional health timer (rewrites the liveness file)
- the stop signal (orderly shutdown)

A reload loads the sidecar spec and the certificate pair before taking the
write lock; only when both load cleanly are they swapped in together. Any
failure keeps the previous pair serving until the next filesystem event.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from enum import Enum
from typing import Any, Protocol

from sidecar_injector.errors import InjectorError
from sidecar_injector.models.sidecar import SidecarSpec
from sidecar_injector.observability.health import HealthFileWriter
from sidecar_injector.observability.metrics import metrics_collector
from sidecar_injector.observability.tracing import traced_span
from sidecar_injector.services.state import ConfigStore
from sidecar_injector.utils.file_watcher import FileEvent, FileEventKind
from sidecar_injector.utils.sidecar_config import load_sidecar_spec
from sidecar_injector.utils.tls import TLSCredentials, load_tls_credentials

logger = logging.getLogger(__name__)


class EventSource(Protocol):
    """Anything producing ``FileEvent``s that can be closed."""

    def events(self) -> AsyncIterator[FileEvent]: ...

    def close(self) -> None: ...


class ServingTransport(Protocol):
    """The HTTPS server released on shutdown."""

    async def stop(self) -> None: ...


class _Signal(Enum):
    FILE = "file"
    RELOAD = "reload"
    HEALTH = "health"
    STOP = "stop"


class ReloadCoordinator:
    """Owns the reload loop for the sidecar spec and TLS credentials."""

    def __init__(
        self,
        store: ConfigStore,
        watcher: EventSource,
        sidecar_config_file: str,
        cert_file: str,
        key_file: str,
        debounce_seconds: float,
        health_writer: HealthFileWriter | None = None,
        health_interval: float = 0.0,
        server: ServingTransport | None = None,
        config_loader: Callable[[str], SidecarSpec] = load_sidecar_spec,
        credentials_loader: Callable[
            [str, str], TLSCredentials
        ] = load_tls_credentials,
    ):
        """
        Initialize the coordinator.

        Args:
            store: Holder of the active configuration
            watcher: Source of filesystem events for the watched directories
            sidecar_config_file: Path of the sidecar configuration file
            cert_file: Path of the PEM certificate
            key_file: Path of the PEM private key
            debounce_seconds: Quiet period after the last change before reloading
            health_writer: Liveness file writer (heartbeat disabled when None)
            health_interval: Seconds between heartbeats (disabled when <= 0)
            server: Serving transport stopped on shutdown
            config_loader: Loads a sidecar spec from a path
            credentials_loader: Loads a certificate/key pair
        """
        self.store = store
        self.watcher = watcher
        self.sidecar_config_file = sidecar_config_file
        self.cert_file = cert_file
        self.key_file = key_file
        self.debounce_seconds = debounce_seconds
        self.health_writer = health_writer
        self.health_interval = health_interval
        self.server = server
        self._config_loader = config_loader
        self._credentials_loader = credentials_loader

        self.reload_attempts = 0
        self._queue: asyncio.Queue[tuple[_Signal, Any]] = asyncio.Queue()
        self._debounce: asyncio.TimerHandle | None = None
        # Identifies the armed timer; a RELOAD carrying an older value is stale
        self._debounce_serial = 0

    @property
    def health_enabled(self) -> bool:
        return self.health_writer is not None and self.health_interval > 0

    async def run(self, stop: asyncio.Event) -> None:
        """
        Process events until ``stop`` is set.

        On return the debounce timer is cancelled and both the watcher and the
        serving transport have been released.
        """
        feeders = [
            asyncio.create_task(self._pump_watcher(), name="reload-watcher"),
            asyncio.create_task(self._wait_for_stop(stop), name="reload-stop"),
        ]
        if self.health_enabled:
            feeders.append(
                asyncio.create_task(self._tick_health(), name="reload-health")
            )

        heartbeat = (
            f"every {self.health_interval}s" if self.health_enabled else "disabled"
        )
        logger.info(
            f"Reload coordinator started (debounce {self.debounce_seconds}s, "
            f"heartbeat {heartbeat})"
        )

        try:
            while True:
                signal, payload = await self._queue.get()

                if signal is _Signal.STOP:
                    logger.info("Stop signal received, shutting down reload loop")
                    break
                if signal is _Signal.FILE:
                    self._handle_file_event(payload)
                elif signal is _Signal.RELOAD:
                    if payload != self._debounce_serial:
                        logger.debug("Skipping superseded debounce timer")
                        continue
                    self._debounce = None
                    await self.reload()
                elif signal is _Signal.HEALTH:
                    self.health_writer.write()
        finally:
            if self._debounce is not None:
                self._debounce.cancel()
                self._debounce = None

            self.watcher.close()
            for task in feeders:
                task.cancel()
            await asyncio.gather(*feeders, return_exceptions=True)

            if self.server is not None:
                await self.server.stop()

            logger.info("Reload coordinator stopped")

    async def reload(self) -> bool:
        """
        Reload the sidecar spec and certificate pair, all or nothing.

        Returns:
            True if a new configuration was installed, False if the previous
            one was kept
        """
        self.reload_attempts += 1
        previous = self.store.current
        start_time = time.monotonic()

        with traced_span(
            "reload_configuration",
            {
                "reload.attempt": self.reload_attempts,
                "config.generation": previous.generation,
            },
        ) as span:
            try:
                sidecar = await asyncio.to_thread(
                    self._config_loader, self.sidecar_config_file
                )
                tls = await asyncio.to_thread(
                    self._credentials_loader, self.cert_file, self.key_file
                )
            except InjectorError as e:
                logger.error(
                    f"Reload failed, keeping configuration generation "
                    f"{previous.generation}: {e}",
                    extra={"error_type": e.category, "generation": previous.generation},
                )
                metrics_collector.record_reload_failure(e.category)
                span.set_attribute("reload.result", "failure")
                return False
            except Exception as e:
                logger.exception(
                    f"Unexpected error during reload, keeping configuration "
                    f"generation {previous.generation}: {e}",
                    extra={"error_type": type(e).__name__},
                )
                metrics_collector.record_reload_failure("unexpected")
                span.set_attribute("reload.result", "failure")
                return False

            active = await self.store.swap(sidecar, tls)
            span.set_attribute("reload.result", "success")
            span.set_attribute("config.generation", active.generation)

        logger.info(
            f"Reloaded configuration generation {active.generation}: "
            f"{len(sidecar.containers)} containers, {len(sidecar.volumes)} volumes, "
            f"{len(sidecar.image_pull_secrets)} image pull secrets, "
            f"certificate {tls.fingerprint}",
            extra={
                "generation": active.generation,
                "duration": time.monotonic() - start_time,
            },
        )
        metrics_collector.record_reload_success(active.generation, tls.not_valid_after)
        return True

    def _handle_file_event(self, event: FileEvent) -> None:
        if event.kind is FileEventKind.ERROR:
            logger.error(f"Filesystem watcher error: {event.error}")
            metrics_collector.record_watcher_error()
            return

        if not event.triggers_reload:
            logger.info(f"Ignoring {event.kind.value} event for {event.path}")
            return

        logger.debug(
            f"File {event.kind.value}: {event.path}",
            extra={"event": event.kind.value, "path": event.path},
        )
        self._arm_debounce()

    def _arm_debounce(self) -> None:
        if self._debounce is not None:
            self._debounce.cancel()
        self._debounce_serial += 1
        loop = asyncio.get_running_loop()
        self._debounce = loop.call_later(
            self.debounce_seconds,
            self._queue.put_nowait,
            (_Signal.RELOAD, self._debounce_serial),
        )

    async def _pump_watcher(self) -> None:
        async for event in self.watcher.events():
            self._queue.put_nowait((_Signal.FILE, event))

    async def _wait_for_stop(self, stop: asyncio.Event) -> None:
        await stop.wait()
        self._queue.put_nowait((_Signal.STOP, None))

    async def _tick_health(self) -> None:
        while True:
            await asyncio.sleep(self.health_interval)
            self._queue.put_nowait((_Signal.HEALTH, None))
