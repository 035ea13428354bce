"""
Shared, hot-swappable webhook state.

The sidecar spec and the TLS credentials are held together in one frozen
``ActiveConfig`` value. Replacing that single value is the only way state
changes, so a reader can never pair a spec from one reload with a
certificate from another.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sidecar_injector.models.sidecar import SidecarSpec
from sidecar_injector.utils.rwlock import ReadWriteLock
from sidecar_injector.utils.tls import TLSCredentials

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActiveConfig:
    """The sidecar spec and TLS credentials currently being served."""

    sidecar: SidecarSpec
    tls: TLSCredentials
    generation: int = 0


class ConfigStore:
    """
    Holder of the active configuration.

    Request handlers read under ``read()``; the reload coordinator, the only
    writer, replaces the configuration with ``swap()``.
    """

    def __init__(self, sidecar: SidecarSpec, tls: TLSCredentials):
        self._active = ActiveConfig(sidecar=sidecar, tls=tls)
        self._lock = ReadWriteLock()

    @property
    def current(self) -> ActiveConfig:
        """Lock-free snapshot, for synchronous callers such as the TLS handshake."""
        return self._active

    @asynccontextmanager
    async def read(self) -> AsyncIterator[ActiveConfig]:
        async with self._lock.read():
            yield self._active

    async def swap(self, sidecar: SidecarSpec, tls: TLSCredentials) -> ActiveConfig:
        """
        Atomically install a new spec/credentials pair.

        Returns:
            The newly active configuration
        """
        async with self._lock.write():
            self._active = ActiveConfig(
                sidecar=sidecar, tls=tls, generation=self._active.generation + 1
            )
            return self._active
