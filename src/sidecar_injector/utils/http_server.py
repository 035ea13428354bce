"""
Lifecycle of an aiohttp application bound to a single TCP site.

Both the HTTPS admission endpoint and the plain-HTTP metrics endpoint run on
this; subclasses register routes on ``self.app`` and may supply a TLS context.
"""

import logging
import ssl

from aiohttp.web import Application, AppRunner, TCPSite

logger = logging.getLogger(__name__)


class HTTPService:
    """An aiohttp app that can be started and stopped once or many times."""

    name = "HTTP server"

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None

    @property
    def running(self) -> bool:
        return self.site is not None

    @property
    def url_scheme(self) -> str:
        return "http"

    def ssl_context(self) -> ssl.SSLContext | None:
        """TLS context for the listener (None serves plain HTTP)."""
        return None

    async def start(self) -> None:
        """
        Bind the listener and start serving.

        Raises:
            OSError: If the address cannot be bound
        """
        runner = AppRunner(self.app)
        await runner.setup()
        try:
            site = TCPSite(runner, self.host, self.port, ssl_context=self.ssl_context())
            await site.start()
        except Exception as e:
            await runner.cleanup()
            logger.error(f"Failed to start {self.name} on {self.host}:{self.port}: {e}")
            raise

        self.runner, self.site = runner, site
        logger.info(f"{self.name} listening on {self.url_scheme}://{self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop accepting connections and release the listener."""
        site, self.site = self.site, None
        runner, self.runner = self.runner, None
        if runner is None:
            return

        try:
            if site is not None:
                await site.stop()
            await runner.cleanup()
        except Exception as e:
            logger.error(f"Error stopping {self.name}: {e}")
        else:
            logger.info(f"{self.name} stopped")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
