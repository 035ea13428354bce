"""
HTTPS server hosting the mutation webhook.

The listener is bound once at startup. Certificate reloads are picked up per
handshake through the listener context's SNI callback, which reads the
credentials of the currently active configuration.
"""

import ssl

from sidecar_injector.constants import DEFAULT_WEBHOOK_PATH
from sidecar_injector.models.scheme import Scheme
from sidecar_injector.services.state import ConfigStore
from sidecar_injector.utils.http_server import HTTPService
from sidecar_injector.utils.tls import build_listener_context
from sidecar_injector.webhooks.mutation import MutationWebhook


class WebhookServer(HTTPService):
    """TLS-terminating aiohttp server for admission reviews."""

    name = "Webhook server"

    def __init__(
        self,
        store: ConfigStore,
        scheme: Scheme,
        host: str = "0.0.0.0",
        port: int = 8443,
        path: str = DEFAULT_WEBHOOK_PATH,
    ):
        """
        Initialize webhook server.

        Args:
            store: Holder of the active configuration
            scheme: Registry used to decode review envelopes
            host: Host interface to bind to
            port: Port to serve HTTPS on
            path: Path of the mutation endpoint
        """
        super().__init__(host, port)
        self.store = store
        self.webhook = MutationWebhook(store, scheme, path)
        self.webhook.register(self.app)

    @property
    def url_scheme(self) -> str:
        return "https"

    def ssl_context(self) -> ssl.SSLContext:
        # Clients without SNI keep the certificate active at startup
        return build_listener_context(
            self.store.current.tls, lambda: self.store.current.tls
        )
