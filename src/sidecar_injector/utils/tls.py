"""
TLS credential loading and certificate hot-swap for the HTTPS listener.

The listener's SSL context never changes. Instead its SNI callback switches
each incoming handshake to the context of the currently active credentials,
so a reload takes effect for every new connection without re-binding the
socket.
"""

import hashlib
import logging
import ssl
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from cryptography import x509

from sidecar_injector.errors import CertificateError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TLSCredentials:
    """A loaded certificate/key pair ready to serve."""

    cert_file: str
    key_file: str
    certificate_pem: bytes = field(repr=False)
    ssl_context: ssl.SSLContext = field(repr=False, compare=False)
    not_valid_after: datetime | None = None

    @property
    def fingerprint(self) -> str:
        """Short SHA-256 fingerprint of the certificate PEM, for logs."""
        return hashlib.sha256(self.certificate_pem).hexdigest()[:16]


def create_server_context() -> ssl.SSLContext:
    """Create a server-side SSL context with the minimum protocol we accept."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    return context


def load_tls_credentials(cert_file: str, key_file: str) -> TLSCredentials:
    """
    Load and validate a PEM certificate/key pair.

    Args:
        cert_file: Path to the PEM certificate (chain)
        key_file: Path to the PEM private key

    Returns:
        Loaded credentials with a ready-to-use SSL context

    Raises:
        CertificateError: If either file is unreadable, malformed, or the key
            does not match the certificate
    """
    try:
        certificate_pem = Path(cert_file).read_bytes()
    except OSError as e:
        raise CertificateError(
            f"cannot read certificate: {e.strerror or e}",
            cert_file=cert_file,
            key_file=key_file,
            cause=e,
        ) from e

    context = create_server_context()
    try:
        context.load_cert_chain(certfile=cert_file, keyfile=key_file)
    except (OSError, ssl.SSLError) as e:
        raise CertificateError(
            f"cannot load key pair: {e}",
            cert_file=cert_file,
            key_file=key_file,
            cause=e,
        ) from e

    try:
        certificate = x509.load_pem_x509_certificate(certificate_pem)
    except ValueError as e:
        raise CertificateError(
            f"cannot parse certificate: {e}",
            cert_file=cert_file,
            key_file=key_file,
            cause=e,
        ) from e

    return TLSCredentials(
        cert_file=cert_file,
        key_file=key_file,
        certificate_pem=certificate_pem,
        ssl_context=context,
        not_valid_after=certificate.not_valid_after_utc,
    )


def build_listener_context(
    initial: TLSCredentials,
    current: Callable[[], TLSCredentials],
) -> ssl.SSLContext:
    """
    Build the SSL context handed to the HTTPS listener.

    Args:
        initial: Credentials served to clients that send no SNI
        current: Returns the active credentials at handshake time

    Returns:
        SSL context whose SNI callback selects the active credentials
    """
    context = create_server_context()
    context.load_cert_chain(certfile=initial.cert_file, keyfile=initial.key_file)

    def select_active_credentials(
        ssl_object: ssl.SSLObject, server_name: str | None, _: ssl.SSLContext
    ) -> None:
        ssl_object.context = current().ssl_context

    context.sni_callback = select_active_credentials
    return context
