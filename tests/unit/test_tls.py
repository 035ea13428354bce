"""
Unit tests for TLS credential loading and the hot-swapping listener context.

Certificates are minted per test with ``cryptography``; nothing is read from
the repository.
"""

import datetime
import ssl
from unittest.mock import MagicMock

import pytest

from sidecar_injector.errors import CertificateError
from sidecar_injector.utils.tls import (
    build_listener_context,
    create_server_context,
    load_tls_credentials,
)

from .helpers import write_certificate


class TestLoadTLSCredentials:
    """Test load_tls_credentials."""

    def test_valid_pair(self, cert_pair):
        cert_path, key_path = cert_pair
        credentials = load_tls_credentials(str(cert_path), str(key_path))

        assert credentials.cert_file == str(cert_path)
        assert credentials.certificate_pem == cert_path.read_bytes()
        assert isinstance(credentials.ssl_context, ssl.SSLContext)
        assert len(credentials.fingerprint) == 16
        assert credentials.not_valid_after > datetime.datetime.now(datetime.UTC)

    def test_missing_certificate(self, tmp_path):
        with pytest.raises(CertificateError, match="cannot read certificate") as exc_info:
            load_tls_credentials(str(tmp_path / "cert.pem"), str(tmp_path / "key.pem"))
        assert exc_info.value.category == "certificate"

    def test_mismatched_key(self, tmp_path):
        cert_a, _ = write_certificate(tmp_path / "a")
        _, key_b = write_certificate(tmp_path / "b")

        with pytest.raises(CertificateError, match="cannot load key pair"):
            load_tls_credentials(str(cert_a), str(key_b))

    def test_garbage_certificate(self, tmp_path):
        _, key_path = write_certificate(tmp_path)
        bogus = tmp_path / "bogus.pem"
        bogus.write_text("not a certificate")

        with pytest.raises(CertificateError):
            load_tls_credentials(str(bogus), str(key_path))

    def test_fingerprint_changes_with_certificate(self, tmp_path):
        first = load_tls_credentials(*map(str, write_certificate(tmp_path / "1")))
        second = load_tls_credentials(*map(str, write_certificate(tmp_path / "2")))
        assert first.fingerprint != second.fingerprint


class TestListenerContext:
    """Test build_listener_context."""

    def test_minimum_protocol(self):
        assert create_server_context().minimum_version == ssl.TLSVersion.TLSv1_2

    def test_sni_callback_selects_current_credentials(self, tmp_path, tls_credentials):
        rotated = load_tls_credentials(*map(str, write_certificate(tmp_path / "new")))
        active = {"tls": tls_credentials}
        context = build_listener_context(tls_credentials, lambda: active["tls"])

        ssl_object = MagicMock()
        context.sni_callback(ssl_object, "sidecar-injector.default.svc", context)
        assert ssl_object.context is tls_credentials.ssl_context

        active["tls"] = rotated
        context.sni_callback(ssl_object, None, context)
        assert ssl_object.context is rotated.ssl_context
