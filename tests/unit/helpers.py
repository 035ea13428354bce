"""Helpers shared by unit tests: self-signed certificates and sentinel configs."""

import datetime
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from sidecar_injector.models.sidecar import SidecarSpec
from sidecar_injector.utils.tls import TLSCredentials, create_server_context


def write_certificate(
    directory: Path,
    common_name: str = "sidecar-injector.default.svc",
    key: ec.EllipticCurvePrivateKey | None = None,
    valid_days: int = 30,
) -> tuple[Path, Path]:
    """Write a self-signed certificate and its key into ``directory``."""
    key = key or ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.UTC)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=1))
        .not_valid_after(now + datetime.timedelta(days=valid_days))
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(common_name)]), critical=False
        )
        .sign(key, hashes.SHA256())
    )

    directory.mkdir(parents=True, exist_ok=True)
    cert_path = directory / "cert.pem"
    key_path = directory / "key.pem"
    cert_path.write_bytes(certificate.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    return cert_path, key_path


def sentinel_pair(label: str) -> tuple[SidecarSpec, TLSCredentials]:
    """A sidecar spec and credentials both tagged with ``label``."""
    sidecar = SidecarSpec.model_validate({"containers": [{"name": label}]})
    tls = TLSCredentials(
        cert_file=f"/certs/{label}.pem",
        key_file=f"/certs/{label}.key",
        certificate_pem=label.encode(),
        ssl_context=create_server_context(),
    )
    return sidecar, tls
