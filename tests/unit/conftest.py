"""Shared fixtures for sidecar injector unit tests."""

from pathlib import Path

import pytest

from sidecar_injector.models.sidecar import SidecarSpec
from sidecar_injector.utils.sidecar_config import parse_sidecar_spec
from sidecar_injector.utils.tls import TLSCredentials, load_tls_credentials

from .helpers import write_certificate

SIDECAR_CONFIG_YAML = """
containers:
  - name: sidecar-nginx
    image: nginx:1.25.3
    ports:
      - containerPort: 80
  - name: sidecar-agent
    image: registry.example.com/agent
    env:
      - name: POD_NAME
        valueFrom:
          fieldRef:
            fieldPath: metadata.name
volumes:
  - name: nginx-conf
    configMap:
      name: nginx-configmap
imagePullSecrets:
  - name: registry-credentials
"""


@pytest.fixture
def cert_pair(tmp_path) -> tuple[Path, Path]:
    """A valid self-signed certificate/key pair on disk."""
    return write_certificate(tmp_path / "certs")


@pytest.fixture
def tls_credentials(cert_pair) -> TLSCredentials:
    cert_path, key_path = cert_pair
    return load_tls_credentials(str(cert_path), str(key_path))


@pytest.fixture
def sidecar_spec() -> SidecarSpec:
    """Two containers, one volume and one pull secret."""
    return parse_sidecar_spec(SIDECAR_CONFIG_YAML)


@pytest.fixture
def make_pod():
    """Factory for pod documents as carried in admission requests."""

    def _make_pod(
        annotations: dict[str, str] | None = None,
        containers: list[dict] | None = None,
        volumes: list[dict] | None = None,
        image_pull_secrets: list[dict] | None = None,
        name: str = "web-0",
        namespace: str = "default",
    ) -> dict:
        metadata: dict = {"name": name, "namespace": namespace}
        if annotations is not None:
            metadata["annotations"] = annotations
        spec: dict = {}
        if containers is not None:
            spec["containers"] = containers
        if volumes is not None:
            spec["volumes"] = volumes
        if image_pull_secrets is not None:
            spec["imagePullSecrets"] = image_pull_secrets
        return {"apiVersion": "v1", "kind": "Pod", "metadata": metadata, "spec": spec}

    return _make_pod
