"""
Kubernetes core/v1 defaulting for injected containers and volumes.

The API server applies these defaults to every container and volume of a pod
it persists. Applying them to the sidecar material up front keeps injected
entries identical to what the API server stores, so controllers comparing the
two never see a spurious difference.

All functions work on plain dicts in wire (camelCase) form, return a new dict,
and are idempotent.
"""

import copy
from typing import Any

DEFAULT_TERMINATION_MESSAGE_PATH = "/dev/termination-log"
DEFAULT_TERMINATION_MESSAGE_POLICY = "File"
DEFAULT_PROTOCOL = "TCP"
DEFAULT_FIELD_REF_API_VERSION = "v1"
DEFAULT_HTTP_GET_PATH = "/"
DEFAULT_HTTP_GET_SCHEME = "HTTP"
DEFAULT_VOLUME_MODE = 0o644  # 420
DEFAULT_SERVICE_ACCOUNT_TOKEN_EXPIRATION = 60 * 60

PULL_ALWAYS = "Always"
PULL_IF_NOT_PRESENT = "IfNotPresent"

PROBE_DEFAULTS = {
    "timeoutSeconds": 1,
    "periodSeconds": 10,
    "successThreshold": 1,
    "failureThreshold": 3,
}

# Every volume source a Volume may carry; a volume with none becomes emptyDir
VOLUME_SOURCES = frozenset(
    {
        "hostPath",
        "emptyDir",
        "gcePersistentDisk",
        "awsElasticBlockStore",
        "gitRepo",
        "secret",
        "nfs",
        "iscsi",
        "glusterfs",
        "persistentVolumeClaim",
        "rbd",
        "flexVolume",
        "cinder",
        "cephfs",
        "flocker",
        "downwardAPI",
        "fc",
        "azureFile",
        "configMap",
        "vsphereVolume",
        "quobyte",
        "azureDisk",
        "photonPersistentDisk",
        "projected",
        "portworxVolume",
        "scaleIO",
        "storageos",
        "csi",
        "ephemeral",
        "image",
    }
)


def _set_if_zero(obj: dict[str, Any], key: str, value: Any) -> None:
    """Default a non-pointer field: Go zero values ("" / 0) count as unset."""
    if obj.get(key) in (None, "", 0):
        obj[key] = value


def _set_if_missing(obj: dict[str, Any], key: str, value: Any) -> None:
    """Default a pointer field: only an absent or null value counts as unset."""
    if obj.get(key) is None:
        obj[key] = value


def _image_tag(image: str) -> str:
    """Return the tag of an image reference ("latest" when neither tag nor digest)."""
    name, _, digest = image.partition("@")
    last_segment = name.rsplit("/", 1)[-1]
    if ":" in last_segment:
        return last_segment.rsplit(":", 1)[1]
    return "" if digest else "latest"


def _default_field_ref(holder: dict[str, Any] | None) -> None:
    if isinstance(holder, dict) and isinstance(holder.get("fieldRef"), dict):
        _set_if_zero(holder["fieldRef"], "apiVersion", DEFAULT_FIELD_REF_API_VERSION)


def _default_http_get(handler: dict[str, Any] | None) -> None:
    if isinstance(handler, dict) and isinstance(handler.get("httpGet"), dict):
        _set_if_zero(handler["httpGet"], "path", DEFAULT_HTTP_GET_PATH)
        _set_if_zero(handler["httpGet"], "scheme", DEFAULT_HTTP_GET_SCHEME)


def _default_probe(probe: dict[str, Any] | None) -> None:
    if not isinstance(probe, dict):
        return
    for key, value in PROBE_DEFAULTS.items():
        _set_if_zero(probe, key, value)
    _default_http_get(probe)


def _default_resources(resources: dict[str, Any] | None) -> None:
    # Requests default to limits for every resource that has a limit
    if not isinstance(resources, dict) or not resources.get("limits"):
        return
    requests = resources.get("requests") or {}
    for resource_name, quantity in resources["limits"].items():
        requests.setdefault(resource_name, quantity)
    resources["requests"] = requests


def default_container(container: dict[str, Any]) -> dict[str, Any]:
    """Apply core/v1 container defaults to a copy of ``container``."""
    result = copy.deepcopy(container)

    image = result.get("image")
    if image and not result.get("imagePullPolicy"):
        result["imagePullPolicy"] = (
            PULL_ALWAYS if _image_tag(image) == "latest" else PULL_IF_NOT_PRESENT
        )
    _set_if_zero(result, "terminationMessagePath", DEFAULT_TERMINATION_MESSAGE_PATH)
    _set_if_zero(
        result, "terminationMessagePolicy", DEFAULT_TERMINATION_MESSAGE_POLICY
    )

    for port in result.get("ports") or []:
        if isinstance(port, dict):
            _set_if_zero(port, "protocol", DEFAULT_PROTOCOL)

    for env_var in result.get("env") or []:
        if isinstance(env_var, dict):
            _default_field_ref(env_var.get("valueFrom"))

    for probe_key in ("livenessProbe", "readinessProbe", "startupProbe"):
        _default_probe(result.get(probe_key))

    lifecycle = result.get("lifecycle")
    if isinstance(lifecycle, dict):
        _default_http_get(lifecycle.get("postStart"))
        _default_http_get(lifecycle.get("preStop"))

    _default_resources(result.get("resources"))
    return result


def _default_items_field_refs(source: dict[str, Any]) -> None:
    for item in source.get("items") or []:
        _default_field_ref(item)


def default_volume(volume: dict[str, Any]) -> dict[str, Any]:
    """Apply core/v1 volume defaults to a copy of ``volume``."""
    result = copy.deepcopy(volume)

    if not any(result.get(source) is not None for source in VOLUME_SOURCES):
        result["emptyDir"] = {}

    for mode_source in ("secret", "configMap", "downwardAPI", "projected"):
        source = result.get(mode_source)
        if isinstance(source, dict):
            _set_if_missing(source, "defaultMode", DEFAULT_VOLUME_MODE)

    downward_api = result.get("downwardAPI")
    if isinstance(downward_api, dict):
        _default_items_field_refs(downward_api)

    projected = result.get("projected")
    if isinstance(projected, dict):
        for projection in projected.get("sources") or []:
            if not isinstance(projection, dict):
                continue
            if isinstance(projection.get("downwardAPI"), dict):
                _default_items_field_refs(projection["downwardAPI"])
            if isinstance(projection.get("serviceAccountToken"), dict):
                _set_if_missing(
                    projection["serviceAccountToken"],
                    "expirationSeconds",
                    DEFAULT_SERVICE_ACCOUNT_TOKEN_EXPIRATION,
                )

    host_path = result.get("hostPath")
    if isinstance(host_path, dict):
        _set_if_missing(host_path, "type", "")

    iscsi = result.get("iscsi")
    if isinstance(iscsi, dict):
        _set_if_zero(iscsi, "iscsiInterface", "default")

    rbd = result.get("rbd")
    if isinstance(rbd, dict):
        _set_if_zero(rbd, "pool", "rbd")
        _set_if_zero(rbd, "user", "admin")
        _set_if_zero(rbd, "keyring", "/etc/ceph/keyring")

    azure_disk = result.get("azureDisk")
    if isinstance(azure_disk, dict):
        _set_if_missing(azure_disk, "cachingMode", "ReadWrite")
        _set_if_missing(azure_disk, "kind", "Shared")
        _set_if_missing(azure_disk, "fsType", "ext4")
        _set_if_missing(azure_disk, "readOnly", False)

    scale_io = result.get("scaleIO")
    if isinstance(scale_io, dict):
        _set_if_zero(scale_io, "storageMode", "ThinProvisioned")
        _set_if_zero(scale_io, "fsType", "xfs")

    return result
