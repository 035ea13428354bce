"""
Injection decision and JSON-Patch generation.

``decide()`` is a pure function of the target pod and the active sidecar
spec: it performs no I/O and holds no state, so it is safe to call from any
number of concurrent request handlers.

Decision policy (annotation values compared case-insensitively):
- status annotation ``injected``: never mutate again
- inject annotation ``y`` or ``yes``: mutate
- anything else: leave the pod untouched
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from sidecar_injector.constants import (
    CONTAINERS_PATH,
    IMAGE_PULL_SECRETS_PATH,
    INJECT_ANNOTATION,
    INJECT_TRUE_VALUES,
    STATUS_ANNOTATION,
    STATUS_INJECTED,
    VOLUMES_PATH,
)
from sidecar_injector.errors import DeserializationError
from sidecar_injector.models.pod import ObjectMeta, Pod
from sidecar_injector.models.sidecar import SidecarSpec
from sidecar_injector.utils.patch import (
    PatchOperation,
    add_list_items,
    serialize_patch,
    update_annotations,
)

logger = logging.getLogger(__name__)

# Annotations written on every injected pod
INJECTED_ANNOTATIONS: Mapping[str, str] = {STATUS_ANNOTATION: STATUS_INJECTED}


@dataclass(frozen=True)
class InjectionResult:
    """Outcome of one injection decision."""

    allowed: bool
    operations: tuple[PatchOperation, ...] = ()
    patch: bytes | None = None

    @property
    def mutated(self) -> bool:
        return self.patch is not None


def decode_pod(raw: Any) -> Pod:
    """
    Deserialize the target resource of an admission request.

    Args:
        raw: JSON bytes/text, or an already-decoded JSON value (anything
            other than an object is rejected)

    Raises:
        DeserializationError: If the resource is missing or not a valid pod
    """
    if raw is None or raw == b"" or raw == "":
        raise DeserializationError("admission request carries no object")

    try:
        if isinstance(raw, bytes | str):
            return Pod.model_validate_json(raw)
        return Pod.model_validate(raw)
    except PydanticValidationError as e:
        raise DeserializationError(f"could not decode pod: {e}", cause=e) from e
    except json.JSONDecodeError as e:
        raise DeserializationError(f"could not decode pod: {e}", cause=e) from e


def mutation_required(metadata: ObjectMeta) -> bool:
    """Decide from the pod's annotations whether sidecars must be injected."""
    annotations = metadata.annotations or {}
    status = annotations.get(STATUS_ANNOTATION, "")

    if status.lower() == STATUS_INJECTED:
        required = False
    else:
        required = annotations.get(INJECT_ANNOTATION, "").lower() in INJECT_TRUE_VALUES

    logger.info(
        f"Mutation policy for {metadata.namespace}/{metadata.name}: "
        f"status: {status!r} required: {required}",
        extra={
            "namespace": metadata.namespace,
            "resource_name": metadata.name,
            "mutation_required": required,
        },
    )
    return required


def build_patch(
    pod: Pod,
    sidecar: SidecarSpec,
    annotations: Mapping[str, str] = INJECTED_ANNOTATIONS,
) -> list[PatchOperation]:
    """
    Build the ordered patch injecting ``sidecar`` into ``pod``.

    Order: containers, volumes, image pull secrets, annotations.
    """
    operations: list[PatchOperation] = []
    operations += add_list_items(
        pod.spec.containers, sidecar.container_dicts(), CONTAINERS_PATH
    )
    operations += add_list_items(pod.spec.volumes, sidecar.volume_dicts(), VOLUMES_PATH)
    operations += add_list_items(
        pod.spec.image_pull_secrets,
        sidecar.image_pull_secret_dicts(),
        IMAGE_PULL_SECRETS_PATH,
    )
    operations += update_annotations(pod.metadata.annotations, annotations)
    return operations


def decide(raw: Any, sidecar: SidecarSpec) -> InjectionResult:
    """
    Decide whether to inject into a pod and build the patch if so.

    Args:
        raw: The target pod as carried by the admission request
        sidecar: The active sidecar spec (already defaulted at load time)

    Returns:
        Always ``allowed``; carries a patch only when mutation is required

    Raises:
        DeserializationError: If ``raw`` is not a valid pod
    """
    pod = decode_pod(raw)

    if not mutation_required(pod.metadata):
        logger.info(
            f"Skipping mutation for {pod.metadata.namespace}/{pod.display_name} "
            f"due to policy check"
        )
        return InjectionResult(allowed=True)

    operations = build_patch(pod, sidecar)
    patch = serialize_patch(operations)
    logger.debug(f"Response patch: {patch.decode('utf-8')}")
    return InjectionResult(allowed=True, operations=tuple(operations), patch=patch)
