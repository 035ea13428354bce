"""
Pydantic models for the injectable sidecar material.

A ``SidecarSpec`` is loaded from the sidecar configuration file and replaced
wholesale on every reload. Container and volume entries keep every field
Kubernetes understands (``extra="allow"``) and receive the core/v1 defaults at
validation time, so a spec is normalized exactly once when it is built.
"""

from typing import Any

from pydantic import BaseModel, Field, model_validator

from sidecar_injector.utils.defaults import default_container, default_volume


class Container(BaseModel):
    """A container to inject, in Kubernetes ``core/v1`` Container shape."""

    model_config = {"populate_by_name": True, "extra": "allow", "frozen": True}

    name: str = Field(..., description="Container name (unique within the pod)")
    image: str | None = Field(None, description="Container image reference")

    @model_validator(mode="before")
    @classmethod
    def apply_pod_defaults(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return default_container(data)
        return data


class Volume(BaseModel):
    """A volume to inject, in Kubernetes ``core/v1`` Volume shape."""

    model_config = {"populate_by_name": True, "extra": "allow", "frozen": True}

    name: str = Field(..., description="Volume name (unique within the pod)")

    @model_validator(mode="before")
    @classmethod
    def apply_pod_defaults(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return default_volume(data)
        return data


class LocalObjectReference(BaseModel):
    """Reference to an image pull secret in the pod's namespace."""

    model_config = {"populate_by_name": True, "frozen": True}

    name: str | None = Field(None, description="Name of the referenced secret")


class SidecarSpec(BaseModel):
    """
    Sidecar material injected into opted-in pods.

    Immutable once loaded; the reload coordinator swaps whole instances.
    """

    model_config = {"populate_by_name": True, "frozen": True, "extra": "ignore"}

    containers: tuple[Container, ...] = Field(
        default=(), description="Containers appended to the pod"
    )
    volumes: tuple[Volume, ...] = Field(
        default=(), description="Volumes appended to the pod"
    )
    image_pull_secrets: tuple[LocalObjectReference, ...] = Field(
        default=(),
        alias="imagePullSecrets",
        description="Image pull secrets appended to the pod",
    )

    def container_dicts(self) -> list[dict[str, Any]]:
        """Containers in wire (camelCase) form."""
        return [_dump(container) for container in self.containers]

    def volume_dicts(self) -> list[dict[str, Any]]:
        """Volumes in wire (camelCase) form."""
        return [_dump(volume) for volume in self.volumes]

    def image_pull_secret_dicts(self) -> list[dict[str, Any]]:
        """Image pull secret references in wire (camelCase) form."""
        return [_dump(secret) for secret in self.image_pull_secrets]


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)
