"""
Pydantic models for the pods carried inside admission requests.

Only the fields the injection decision and patch builder look at are typed;
everything else is preserved as extra data and never interpreted.
"""

from typing import Any

from pydantic import BaseModel, Field


class ObjectMeta(BaseModel):
    """Metadata of the target pod."""

    model_config = {"populate_by_name": True, "extra": "allow"}

    name: str | None = Field(None, description="Pod name (empty for generateName pods)")
    generate_name: str | None = Field(None, alias="generateName")
    namespace: str | None = Field(None, description="Pod namespace")
    annotations: dict[str, str] | None = Field(
        None, description="Annotations on the pod (None when the map is absent)"
    )


class PodSpec(BaseModel):
    """Subset of the pod spec touched by injection."""

    model_config = {"populate_by_name": True, "extra": "allow"}

    containers: list[dict[str, Any]] | None = Field(None)
    volumes: list[dict[str, Any]] | None = Field(None)
    image_pull_secrets: list[dict[str, Any]] | None = Field(
        None, alias="imagePullSecrets"
    )


class Pod(BaseModel):
    """A pod as submitted to the API server."""

    model_config = {"populate_by_name": True, "extra": "allow"}

    api_version: str | None = Field(None, alias="apiVersion")
    kind: str | None = Field(None)
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: PodSpec = Field(default_factory=PodSpec)

    @property
    def display_name(self) -> str:
        """Name for log lines, falling back to generateName for new pods."""
        return self.metadata.name or self.metadata.generate_name or ""
