"""
Pydantic models for AdmissionReview envelopes.

Both ``admission.k8s.io/v1beta1`` and ``admission.k8s.io/v1`` share the same
request/response shape; the version is carried on the envelope and echoed
back on the response.
"""

import base64
from typing import Any

from pydantic import BaseModel, Field, field_serializer


class GroupVersionKind(BaseModel):
    """Fully-qualified kind of the object under review."""

    group: str = ""
    version: str = ""
    kind: str = ""


class UserInfo(BaseModel):
    """Identity of the user that submitted the request."""

    model_config = {"populate_by_name": True, "extra": "allow"}

    username: str | None = None
    uid: str | None = None
    groups: list[str] | None = None


class AdmissionRequest(BaseModel):
    """The admission request sent by the API server."""

    model_config = {"populate_by_name": True, "extra": "allow"}

    uid: str = Field("", description="Correlation identifier echoed on the response")
    kind: GroupVersionKind | None = None
    namespace: str | None = None
    name: str | None = None
    operation: str | None = Field(None, description="CREATE, UPDATE, DELETE or CONNECT")
    user_info: UserInfo | None = Field(None, alias="userInfo")
    # Any JSON value; the pod is decoded (and rejected) per request, keeping the UID
    object_: Any = Field(None, alias="object", description="The raw target resource")
    dry_run: bool | None = Field(None, alias="dryRun")


class Status(BaseModel):
    """Result details attached to a response (the denial reason)."""

    message: str | None = None
    reason: str | None = None
    code: int | None = None


class AdmissionResponse(BaseModel):
    """The webhook's verdict on an admission request."""

    model_config = {"populate_by_name": True}

    uid: str = ""
    allowed: bool = False
    result: Status | None = None
    patch: bytes | None = Field(None, description="Raw JSON-Patch document")
    patch_type: str | None = Field(None, alias="patchType")

    @field_serializer("patch")
    def _encode_patch(self, patch: bytes | None) -> str | None:
        if patch is None:
            return None
        return base64.b64encode(patch).decode("ascii")


class AdmissionReview(BaseModel):
    """Envelope carrying either a request (inbound) or a response (outbound)."""

    model_config = {"populate_by_name": True}

    api_version: str | None = Field(None, alias="apiVersion")
    kind: str | None = None
    request: AdmissionRequest | None = None
    response: AdmissionResponse | None = None

    def to_json_bytes(self) -> bytes:
        """Serialize for the wire, omitting unset optional fields."""
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
