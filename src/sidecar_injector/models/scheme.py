"""
Explicit type registry used to decode admission envelopes.

The scheme maps ``(apiVersion, kind)`` pairs to the pydantic model that
decodes them. It is built once at startup by ``build_scheme()`` and handed to
the webhook; it is read-only after construction.
"""

import json
from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from sidecar_injector.constants import (
    ADMISSION_REVIEW_KIND,
    ADMISSION_V1,
    ADMISSION_V1BETA1,
)
from sidecar_injector.errors import DeserializationError
from sidecar_injector.models.admission import AdmissionReview

GroupVersionKey = tuple[str, str]


class Scheme:
    """Immutable registry of decodable ``(apiVersion, kind)`` types."""

    def __init__(self, types: Mapping[GroupVersionKey, type[BaseModel]]):
        self._types: Mapping[GroupVersionKey, type[BaseModel]] = MappingProxyType(
            dict(types)
        )

    def __contains__(self, key: object) -> bool:
        return key in self._types

    @property
    def known_types(self) -> frozenset[GroupVersionKey]:
        return frozenset(self._types)

    def decode(self, data: bytes, default: GroupVersionKey) -> BaseModel:
        """
        Decode a JSON document into its registered model.

        The document's own ``apiVersion``/``kind`` select the model. When the
        document carries neither, ``default`` is used instead.

        Args:
            data: Raw JSON bytes
            default: ``(apiVersion, kind)`` assumed for untyped documents

        Returns:
            The decoded model instance

        Raises:
            DeserializationError: If the bytes are not a JSON object, the type
                is not registered, or the object does not match its model
        """
        try:
            document = json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DeserializationError(
                f"couldn't decode JSON document: {e}", cause=e
            ) from e

        if not isinstance(document, dict):
            raise DeserializationError(
                f"expected a JSON object, got {type(document).__name__}"
            )

        api_version = document.get("apiVersion") or ""
        kind = document.get("kind") or ""
        if not isinstance(api_version, str) or not isinstance(kind, str):
            raise DeserializationError(
                f"apiVersion and kind must be strings, got {api_version!r} and {kind!r}"
            )
        if not api_version and not kind:
            api_version, kind = default

        model = self._types.get((api_version, kind))
        if model is None:
            raise DeserializationError(
                f'no kind "{kind}" is registered for version "{api_version}"'
            )

        try:
            return model.model_validate(document)
        except PydanticValidationError as e:
            raise DeserializationError(
                f"invalid {kind} ({api_version}): {e}", cause=e
            ) from e


def build_scheme() -> Scheme:
    """Build the scheme with every admission envelope version served."""
    return Scheme(
        {
            (ADMISSION_V1BETA1, ADMISSION_REVIEW_KIND): AdmissionReview,
            (ADMISSION_V1, ADMISSION_REVIEW_KIND): AdmissionReview,
        }
    )
