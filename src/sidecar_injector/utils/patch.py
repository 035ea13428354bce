"""
JSON-Patch (RFC 6902) operations for sidecar injection.

Only the two shapes injection needs are produced:
- ``add`` to a list path (the whole list when the target list is empty,
  otherwise one append per item)
- ``add``/``replace`` of annotations

Patch values are a small tagged variant so the shape of every value is known
at construction time and rendered only when the document is serialized.
"""

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from sidecar_injector.constants import (
    ANNOTATIONS_PATH,
    APPEND_MARKER,
    PATCH_OP_ADD,
    PATCH_OP_REPLACE,
)

Scalar = str | int | float | bool


@dataclass(frozen=True)
class ScalarValue:
    """A JSON scalar (used for annotation replacement)."""

    value: Scalar

    def __post_init__(self):
        if self.value is None:
            raise ValueError("patch values must not be null")

    def to_json(self) -> Scalar:
        return self.value


@dataclass(frozen=True)
class SingleValue:
    """A single JSON object (one appended list item or an annotations map)."""

    value: Mapping[str, Any]

    def to_json(self) -> dict[str, Any]:
        return dict(self.value)


@dataclass(frozen=True)
class ListValue:
    """A JSON array of objects (a whole list written into an empty target)."""

    items: tuple[Mapping[str, Any], ...]

    def to_json(self) -> list[dict[str, Any]]:
        return [dict(item) for item in self.items]


PatchValue = ScalarValue | SingleValue | ListValue


@dataclass(frozen=True)
class PatchOperation:
    """One RFC 6902 operation."""

    op: str
    path: str
    value: PatchValue

    def to_dict(self) -> dict[str, Any]:
        # Key order matches the wire format: op, path, value
        return {"op": self.op, "path": self.path, "value": self.value.to_json()}


def escape_pointer_token(token: str) -> str:
    """Escape one JSON Pointer reference token (RFC 6901)."""
    return token.replace("~", "~0").replace("/", "~1")


def add_list_items(
    existing: Sequence[Any] | None,
    incoming: Sequence[Mapping[str, Any]],
    path: str,
) -> list[PatchOperation]:
    """
    Build the operations that append ``incoming`` to the list at ``path``.

    JSON-Patch cannot append to an absent or null array, so an empty target
    receives the entire incoming list in a single ``add`` at ``path``.
    A non-empty target receives one ``add`` per item at ``path/-``, preserving
    incoming order.

    Args:
        existing: The target's current list (None when absent)
        incoming: Items to inject, already in wire form
        path: JSON Pointer of the target list

    Returns:
        Ordered operations; empty when there is nothing to inject
    """
    if not incoming:
        return []

    if not existing:
        return [PatchOperation(PATCH_OP_ADD, path, ListValue(tuple(incoming)))]

    append_path = f"{path}/{APPEND_MARKER}"
    return [
        PatchOperation(PATCH_OP_ADD, append_path, SingleValue(item))
        for item in incoming
    ]


def update_annotations(
    existing: Mapping[str, str] | None,
    updates: Mapping[str, str],
) -> list[PatchOperation]:
    """
    Build the operations that set each annotation in ``updates``.

    Keys are processed in insertion order. A key that is absent (or empty) on
    the target, or a target without an annotations map, yields an ``add`` of a
    single-key map at ``/metadata/annotations``; a key already set yields a
    ``replace`` of that key.
    """
    operations = []
    for key, value in updates.items():
        if not existing or not existing.get(key):
            operations.append(
                PatchOperation(PATCH_OP_ADD, ANNOTATIONS_PATH, SingleValue({key: value}))
            )
        else:
            operations.append(
                PatchOperation(
                    PATCH_OP_REPLACE,
                    f"{ANNOTATIONS_PATH}/{escape_pointer_token(key)}",
                    ScalarValue(value),
                )
            )
    return operations


def serialize_patch(operations: Iterable[PatchOperation]) -> bytes:
    """Render operations as a compact JSON array."""
    return json.dumps(
        [operation.to_dict() for operation in operations],
        separators=(",", ":"),
    ).encode("utf-8")
