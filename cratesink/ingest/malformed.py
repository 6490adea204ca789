"""
Malformed-fragment handling.

Values that cannot be stored in the physical column assigned to them are
wrapped in a PartialValue: the normalized form goes into the document
written to the table, while the original is preserved verbatim in a
parallel malformed-fragment document.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Tuple

from cratesink.schema.errors import InvalidSchemaShape
from cratesink.schema.types import (
    ArrayType,
    FixedBitsType,
    ObjectType,
    PrimitiveKind,
    PrimitiveType,
    SchemaType,
    UnionType,
)


@dataclass(frozen=True, eq=False)
class PartialValue:
    """A value that could not be cast losslessly to its column type."""
    normalized: Any
    original: Any

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, PartialValue):
            return NotImplemented
        return self.normalized == other.normalized and self.original == other.original

    def __hash__(self) -> int:
        return hash((_fingerprint(self.normalized), _fingerprint(self.original)))


def _fingerprint(value: Any) -> Any:
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, sort_keys=True, default=str)
    return value


def try_cast(value: Any, target: SchemaType) -> Any:
    """
    Cast a value to a target type.

    Args:
        value: Normalized value
        target: Type of the physical column the value is written to

    Returns:
        The value (containers are rebuilt with their items cast), or a
        PartialValue when the value does not fit the target type
    """
    if value is None or isinstance(value, PartialValue):
        return value

    # the bare column of a collided slot holds the first observed type
    if isinstance(target, UnionType):
        return try_cast(value, target.first)

    if isinstance(target, ArrayType):
        if isinstance(value, (list, tuple)):
            return [try_cast(item, target.element) for item in value]
        return PartialValue(None, value)

    if isinstance(target, ObjectType):
        if isinstance(value, dict):
            return {
                key: try_cast(item, target.fields[key]) if key in target.fields else item
                for key, item in value.items()
            }
        return PartialValue(None, value)

    if isinstance(target, FixedBitsType):
        if isinstance(value, str) and len(value) == target.size and set(value) <= {"0", "1"}:
            return value
        return PartialValue(None, value)

    if isinstance(target, PrimitiveType):
        return _cast_primitive(value, target.kind)

    raise InvalidSchemaShape(f"Cannot cast to {target!r}")


def _cast_primitive(value: Any, kind: PrimitiveKind) -> Any:
    is_number = isinstance(value, (int, float)) and not isinstance(value, bool)

    if kind == PrimitiveKind.TEXT:
        if isinstance(value, str):
            return value
        return PartialValue(_stringify(value), value)

    if kind == PrimitiveKind.INTEGER:
        if is_number and isinstance(value, int):
            return value
    elif kind == PrimitiveKind.FLOAT:
        if is_number:
            return value
    elif kind == PrimitiveKind.BOOLEAN:
        if isinstance(value, bool):
            return value
    elif kind == PrimitiveKind.TIMESTAMPTZ:
        # epoch milliseconds or ISO-8601 text
        if is_number and isinstance(value, int):
            return value
        if isinstance(value, str) and _is_iso_timestamp(value):
            return value

    return PartialValue(None, value)


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _is_iso_timestamp(value: str) -> bool:
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def cast_document(schema: ObjectType, document: Any) -> Any:
    """
    Cast every field of a normalized document against the learned schema.

    Fields are looked up by their output name, so type-suffixed fields
    (which are absent from the schema) pass unchanged.

    Raises:
        InvalidSchemaShape: If the schema is not an object type
    """
    if not isinstance(schema, ObjectType):
        raise InvalidSchemaShape(f"Document schema must be an object, got {schema!r}")
    return try_cast(document, schema)


def extract_non_cast(document: Any, keep_normalized: bool = False) -> Tuple[Any, Any]:
    """
    Split a document into its clean and malformed parts.

    Both results have the same shape. The clean document has null (or the
    normalized value, with keep_normalized) wherever a PartialValue was;
    the malformed document has the original value there and null at
    every other leaf.

    Args:
        document: Document possibly containing PartialValue leaves
        keep_normalized: Write PartialValue.normalized into the clean document

    Returns:
        Tuple of (clean_document, malformed_document)
    """
    if isinstance(document, PartialValue):
        clean = document.normalized if keep_normalized else None
        return clean, document.original

    if isinstance(document, dict):
        clean = {}
        malformed = {}
        for key, item in document.items():
            clean[key], malformed[key] = extract_non_cast(item, keep_normalized)
        return clean, malformed

    if isinstance(document, (list, tuple)):
        pairs = [extract_non_cast(item, keep_normalized) for item in document]
        return [clean for clean, _ in pairs], [malformed for _, malformed in pairs]

    return document, None


def has_fragments(document: Any) -> bool:
    """Check whether a document contains any PartialValue."""
    if isinstance(document, PartialValue):
        return True
    if isinstance(document, dict):
        return any(has_fragments(item) for item in document.values())
    if isinstance(document, (list, tuple)):
        return any(has_fragments(item) for item in document)
    return False
