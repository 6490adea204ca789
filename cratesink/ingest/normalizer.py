"""
Document normalizer.

Walks a decoded document against the running schema of its table, widens
the schema and renames fields whose values collide with the type first
observed at that slot, so that every physical column keeps a single type.
"""

import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple, Type

from cratesink.schema.detector import detect
from cratesink.schema.errors import UnsupportedValueKind
from cratesink.schema.merger import merge
from cratesink.schema.types import (
    NULL,
    ArrayType,
    FixedBitsType,
    ObjectType,
    PrimitiveKind,
    PrimitiveType,
    SchemaType,
    UnionType,
    is_null,
)

logger = logging.getLogger(__name__)

RenameCallback = Callable[[str, str], None]

_PRIMITIVE_TOKENS = {
    PrimitiveKind.INTEGER: "int",
    PrimitiveKind.BOOLEAN: "bool",
    PrimitiveKind.TEXT: "text",
    PrimitiveKind.FLOAT: "float",
    PrimitiveKind.TIMESTAMPTZ: "tz",
    PrimitiveKind.NULL: "null",
}

# Characters CrateDB does not accept in column names
_FIELD_NAME_REPLACEMENTS = (
    ("[", "bkt_"),
    ("]", "_bkt"),
    (";", "_semicolon_"),
    (".", "_dot_"),
)


class _Options(NamedTuple):
    suffix: bool
    sanitize: bool
    on_rename: Optional[RenameCallback]


def normalize(
    schema: SchemaType,
    value: Any,
    suffix: bool = True,
    sanitize: bool = True,
    on_rename: Optional[RenameCallback] = None,
) -> Tuple[SchemaType, Any]:
    """
    Normalize a value against a schema.

    The input schema is never modified; a widened schema is returned along
    with the transformed value.

    Args:
        schema: Current schema of the slot (ObjectType({}) for a new table)
        value: Decoded value
        suffix: Rename colliding fields with a type suffix
        sanitize: Rewrite characters CrateDB rejects in field names
        on_rename: Called with (field_name, output_name) for every renamed field

    Returns:
        Tuple of (new_schema, transformed_value)

    Raises:
        UnsupportedValueKind: If the value contains an unsupported kind
    """
    return _normalize(schema, value, _Options(suffix, sanitize, on_rename))


def _normalize(schema: SchemaType, value: Any, options: _Options) -> Tuple[SchemaType, Any]:
    if value is None:
        return schema, None

    if isinstance(value, (list, tuple)):
        return _normalize_container(schema, value, ArrayType, ArrayType(NULL), _normalize_array, options)

    if isinstance(value, dict):
        return _normalize_container(schema, value, ObjectType, ObjectType(), _normalize_object, options)

    detected = detect(value)
    if detected == schema:
        return schema, value
    return merge(schema, detected), value


def _normalize_container(
    schema: SchemaType,
    value: Any,
    kind: Type[SchemaType],
    empty: SchemaType,
    walk: Callable[[Any, Any, _Options], Tuple[SchemaType, Any]],
    options: _Options,
) -> Tuple[SchemaType, Any]:
    slot = _slot_of_kind(schema, kind)
    if slot is schema:
        return walk(slot, value, options)

    # schema is a union holding a member of this kind, or a mismatched shape
    learned, transformed = walk(slot if slot is not None else empty, value, options)
    return merge(schema, learned), transformed


def _slot_of_kind(schema: SchemaType, kind: Type[SchemaType]) -> Optional[SchemaType]:
    if isinstance(schema, kind):
        return schema
    if isinstance(schema, UnionType):
        for member in schema.alternatives:
            if isinstance(member, kind):
                return member
    return None


def _normalize_array(slot: ArrayType, items: Any, options: _Options) -> Tuple[SchemaType, List[Any]]:
    element = slot.element
    transformed = []
    for item in items:
        if item is None:
            transformed.append(None)
            continue
        item_schema, item_value = _normalize(element, item, options)
        element = merge(element, item_schema)
        transformed.append(item_value)
    return ArrayType(element), transformed


def _normalize_object(slot: ObjectType, mapping: Dict[Any, Any], options: _Options) -> Tuple[SchemaType, Dict[str, Any]]:
    fields = dict(slot.fields)
    transformed: Dict[str, Any] = {}

    for raw_key, item in mapping.items():
        if not isinstance(raw_key, str):
            raise UnsupportedValueKind(raw_key)
        # null fields carry no type information and are not stored
        if item is None:
            continue

        key = sanitize_field_name(raw_key) if options.sanitize else raw_key
        detected = detect(item)

        if key in fields:
            existing = fields[key]
            item_schema, item_value = _normalize(existing, item, options)
            final = merge(existing, item_schema)
            fields[key] = final

            output_name = key
            if options.suffix:
                output_name = suffix_field_name(key, final, detected)
                if output_name != key:
                    logger.debug(f"Field {key!r} collided, storing as {output_name!r}")
                    if options.on_rename is not None:
                        options.on_rename(key, output_name)
        else:
            # learned from the walk so nested null fields stay out of the schema
            item_schema, item_value = _normalize(NULL, item, options)
            fields[key] = item_schema
            output_name = key

        transformed[output_name] = item_value

    return ObjectType(fields), transformed


def suffix_field_name(field_name: str, final_type: SchemaType, detected_type: SchemaType) -> str:
    """
    Compute the output name of a field.

    The bare name belongs to the type first observed at the slot; values of
    any other shape are stored under the name with a type suffix appended.

    Args:
        field_name: Field name in the input document
        final_type: Slot type after merging this value
        detected_type: Type detected for this value

    Returns:
        Output field name
    """
    if final_type == detected_type or is_null(detected_type):
        return field_name

    if isinstance(final_type, UnionType):
        return suffix_field_name(field_name, final_type.first, detected_type)

    if isinstance(final_type, ArrayType) and isinstance(detected_type, ArrayType):
        inner = suffix_field_name(field_name, final_type.element, detected_type.element)
        if inner != field_name:
            return inner + "_array"
        return field_name

    if isinstance(final_type, ObjectType) and isinstance(detected_type, ObjectType):
        return field_name

    return f"{field_name}_{type_token(detected_type)}"


def type_token(schema: SchemaType) -> str:
    """Canonical short token of a type, used for field suffixes."""
    if isinstance(schema, PrimitiveType):
        return _PRIMITIVE_TOKENS[schema.kind]
    if isinstance(schema, FixedBitsType):
        return f"bit{schema.size}"
    if isinstance(schema, ObjectType):
        return "object"
    if isinstance(schema, ArrayType):
        return type_token(schema.element) + "_array"
    if isinstance(schema, UnionType):
        return "collision"
    raise TypeError(f"Not a schema type: {schema!r}")


def sanitize_field_name(name: str) -> str:
    """Rewrite characters CrateDB rejects in column names."""
    for character, replacement in _FIELD_NAME_REPLACEMENTS:
        name = name.replace(character, replacement)
    return name
