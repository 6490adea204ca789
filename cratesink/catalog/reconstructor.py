"""
Catalog reconstruction.

Rebuilds the learned schema of a table from the flat list of physical
columns reported by the store, so that schema evolution can continue
after a restart without re-learning from scratch.
"""

import logging
import re
from typing import Iterable, Optional, Sequence

from cratesink.catalog.columns import ARRAY_SUFFIX, PhysicalColumnDescriptor
from cratesink.schema.errors import UnknownPhysicalType
from cratesink.schema.merger import merge
from cratesink.schema.types import (
    BOOLEAN,
    FLOAT,
    INTEGER,
    NULL,
    TEXT,
    TIMESTAMPTZ,
    ArrayType,
    FixedBitsType,
    ObjectType,
    SchemaType,
    UnionType,
)

logger = logging.getLogger(__name__)

_BIT_WITH_LENGTH = re.compile(r"^bit\((\d+)\)$")

PHYSICAL_TYPES = {
    "smallint": INTEGER,
    "short": INTEGER,
    "integer": INTEGER,
    "int": INTEGER,
    "bigint": INTEGER,
    "long": INTEGER,
    "real": FLOAT,
    "float": FLOAT,
    "double": FLOAT,
    "double precision": FLOAT,
    "text": TEXT,
    "string": TEXT,
    "ip": TEXT,
    "character": TEXT,
    "char": TEXT,
    "character varying": TEXT,
    "varchar": TEXT,
    "boolean": BOOLEAN,
    "timestamp with time zone": TIMESTAMPTZ,
    "timestamp without time zone": TIMESTAMPTZ,
    "timestamptz": TIMESTAMPTZ,
    "timestamp": TIMESTAMPTZ,
    "undefined": NULL,
}


def physical_type(data_type: str, length: Optional[int] = None, column_name: Optional[str] = None) -> SchemaType:
    """
    Map a physical data type token to a schema type.

    Args:
        data_type: Token such as "bigint", "text_array" or "bit(8)"
        length: character_maximum_length of the column (bit width)
        column_name: Column name, for error messages

    Returns:
        Schema type

    Raises:
        UnknownPhysicalType: If the token cannot be mapped
    """
    token = data_type.strip().lower()

    if token.endswith(ARRAY_SUFFIX):
        return ArrayType(physical_type(token[:-len(ARRAY_SUFFIX)], length, column_name))
    if token in PHYSICAL_TYPES:
        return PHYSICAL_TYPES[token]
    if token == "object":
        return ObjectType()
    if token == "bit" and length:
        return FixedBitsType(int(length))

    match = _BIT_WITH_LENGTH.match(token)
    if match:
        return FixedBitsType(int(match.group(1)))

    raise UnknownPhysicalType(data_type, column_name)


def rebuild(columns: Iterable[PhysicalColumnDescriptor]) -> ObjectType:
    """
    Rebuild a table schema from its physical columns.

    Columns are applied parents first, so the result does not depend on
    the input order (up to union member order). Columns sharing a path
    merge into a union; suffixed names are kept as separate fields.

    Args:
        columns: Descriptors from the catalog

    Returns:
        Table schema

    Raises:
        UnknownPhysicalType: If a column has an unmappable data type
    """
    ordered = sorted(columns, key=lambda column: len(column.path))

    fields = {}
    for column in ordered:
        leaf = physical_type(column.data_type, column.character_maximum_length, column.column_name)
        fields[column.root] = _graft(fields.get(column.root), column.path[1:], leaf)

    logger.debug(f"Rebuilt schema with {len(fields)} top-level columns from {len(ordered)} catalog columns")
    return ObjectType(fields)


def _graft(existing: Optional[SchemaType], segments: Sequence[str], leaf: SchemaType) -> SchemaType:
    if not segments:
        return leaf if existing is None else merge(existing, leaf)

    # subcolumns of object arrays address the array element
    if isinstance(existing, ArrayType):
        return ArrayType(_graft(existing.element, segments, leaf))

    if isinstance(existing, ObjectType):
        head = segments[0]
        return existing.with_field(head, _graft(existing.fields.get(head), segments[1:], leaf))

    if isinstance(existing, UnionType):
        index = _field_carrier(existing)
        if index is not None:
            members = list(existing.alternatives)
            members[index] = _graft(members[index], segments, leaf)
            return UnionType.of(*members)

    branch = leaf
    for segment in reversed(segments):
        branch = ObjectType({segment: branch})
    return branch if existing is None else merge(existing, branch)


def _field_carrier(union: UnionType) -> Optional[int]:
    """Index of the union member that owns subcolumns, objects first."""
    for index, member in enumerate(union.alternatives):
        if isinstance(member, ObjectType):
            return index
    for index, member in enumerate(union.alternatives):
        if isinstance(member, ArrayType) and isinstance(member.innermost(), ObjectType):
            return index
    return None
