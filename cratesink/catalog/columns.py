"""
Physical column descriptors.

One descriptor per physical column of a CrateDB table, as reported by
information_schema.columns (subcolumns of object columns included), and
the inverse operation that flattens a schema into such descriptors.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple

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

ARRAY_SUFFIX = "_array"

_SUBSCRIPT = re.compile(r"\['((?:[^']|'')*)'\]")

_PHYSICAL_TOKENS = {
    PrimitiveKind.INTEGER: "bigint",
    PrimitiveKind.FLOAT: "double precision",
    PrimitiveKind.BOOLEAN: "boolean",
    PrimitiveKind.TEXT: "text",
    PrimitiveKind.TIMESTAMPTZ: "timestamp with time zone",
    PrimitiveKind.NULL: "undefined",
}


@dataclass(frozen=True)
class PhysicalColumnDescriptor:
    """Information about one physical column of a table."""
    data_type: str
    column_name: str
    path: Tuple[str, ...]
    is_primary_key: bool = False
    character_maximum_length: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", tuple(self.path))
        if not self.path:
            raise ValueError(f"Column {self.column_name!r} has an empty path")

    @property
    def root(self) -> str:
        return self.path[0]

    @property
    def is_array(self) -> bool:
        return self.data_type.endswith(ARRAY_SUFFIX)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PhysicalColumnDescriptor":
        """
        Build a descriptor from an information_schema.columns row.

        Args:
            row: Mapping with data_type, column_name and optionally
                column_details (JSON text or dict with name and path),
                is_primary_key and character_maximum_length

        Returns:
            PhysicalColumnDescriptor
        """
        column_name = row["column_name"]
        details = row.get("column_details")
        if isinstance(details, str):
            details = json.loads(details)

        if details:
            path = (details["name"], *details.get("path", []))
        else:
            path = parse_column_name(column_name)

        return cls(
            data_type=row["data_type"],
            column_name=column_name,
            path=path,
            is_primary_key=bool(row.get("is_primary_key") or False),
            character_maximum_length=row.get("character_maximum_length"),
        )


def parse_column_name(column_name: str) -> Tuple[str, ...]:
    """
    Split a subscript column name into its path.

    "doc['a']['b']" becomes ("doc", "a", "b").
    """
    bracket = column_name.find("[")
    if bracket < 0:
        return (column_name,)
    root = column_name[:bracket]
    segments = [match.replace("''", "'") for match in _SUBSCRIPT.findall(column_name[bracket:])]
    return (root, *segments)


def render_column_name(path: Sequence[str]) -> str:
    """Render a path the way information_schema reports column names."""
    return path[0] + "".join("['" + segment.replace("'", "''") + "']" for segment in path[1:])


def physical_type_token(schema: SchemaType) -> str:
    """
    Physical data type token of a single-shaped schema type.

    Raises:
        InvalidSchemaShape: For unions, which have no single physical type
    """
    if isinstance(schema, PrimitiveType):
        return _PHYSICAL_TOKENS[schema.kind]
    if isinstance(schema, FixedBitsType):
        return "bit"
    if isinstance(schema, ObjectType):
        return "object"
    if isinstance(schema, ArrayType):
        return physical_type_token(schema.element) + ARRAY_SUFFIX
    raise InvalidSchemaShape(f"No physical type for {schema!r}")


def flatten_schema(schema: SchemaType) -> List[PhysicalColumnDescriptor]:
    """
    Flatten a schema into the physical column descriptors that hold it.

    Object fields yield an object column plus their subcolumns; arrays of
    objects yield their element's subcolumns under the array path; unions
    yield one column per member at the same path.

    Args:
        schema: Table schema (an object type)

    Returns:
        Descriptors in field order, parents before children
    """
    if not isinstance(schema, ObjectType):
        raise InvalidSchemaShape(f"Table schema must be an object, got {schema!r}")

    columns: List[PhysicalColumnDescriptor] = []
    for name, child in schema.fields.items():
        _flatten((name,), child, columns)
    return columns


def _flatten(path: Tuple[str, ...], schema: SchemaType, columns: List[PhysicalColumnDescriptor]) -> None:
    for variant in _variants(schema):
        bits = variant.innermost() if isinstance(variant, ArrayType) else variant
        columns.append(PhysicalColumnDescriptor(
            data_type=physical_type_token(variant),
            column_name=render_column_name(path),
            path=path,
            character_maximum_length=bits.size if isinstance(bits, FixedBitsType) else None,
        ))

        element = variant.innermost() if isinstance(variant, ArrayType) else variant
        if isinstance(element, ObjectType):
            for name, child in element.fields.items():
                _flatten(path + (name,), child, columns)


def _variants(schema: SchemaType) -> List[SchemaType]:
    """Split a type into single-shaped types, one per physical column."""
    if isinstance(schema, UnionType):
        return [variant for member in schema.alternatives for variant in _variants(member)]
    if isinstance(schema, ArrayType):
        return [ArrayType(variant) for variant in _variants(schema.element)]
    return [schema]
