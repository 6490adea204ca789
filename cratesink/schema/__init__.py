"""
Schema algebra for change-event documents.

Provides the recursive type model, type detection for decoded values and
the merge rules used to widen a learned schema.
"""

from cratesink.schema.types import (
    ARRAY_WILDCARD,
    BOOLEAN,
    FLOAT,
    INTEGER,
    NULL,
    TEXT,
    TIMESTAMPTZ,
    ArrayType,
    FixedBitsType,
    ObjectType,
    PrimitiveKind,
    PrimitiveType,
    SchemaType,
    UnionType,
    describe,
    is_null,
    schema_at,
)
from cratesink.schema.errors import (
    InvalidSchemaShape,
    SchemaEvolutionError,
    UnknownPhysicalType,
    UnsupportedValueKind,
)
from cratesink.schema.detector import detect
from cratesink.schema.merger import merge, merge_all

__all__ = [  # ruff: noqa: RUF022
    # Types
    "SchemaType",
    "PrimitiveKind",
    "PrimitiveType",
    "FixedBitsType",
    "ArrayType",
    "ObjectType",
    "UnionType",
    "INTEGER",
    "FLOAT",
    "BOOLEAN",
    "TEXT",
    "TIMESTAMPTZ",
    "NULL",
    "ARRAY_WILDCARD",
    "describe",
    "is_null",
    "schema_at",
    # Errors
    "SchemaEvolutionError",
    "UnsupportedValueKind",
    "UnknownPhysicalType",
    "InvalidSchemaShape",
    # Detection and merging
    "detect",
    "merge",
    "merge_all",
]
