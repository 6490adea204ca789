"""
Type detection for decoded change-event values.

Maps a runtime value to its minimal structural schema type without
looking at any history.
"""

from typing import Any

from cratesink.schema.errors import UnsupportedValueKind
from cratesink.schema.types import (
    BOOLEAN,
    FLOAT,
    INTEGER,
    NULL,
    TEXT,
    ArrayType,
    ObjectType,
    SchemaType,
)


def detect(value: Any) -> SchemaType:
    """
    Detect the schema type of a value.

    Arrays are typed by their first element; an empty array yields the
    ArrayType(NULL) placeholder, which merges into the first real
    observation.

    Args:
        value: Decoded value (bool, int, float, str, None, list, dict)

    Returns:
        Detected schema type

    Raises:
        UnsupportedValueKind: If the value is not part of the value model
    """
    if value is None:
        return NULL
    # bool is a subclass of int
    elif isinstance(value, bool):
        return BOOLEAN
    elif isinstance(value, int):
        return INTEGER
    elif isinstance(value, float):
        return FLOAT
    elif isinstance(value, str):
        return TEXT
    elif isinstance(value, (list, tuple)):
        if not value:
            return ArrayType(NULL)
        return ArrayType(detect(value[0]))
    elif isinstance(value, dict):
        fields = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise UnsupportedValueKind(key)
            fields[key] = detect(item)
        return ObjectType(fields)
    else:
        raise UnsupportedValueKind(value)
