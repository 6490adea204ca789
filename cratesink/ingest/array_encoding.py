"""
Array-encoding preprocessor.

Some source connectors (e.g. the MongoDB event flattening transform with
array encoding enabled) ship arrays as objects keyed "_0", "_1", ... in
index order. These are turned back into lists before normalization.
"""

from typing import Any, Dict


def de_index_encode(value: Any) -> Any:
    """
    Replace index-keyed objects with lists, recursively.

    Args:
        value: Decoded document or fragment

    Returns:
        Value with every index-encoded object converted to a list
    """
    if isinstance(value, dict):
        converted = {key: de_index_encode(item) for key, item in value.items()}
        if is_index_encoded(converted):
            return [converted[f"_{position}"] for position in range(len(converted))]
        return converted

    if isinstance(value, (list, tuple)):
        return [de_index_encode(item) for item in value]

    return value


def is_index_encoded(mapping: Dict[Any, Any]) -> bool:
    """Check whether an object's keys are exactly "_0" .. "_<n-1>"."""
    if not mapping:
        return False
    expected = {f"_{position}" for position in range(len(mapping))}
    return set(mapping.keys()) == expected
