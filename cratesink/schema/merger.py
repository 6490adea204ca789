"""
Type merging.

Unifies two schema types into a widened type. Merging is commutative (up
to union member order), associative and idempotent, and never drops a
previously learned branch.
"""

from typing import List, Sequence

from cratesink.schema.types import (
    ArrayType,
    ObjectType,
    SchemaType,
    UnionType,
    is_null,
)


def merge(a: SchemaType, b: SchemaType) -> SchemaType:
    """
    Merge two schema types.

    NULL is the identity element. Objects merge field-wise, arrays merge
    their elements, and any other pair of different shapes collides into
    a flattened union.

    Args:
        a: Existing type
        b: Incoming type

    Returns:
        Widened type
    """
    if a == b:
        return a
    if is_null(a):
        return b
    if is_null(b):
        return a

    if isinstance(a, UnionType) or isinstance(b, UnionType):
        return _merge_members(_members(a), _members(b))

    if isinstance(a, ObjectType) and isinstance(b, ObjectType):
        return _merge_objects(a, b)

    if isinstance(a, ArrayType) and isinstance(b, ArrayType):
        return ArrayType(merge(a.element, b.element))

    return UnionType((a, b))


def merge_all(types: Sequence[SchemaType]) -> SchemaType:
    """Fold merge over a non-empty sequence of types."""
    result = types[0]
    for schema in types[1:]:
        result = merge(result, schema)
    return result


def _members(schema: SchemaType) -> Sequence[SchemaType]:
    if isinstance(schema, UnionType):
        return schema.alternatives
    return (schema,)


def _merge_members(left: Sequence[SchemaType], right: Sequence[SchemaType]) -> SchemaType:
    # A union holds at most one member per shape key; members of the same
    # shape merge in place so the first-observed member keeps its position.
    members: List[SchemaType] = list(left)
    for candidate in right:
        if is_null(candidate):
            continue
        for index, member in enumerate(members):
            if member.shape_key() == candidate.shape_key():
                members[index] = merge(member, candidate)
                break
        else:
            members.append(candidate)

    if len(members) == 1:
        return members[0]
    return UnionType(tuple(members))


def _merge_objects(a: ObjectType, b: ObjectType) -> ObjectType:
    fields = dict(a.fields)
    for name, schema in b.fields.items():
        if name in fields:
            fields[name] = merge(fields[name], schema)
        else:
            fields[name] = schema
    return ObjectType(fields)
