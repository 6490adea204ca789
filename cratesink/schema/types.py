"""
Schema algebra.

Immutable, structurally comparable types describing the learned shape of
change-event documents: primitives, fixed-width bit strings, arrays,
objects and flattened unions of incompatible shapes.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Hashable, Iterable, Mapping, Optional, Sequence, Tuple


class PrimitiveKind(str, Enum):
    """Enumeration of primitive column kinds."""
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    TEXT = "text"
    TIMESTAMPTZ = "timestamptz"
    NULL = "null"


class SchemaType:
    """Base class of every schema type."""

    __slots__ = ()

    def shape_key(self) -> Hashable:
        """
        Key identifying the shape family of this type.

        Two types with the same shape key merge structurally; types with
        different shape keys collide into a union.
        """
        raise NotImplementedError


@dataclass(frozen=True)
class PrimitiveType(SchemaType):
    kind: PrimitiveKind

    def shape_key(self) -> Hashable:
        return ("primitive", self.kind)

    def __repr__(self) -> str:
        return self.kind.name


@dataclass(frozen=True)
class FixedBitsType(SchemaType):
    size: int

    def shape_key(self) -> Hashable:
        return ("bits", self.size)

    def __repr__(self) -> str:
        return f"BIT({self.size})"


@dataclass(frozen=True)
class ArrayType(SchemaType):
    element: SchemaType

    def shape_key(self) -> Hashable:
        return ("array",)

    def innermost(self) -> SchemaType:
        """Element type found below every level of array nesting."""
        element = self.element
        while isinstance(element, ArrayType):
            element = element.element
        return element

    def __repr__(self) -> str:
        return f"Array[{self.element!r}]"


@dataclass(frozen=True, eq=False)
class ObjectType(SchemaType):
    """
    Object type with named fields.

    Field order is kept for deterministic DDL and printing, but it does
    not take part in equality or hashing.
    """
    fields: Mapping[str, SchemaType] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @classmethod
    def of(cls, **fields: SchemaType) -> "ObjectType":
        return cls(fields)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, SchemaType]]) -> "ObjectType":
        return cls(dict(pairs))

    def with_field(self, name: str, schema: SchemaType) -> "ObjectType":
        """Return a copy with one field added or replaced."""
        fields = dict(self.fields)
        fields[name] = schema
        return ObjectType(fields)

    def shape_key(self) -> Hashable:
        return ("object",)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ObjectType):
            return NotImplemented
        return dict(self.fields) == dict(other.fields)

    def __hash__(self) -> int:
        return hash(("object", frozenset(self.fields.items())))

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}: {schema!r}" for name, schema in self.fields.items())
        return f"Object{{{inner}}}"


@dataclass(frozen=True, eq=False)
class UnionType(SchemaType):
    """
    Flattened set of incompatible shapes observed at one slot.

    Members keep their insertion order; the first member is the type the
    slot was first observed with. Equality ignores member order.
    """
    alternatives: Tuple[SchemaType, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "alternatives", tuple(self.alternatives))
        if any(isinstance(member, UnionType) for member in self.alternatives):
            raise ValueError("Union members must not be unions")
        if len(set(self.alternatives)) != len(self.alternatives):
            raise ValueError("Union members must be unique")
        if len(self.alternatives) < 2:
            raise ValueError("Union requires at least two members")

    @classmethod
    def of(cls, *members: SchemaType) -> SchemaType:
        """
        Build a union from members, flattening nested unions.

        Duplicate members are dropped. A single remaining member is
        returned as is.
        """
        flat = []
        for member in members:
            nested = member.alternatives if isinstance(member, UnionType) else (member,)
            for candidate in nested:
                if candidate not in flat:
                    flat.append(candidate)
        if len(flat) == 1:
            return flat[0]
        return cls(tuple(flat))

    @property
    def first(self) -> SchemaType:
        return self.alternatives[0]

    def shape_key(self) -> Hashable:
        return ("union",)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, UnionType):
            return NotImplemented
        return frozenset(self.alternatives) == frozenset(other.alternatives)

    def __hash__(self) -> int:
        return hash(("union", frozenset(self.alternatives)))

    def __iter__(self):
        return iter(self.alternatives)

    def __len__(self) -> int:
        return len(self.alternatives)

    def __repr__(self) -> str:
        return "Union<" + " | ".join(repr(member) for member in self.alternatives) + ">"


INTEGER = PrimitiveType(PrimitiveKind.INTEGER)
FLOAT = PrimitiveType(PrimitiveKind.FLOAT)
BOOLEAN = PrimitiveType(PrimitiveKind.BOOLEAN)
TEXT = PrimitiveType(PrimitiveKind.TEXT)
TIMESTAMPTZ = PrimitiveType(PrimitiveKind.TIMESTAMPTZ)
NULL = PrimitiveType(PrimitiveKind.NULL)

ARRAY_WILDCARD = "*"


def is_null(schema: SchemaType) -> bool:
    """Check whether a type is the NULL placeholder."""
    return isinstance(schema, PrimitiveType) and schema.kind == PrimitiveKind.NULL


def schema_at(schema: SchemaType, path: Sequence[str]) -> Optional[SchemaType]:
    """
    Look up the type found under a path.

    Args:
        schema: Schema to search
        path: Field names; "*" steps into an array element

    Returns:
        The type at the path, or None if the path does not exist
    """
    current = schema
    for segment in path:
        if isinstance(current, ObjectType):
            if segment not in current.fields:
                return None
            current = current.fields[segment]
        elif isinstance(current, ArrayType) and segment == ARRAY_WILDCARD:
            current = current.element
        else:
            return None
    return current


def describe(schema: SchemaType) -> Dict[str, Any]:
    """
    Render a schema as plain JSON-compatible data.

    Used for structured logging of schema snapshots.
    """
    if isinstance(schema, ObjectType):
        return {"object": {name: describe(child) for name, child in schema.fields.items()}}
    if isinstance(schema, ArrayType):
        return {"array": describe(schema.element)}
    if isinstance(schema, UnionType):
        return {"union": [describe(member) for member in schema.alternatives]}
    if isinstance(schema, FixedBitsType):
        return {"bit": schema.size}
    return {"primitive": schema.kind.value}
