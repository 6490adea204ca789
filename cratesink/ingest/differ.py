"""
Schema comparison for human-readable change reports.

Walks two schemas in lock-step and records every branch as added,
removed, unchanged or nested, independently of DDL rendering.
"""

from dataclasses import dataclass
from typing import List, Tuple, Union

from cratesink.ingest.normalizer import type_token
from cratesink.schema.types import (
    ArrayType,
    FixedBitsType,
    ObjectType,
    SchemaType,
    UnionType,
)

ANSI_RESET = "\u001b[0m"
ANSI_RED = "\u001b[31m"
ANSI_GREEN = "\u001b[32m"


@dataclass(frozen=True)
class Unchanged:
    value: SchemaType


@dataclass(frozen=True)
class Added:
    type: SchemaType


@dataclass(frozen=True)
class Removed:
    type: SchemaType


@dataclass(frozen=True)
class Positional:
    key: str
    change: "Change"


@dataclass(frozen=True)
class Nested:
    changes: "ChangeSet"


Change = Union[Unchanged, Added, Removed, Positional, Nested]


@dataclass(frozen=True)
class ChangeSet:
    """Changes found when comparing a schema to its successor."""
    value: SchemaType
    changes: Tuple[Change, ...]

    @property
    def has_changes(self) -> bool:
        return any(_is_change(change) for change in self.changes)


def _is_change(change: Change) -> bool:
    if isinstance(change, (Added, Removed)):
        return True
    if isinstance(change, Positional):
        return _is_change(change.change)
    if isinstance(change, Nested):
        return change.changes.has_changes
    return False


def compare(a: SchemaType, b: SchemaType) -> ChangeSet:
    """
    Compare two schemas.

    Args:
        a: Previous schema
        b: New schema

    Returns:
        ChangeSet rooted at the previous schema
    """
    changes: List[Change] = []

    if isinstance(a, ArrayType) and isinstance(b, ArrayType):
        nested = compare(a.element, b.element)
        changes.append(Nested(nested) if nested.has_changes else Unchanged(a))

    elif isinstance(a, FixedBitsType) and isinstance(b, FixedBitsType):
        if a.size != b.size:
            changes.extend([Removed(a), Added(b)])
        else:
            changes.append(Unchanged(a))

    elif isinstance(a, UnionType) and isinstance(b, UnionType):
        changes.extend(Added(member) for member in b.alternatives if member not in a.alternatives)
        changes.extend(Removed(member) for member in a.alternatives if member not in b.alternatives)
        changes.extend(Unchanged(member) for member in a.alternatives if member in b.alternatives)

    elif isinstance(a, ObjectType) and isinstance(b, ObjectType):
        keys = list(a.fields)
        keys.extend(key for key in b.fields if key not in a.fields)
        for key in keys:
            before = a.fields.get(key)
            after = b.fields.get(key)
            if before is None:
                changes.append(Positional(key, Added(after)))
            elif after is None:
                changes.append(Positional(key, Removed(before)))
            else:
                nested = compare(before, after)
                if nested.has_changes:
                    changes.append(Positional(key, Nested(nested)))
                else:
                    changes.append(Positional(key, Unchanged(before)))

    elif a == b:
        changes.append(Unchanged(a))

    else:
        changes.extend([Removed(a), Added(b)])

    return ChangeSet(a, tuple(changes))


def render_change_set(change_set: ChangeSet, color: bool = False) -> str:
    """
    Render a change set as an indented tree.

    Args:
        change_set: Result of compare()
        color: Highlight additions and removals with ANSI colors

    Returns:
        Multi-line report
    """
    lines = [f"{type_token(change_set.value)} of"]
    for change in change_set.changes:
        lines.append(_render_change(change, color))
    return "\n".join(lines).strip()


def _render_change(change: Change, color: bool) -> str:
    if isinstance(change, Added):
        return _highlight(f"  + {change.type!r}", ANSI_GREEN, color)
    if isinstance(change, Removed):
        return _highlight(f"  - {change.type!r}", ANSI_RED, color)
    if isinstance(change, Unchanged):
        return f"    {change.value!r}"
    if isinstance(change, Positional):
        nested = _render_change(change.change, color)
        return f"  > {change.key}:\n" + _indent(nested)
    return render_change_set(change.changes, color)


def _highlight(text: str, code: str, color: bool) -> str:
    if not color:
        return text
    return f"{code}{text}{ANSI_RESET}"


def _indent(text: str, level: int = 1) -> str:
    padding = "    " * level
    return "\n".join(padding + line for line in text.splitlines())
