"""
DDL Generator for CrateDB tables.

Compares the physical schema of a table with the schema learned from new
documents and generates the ALTER TABLE statements that add the missing
columns. Existing columns are never altered or dropped.
"""

import logging
from typing import List, Sequence, Tuple

from cratesink.schema.errors import InvalidSchemaShape
from cratesink.schema.types import (
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

ColumnPath = Tuple[str, ...]


class DDLGenerator:
    """
    Generates additive CrateDB DDL (Data Definition Language) statements.

    Only new columns are emitted. A column whose learned type diverges from
    its physical type is left alone, since CrateDB cannot retype columns.
    """

    type_mapping = {
        PrimitiveKind.INTEGER: "BIGINT",
        PrimitiveKind.FLOAT: "DOUBLE PRECISION",
        PrimitiveKind.BOOLEAN: "BOOLEAN",
        PrimitiveKind.TEXT: "TEXT",
        PrimitiveKind.TIMESTAMPTZ: "TIMESTAMP WITH TIME ZONE",
    }

    def diff_statements(
        self,
        before: SchemaType,
        after: SchemaType,
        table_name: str
    ) -> List[str]:
        """
        Generate ALTER TABLE statements for columns missing from a table.

        Args:
            before: Schema of the existing physical columns
            after: Schema learned after normalizing new documents
            table_name: Table to alter, optionally schema-qualified

        Returns:
            List of ALTER TABLE statements, in field order

        Raises:
            InvalidSchemaShape: If either schema is not an object type
        """
        for label, schema in (("before", before), ("after", after)):
            if not isinstance(schema, ObjectType):
                raise InvalidSchemaShape(
                    f"Schema '{label}' must be an object at the top level, got {schema!r}")

        table = self._quote_table_name(table_name)
        return [
            f"ALTER TABLE {table} ADD COLUMN {self._column_name(path)} {self._column_type(schema)}"
            for path, schema in self.new_columns(before, after)
        ]

    def new_columns(self, before: ObjectType, after: ObjectType) -> List[Tuple[ColumnPath, SchemaType]]:
        """
        List every column present only in the new schema.

        Terminals are non-object types and empty objects. Arrays are
        terminals of their own; arrays of objects also contribute the
        columns of their element, under the path of the array.
        """
        columns: List[Tuple[ColumnPath, SchemaType]] = []
        self._walk_fields(before, after, (), columns)
        return columns

    def _walk_fields(
        self,
        before: ObjectType,
        after: ObjectType,
        path: ColumnPath,
        columns: List[Tuple[ColumnPath, SchemaType]]
    ) -> None:
        for name, after_type in after.fields.items():
            child_path = path + (name,)
            before_type = before.fields.get(name)
            if before_type is None:
                self._collect_columns(child_path, after_type, columns)
            else:
                self._walk_common(before_type, after_type, child_path, columns)

    def _walk_common(
        self,
        before: SchemaType,
        after: SchemaType,
        path: ColumnPath,
        columns: List[Tuple[ColumnPath, SchemaType]]
    ) -> None:
        if before == after:
            return

        # placeholders for empty arrays never became physical columns
        if self._is_deferred(before):
            self._collect_columns(path, after, columns)
        elif isinstance(before, UnionType) or isinstance(after, UnionType):
            # the bare column holds the first observed member of a union
            before_bare, after_bare = self._bare_member(before), self._bare_member(after)
            if before_bare.shape_key() == after_bare.shape_key():
                self._walk_common(before_bare, after_bare, path, columns)
            else:
                self._log_retype(path, before, after)
        elif isinstance(before, ObjectType) and isinstance(after, ObjectType):
            self._walk_fields(before, after, path, columns)
        elif isinstance(before, ArrayType) and isinstance(after, ArrayType):
            # array elements are addressed by the path of the array column
            self._walk_common(before.element, after.element, path, columns)
        else:
            self._log_retype(path, before, after)

    def _bare_member(self, schema: SchemaType) -> SchemaType:
        return schema.first if isinstance(schema, UnionType) else schema

    def _log_retype(self, path: ColumnPath, before: SchemaType, after: SchemaType) -> None:
        logger.debug(
            f"Column {self._column_name(path)} changed from {before!r} to {after!r}; "
            "existing columns cannot be retyped"
        )

    def _collect_columns(
        self,
        path: ColumnPath,
        schema: SchemaType,
        columns: List[Tuple[ColumnPath, SchemaType]]
    ) -> None:
        if isinstance(schema, ObjectType):
            if not schema.fields:
                columns.append((path, schema))
            for name, child in schema.fields.items():
                self._collect_columns(path + (name,), child, columns)
            return

        if self._is_deferred(schema):
            return

        columns.append((path, schema))

        if isinstance(schema, ArrayType):
            element = schema.innermost()
            if isinstance(element, ObjectType):
                for name, child in element.fields.items():
                    self._collect_columns(path + (name,), child, columns)

    def _is_deferred(self, schema: SchemaType) -> bool:
        """Check whether a type carries no information yet (NULL placeholders)."""
        if isinstance(schema, ArrayType):
            return self._is_deferred(schema.innermost())
        if isinstance(schema, UnionType):
            return self._is_deferred(schema.first)
        return is_null(schema)

    def _column_type(self, schema: SchemaType) -> str:
        """
        Map a schema type to CrateDB column type syntax.

        A union cannot live in a single column; it is rendered as its first
        observed member, which is the type of the bare column.
        """
        if isinstance(schema, UnionType):
            return self._column_type(schema.first)
        if isinstance(schema, ArrayType):
            return f"ARRAY({self._column_type(schema.element)})"
        if isinstance(schema, ObjectType):
            return "OBJECT(DYNAMIC)"
        if isinstance(schema, FixedBitsType):
            return f"BIT({schema.size})"
        if isinstance(schema, PrimitiveType) and schema.kind in self.type_mapping:
            return self.type_mapping[schema.kind]
        raise InvalidSchemaShape(f"No column type for {schema!r}")

    def _column_name(self, path: Sequence[str]) -> str:
        """
        Render a column path as a subscript chain.

        ("doc", "a", "b") becomes "doc"['a']['b'].
        """
        root = self._quote_identifier(path[0])
        subscripts = "".join("['" + segment.replace("'", "''") + "']" for segment in path[1:])
        return root + subscripts

    def _quote_identifier(self, name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    def _quote_table_name(self, table_name: str) -> str:
        return ".".join(self._quote_identifier(part) for part in table_name.split("."))


_default_generator = DDLGenerator()


def diff_statements(before: SchemaType, after: SchemaType, table_name: str) -> List[str]:
    """Generate ALTER TABLE statements with the default generator."""
    return _default_generator.diff_statements(before, after, table_name)
