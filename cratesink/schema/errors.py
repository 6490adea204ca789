"""Typed failures raised by the schema evolution engine."""

from typing import Any, Optional


class SchemaEvolutionError(Exception):
    """Base exception for schema evolution failures."""
    pass


class UnsupportedValueKind(SchemaEvolutionError):
    """Raised when an input value lies outside the supported value model."""

    def __init__(self, value: Any):
        self.value_type = type(value).__name__
        super().__init__(f"Unsupported value kind: {self.value_type}")


class UnknownPhysicalType(SchemaEvolutionError):
    """Raised when a catalog column has a data type that cannot be mapped."""

    def __init__(self, data_type: str, column_name: Optional[str] = None):
        self.data_type = data_type
        self.column_name = column_name
        message = f"Unknown physical data type: {data_type!r}"
        if column_name:
            message += f" (column {column_name})"
        super().__init__(message)


class InvalidSchemaShape(SchemaEvolutionError):
    """Raised when a schema does not have the shape an operation requires."""
    pass
