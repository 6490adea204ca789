"""
Catalog module.

Reads the physical columns of a table and rebuilds its learned schema.
"""

from cratesink.catalog.columns import (
    PhysicalColumnDescriptor,
    flatten_schema,
    parse_column_name,
    physical_type_token,
    render_column_name,
)
from cratesink.catalog.reconstructor import physical_type, rebuild
from cratesink.catalog.loader import InformationSchemaLoader

__all__ = [  # ruff: noqa: RUF022
    "PhysicalColumnDescriptor",
    "parse_column_name",
    "render_column_name",
    "physical_type_token",
    "flatten_schema",
    "physical_type",
    "rebuild",
    "InformationSchemaLoader",
]
