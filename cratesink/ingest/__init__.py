"""
Ingest module for change-event documents.

Provides document normalization, malformed-value handling, schema
comparison and DDL generation for schemaless sinks into CrateDB.
"""

from cratesink.ingest.array_encoding import de_index_encode, is_index_encoded
from cratesink.ingest.normalizer import (
    normalize,
    sanitize_field_name,
    suffix_field_name,
    type_token,
)
from cratesink.ingest.malformed import (
    PartialValue,
    cast_document,
    extract_non_cast,
    has_fragments,
    try_cast,
)
from cratesink.ingest.ddl_generator import DDLGenerator, diff_statements
from cratesink.ingest.differ import (
    Added,
    ChangeSet,
    Nested,
    Positional,
    Removed,
    Unchanged,
    compare,
    render_change_set,
)
from cratesink.ingest.processor import BatchResult, SchemaEvolutionProcessor

__all__ = [  # ruff: noqa: RUF022
    # Preprocessing
    "de_index_encode",
    "is_index_encoded",
    # Normalization
    "normalize",
    "sanitize_field_name",
    "suffix_field_name",
    "type_token",
    # Malformed values
    "PartialValue",
    "try_cast",
    "cast_document",
    "extract_non_cast",
    "has_fragments",
    # DDL Generation
    "DDLGenerator",
    "diff_statements",
    # Comparison
    "ChangeSet",
    "Added",
    "Removed",
    "Unchanged",
    "Positional",
    "Nested",
    "compare",
    "render_change_set",
    # Processing
    "SchemaEvolutionProcessor",
    "BatchResult",
]
