"""
Batch processor for change-event documents.

Ties the schema engine together for a sink: keeps the learned schema of
every table, normalizes incoming batches against it, splits off values
that do not fit their columns and computes the DDL needed before the
batch can be written.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from cratesink.catalog.columns import PhysicalColumnDescriptor
from cratesink.catalog.reconstructor import rebuild
from cratesink.common.logging_config import (
    PerformanceTracker,
    get_structured_logger,
    table_context,
)
from cratesink.common.metrics import (
    catalog_reconstructions_total,
    ddl_statements_total,
    documents_normalized_total,
    fields_suffixed_total,
    malformed_fragments_total,
    track_batch_processing,
    tracked_tables,
)
from cratesink.config.settings import ConflictStrategy, get_settings
from cratesink.ingest.array_encoding import de_index_encode
from cratesink.ingest.ddl_generator import DDLGenerator
from cratesink.ingest.differ import compare, render_change_set
from cratesink.ingest.malformed import cast_document, extract_non_cast, has_fragments
from cratesink.ingest.normalizer import normalize
from cratesink.schema.errors import InvalidSchemaShape, SchemaEvolutionError
from cratesink.schema.types import ObjectType, SchemaType, describe

logger = logging.getLogger(__name__)
slogger = get_structured_logger(__name__)


@dataclass
class BatchResult:
    """Outcome of normalizing one batch for one table."""
    table_name: str
    schema: ObjectType
    statements: List[str] = field(default_factory=list)
    documents: List[Dict[str, Any]] = field(default_factory=list)
    malformed: List[Optional[Dict[str, Any]]] = field(default_factory=list)

    @property
    def has_schema_changes(self) -> bool:
        return bool(self.statements)

    @property
    def malformed_count(self) -> int:
        return sum(1 for fragment in self.malformed if fragment is not None)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "table_name": self.table_name,
            "schema": describe(self.schema),
            "statements": self.statements,
            "documents": self.documents,
            "malformed": self.malformed,
        }


class SchemaEvolutionProcessor:
    """
    Owns the learned schema of each table and processes batches against it.

    One processor must be the only writer for the tables it tracks;
    process_batch and commit calls for a table are expected in sequence.
    """

    def __init__(
        self,
        conflict_strategy: Optional[ConflictStrategy] = None,
        sanitize_field_names: Optional[bool] = None,
        decode_index_arrays: Optional[bool] = None,
        ddl_generator: Optional[DDLGenerator] = None,
    ):
        """
        Initialize processor.

        Args:
            conflict_strategy: How values that do not fit their column are handled
            sanitize_field_names: Rewrite characters CrateDB rejects in field names
            decode_index_arrays: Turn "_0", "_1", ... keyed objects into lists
            ddl_generator: DDL generator (a default one is created if omitted)
        """
        settings = get_settings()
        self.conflict_strategy = ConflictStrategy(conflict_strategy or settings.conflict_strategy)
        self.sanitize_field_names = (
            settings.sanitize_field_names if sanitize_field_names is None else sanitize_field_names)
        self.decode_index_arrays = (
            settings.decode_index_arrays if decode_index_arrays is None else decode_index_arrays)
        self.metrics_enabled = settings.metrics_enabled
        self.ddl_generator = ddl_generator or DDLGenerator()

        self._learned: Dict[str, ObjectType] = {}
        self._physical: Dict[str, ObjectType] = {}

    @property
    def tables(self) -> List[str]:
        return sorted(self._learned)

    def schema_for(self, table: str) -> ObjectType:
        """Return the learned schema of a table (empty for unknown tables)."""
        return self._learned.get(table, ObjectType())

    def load_catalog(self, table: str, columns: Iterable[PhysicalColumnDescriptor]) -> ObjectType:
        """
        Seed a table's schema from its physical columns.

        Args:
            table: Table name
            columns: Column descriptors, e.g. from InformationSchemaLoader

        Returns:
            Rebuilt schema

        Raises:
            UnknownPhysicalType: If a column has an unmappable data type
        """
        with table_context(table):
            try:
                schema = rebuild(columns)
            except SchemaEvolutionError as e:
                self._count(catalog_reconstructions_total.labels(status="failure"))
                slogger.error("Catalog reconstruction failed", error=str(e), error_type=type(e).__name__)
                raise

            self._count(catalog_reconstructions_total.labels(status="success"))
            self._learned[table] = schema
            self._physical[table] = schema
            self._update_tracked_tables()
            slogger.info("Loaded schema from catalog", columns=len(schema.fields))
            return schema

    @track_batch_processing
    def process_batch(self, table: str, documents: Iterable[Any]) -> BatchResult:
        """
        Normalize a batch of documents for a table.

        Nothing is published: the learned schema only changes once the
        result is committed.

        Args:
            table: Table name
            documents: Decoded documents (dicts with string keys)

        Returns:
            BatchResult with the widened schema, DDL, clean and malformed documents

        Raises:
            UnsupportedValueKind: If a document holds an unsupported value
            InvalidSchemaShape: If a document is not an object
        """
        with table_context(table):
            documents = list(documents)
            schema = self.schema_for(table)
            result = BatchResult(table_name=table, schema=schema)

            with PerformanceTracker("process_batch", logger, logging.DEBUG, documents=len(documents)):
                for document in documents:
                    schema = self._process_document(table, schema, document, result)

                result.schema = schema
                result.statements = self.ddl_generator.diff_statements(
                    self._physical.get(table, ObjectType()), schema, table)

            if result.statements:
                self._count(ddl_statements_total.labels(table=table), len(result.statements))
                slogger.info(
                    "Schema changes require DDL",
                    statements=len(result.statements),
                    documents=len(documents),
                )
            return result

    def _process_document(
        self,
        table: str,
        schema: ObjectType,
        document: Any,
        result: BatchResult,
    ) -> ObjectType:
        if self.decode_index_arrays:
            document = de_index_encode(document)
        if not isinstance(document, dict):
            self._count(documents_normalized_total.labels(table=table, status="failure"))
            raise InvalidSchemaShape(f"Document must be an object, got {type(document).__name__}")

        renamed: List[str] = []
        try:
            new_schema, normalized = normalize(
                schema,
                document,
                suffix=self.conflict_strategy.suffixes_fields,
                sanitize=self.sanitize_field_names,
                on_rename=lambda field_name, output_name: renamed.append(output_name),
            )
        except SchemaEvolutionError as e:
            self._count(documents_normalized_total.labels(table=table, status="failure"))
            slogger.error("Document normalization failed", error=str(e), error_type=type(e).__name__)
            raise

        if renamed:
            self._count(fields_suffixed_total.labels(table=table), len(renamed))
            slogger.debug("Stored colliding fields under suffixed names", fields=renamed)

        cast = cast_document(new_schema, normalized)
        malformed = None
        if has_fragments(cast):
            clean, fragments = extract_non_cast(cast, keep_normalized=self.conflict_strategy.keeps_fragments)
            if self.conflict_strategy.keeps_fragments:
                malformed = fragments
            self._count(malformed_fragments_total.labels(
                table=table, strategy=self.conflict_strategy.value))
            self._count(documents_normalized_total.labels(table=table, status="malformed"))
        else:
            clean = cast
            self._count(documents_normalized_total.labels(table=table, status="clean"))

        result.documents.append(clean)
        result.malformed.append(malformed)
        return new_schema

    def commit(self, result: BatchResult) -> None:
        """
        Publish a batch's schema once its DDL has been executed.

        Args:
            result: Result of process_batch
        """
        self._learned[result.table_name] = result.schema
        self._physical[result.table_name] = result.schema
        self._update_tracked_tables()
        logger.debug(f"Committed schema for {result.table_name} with {len(result.schema.fields)} top-level fields")

    def report(self, table: str, other: SchemaType, color: bool = False) -> str:
        """
        Render the changes between a table's learned schema and another schema.

        Args:
            table: Table name
            other: Schema to compare against, e.g. BatchResult.schema
            color: Highlight additions and removals with ANSI colors

        Returns:
            Human-readable change report
        """
        return render_change_set(compare(self.schema_for(table), other), color=color)

    def _update_tracked_tables(self) -> None:
        if self.metrics_enabled:
            tracked_tables.set(len(self._learned))

    def _count(self, counter, amount: int = 1) -> None:
        if self.metrics_enabled:
            counter.inc(amount)
