"""
Unit tests for the batch processor.
"""

import pytest

from cratesink.catalog.columns import PhysicalColumnDescriptor
from cratesink.common.logging_config import get_table
from cratesink.common.metrics import (
    ddl_statements_total,
    documents_normalized_total,
    fields_suffixed_total,
    malformed_fragments_total,
)
from cratesink.config.settings import ConflictStrategy
from cratesink.ingest.processor import BatchResult, SchemaEvolutionProcessor
from cratesink.schema import (
    INTEGER,
    NULL,
    TEXT,
    ArrayType,
    InvalidSchemaShape,
    ObjectType,
    UnionType,
    UnknownPhysicalType,
    UnsupportedValueKind,
)


@pytest.fixture
def processor():
    return SchemaEvolutionProcessor(
        conflict_strategy=ConflictStrategy.SUFFIX_AND_FRAGMENT,
        sanitize_field_names=True,
        decode_index_arrays=True,
    )


def descriptor(data_type, *path):
    return PhysicalColumnDescriptor(data_type=data_type, column_name=path[0], path=path)


class TestProcessBatch:
    """Tests for process_batch."""

    def test_new_table(self, processor):
        result = processor.process_batch("users", [{"id": 1, "name": "Jon"}])

        assert result.schema == ObjectType.of(id=INTEGER, name=TEXT)
        assert result.statements == [
            'ALTER TABLE "users" ADD COLUMN "id" BIGINT',
            'ALTER TABLE "users" ADD COLUMN "name" TEXT',
        ]
        assert result.documents == [{"id": 1, "name": "Jon"}]
        assert result.malformed == [None]
        assert result.has_schema_changes

    def test_nothing_published_before_commit(self, processor):
        processor.process_batch("users", [{"id": 1}])

        assert processor.schema_for("users") == ObjectType()
        assert processor.tables == []

    def test_collisions_are_suffixed(self, processor):
        processor.commit(processor.process_batch("users", [{"id": 1, "name": "Jon"}]))

        result = processor.process_batch("users", [{"id": "asd", "name": 2}])

        assert result.documents == [{"id_text": "asd", "name_int": 2}]
        assert result.malformed == [None]
        assert result.statements == []
        assert result.schema.fields["id"] == UnionType((INTEGER, TEXT))

    def test_drifting_documents(self, processor, user_documents):
        result = processor.process_batch("users", user_documents)

        assert result.documents[-1] == {"id_text": "4", "name_int": 5}
        assert result.documents[2]["tags"] == ["stark"]
        assert result.malformed == [None, None, None, None]
        assert result.statements == [
            'ALTER TABLE "users" ADD COLUMN "id" BIGINT',
            'ALTER TABLE "users" ADD COLUMN "name" TEXT',
            'ALTER TABLE "users" ADD COLUMN "active" BOOLEAN',
            'ALTER TABLE "users" ADD COLUMN "tags" ARRAY(TEXT)',
            'ALTER TABLE "users" ADD COLUMN "address"[\'city\'] TEXT',
        ]

    def test_documents_in_batch_see_each_other(self, processor):
        result = processor.process_batch("users", [{"id": 1}, {"id": "x"}, {"id": 2}])

        assert result.documents == [{"id": 1}, {"id_text": "x"}, {"id": 2}]

    def test_index_encoded_arrays_are_decoded(self, processor):
        result = processor.process_batch("events", [{"tags": {"_0": "a", "_1": "b"}}])

        assert result.documents == [{"tags": ["a", "b"]}]
        assert result.schema == ObjectType.of(tags=ArrayType(TEXT))

    def test_decoding_can_be_disabled(self):
        processor = SchemaEvolutionProcessor(decode_index_arrays=False)

        result = processor.process_batch("events", [{"tags": {"_0": "a"}}])

        assert result.documents == [{"tags": {"_0": "a"}}]

    def test_mixed_array_keeps_fragment(self, processor):
        result = processor.process_batch("events", [{"values": [1, "two"]}])

        assert result.documents == [{"values": [1, None]}]
        assert result.malformed == [{"values": [None, "two"]}]
        assert result.malformed_count == 1

    def test_object_of_nulls_gets_a_column(self, processor):
        result = processor.process_batch("events", [{"o": {"x": None}}])

        assert result.documents == [{"o": {}}]
        assert result.statements == ['ALTER TABLE "events" ADD COLUMN "o" OBJECT(DYNAMIC)']

    def test_empty_batch(self, processor):
        result = processor.process_batch("users", [])

        assert result.documents == []
        assert result.statements == []

    def test_non_object_document(self, processor):
        with pytest.raises(InvalidSchemaShape):
            processor.process_batch("users", [[1, 2]])

    def test_unsupported_value_propagates(self, processor):
        with pytest.raises(UnsupportedValueKind):
            processor.process_batch("users", [{"blob": b"\x00"}])

    def test_table_context_is_cleared(self, processor):
        processor.process_batch("users", [{"id": 1}])
        assert get_table() is None


class TestConflictStrategies:
    """Tests for the configured conflict strategy."""

    def seeded(self, strategy):
        processor = SchemaEvolutionProcessor(conflict_strategy=strategy)
        processor.load_catalog("users", [descriptor("bigint", "id"), descriptor("text", "name")])
        return processor

    def test_preserve_as_fragment(self):
        processor = self.seeded(ConflictStrategy.PRESERVE_AS_FRAGMENT)

        result = processor.process_batch("users", [{"id": "asd", "name": 2}])

        assert result.documents == [{"id": None, "name": "2"}]
        assert result.malformed == [{"id": "asd", "name": 2}]

    def test_drop(self):
        processor = self.seeded(ConflictStrategy.DROP)

        result = processor.process_batch("users", [{"id": "asd", "name": 2}])

        assert result.documents == [{"id": None, "name": None}]
        assert result.malformed == [None]

    def test_strategy_from_string(self):
        processor = SchemaEvolutionProcessor(conflict_strategy="malformed")
        assert processor.conflict_strategy is ConflictStrategy.PRESERVE_AS_FRAGMENT

    def test_strategy_flags(self):
        assert ConflictStrategy.SUFFIX_AND_FRAGMENT.suffixes_fields
        assert not ConflictStrategy.PRESERVE_AS_FRAGMENT.suffixes_fields
        assert ConflictStrategy.PRESERVE_AS_FRAGMENT.keeps_fragments
        assert not ConflictStrategy.DROP.keeps_fragments


class TestCatalog:
    """Tests for load_catalog, commit and report."""

    def test_load_catalog(self, processor):
        schema = processor.load_catalog("users", [descriptor("text", "name"), descriptor("bigint", "name_int")])

        assert schema == ObjectType.of(name=TEXT, name_int=INTEGER)
        assert processor.schema_for("users") == schema
        assert processor.tables == ["users"]

    def test_loaded_columns_need_no_ddl(self, processor):
        processor.load_catalog("users", [descriptor("bigint", "id")])

        result = processor.process_batch("users", [{"id": 7}])

        assert result.statements == []

    def test_load_catalog_unknown_type(self, processor):
        with pytest.raises(UnknownPhysicalType):
            processor.load_catalog("users", [descriptor("geo_shape", "area")])

        assert processor.tables == []

    def test_commit_publishes_schema(self, processor):
        first = processor.process_batch("events", [{"tags": []}])
        assert first.statements == []
        processor.commit(first)
        assert processor.schema_for("events") == ObjectType.of(tags=ArrayType(NULL))

        second = processor.process_batch("events", [{"tags": ["a"]}])

        assert second.statements == ['ALTER TABLE "events" ADD COLUMN "tags" ARRAY(TEXT)']

    def test_report(self, processor):
        processor.commit(processor.process_batch("users", [{"id": 1}]))
        result = processor.process_batch("users", [{"id": 2, "name": "Jon"}])

        report = processor.report("users", result.schema)

        assert "> name:" in report
        assert "+ TEXT" in report


class TestBatchResult:
    """Tests for BatchResult."""

    def test_to_dict(self):
        result = BatchResult(
            table_name="users",
            schema=ObjectType.of(id=INTEGER),
            statements=['ALTER TABLE "users" ADD COLUMN "id" BIGINT'],
            documents=[{"id": 1}],
            malformed=[None],
        )

        assert result.to_dict() == {
            "table_name": "users",
            "schema": {"object": {"id": {"primitive": "integer"}}},
            "statements": ['ALTER TABLE "users" ADD COLUMN "id" BIGINT'],
            "documents": [{"id": 1}],
            "malformed": [None],
        }

    def test_defaults(self):
        result = BatchResult(table_name="users", schema=ObjectType())

        assert not result.has_schema_changes
        assert result.malformed_count == 0


class TestProcessorMetrics:
    """Metrics recorded while processing."""

    def test_counters(self, processor):
        clean = documents_normalized_total.labels(table="metrics_t", status="clean")._value.get()
        malformed = documents_normalized_total.labels(table="metrics_t", status="malformed")._value.get()
        suffixed = fields_suffixed_total.labels(table="metrics_t")._value.get()
        fragments = malformed_fragments_total.labels(
            table="metrics_t", strategy="type_suffix_and_malformed")._value.get()
        ddl = ddl_statements_total.labels(table="metrics_t")._value.get()

        processor.process_batch("metrics_t", [{"id": 1}, {"id": "x"}, {"v": [1, "a"]}])

        assert documents_normalized_total.labels(table="metrics_t", status="clean")._value.get() == clean + 2
        assert documents_normalized_total.labels(
            table="metrics_t", status="malformed")._value.get() == malformed + 1
        assert fields_suffixed_total.labels(table="metrics_t")._value.get() == suffixed + 1
        assert malformed_fragments_total.labels(
            table="metrics_t", strategy="type_suffix_and_malformed")._value.get() == fragments + 1
        assert ddl_statements_total.labels(table="metrics_t")._value.get() == ddl + 2
