"""
Unit tests for the information_schema loader.
"""

from unittest.mock import Mock

from cratesink.catalog.loader import INFORMATION_SCHEMA_QUERY, InformationSchemaLoader
from cratesink.catalog.reconstructor import rebuild
from cratesink.schema import INTEGER, TEXT, ObjectType


def make_connection(rows):
    connection = Mock()
    connection.execute.return_value.mappings.return_value.all.return_value = rows
    return connection


class TestInformationSchemaLoader:
    """Tests for InformationSchemaLoader."""

    def test_load_builds_descriptors(self, catalog_rows):
        connection = make_connection(catalog_rows)

        columns = InformationSchemaLoader("users", table_schema="doc").load(connection)

        assert [c.column_name for c in columns] == [row["column_name"] for row in catalog_rows]
        assert columns[0].is_primary_key
        assert columns[4].path == ("doc", "flags")

    def test_query_is_bound_to_table(self):
        connection = make_connection([])

        InformationSchemaLoader("users", table_schema="events").load(connection)

        statement, params = connection.execute.call_args[0]
        assert statement is INFORMATION_SCHEMA_QUERY
        assert params == {"table_name": "users", "table_schema": "events"}

    def test_table_schema_defaults_to_settings(self):
        loader = InformationSchemaLoader("users")
        assert loader.table_schema == "doc"

    def test_missing_table_loads_nothing(self):
        assert InformationSchemaLoader("missing").load(make_connection([])) == []

    def test_query_joins_primary_keys(self):
        sql = str(INFORMATION_SCHEMA_QUERY)

        assert "information_schema.key_column_usage" in sql
        assert ":table_name" in sql
        assert "is_primary_key" in sql

    def test_loaded_columns_rebuild(self):
        rows = [
            {"column_details": '{"name": "id", "path": []}', "column_name": "id",
             "data_type": "bigint", "character_maximum_length": None, "is_primary_key": True},
            {"column_details": '{"name": "name", "path": []}', "column_name": "name",
             "data_type": "text", "character_maximum_length": None, "is_primary_key": False},
        ]

        columns = InformationSchemaLoader("users").load(make_connection(rows))

        assert rebuild(columns) == ObjectType.of(id=INTEGER, name=TEXT)
