# Test configuration

import pytest
import os
import sys

# Add the project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


@pytest.fixture
def test_settings():
    """Override settings for testing"""
    from cratesink.config.settings import Settings
    return Settings(
        log_level="DEBUG",
        log_json=False,
        metrics_enabled=True,
    )


@pytest.fixture(autouse=True)
def clear_table_context():
    """Make sure no table context leaks between tests"""
    from cratesink.common.logging_config import clear_table
    clear_table()
    yield
    clear_table()


@pytest.fixture
def user_documents():
    """Change events of a users table whose columns drift over time"""
    return [
        {"id": 1, "name": "Jon", "active": True},
        {"id": 2, "name": "Arya", "tags": []},
        {"id": 3, "name": "Sansa", "tags": ["stark"], "address": {"city": "Winterfell"}},
        {"id": "4", "name": 5},
    ]


@pytest.fixture
def catalog_rows():
    """information_schema rows of a table with nested and suffixed columns"""
    return [
        {
            "column_details": '{"name": "id", "path": []}',
            "column_name": "id",
            "data_type": "bigint",
            "character_maximum_length": None,
            "is_primary_key": True,
        },
        {
            "column_details": '{"name": "name", "path": []}',
            "column_name": "name",
            "data_type": "text",
            "character_maximum_length": None,
            "is_primary_key": False,
        },
        {
            "column_details": '{"name": "name_int", "path": []}',
            "column_name": "name_int",
            "data_type": "bigint",
            "character_maximum_length": None,
            "is_primary_key": False,
        },
        {
            "column_details": '{"name": "doc", "path": []}',
            "column_name": "doc",
            "data_type": "object",
            "character_maximum_length": None,
            "is_primary_key": False,
        },
        {
            "column_details": '{"name": "doc", "path": ["flags"]}',
            "column_name": "doc['flags']",
            "data_type": "bit",
            "character_maximum_length": 8,
            "is_primary_key": False,
        },
        {
            "column_details": '{"name": "doc", "path": ["scores"]}',
            "column_name": "doc['scores']",
            "data_type": "double precision_array",
            "character_maximum_length": None,
            "is_primary_key": False,
        },
    ]
