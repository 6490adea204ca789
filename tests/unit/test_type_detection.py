"""
Unit tests for type detection.
"""

import pytest

from cratesink.schema import (
    BOOLEAN,
    FLOAT,
    INTEGER,
    NULL,
    TEXT,
    ArrayType,
    ObjectType,
    UnsupportedValueKind,
    detect,
)


class TestPrimitiveDetection:
    """Tests for scalar values."""

    def test_detect_null(self):
        assert detect(None) == NULL

    def test_detect_boolean(self):
        assert detect(True) == BOOLEAN
        assert detect(False) == BOOLEAN

    def test_detect_integer(self):
        assert detect(1234) == INTEGER
        assert detect(0) == INTEGER
        assert detect(-100) == INTEGER

    def test_detect_float(self):
        assert detect(3.14) == FLOAT
        assert detect(-0.5) == FLOAT

    def test_detect_text(self):
        assert detect("Jon") == TEXT
        assert detect("") == TEXT


class TestContainerDetection:
    """Tests for arrays and objects."""

    def test_detect_array_uses_first_element(self):
        assert detect([1, "a", True]) == ArrayType(INTEGER)

    def test_detect_tuple(self):
        assert detect(("a", "b")) == ArrayType(TEXT)

    def test_detect_empty_array(self):
        assert detect([]) == ArrayType(NULL)

    def test_detect_nested_array(self):
        assert detect([[True]]) == ArrayType(ArrayType(BOOLEAN))

    def test_detect_object(self):
        value = {"id": 1, "name": "Jon", "address": {"zip": None}}

        assert detect(value) == ObjectType.of(
            id=INTEGER,
            name=TEXT,
            address=ObjectType.of(zip=NULL),
        )

    def test_detect_empty_object(self):
        assert detect({}) == ObjectType()

    def test_detect_keeps_field_order(self):
        assert list(detect({"b": 1, "a": 2}).fields) == ["b", "a"]


class TestUnsupportedValues:
    """Tests for values outside the value model."""

    @pytest.mark.parametrize("value", [b"bytes", object(), {1, 2}, 1 + 2j])
    def test_unsupported_kind_raises(self, value):
        with pytest.raises(UnsupportedValueKind) as exc_info:
            detect(value)

        assert exc_info.value.value_type == type(value).__name__

    def test_non_string_key_raises(self):
        with pytest.raises(UnsupportedValueKind):
            detect({1: "one"})

    def test_nested_unsupported_value_raises(self):
        with pytest.raises(UnsupportedValueKind):
            detect({"payload": [b"raw"]})
