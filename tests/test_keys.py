"""Tests for key construction and value coercion."""

import math

import pytest

from opsdata_core import (
    ConfigurationError,
    KEY_SEPARATOR,
    KeyMode,
    Row,
    build_key,
    normalize_text,
    parse_columns,
    parse_number,
    parse_quantity,
    stringify,
)


class TestStringify:
    def test_null_is_empty(self):
        assert stringify(None) == ""

    def test_integral_float(self):
        assert stringify(10.0) == "10"

    def test_fractional_float(self):
        assert stringify(2.5) == "2.5"

    def test_nan_is_empty(self):
        assert stringify(float("nan")) == ""

    def test_bool(self):
        assert stringify(True) == "true"
        assert stringify(False) == "false"

    def test_text_untouched(self):
        assert stringify("  Abc ") == "  Abc "


class TestBuildKey:
    def test_single_column_exact(self):
        row = Row(origin_index=0, values={"sku": " Abc "})
        assert build_key(row, "sku") == " Abc "

    def test_normalized(self):
        row = Row(origin_index=0, values={"sku": "  Big   Box "})
        assert build_key(row, "sku", KeyMode.NORMALIZED) == "big box"

    def test_lowercase_keeps_spaces(self):
        row = Row(origin_index=0, values={"sku": " ABC "})
        assert build_key(row, "sku", KeyMode.LOWERCASE) == " abc "

    def test_composite_key(self):
        row = Row(origin_index=0, values={"sku": "A1", "loc": "R2"})
        assert build_key(row, ["sku", "loc"]) == f"A1{KEY_SEPARATOR}R2"
        assert build_key(row, "sku, loc") == "A1|R2"

    def test_null_components_collide(self):
        a = Row(origin_index=0, values={"sku": None})
        b = Row(origin_index=1, values={})
        assert build_key(a, "sku") == build_key(b, "sku") == ""

    def test_mode_accepts_string(self):
        row = Row(origin_index=0, values={"sku": "ABC"})
        assert build_key(row, "sku", "lowercase") == "abc"


class TestParseColumns:
    def test_comma_separated(self):
        assert parse_columns("sku, location ,") == ["sku", "location"]

    def test_list(self):
        assert parse_columns(["sku", "location"]) == ["sku", "location"]

    def test_empty_raises(self):
        with pytest.raises(ConfigurationError, match="key column"):
            parse_columns(" , ")


class TestParseNumber:
    @pytest.mark.parametrize("value,expected", [
        (5, 5.0),
        ("12", 12.0),
        (" -3.5 ", -3.5),
        ("1e3", 1000.0),
        (".5", 0.5),
    ])
    def test_valid(self, value, expected):
        assert parse_number(value) == expected

    @pytest.mark.parametrize("value", [None, "", "  ", "abc", "12abc", "1_000", "inf", "nan", True, float("inf")])
    def test_invalid(self, value):
        assert parse_number(value) is None

    def test_quantity_is_lenient(self):
        assert parse_quantity("abc") == 0.0
        assert parse_quantity(None) == 0.0
        assert parse_quantity("7") == 7.0
        assert not math.isnan(parse_quantity(float("nan")))


def test_normalize_text():
    assert normalize_text("\t Mixed\n Case  Text ") == "mixed case text"
