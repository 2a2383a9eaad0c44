from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import Decimal
from fractions import Fraction

import numpy as np
import pytest

from category_analyzer.config import ColumnConfig
from category_analyzer.normalizer import (
    NormalizedRow,
    clean_category,
    describe_rows,
    normalize_rows,
    parse_amount,
    validate_structure,
)


def test_parse_amount_strips_currency_and_thousands_separators():
    assert parse_amount("$1,200.00") == pytest.approx(1200.0)
    assert parse_amount(" € 2 500.5 ") == pytest.approx(2500.5)
    assert parse_amount("-45") == pytest.approx(-45.0)


def test_parse_amount_keeps_finite_numbers():
    assert parse_amount(12) == 12.0
    assert parse_amount(3.5) == 3.5
    assert parse_amount(np.float64(7.25)) == 7.25
    assert parse_amount(np.int64(4)) == 4.0


def test_parse_amount_accepts_other_real_numbers():
    assert parse_amount(Decimal("1.5")) == pytest.approx(1.5)
    assert parse_amount(Decimal("-1000")) == pytest.approx(-1000.0)
    assert parse_amount(Fraction(3, 4)) == pytest.approx(0.75)
    assert parse_amount(Decimal("NaN")) is None
    assert parse_amount(Decimal("Infinity")) is None
    assert parse_amount(np.bool_(True)) is None


@pytest.mark.parametrize("value", ["abc", "", "   ", None, float("nan"), float("inf"), "inf", "NaN", True, "12abc"])
def test_parse_amount_rejects_non_numbers(value):
    assert parse_amount(value) is None


def test_clean_category_trims_and_rejects_blank():
    assert clean_category("  Electronics ") == "Electronics"
    assert clean_category("   ") is None
    assert clean_category(None) is None
    assert clean_category(float("nan")) is None
    assert clean_category(42) == "42"


def test_normalize_rows_builds_typed_rows_and_keeps_extra_columns():
    records = [
        {"Department Name": " Electronics ", "Extended Price": "$1,200.00", "SKU": "A-1", "Qty": 2},
        {"Department Name": "Clothing", "Extended Price": 45, "SKU": "B-7", "Qty": ""},
    ]

    result = normalize_rows(records)

    assert result.warnings == []
    assert result.rows == [
        NormalizedRow("Electronics", 1200.0, {"SKU": "A-1", "Qty": 2}),
        NormalizedRow("Clothing", 45.0, {"SKU": "B-7", "Qty": ""}),
    ]
    assert list(result.rows[0].extra_fields) == ["SKU", "Qty"]


def test_normalize_rows_skips_malformed_rows_with_warnings():
    records = [
        {"Department Name": "Electronics", "Extended Price": "abc"},
        {"Department Name": "  ", "Extended Price": "10"},
        {"Extended Price": "10"},
        {},
        {"Department Name": "Toys", "Extended Price": "5.50"},
    ]

    result = normalize_rows(records)

    assert [row.category for row in result.rows] == ["Toys"]
    assert result.warnings == [
        "Row 1: Missing or invalid Extended Price",
        "Row 2: Missing or invalid Department Name",
        "Row 3: Missing or invalid Department Name",
    ]


def test_normalize_rows_reports_records_that_are_not_mappings():
    records = [
        {"Department Name": "A", "Extended Price": "1"},
        ["junk"],
        None,
        {"Department Name": "B", "Extended Price": "2"},
    ]

    result = normalize_rows(records)

    assert [row.category for row in result.rows] == ["A", "B"]
    assert result.warnings == [
        "Row 2: Record is not a column mapping",
        "Row 3: Record is not a column mapping",
    ]


def test_normalize_rows_all_malformed_returns_empty_result():
    result = normalize_rows([{"Department Name": "", "Extended Price": "1"}] * 3)

    assert result.rows == []
    assert len(result.warnings) == 3


def test_normalize_rows_uses_configured_columns():
    columns = ColumnConfig(category_column="Category", amount_column="Amount")
    records = [{"Category": "Food", "Amount": "9.99", "Department Name": "ignored"}]

    result = normalize_rows(records, columns)

    assert result.rows[0].category == "Food"
    assert result.rows[0].amount == pytest.approx(9.99)
    assert result.rows[0].extra_fields == {"Department Name": "ignored"}


def test_validate_structure_reports_missing_columns():
    result = validate_structure([{"Department Name": "A", "Price": 1}])

    assert not result.is_valid
    assert result.errors == ['Missing required column: "Extended Price"']


@pytest.mark.parametrize("records", [[], None, "Department Name,Extended Price", 5])
def test_validate_structure_rejects_non_tables(records):
    result = validate_structure(records)

    assert not result.is_valid
    assert result.errors == ["File is empty or invalid"]


def test_validate_structure_rejects_missing_first_row():
    result = validate_structure([{}])

    assert not result.is_valid
    assert result.errors == ["File has no data rows"]


def test_validate_structure_accepts_rows_that_are_only_malformed():
    result = validate_structure([{"Department Name": "", "Extended Price": "abc"}])

    assert result.is_valid
    assert result.errors == []


def test_describe_rows_profiles_dataset():
    rows = [NormalizedRow("A", 10.0), NormalizedRow("B", 5.0), NormalizedRow("A", 3.0)]
    moment = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    profile = describe_rows(rows, processed_at=moment)

    assert profile["total_rows"] == 3
    assert profile["unique_categories"] == 2
    assert profile["total_value"] == pytest.approx(18.0)
    assert profile["average_value"] == pytest.approx(6.0)
    assert profile["date_processed"] == "2024-05-01T12:00:00+00:00"


def test_describe_rows_empty():
    profile = describe_rows([])

    assert profile["total_rows"] == 0
    assert profile["average_value"] == 0.0
    assert not math.isnan(profile["total_value"])
