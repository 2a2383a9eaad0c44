from __future__ import annotations

import io

import pandas as pd
import pytest

from category_analyzer.loading import load_records
from category_analyzer.normalizer import normalize_rows, validate_structure


def test_load_records_reads_csv_text_as_strings():
    csv_content = (
        "Department Name,Extended Price,SKU\n"
        "Electronics,\"$1,200.00\",A-1\n"
        "\n"
        "Clothing,45,\n"
    )

    records = load_records(io.StringIO(csv_content), source_name="sales.csv")

    assert records == [
        {"Department Name": "Electronics", "Extended Price": "$1,200.00", "SKU": "A-1"},
        {"Department Name": "Clothing", "Extended Price": "45", "SKU": ""},
    ]


def test_load_records_handles_utf8_bom_bytes():
    payload = "Department Name,Extended Price\nToys,5\n".encode("utf-8-sig")

    records = load_records(io.BytesIO(payload), source_name="sales.csv")

    assert list(records[0].keys()) == ["Department Name", "Extended Price"]


def test_load_records_restores_stream_position():
    buffer = io.StringIO("Department Name,Extended Price\nToys,5\n")
    buffer.seek(5)

    load_records(buffer, source_name="sales.csv")

    assert buffer.tell() == 5


def test_load_records_empty_csv_returns_no_records():
    assert load_records(io.StringIO(""), source_name="empty.csv") == []


@pytest.mark.parametrize("text", ["", "\n\n", "Department Name,Extended Price\n"])
def test_empty_upload_reports_structural_error(text):
    records = load_records(io.StringIO(text), source_name="upload.csv")

    assert records == []
    assert validate_structure(records).errors == ["File is empty or invalid"]


def test_load_records_reads_first_sheet_from_xlsx():
    first = pd.DataFrame(
        {
            "Department Name": ["Electronics", "Clothing", ""],
            "Extended Price": [120.5, "$45.00", 10],
        }
    )
    other = pd.DataFrame({"Department Name": ["Ignored"], "Extended Price": [1]})

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        first.to_excel(writer, sheet_name="Sales", index=False)
        other.to_excel(writer, sheet_name="Other", index=False)

    buffer.seek(0)
    records = load_records(buffer, source_name="sales.xlsx")

    assert len(records) == 3
    result = normalize_rows(records)
    assert [row.category for row in result.rows] == ["Electronics", "Clothing"]
    assert [row.amount for row in result.rows] == pytest.approx([120.5, 45.0])
    assert result.warnings == ["Row 3: Missing or invalid Department Name"]


def test_load_records_rejects_corrupt_workbook():
    with pytest.raises(ValueError):
        load_records(io.BytesIO(b"not a workbook"), source_name="broken.xlsx")
