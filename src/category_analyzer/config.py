from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "ColumnConfig",
    "ExportOptions",
    "CURRENCY_SYMBOLS",
    "EXPORT_FORMATS",
    "MIME_TYPES",
    "REPORT_KINDS",
    "MIN_CATEGORY_WIDTH",
    "DEFAULT_TOP_N",
    "NO_DATA_MESSAGE",
]

CURRENCY_SYMBOLS = ("$", "€", "£", "¥", "₽", "₴", "₸")

EXPORT_FORMATS = ("txt", "csv", "json", "html")

MIME_TYPES = {
    "txt": "text/plain",
    "csv": "text/csv",
    "json": "application/json",
    "html": "text/html",
}

REPORT_KINDS = {
    "counts": "category_counts",
    "totals": "category_totals",
    "complete": "category_analysis",
}

MIN_CATEGORY_WIDTH = 15

DEFAULT_TOP_N = 5

NO_DATA_MESSAGE = "No data available"


@dataclass(frozen=True)
class ColumnConfig:
    """Names of the two required input columns."""

    category_column: str = "Department Name"
    amount_column: str = "Extended Price"

    @property
    def required(self) -> tuple[str, str]:
        return (self.category_column, self.amount_column)


@dataclass(frozen=True)
class ExportOptions:
    include_headers: bool = True
    delimiter: str = ","
    precision: int = 2
    category_label: str = "Category"
    currency_symbol: str = "$"
