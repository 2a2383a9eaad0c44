from __future__ import annotations

import logging
import math
import numbers
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np

from category_analyzer.config import CURRENCY_SYMBOLS, ColumnConfig

__all__ = [
    "NormalizedRow",
    "NormalizationResult",
    "ValidationResult",
    "parse_amount",
    "clean_category",
    "normalize_rows",
    "validate_structure",
    "describe_rows",
]

logger = logging.getLogger(__name__)

RawValue = Union[str, float, int, None]

SPACE_PATTERN = re.compile(r"[\s\u00A0\u202F]")

NUMBER_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass(frozen=True)
class NormalizedRow:
    category: str
    amount: float
    extra_fields: dict[str, RawValue] = field(default_factory=dict)


@dataclass
class NormalizationResult:
    rows: List[NormalizedRow]
    warnings: List[str]


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str]


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (float, np.floating)) and math.isnan(value):
        return True
    return False


def _strip_amount_text(value: str) -> str:
    cleaned = SPACE_PATTERN.sub("", value)
    for symbol in CURRENCY_SYMBOLS:
        cleaned = cleaned.replace(symbol, "")
    return cleaned.replace(",", "")


def parse_amount(value: Any) -> Optional[float]:
    """Coerce a raw cell into a finite float, or ``None`` when it is not one.

    Strings lose currency symbols, thousands separators and whitespace
    before parsing, so ``"$1,200.00"`` becomes ``1200.0``.
    """
    if _is_missing(value) or isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (numbers.Real, Decimal)):
        number = float(value)
        return number if np.isfinite(number) else None
    if not isinstance(value, str):
        return None

    cleaned = _strip_amount_text(value)
    if not NUMBER_PATTERN.fullmatch(cleaned):
        return None
    number = float(cleaned)
    return number if math.isfinite(number) else None


def clean_category(value: Any) -> Optional[str]:
    if _is_missing(value):
        return None
    cleaned = str(value).strip()
    return cleaned or None


def _normalize_record(
    record: Mapping[str, RawValue],
    columns: ColumnConfig,
) -> NormalizedRow:
    if not isinstance(record, Mapping):
        raise ValueError("Record is not a column mapping")
    category = clean_category(record.get(columns.category_column))
    if category is None:
        raise ValueError(f"Missing or invalid {columns.category_column}")

    amount = parse_amount(record.get(columns.amount_column))
    if amount is None:
        raise ValueError(f"Missing or invalid {columns.amount_column}")

    extra_fields = {
        key: value
        for key, value in record.items()
        if key not in (columns.category_column, columns.amount_column)
    }
    return NormalizedRow(category=category, amount=amount, extra_fields=extra_fields)


def normalize_rows(
    records: Iterable[Mapping[str, RawValue]],
    columns: ColumnConfig = ColumnConfig(),
) -> NormalizationResult:
    """Turn loosely typed records into rows ready for aggregation.

    Malformed records are skipped and reported as ``"Row N: reason"`` with a
    1-based ``N``; records without any keys are skipped silently.
    """
    rows: List[NormalizedRow] = []
    warnings: List[str] = []

    for index, record in enumerate(records, start=1):
        if isinstance(record, Mapping) and not record:
            continue
        try:
            rows.append(_normalize_record(record, columns))
        except ValueError as exc:
            message = f"Row {index}: {exc}"
            logger.debug("Skipping record: %s", message)
            warnings.append(message)

    if warnings:
        logger.warning("Data validation produced %d warning(s)", len(warnings))
    return NormalizationResult(rows=rows, warnings=warnings)


def validate_structure(
    records: Any,
    columns: ColumnConfig = ColumnConfig(),
) -> ValidationResult:
    """Check that the input looks like a table with both required columns."""
    errors: List[str] = []

    if not isinstance(records, Sequence) or isinstance(records, (str, bytes)) or not records:
        errors.append("File is empty or invalid")
        return ValidationResult(is_valid=False, errors=errors)

    first = records[0]
    if not first or not isinstance(first, Mapping):
        errors.append("File has no data rows")
        return ValidationResult(is_valid=False, errors=errors)

    available = list(first.keys())
    for name in columns.required:
        if name not in available:
            errors.append(f'Missing required column: "{name}"')

    # Rows that are present but malformed are reported by normalize_rows.
    return ValidationResult(is_valid=not errors, errors=errors)


def describe_rows(
    rows: Sequence[NormalizedRow],
    processed_at: Optional[datetime] = None,
) -> dict[str, object]:
    total_rows = len(rows)
    total_value = sum(row.amount for row in rows)
    moment = processed_at or datetime.now(timezone.utc)
    return {
        "total_rows": total_rows,
        "unique_categories": len({row.category for row in rows}),
        "total_value": total_value,
        "average_value": total_value / total_rows if total_rows else 0.0,
        "date_processed": moment.isoformat(),
    }
