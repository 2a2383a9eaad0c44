from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, NamedTuple, Optional, Sequence

from category_analyzer.aggregation import AggregateResult, CategoryCount, CategoryTotal
from category_analyzer.config import (
    EXPORT_FORMATS,
    MIME_TYPES,
    REPORT_KINDS,
    ColumnConfig,
    ExportOptions,
)
from category_analyzer.formatting import render_counts, render_report, render_totals, rows_to_csv
from category_analyzer.normalizer import NormalizedRow

__all__ = [
    "ExportResult",
    "DownloadSink",
    "export_timestamp",
    "build_filename",
    "export_category_counts",
    "export_category_totals",
    "export_complete_report",
    "export_filtered_data",
    "export_all_formats",
]

logger = logging.getLogger(__name__)


class ExportResult(NamedTuple):
    content: str
    filename: str
    mime_type: str


DownloadSink = Callable[[str, str, str], object]


def export_timestamp(moment: Optional[datetime] = None) -> str:
    """Return ``YYYY-MM-DDTHH-MM-SS`` in UTC, safe for use in filenames."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S").replace(":", "-")


def _check_format(fmt: str) -> str:
    normalized = fmt.lower()
    if normalized not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format '{fmt}'")
    return normalized


def build_filename(prefix: str, fmt: str, moment: Optional[datetime] = None) -> str:
    return f"{prefix}_{export_timestamp(moment)}.{fmt}"


def _result(content: str, prefix: str, fmt: str, moment: Optional[datetime]) -> ExportResult:
    filename = build_filename(prefix, fmt, moment)
    logger.debug("Prepared export %s (%d characters)", filename, len(content))
    return ExportResult(content=content, filename=filename, mime_type=MIME_TYPES[fmt])


def export_category_counts(
    data: Sequence[CategoryCount],
    fmt: str = "txt",
    options: ExportOptions = ExportOptions(),
    moment: Optional[datetime] = None,
) -> ExportResult:
    fmt = _check_format(fmt)
    content = render_counts(data, fmt, options, moment)
    return _result(content, REPORT_KINDS["counts"], fmt, moment)


def export_category_totals(
    data: Sequence[CategoryTotal],
    fmt: str = "txt",
    options: ExportOptions = ExportOptions(),
    moment: Optional[datetime] = None,
) -> ExportResult:
    fmt = _check_format(fmt)
    content = render_totals(data, fmt, options, moment)
    return _result(content, REPORT_KINDS["totals"], fmt, moment)


def export_complete_report(
    result: AggregateResult,
    fmt: str = "txt",
    options: ExportOptions = ExportOptions(),
    moment: Optional[datetime] = None,
) -> ExportResult:
    fmt = _check_format(fmt)
    content = render_report(result, fmt, options, moment)
    return _result(content, REPORT_KINDS["complete"], fmt, moment)


def export_filtered_data(
    rows: Sequence[NormalizedRow],
    columns: ColumnConfig = ColumnConfig(),
    prefix: str = "filtered_data",
    options: ExportOptions = ExportOptions(),
    moment: Optional[datetime] = None,
) -> ExportResult:
    content = rows_to_csv(rows, columns, options)
    return _result(content, prefix, "csv", moment)


def export_all_formats(
    result: AggregateResult,
    sink: DownloadSink,
    options: ExportOptions = ExportOptions(),
    moment: Optional[datetime] = None,
) -> ExportResult:
    """Hand the complete JSON report to ``sink(content, filename, mime_type)``."""
    export = export_complete_report(result, "json", options, moment)
    sink(export.content, export.filename, export.mime_type)
    return export
