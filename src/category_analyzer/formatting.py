"""Render aggregation results as text, delimited text, JSON and HTML.

Every renderer is pure: it takes the aggregate data plus ``ExportOptions`` and
returns a string. Renderers that stamp a generation time accept
``generated_at`` so callers can pin it.
"""

from __future__ import annotations

import html
import json
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from category_analyzer.aggregation import AggregateResult, CategoryCount, CategoryTotal, Summary
from category_analyzer.config import (
    MIN_CATEGORY_WIDTH,
    NO_DATA_MESSAGE,
    ColumnConfig,
    ExportOptions,
)
from category_analyzer.normalizer import NormalizedRow

__all__ = [
    "format_number",
    "format_currency",
    "format_percentage",
    "counts_to_text",
    "counts_to_csv",
    "counts_to_json",
    "counts_to_html",
    "totals_to_text",
    "totals_to_csv",
    "totals_to_json",
    "totals_to_html",
    "report_to_text",
    "report_to_csv",
    "report_to_json",
    "report_to_html",
    "render_counts",
    "render_totals",
    "render_report",
    "rows_to_csv",
    "counts_preview",
    "totals_preview",
]

DEFAULT_OPTIONS = ExportOptions()

NUMBER_WIDTH = 10
COUNT_WIDTH = 5
PREVIEW_WIDTH = 30

HTML_STYLE = """
        body { font-family: Arial, sans-serif; margin: 20px; }
        .summary { background: #f5f5f5; padding: 15px; border-radius: 5px; margin-bottom: 20px; }
        table { border-collapse: collapse; width: 100%; margin-bottom: 20px; }
        th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
        th { background-color: #4CAF50; color: white; }
        .number { text-align: right; }
        .generated { font-style: italic; color: #666; margin-top: 20px; }
"""


# ---------------------------------------------------------------------------
# Shared number rules
# ---------------------------------------------------------------------------

def format_number(value: float, precision: int = 2) -> str:
    return f"{value:.{precision}f}"


def format_currency(value: float, precision: int = 2, symbol: str = "$") -> str:
    sign = "-" if value < 0 and round(abs(value), precision) != 0 else ""
    return f"{sign}{symbol}{abs(value):,.{precision}f}"


def format_percentage(value: float, precision: int = 2) -> str:
    return f"{format_number(value, precision)}%"


def _now(generated_at: Optional[datetime]) -> datetime:
    return generated_at or datetime.now(timezone.utc)


def _human_timestamp(generated_at: Optional[datetime]) -> str:
    return _now(generated_at).strftime("%Y-%m-%d %H:%M:%S")


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _column_width(values: Sequence[str], minimum: int) -> int:
    return max([len(value) for value in values] + [minimum])


def _category_width(names: Sequence[str]) -> int:
    return _column_width(names, MIN_CATEGORY_WIDTH)


def _money(value: float, options: ExportOptions) -> str:
    return format_currency(value, options.precision, options.currency_symbol)


# ---------------------------------------------------------------------------
# Counts
# ---------------------------------------------------------------------------

def _counts_table_lines(data: Sequence[CategoryCount], options: ExportOptions) -> List[str]:
    width = _category_width([item.category for item in data])
    percentages = [format_percentage(item.percentage, options.precision) for item in data]
    pct_width = _column_width(percentages, len("Percentage"))
    header = (
        f"{options.category_label.ljust(width)} | {'Count'.rjust(COUNT_WIDTH)} | "
        f"{'Percentage'.rjust(pct_width)}"
    )
    lines = [header, "-" * len(header)]
    for item, percentage in zip(data, percentages):
        lines.append(
            f"{item.category.ljust(width)} | {str(item.count).rjust(COUNT_WIDTH)} | "
            f"{percentage.rjust(pct_width)}"
        )
    return lines


def counts_to_text(
    data: Sequence[CategoryCount],
    options: ExportOptions = DEFAULT_OPTIONS,
    generated_at: Optional[datetime] = None,
) -> str:
    lines = ["CATEGORY ANALYSIS - COUNTS", "=" * 50, ""]

    if not data:
        lines.append(NO_DATA_MESSAGE)
    else:
        lines.extend(_counts_table_lines(data, options))
        lines.append("")
        lines.append(f"Total Categories: {len(data)}")
        lines.append(f"Total Records: {sum(item.count for item in data)}")

    lines.append(f"Generated: {_human_timestamp(generated_at)}")
    return "\n".join(lines)


def counts_to_csv(data: Sequence[CategoryCount], options: ExportOptions = DEFAULT_OPTIONS) -> str:
    delimiter = options.delimiter
    lines: List[str] = []
    if options.include_headers:
        lines.append(delimiter.join([options.category_label, "Count", "Percentage"]))
    if not data:
        lines.append(NO_DATA_MESSAGE)
    for item in data:
        lines.append(
            delimiter.join(
                [
                    _quote(item.category),
                    str(item.count),
                    format_percentage(item.percentage, options.precision),
                ]
            )
        )
    return "\n".join(lines)


def counts_to_json(
    data: Sequence[CategoryCount],
    options: ExportOptions = DEFAULT_OPTIONS,
    generated_at: Optional[datetime] = None,
) -> str:
    document = {
        "type": "category_counts",
        "generated": _now(generated_at).isoformat(),
        "summary": {
            "total_categories": len(data),
            "total_records": sum(item.count for item in data),
        },
        "data": [item.to_dict() for item in data],
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def _counts_table_html(data: Sequence[CategoryCount], options: ExportOptions) -> str:
    if not data:
        return f"<p>{NO_DATA_MESSAGE}</p>"
    rows = "".join(
        f"""
            <tr>
                <td>{html.escape(item.category)}</td>
                <td class="number">{item.count}</td>
                <td class="number">{format_percentage(item.percentage, options.precision)}</td>
            </tr>"""
        for item in data
    )
    return f"""<table>
        <thead>
            <tr>
                <th>{html.escape(options.category_label)}</th>
                <th>Count</th>
                <th>Percentage</th>
            </tr>
        </thead>
        <tbody>{rows}
        </tbody>
    </table>"""


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------

def _totals_table_lines(data: Sequence[CategoryTotal], options: ExportOptions) -> List[str]:
    width = _category_width([item.category for item in data])
    totals = [_money(item.total, options) for item in data]
    averages = [_money(item.average, options) for item in data]
    percentages = [format_percentage(item.percentage, options.precision) for item in data]
    money_width = _column_width(totals + averages, NUMBER_WIDTH)
    pct_width = _column_width(percentages, len("Percentage"))
    header = (
        f"{options.category_label.ljust(width)} | {'Total'.rjust(money_width)} | "
        f"{'Average'.rjust(money_width)} | {'Percentage'.rjust(pct_width)}"
    )
    lines = [header, "-" * len(header)]
    for item, total, average, percentage in zip(data, totals, averages, percentages):
        lines.append(
            f"{item.category.ljust(width)} | {total.rjust(money_width)} | "
            f"{average.rjust(money_width)} | {percentage.rjust(pct_width)}"
        )
    return lines


def totals_to_text(
    data: Sequence[CategoryTotal],
    options: ExportOptions = DEFAULT_OPTIONS,
    generated_at: Optional[datetime] = None,
) -> str:
    lines = ["CATEGORY ANALYSIS - TOTALS", "=" * 50, ""]

    if not data:
        lines.append(NO_DATA_MESSAGE)
    else:
        lines.extend(_totals_table_lines(data, options))
        lines.append("")
        lines.append(f"Total Categories: {len(data)}")
        lines.append(f"Grand Total: {_money(sum(item.total for item in data), options)}")

    lines.append(f"Generated: {_human_timestamp(generated_at)}")
    return "\n".join(lines)


def totals_to_csv(data: Sequence[CategoryTotal], options: ExportOptions = DEFAULT_OPTIONS) -> str:
    delimiter = options.delimiter
    precision = options.precision
    lines: List[str] = []
    if options.include_headers:
        lines.append(delimiter.join([options.category_label, "Total", "Average", "Percentage"]))
    if not data:
        lines.append(NO_DATA_MESSAGE)
    for item in data:
        lines.append(
            delimiter.join(
                [
                    _quote(item.category),
                    format_number(item.total, precision),
                    format_number(item.average, precision),
                    format_percentage(item.percentage, precision),
                ]
            )
        )
    return "\n".join(lines)


def totals_to_json(
    data: Sequence[CategoryTotal],
    options: ExportOptions = DEFAULT_OPTIONS,
    generated_at: Optional[datetime] = None,
) -> str:
    grand_total = sum((item.total for item in data), 0.0)
    document = {
        "type": "category_totals",
        "generated": _now(generated_at).isoformat(),
        "summary": {
            "total_categories": len(data),
            "grand_total": grand_total,
            "overall_average": sum(item.average for item in data) / len(data) if data else 0.0,
        },
        "data": [item.to_dict() for item in data],
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def _totals_table_html(data: Sequence[CategoryTotal], options: ExportOptions) -> str:
    if not data:
        return f"<p>{NO_DATA_MESSAGE}</p>"
    rows = "".join(
        f"""
            <tr>
                <td>{html.escape(item.category)}</td>
                <td class="number">{html.escape(_money(item.total, options))}</td>
                <td class="number">{html.escape(_money(item.average, options))}</td>
                <td class="number">{format_percentage(item.percentage, options.precision)}</td>
            </tr>"""
        for item in data
    )
    return f"""<table>
        <thead>
            <tr>
                <th>{html.escape(options.category_label)}</th>
                <th>Total</th>
                <th>Average</th>
                <th>Percentage</th>
            </tr>
        </thead>
        <tbody>{rows}
        </tbody>
    </table>"""


# ---------------------------------------------------------------------------
# Complete report
# ---------------------------------------------------------------------------

def _summary_pairs(summary: Summary, options: ExportOptions) -> List[tuple[str, str]]:
    return [
        ("Total Rows", str(summary.total_rows)),
        ("Total Categories", str(summary.total_categories)),
        ("Grand Total", _money(summary.grand_total, options)),
        ("Average Per Transaction", _money(summary.average_per_transaction, options)),
        ("Average Per Category", _money(summary.average_per_category, options)),
    ]


def report_to_text(
    result: AggregateResult,
    options: ExportOptions = DEFAULT_OPTIONS,
    generated_at: Optional[datetime] = None,
) -> str:
    lines = ["COMPLETE CATEGORY ANALYSIS REPORT", "=" * 60, "", "SUMMARY", "-" * 30]
    lines.extend(f"{label}: {value}" for label, value in _summary_pairs(result.summary, options))
    lines.append("")
    lines.append(counts_to_text(result.category_counts, options, generated_at))
    lines.extend(["", ""])
    lines.append(totals_to_text(result.category_totals, options, generated_at))
    return "\n".join(lines)


def report_to_csv(result: AggregateResult, options: ExportOptions = DEFAULT_OPTIONS) -> str:
    delimiter = options.delimiter
    precision = options.precision
    summary = result.summary
    lines = [
        "SUMMARY",
        f"Total Rows{delimiter}{summary.total_rows}",
        f"Total Categories{delimiter}{summary.total_categories}",
        f"Grand Total{delimiter}{format_number(summary.grand_total, precision)}",
        f"Average Per Transaction{delimiter}{format_number(summary.average_per_transaction, precision)}",
        f"Average Per Category{delimiter}{format_number(summary.average_per_category, precision)}",
        "",
        "CATEGORY COUNTS",
        counts_to_csv(result.category_counts, options),
        "",
        "CATEGORY TOTALS",
        totals_to_csv(result.category_totals, options),
    ]
    return "\n".join(lines)


def report_to_json(
    result: AggregateResult,
    options: ExportOptions = DEFAULT_OPTIONS,
    generated_at: Optional[datetime] = None,
) -> str:
    document = {
        "type": "complete_category_analysis",
        "generated": _now(generated_at).isoformat(),
        "summary": result.summary.to_dict(),
        "data": {
            "category_counts": [item.to_dict() for item in result.category_counts],
            "category_totals": [item.to_dict() for item in result.category_totals],
        },
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def _html_document(title: str, body: str, generated_at: Optional[datetime]) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)}</title>
    <style>{HTML_STYLE}    </style>
</head>
<body>
    <h1>{html.escape(title)}</h1>
{body}
    <div class="generated">
        Generated: {_human_timestamp(generated_at)}
    </div>
</body>
</html>
"""


def report_to_html(
    result: AggregateResult,
    options: ExportOptions = DEFAULT_OPTIONS,
    generated_at: Optional[datetime] = None,
) -> str:
    summary_block = "\n".join(
        f"        <p><strong>{label}:</strong> {html.escape(value)}</p>"
        for label, value in _summary_pairs(result.summary, options)
    )
    body = f"""
    <div class="summary">
        <h2>Summary</h2>
{summary_block}
    </div>

    <h2>Category Counts</h2>
    {_counts_table_html(result.category_counts, options)}

    <h2>Category Totals</h2>
    {_totals_table_html(result.category_totals, options)}
"""
    return _html_document("Category Analysis Report", body, generated_at)


def counts_to_html(
    data: Sequence[CategoryCount],
    options: ExportOptions = DEFAULT_OPTIONS,
    generated_at: Optional[datetime] = None,
) -> str:
    body = f"""
    <h2>Category Counts</h2>
    {_counts_table_html(data, options)}
"""
    return _html_document("Category Counts Report", body, generated_at)


def totals_to_html(
    data: Sequence[CategoryTotal],
    options: ExportOptions = DEFAULT_OPTIONS,
    generated_at: Optional[datetime] = None,
) -> str:
    body = f"""
    <h2>Category Totals</h2>
    {_totals_table_html(data, options)}
"""
    return _html_document("Category Totals Report", body, generated_at)


# ---------------------------------------------------------------------------
# Dispatch by format name
# ---------------------------------------------------------------------------

def _timeless(renderer: Callable[..., str]) -> Callable[..., str]:
    def render(data, options, generated_at):
        return renderer(data, options)

    return render


COUNT_RENDERERS: Dict[str, Callable[..., str]] = {
    "txt": counts_to_text,
    "csv": _timeless(counts_to_csv),
    "json": counts_to_json,
    "html": counts_to_html,
}

TOTAL_RENDERERS: Dict[str, Callable[..., str]] = {
    "txt": totals_to_text,
    "csv": _timeless(totals_to_csv),
    "json": totals_to_json,
    "html": totals_to_html,
}

REPORT_RENDERERS: Dict[str, Callable[..., str]] = {
    "txt": report_to_text,
    "csv": _timeless(report_to_csv),
    "json": report_to_json,
    "html": report_to_html,
}


def _pick(renderers: Dict[str, Callable[..., str]], fmt: str) -> Callable[..., str]:
    try:
        return renderers[fmt.lower()]
    except KeyError:
        raise ValueError(f"Unsupported export format '{fmt}'") from None


def render_counts(
    data: Sequence[CategoryCount],
    fmt: str = "txt",
    options: ExportOptions = DEFAULT_OPTIONS,
    generated_at: Optional[datetime] = None,
) -> str:
    return _pick(COUNT_RENDERERS, fmt)(data, options, generated_at)


def render_totals(
    data: Sequence[CategoryTotal],
    fmt: str = "txt",
    options: ExportOptions = DEFAULT_OPTIONS,
    generated_at: Optional[datetime] = None,
) -> str:
    return _pick(TOTAL_RENDERERS, fmt)(data, options, generated_at)


def render_report(
    result: AggregateResult,
    fmt: str = "txt",
    options: ExportOptions = DEFAULT_OPTIONS,
    generated_at: Optional[datetime] = None,
) -> str:
    return _pick(REPORT_RENDERERS, fmt)(result, options, generated_at)


# ---------------------------------------------------------------------------
# Raw rows and quick previews
# ---------------------------------------------------------------------------

def _raw_cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return _quote(value)
    return str(value)


def rows_to_csv(
    rows: Sequence[NormalizedRow],
    columns: ColumnConfig = ColumnConfig(),
    options: ExportOptions = DEFAULT_OPTIONS,
) -> str:
    """Dump normalized rows back to delimited text, extra columns included."""
    if not rows:
        return NO_DATA_MESSAGE

    extra_columns = list(dict.fromkeys(key for row in rows for key in row.extra_fields))
    header = [columns.category_column, columns.amount_column] + extra_columns

    lines: List[str] = []
    if options.include_headers:
        lines.append(options.delimiter.join(_quote(name) for name in header))
    for row in rows:
        values = [_quote(row.category), str(row.amount)]
        values.extend(_raw_cell(row.extra_fields.get(name)) for name in extra_columns)
        lines.append(options.delimiter.join(values))
    return "\n".join(lines)


def counts_preview(data: Sequence[CategoryCount], label: str = "Category") -> str:
    if not data:
        return NO_DATA_MESSAGE
    lines = [label]
    lines.extend(f"{item.category.ljust(PREVIEW_WIDTH)} {item.count}" for item in data)
    return "\n".join(lines)


def totals_preview(data: Sequence[CategoryTotal], label: str = "Category") -> str:
    if not data:
        return NO_DATA_MESSAGE
    lines = [label]
    lines.extend(f"{item.category.ljust(PREVIEW_WIDTH)} {format_number(item.total)}" for item in data)
    return "\n".join(lines)
