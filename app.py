from __future__ import annotations

import logging
import sys
from pathlib import Path

import pandas as pd
import streamlit as st
from streamlit.delta_generator import DeltaGenerator

ROOT_DIR = Path(__file__).resolve().parent
SRC_DIR = ROOT_DIR / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

from category_analyzer.aggregation import (
    AggregateResult,
    aggregate,
    compare_categories,
    filter_by_amount_range,
    filter_by_category,
    search_categories,
    top_categories_by_count,
    top_categories_by_total,
)
from category_analyzer.config import EXPORT_FORMATS, ColumnConfig, ExportOptions
from category_analyzer.export import (
    ExportResult,
    export_all_formats,
    export_category_counts,
    export_category_totals,
    export_complete_report,
    export_filtered_data,
)
from category_analyzer.formatting import counts_preview, format_currency, totals_preview
from category_analyzer.loading import load_records
from category_analyzer.normalizer import (
    NormalizedRow,
    describe_rows,
    normalize_rows,
    validate_structure,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

GENERIC_FAILURE = "Failed to parse or process file."


def create_download_button(label: str, export: ExportResult, key: str) -> None:
    st.download_button(
        label=label,
        data=export.content.encode("utf-8"),
        file_name=export.filename,
        mime=export.mime_type,
        key=key,
    )


def rows_to_frame(rows: list[NormalizedRow], columns: ColumnConfig) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {columns.category_column: row.category, columns.amount_column: row.amount, **row.extra_fields}
            for row in rows
        ]
    )


def pick_columns(sidebar: DeltaGenerator, headers: list[str]) -> ColumnConfig:
    defaults = ColumnConfig()
    sidebar.subheader("Columns")

    def _index(name: str, fallback: int) -> int:
        if name in headers:
            return headers.index(name)
        return min(fallback, len(headers) - 1)

    category_column = sidebar.selectbox(
        "Category column",
        options=headers,
        index=_index(defaults.category_column, 0),
        key="category_column",
    )
    amount_column = sidebar.selectbox(
        "Amount column",
        options=headers,
        index=_index(defaults.amount_column, 1),
        key="amount_column",
    )
    return ColumnConfig(category_column=category_column, amount_column=amount_column)


def pick_export_options(sidebar: DeltaGenerator, columns: ColumnConfig) -> ExportOptions:
    sidebar.subheader("Export")
    delimiter = sidebar.selectbox("CSV delimiter", options=[",", ";", "\t", "|"], index=0)
    precision = sidebar.number_input("Decimal places", min_value=0, max_value=6, value=2, step=1)
    return ExportOptions(
        delimiter=delimiter,
        precision=int(precision),
        category_label=columns.category_column,
    )


def render_summary(result: AggregateResult, rows: list[NormalizedRow]) -> None:
    summary = result.summary
    profile = describe_rows(rows)
    first, second, third = st.columns(3)
    first.metric("Rows", summary.total_rows)
    second.metric("Categories", summary.total_categories)
    third.metric("Grand total", format_currency(summary.grand_total))
    fourth, fifth = st.columns(2)
    fourth.metric("Average per transaction", format_currency(summary.average_per_transaction))
    fifth.metric("Average per category", format_currency(summary.average_per_category))
    st.caption(
        f"Processed {profile['date_processed']} \u00b7 "
        f"{profile['unique_categories']} unique categor(ies), "
        f"average value {format_currency(profile['average_value'])}"
    )


def render_tables(result: AggregateResult, options: ExportOptions) -> None:
    counts_tab, totals_tab = st.tabs(["Counts", "Totals"])

    with counts_tab:
        st.dataframe(pd.DataFrame([item.to_dict() for item in result.category_counts]), use_container_width=True)
        st.code(counts_preview(result.category_counts, options.category_label))
        for fmt in ("txt", "csv", "json", "html"):
            create_download_button(
                f"Counts ({fmt.upper()})",
                export_category_counts(result.category_counts, fmt, options),
                key=f"counts_{fmt}",
            )

    with totals_tab:
        st.dataframe(pd.DataFrame([item.to_dict() for item in result.category_totals]), use_container_width=True)
        st.code(totals_preview(result.category_totals, options.category_label))
        for fmt in ("txt", "csv", "json", "html"):
            create_download_button(
                f"Totals ({fmt.upper()})",
                export_category_totals(result.category_totals, fmt, options),
                key=f"totals_{fmt}",
            )


def render_exports(result: AggregateResult, options: ExportOptions) -> None:
    st.subheader("Complete report")
    fmt = st.radio("Format", options=list(EXPORT_FORMATS), horizontal=True, key="complete_format")
    create_download_button("Download report", export_complete_report(result, fmt, options), key="complete")

    export_all_formats(
        result,
        lambda content, filename, mime_type: st.download_button(
            "Export all (JSON)",
            data=content.encode("utf-8"),
            file_name=filename,
            mime=mime_type,
            key="export_all",
        ),
        options,
    )


def render_explorer(rows: list[NormalizedRow], columns: ColumnConfig, options: ExportOptions) -> None:
    st.subheader("Explore")

    term = st.text_input("Category contains", key="category_filter")
    filtered = filter_by_category(rows, term) if term else list(rows)

    if filtered:
        lowest = float(min(row.amount for row in filtered))
        highest = float(max(row.amount for row in filtered))
        if lowest < highest:
            minimum, maximum = st.slider(
                "Amount range",
                min_value=lowest,
                max_value=highest,
                value=(lowest, highest),
                key="amount_range",
            )
            filtered = filter_by_amount_range(filtered, minimum, maximum)

    if not filtered:
        st.warning("No rows match the selected filters.")
        return

    st.dataframe(rows_to_frame(filtered, columns), use_container_width=True)
    create_download_button(
        "Download filtered rows (CSV)",
        export_filtered_data(filtered, columns, options=options),
        key="filtered_rows",
    )

    top_n = st.number_input("Top N", min_value=1, max_value=50, value=5, step=1, key="top_n")
    left, right = st.columns(2)
    left.markdown("**By count**")
    left.dataframe(
        pd.DataFrame([item.to_dict() for item in top_categories_by_count(filtered, int(top_n))]),
        use_container_width=True,
    )
    right.markdown("**By total**")
    right.dataframe(
        pd.DataFrame([item.to_dict() for item in top_categories_by_total(filtered, int(top_n))]),
        use_container_width=True,
    )


def render_comparison(rows: list[NormalizedRow]) -> None:
    st.subheader("Compare categories")

    query = st.text_input("Search categories", key="category_search")
    options = search_categories(rows, query)
    if len(options) < 2:
        st.info("At least two categories are needed for a comparison.")
        return

    left, right = st.columns(2)
    first = left.selectbox("First", options=options, index=0, key="compare_first")
    second = right.selectbox("Second", options=options, index=1, key="compare_second")

    comparison = compare_categories(rows, first, second)
    table = pd.DataFrame(
        [
            {"name": comparison.first.name, **comparison.first.summary.to_dict()},
            {"name": comparison.second.name, **comparison.second.summary.to_dict()},
        ]
    )
    st.dataframe(table, use_container_width=True)
    a, b, c = st.columns(3)
    a.metric("Row difference", comparison.count_difference)
    b.metric("Total difference", format_currency(comparison.total_difference))
    c.metric("Average difference", format_currency(comparison.average_difference))


def render_analysis_module(sidebar: DeltaGenerator) -> None:
    uploaded = st.file_uploader("Upload CSV or XLSX", type=["csv", "xlsx"], key="dataset")
    if uploaded is None:
        st.info("Upload a file to see the analysis.")
        return

    try:
        records = load_records(uploaded, source_name=uploaded.name)
    except Exception as exc:  # pragma: no cover - shown to the user
        st.error(GENERIC_FAILURE)
        st.caption(str(exc))
        return

    if not records:
        st.error("\n".join(validate_structure(records, ColumnConfig()).errors))
        return
    headers = list(records[0].keys())

    columns = pick_columns(sidebar, headers)
    options = pick_export_options(sidebar, columns)

    validation = validate_structure(records, columns)
    if not validation.is_valid:
        st.error("\n".join(validation.errors))
        return

    normalized = normalize_rows(records, columns)
    if normalized.warnings:
        with st.expander(f"{len(normalized.warnings)} row(s) skipped"):
            st.warning("\n".join(normalized.warnings))

    result = aggregate(normalized.rows)

    render_summary(result, normalized.rows)
    render_tables(result, options)
    render_exports(result, options)
    render_explorer(normalized.rows, columns, options)
    render_comparison(normalized.rows)


st.set_page_config(page_title="Category Analyzer", layout="wide")

sidebar = st.sidebar
sidebar.header("Import rules")
sidebar.markdown(
    """
    * CSV (UTF-8) or XLSX files are accepted; only the first Excel sheet is read.
    * Pick the category and amount columns below; all other columns are kept as-is.
    * Amounts may contain currency symbols and thousands separators.
    * Rows with a blank category or an unreadable amount are skipped and listed.
    """
)
st.title("Category Analyzer")
render_analysis_module(sidebar)
