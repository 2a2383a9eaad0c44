from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Iterable, List, Sequence

import pandas as pd

from category_analyzer.config import DEFAULT_TOP_N
from category_analyzer.normalizer import NormalizedRow

__all__ = [
    "CategoryCount",
    "CategoryTotal",
    "Summary",
    "AggregateResult",
    "CategorySnapshot",
    "CategoryComparison",
    "aggregate",
    "compute_category_counts",
    "compute_category_totals",
    "compute_summary",
    "filter_by_category",
    "filter_by_amount_range",
    "top_categories_by_count",
    "top_categories_by_total",
    "search_categories",
    "compare_categories",
]

logger = logging.getLogger(__name__)


def _share(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole else 0.0


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


@dataclass(frozen=True)
class CategoryCount:
    category: str
    count: int
    percentage: float

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    total: float
    average: float
    percentage: float

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class Summary:
    total_rows: int = 0
    total_categories: int = 0
    grand_total: float = 0.0
    average_per_transaction: float = 0.0
    average_per_category: float = 0.0

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class AggregateResult:
    category_counts: tuple[CategoryCount, ...]
    category_totals: tuple[CategoryTotal, ...]
    summary: Summary

    def to_dict(self) -> dict[str, object]:
        return {
            "category_counts": [item.to_dict() for item in self.category_counts],
            "category_totals": [item.to_dict() for item in self.category_totals],
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class CategorySnapshot:
    name: str
    summary: Summary


@dataclass(frozen=True)
class CategoryComparison:
    first: CategorySnapshot
    second: CategorySnapshot
    count_difference: int
    total_difference: float
    average_difference: float


def _to_frame(rows: Sequence[NormalizedRow]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "category": [row.category for row in rows],
            "amount": [row.amount for row in rows],
        }
    )


def compute_category_counts(rows: Sequence[NormalizedRow]) -> List[CategoryCount]:
    """Occurrences per category, most frequent first.

    Ties keep the order in which categories first appear in ``rows``.
    """
    if not rows:
        return []

    total_rows = len(rows)
    grouped = (
        _to_frame(rows)
        .groupby("category", sort=False)
        .size()
        .reset_index(name="count")
        .sort_values("count", ascending=False, kind="stable")
    )

    return [
        CategoryCount(
            category=str(category),
            count=int(count),
            percentage=_share(int(count), total_rows),
        )
        for category, count in grouped.itertuples(index=False, name=None)
    ]


def compute_category_totals(rows: Sequence[NormalizedRow]) -> List[CategoryTotal]:
    """Sum, mean and share of the grand total per category, largest total first."""
    if not rows:
        return []

    grouped = (
        _to_frame(rows)
        .groupby("category", sort=False)
        .agg(total=("amount", "sum"), count=("amount", "count"))
        .reset_index()
    )
    grand_total = sum(float(value) for value in grouped["total"])
    grouped = grouped.sort_values("total", ascending=False, kind="stable")

    return [
        CategoryTotal(
            category=str(category),
            total=float(total),
            average=_ratio(float(total), int(count)),
            percentage=_share(float(total), grand_total),
        )
        for category, total, count in grouped.itertuples(index=False, name=None)
    ]


def compute_summary(
    rows: Sequence[NormalizedRow],
    counts: Sequence[CategoryCount],
    totals: Sequence[CategoryTotal],
) -> Summary:
    total_rows = len(rows)
    total_categories = len(counts)
    grand_total = sum((item.total for item in totals), 0.0)
    return Summary(
        total_rows=total_rows,
        total_categories=total_categories,
        grand_total=grand_total,
        average_per_transaction=_ratio(grand_total, total_rows),
        average_per_category=_ratio(grand_total, total_categories),
    )


def aggregate(rows: Sequence[NormalizedRow]) -> AggregateResult:
    """Run counts, totals and the dataset summary over normalized rows."""
    rows = list(rows)
    counts = compute_category_counts(rows)
    totals = compute_category_totals(rows)
    summary = compute_summary(rows, counts, totals)
    logger.debug(
        "Aggregated %d row(s) into %d categor(ies)", summary.total_rows, summary.total_categories
    )
    return AggregateResult(
        category_counts=tuple(counts),
        category_totals=tuple(totals),
        summary=summary,
    )


def filter_by_category(rows: Iterable[NormalizedRow], term: str) -> List[NormalizedRow]:
    needle = term.casefold()
    return [row for row in rows if needle in row.category.casefold()]


def filter_by_amount_range(
    rows: Iterable[NormalizedRow],
    minimum: float,
    maximum: float,
) -> List[NormalizedRow]:
    return [row for row in rows if minimum <= row.amount <= maximum]


def top_categories_by_count(rows: Sequence[NormalizedRow], n: int = DEFAULT_TOP_N) -> List[CategoryCount]:
    return compute_category_counts(rows)[: max(n, 0)]


def top_categories_by_total(rows: Sequence[NormalizedRow], n: int = DEFAULT_TOP_N) -> List[CategoryTotal]:
    return compute_category_totals(rows)[: max(n, 0)]


def search_categories(rows: Iterable[NormalizedRow], term: str) -> List[str]:
    needle = term.casefold()
    return sorted({row.category for row in rows if needle in row.category.casefold()})


def compare_categories(
    rows: Sequence[NormalizedRow],
    first: str,
    second: str,
) -> CategoryComparison:
    """Compare two category filters by running the full pipeline on each subset."""
    first_summary = aggregate(filter_by_category(rows, first)).summary
    second_summary = aggregate(filter_by_category(rows, second)).summary
    return CategoryComparison(
        first=CategorySnapshot(name=first, summary=first_summary),
        second=CategorySnapshot(name=second, summary=second_summary),
        count_difference=first_summary.total_rows - second_summary.total_rows,
        total_difference=first_summary.grand_total - second_summary.grand_total,
        average_difference=first_summary.average_per_transaction
        - second_summary.average_per_transaction,
    )
