"""
Unused Index Detection.

An index that has never been scanned still costs write amplification,
vacuum time and disk. Candidates for removal are indexes with zero
recorded scans, excluding:
- Unique indexes: they enforce correctness regardless of how often
  they are read
- Expression indexes: usage counters don't attribute to them the way
  they do to plain column indexes

Largest first, since that is where the most space is reclaimed.
"""

from __future__ import annotations

from typing import Iterable

from indexsense.analyzer.models import (
    Recommendation,
    RecommendationKind,
    RecommendationSubject,
)
from indexsense.snapshot.models import IndexStat


def _format_size(size_bytes: int) -> str:
    size = float(size_bytes)
    for unit in ("bytes", "kB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:,.0f} {unit}" if unit == "bytes" else f"{size:,.1f} {unit}"
        size /= 1024
    return f"{size_bytes} bytes"


def is_drop_candidate(index: IndexStat) -> bool:
    """Whether an index qualifies for a DROP recommendation."""
    return index.times_used == 0 and not index.is_unique and not index.is_expression


class UnusedIndexDetector:
    """Recommend dropping indexes that were never used."""

    def detect(self, indexes: Iterable[IndexStat]) -> list[Recommendation]:
        unused: dict[tuple[str, str], IndexStat] = {}
        for index in indexes:
            if is_drop_candidate(index):
                unused.setdefault((index.schema_name, index.index_name), index)

        ordered = sorted(
            unused.values(),
            key=lambda i: (-i.size_bytes, i.schema_name, i.table, i.index_name),
        )

        return [self._recommend(index) for index in ordered]

    @staticmethod
    def _recommend(index: IndexStat) -> Recommendation:
        facts = [
            f"0 scans recorded on {index.table}",
            f"Occupies {_format_size(index.size_bytes)}",
        ]
        if index.definition:
            facts.append(index.definition)

        return Recommendation(
            kind=RecommendationKind.DROP_INDEX,
            subject=RecommendationSubject(table=index.table, index=index.qualified_name),
            title=f"Drop unused index {index.qualified_name} ({_format_size(index.size_bytes)})",
            rationale=(
                "The index has never been used by a query since statistics were last "
                "reset, yet it is updated on every write and vacuumed with its table. "
                "Confirm the statistics cover a representative period (and any "
                "replicas) before dropping."
            ),
            facts=tuple(facts),
            suggestion=f"DROP INDEX CONCURRENTLY IF EXISTS {index.qualified_name};",
            metrics={"size_bytes": index.size_bytes, "times_used": index.times_used},
        )
