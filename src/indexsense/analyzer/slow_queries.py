"""
Slow query ranking.

Ranks aggregated statement statistics by total execution time, the
measure of how much of the server's time a statement consumes overall.
Percentages are shares of the whole snapshot, so after truncation to the
top K they need not add up to 100.
"""

from __future__ import annotations

from typing import Iterable

from indexsense.analyzer.models import (
    RankedQuery,
    Recommendation,
    RecommendationKind,
    RecommendationSubject,
)
from indexsense.analyzer.selectivity import round_half_up
from indexsense.snapshot.models import QueryStat

QUERY_TEXT_PREVIEW = 200


def query_id_sort_key(query_id: str) -> tuple[int, int, str]:
    """Numeric ids (pg_stat_statements queryid) sort numerically, others lexically."""
    try:
        return (0, int(query_id), "")
    except ValueError:
        return (1, 0, query_id)


def merge_duplicates(queries: Iterable[QueryStat]) -> list[QueryStat]:
    """
    Fold rows sharing a query_id into one.

    pg_stat_statements keeps a row per (user, database, queryid), so the
    same statement can arrive several times. Totals and calls are summed
    and the mean recomputed; the first non-empty text is kept.
    """
    merged: dict[str, QueryStat] = {}
    for query in queries:
        previous = merged.get(query.query_id)
        if previous is None:
            merged[query.query_id] = query
            continue
        total = previous.total_exec_time + query.total_exec_time
        calls = previous.calls + query.calls
        merged[query.query_id] = previous.model_copy(update={
            "query_text": previous.query_text or query.query_text,
            "total_exec_time": total,
            "calls": calls,
            "mean_exec_time": total / calls if calls else 0.0,
        })
    return list(merged.values())


class SlowQueryRanker:
    """Rank queries by their contribution to total execution time."""

    def __init__(self, top: int = 20) -> None:
        self.top = top

    def rank(self, queries: Iterable[QueryStat]) -> list[RankedQuery]:
        population = merge_duplicates(queries)
        if not population:
            return []

        grand_total = sum(q.total_exec_time for q in population)
        ordered = sorted(
            population,
            key=lambda q: (-q.total_exec_time, query_id_sort_key(q.query_id)),
        )

        ranked: list[RankedQuery] = []
        for position, query in enumerate(ordered[: self.top], start=1):
            share = 100 * query.total_exec_time / grand_total if grand_total > 0 else 0.0
            ranked.append(RankedQuery(
                rank=position,
                query_id=query.query_id,
                query_text=query.query_text,
                total_exec_time=query.total_exec_time,
                calls=query.calls,
                mean_exec_time=query.mean_exec_time,
                percent=round_half_up(share),
            ))
        return ranked

    @staticmethod
    def to_recommendation(entry: RankedQuery) -> Recommendation:
        text = " ".join(entry.query_text.split())
        if len(text) > QUERY_TEXT_PREVIEW:
            text = text[:QUERY_TEXT_PREVIEW] + "..."

        return Recommendation(
            kind=RecommendationKind.REVIEW_QUERY,
            subject=RecommendationSubject(query_id=entry.query_id),
            title=f"#{entry.rank}: query {entry.query_id} ({entry.percent:.2f}% of execution time)",
            rationale=(
                "This statement is among the largest consumers of total execution time; "
                "review its plan with EXPLAIN (ANALYZE, BUFFERS)."
            ),
            facts=(
                text or "(query text unavailable)",
                f"{entry.calls:,} calls, {entry.total_exec_time:,.2f} ms total, "
                f"{entry.mean_exec_time:,.2f} ms mean",
            ),
            metrics={
                "rank": entry.rank,
                "percent": entry.percent,
                "total_exec_time": entry.total_exec_time,
                "calls": entry.calls,
            },
        )
