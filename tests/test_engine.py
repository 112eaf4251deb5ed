"""
Integration tests for the advisory pipeline.

These tests verify the flow from snapshot to report: the four analyzer
tasks, the report builder's grouping and validation, and determinism.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from indexsense.analyzer.models import (
    AdvisoryWarning,
    IndexStructure,
    RankedQuery,
    RecommendationKind,
    ScanStrategy,
)
from indexsense.config import AdvisorConfig
from indexsense.engine import AdvisoryService, advise, rank_queries
from indexsense.exceptions import InternalInconsistency
from indexsense.output.renderers import OutputFormat, render
from indexsense.report import AdvisorReportBuilder
from indexsense.snapshot.models import (
    ColumnCandidate,
    ColumnCardinality,
    IndexStat,
    MaintenanceRecord,
    PredicateShape,
    QueryStat,
    SkippedColumn,
    StatsSnapshot,
    TableStat,
)

CAPTURED_AT = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_book_snapshot(**overrides) -> StatsSnapshot:
    """Snapshot of a small bookstore schema exercising every analyzer."""
    data = dict(
        captured_at=CAPTURED_AT,
        tables=(
            TableStat(name="book", seq_scan_count=1200, seq_tup_read=120_007_200, idx_scan_count=3),
        ),
        indexes=(
            IndexStat(table="book", index_name="idx_y", size_bytes=200),
            IndexStat(table="book", index_name="idx_x", size_bytes=500),
            IndexStat(table="book", index_name="book_pkey", is_unique=True, size_bytes=9000),
            IndexStat(table="book", index_name="idx_book_lower_title", is_expression=True),
        ),
        cardinalities=(
            ColumnCardinality(table="book", column="isbn", distinct_count=100_006,
                              row_count=100_006, is_not_null=True),
            ColumnCardinality(table="book", column="rating", distinct_count=4,
                              row_count=100_006, is_not_null=True),
            ColumnCardinality(table="book", column="title", distinct_count=98_000,
                              row_count=100_006, is_not_null=True),
        ),
        maintenance=(
            MaintenanceRecord(table="book", last_vacuum=None, vacuum_count=3,
                              last_analyze=CAPTURED_AT - timedelta(days=1), analyze_count=9),
            MaintenanceRecord(table="author", last_vacuum=CAPTURED_AT - timedelta(days=1),
                              last_analyze=CAPTURED_AT - timedelta(days=1)),
        ),
        queries=(
            QueryStat(query_id="1", query_text="SELECT * FROM book WHERE rating = $1",
                      total_exec_time=20.0, calls=4, mean_exec_time=5.0),
            QueryStat(query_id="2", query_text="SELECT * FROM book WHERE title LIKE $1",
                      total_exec_time=70.0, calls=7, mean_exec_time=10.0),
            QueryStat(query_id="3", query_text="SELECT * FROM author",
                      total_exec_time=10.0, calls=1, mean_exec_time=10.0),
        ),
        candidates=(
            ColumnCandidate(table="book", column="rating"),
            ColumnCandidate(table="book", column="isbn", requires_unique=True),
            ColumnCandidate(table="book", column="title", predicate=PredicateShape.SUBSTRING_MATCH),
        ),
    )
    data.update(overrides)
    return StatsSnapshot(**data)


class TestAdvise:
    """End-to-end tests for advise()."""

    def test_groups_in_fixed_order(self):
        report = advise(make_book_snapshot())

        kinds = [r.kind for r in report.recommendations]
        assert kinds == sorted(kinds, key=[
            RecommendationKind.CREATE_INDEX,
            RecommendationKind.DROP_INDEX,
            RecommendationKind.RUN_MAINTENANCE,
            RecommendationKind.REVIEW_QUERY,
        ].index)
        assert report.summary() == {
            "create_index": 3,
            "drop_index": 2,
            "run_maintenance": 1,
            "review_query": 3,
            "total": 9,
            "warnings": 0,
        }

    def test_book_scenario(self):
        """rating: do not index; isbn: unique B-tree with Index Scan."""
        report = advise(make_book_snapshot())
        advice = {r.subject.column: r for r in report.by_kind(RecommendationKind.CREATE_INDEX)}

        assert advice["rating"].index_structure == IndexStructure.NONE
        assert advice["rating"].metrics["selectivity"] <= 0.05
        assert advice["isbn"].index_structure == IndexStructure.BTREE
        assert advice["isbn"].predicted_scan_strategy == ScanStrategy.INDEX_SCAN
        assert advice["title"].index_structure == IndexStructure.GIN_TRGM

    def test_candidate_order_preserved(self):
        report = advise(make_book_snapshot())

        columns = [r.subject.column for r in report.by_kind(RecommendationKind.CREATE_INDEX)]
        assert columns == ["rating", "isbn", "title"]

    def test_drop_order_and_exclusions(self):
        report = advise(make_book_snapshot())

        dropped = [r.subject.index for r in report.by_kind(RecommendationKind.DROP_INDEX)]
        assert dropped == ["public.idx_x", "public.idx_y"]

    def test_maintenance_uses_snapshot_time(self):
        report = advise(make_book_snapshot())

        (rec,) = report.by_kind(RecommendationKind.RUN_MAINTENANCE)
        assert rec.subject.table == "public.book"
        assert rec.suggestion == "VACUUM public.book;"

    def test_ranked_queries_match_reviews(self):
        report = advise(make_book_snapshot(), AdvisorConfig(top_slow_queries=2))

        assert [q.percent for q in report.ranked_queries] == [70.0, 20.0]
        reviews = report.by_kind(RecommendationKind.REVIEW_QUERY)
        assert [r.subject.query_id for r in reviews] == ["2", "1"]

    def test_empty_table_becomes_warning(self):
        snapshot = make_book_snapshot(
            cardinalities=(
                ColumnCardinality(table="book", column="isbn", distinct_count=0, row_count=0),
            ),
            candidates=(
                ColumnCandidate(table="book", column="isbn"),
                ColumnCandidate(table="book", column="missing"),
            ),
        )

        report = advise(snapshot)

        assert report.by_kind(RecommendationKind.CREATE_INDEX) == []
        assert [(w.code, w.subject) for w in report.warnings] == [
            ("insufficient_data", "book.isbn"),
            ("missing_cardinality", "book.missing"),
        ]
        # the rest of the run is unaffected
        assert len(report.by_kind(RecommendationKind.DROP_INDEX)) == 2

    def test_provider_skip_reason_reaches_warning(self):
        snapshot = make_book_snapshot(
            candidates=(ColumnCandidate(table="book", column="secret"),),
            skipped_columns=(
                SkippedColumn(table="book", column="secret",
                              reason="Not permitted to read book.secret"),
            ),
        )

        report = advise(snapshot)

        assert [(w.code, w.subject, w.message) for w in report.warnings] == [
            ("insufficient_data", "book.secret", "Not permitted to read book.secret"),
        ]

    def test_empty_snapshot(self):
        report = advise(StatsSnapshot(captured_at=CAPTURED_AT))

        assert report.is_empty
        assert report.ranked_queries == ()

    def test_idempotent_serialization(self):
        """Same snapshot and config produce byte-identical reports."""
        snapshot = make_book_snapshot()
        config = AdvisorConfig(top_slow_queries=2)

        first = advise(snapshot, config)
        second = advise(snapshot, config)

        assert first.to_json() == second.to_json()
        for fmt in OutputFormat:
            assert render(first, fmt) == render(second, fmt)

    def test_parallel_matches_sequential(self):
        snapshot = make_book_snapshot()

        assert advise(snapshot, parallel=True) == advise(snapshot, parallel=False)

    def test_service_wraps_advise(self):
        service = AdvisoryService(AdvisorConfig(top_slow_queries=1), parallel=False)

        report = service.advise(make_book_snapshot())

        assert len(report.ranked_queries) == 1
        assert report.config.top_slow_queries == 1


class TestAdvisorReportBuilder:
    """The builder only assembles and validates."""

    def _build(self, **groups):
        return AdvisorReportBuilder().build(
            captured_at=CAPTURED_AT,
            config=AdvisorConfig(),
            **groups,
        )

    def test_rejects_wrong_kind(self):
        ranking = rank_queries(make_book_snapshot(), AdvisorConfig())

        with pytest.raises(InternalInconsistency) as exc_info:
            self._build(index_advice=list(ranking.reviews))

        assert exc_info.value.stage == "report_builder"

    def test_rejects_wrong_type(self):
        with pytest.raises(InternalInconsistency):
            self._build(maintenance=["VACUUM book;"])

    def test_rejects_out_of_range_percent(self):
        bad = RankedQuery(rank=1, query_id="1", query_text="", total_exec_time=1.0,
                          calls=1, mean_exec_time=1.0, percent=150.0)

        with pytest.raises(InternalInconsistency):
            self._build(ranked_queries=[bad])

    def test_rejects_ranking_without_reviews(self):
        ranking = rank_queries(make_book_snapshot(), AdvisorConfig())

        with pytest.raises(InternalInconsistency):
            self._build(ranked_queries=list(ranking.ranked))

    def test_rejects_bad_warning(self):
        with pytest.raises(InternalInconsistency):
            self._build(warnings=["oops"])

    def test_keeps_warnings(self):
        warning = AdvisoryWarning(code="insufficient_data", subject="t.c", message="empty")

        report = self._build(warnings=[warning])

        assert report.warnings == (warning,)
        assert report.is_empty
