"""Tests for unused index detection."""

import pytest

from indexsense.analyzer.models import RecommendationKind
from indexsense.analyzer.unused_indexes import UnusedIndexDetector, is_drop_candidate
from indexsense.snapshot.models import IndexStat


def make_index(name: str, **kwargs) -> IndexStat:
    return IndexStat(
        table=kwargs.get("table", "book"),
        index_name=name,
        definition=kwargs.get("definition", f"CREATE INDEX {name} ON public.book USING btree (x)"),
        times_used=kwargs.get("times_used", 0),
        size_bytes=kwargs.get("size_bytes", 8192),
        is_unique=kwargs.get("is_unique", False),
        is_expression=kwargs.get("is_expression", False),
    )


class TestUnusedIndexDetector:
    """Tests for UnusedIndexDetector."""

    def test_largest_unused_index_first(self):
        """idx_x (500 bytes) is surfaced before idx_y (200 bytes)."""
        recs = UnusedIndexDetector().detect([
            make_index("idx_y", size_bytes=200),
            make_index("idx_x", size_bytes=500),
        ])

        assert [r.subject.index for r in recs] == ["public.idx_x", "public.idx_y"]
        assert all(r.kind == RecommendationKind.DROP_INDEX for r in recs)

    def test_used_index_kept(self):
        recs = UnusedIndexDetector().detect([make_index("idx_busy", times_used=42)])

        assert recs == []

    @pytest.mark.parametrize("times_used", [0, 1, 1000])
    def test_unique_never_dropped(self, times_used):
        index = make_index("book_isbn_key", is_unique=True, times_used=times_used)

        assert not is_drop_candidate(index)
        assert UnusedIndexDetector().detect([index]) == []

    @pytest.mark.parametrize("times_used", [0, 1, 1000])
    def test_expression_never_dropped(self, times_used):
        index = make_index("idx_lower_title", is_expression=True, times_used=times_used)

        assert not is_drop_candidate(index)
        assert UnusedIndexDetector().detect([index]) == []

    def test_one_recommendation_per_index(self):
        index = make_index("idx_dup", size_bytes=100)

        recs = UnusedIndexDetector().detect([index, index])

        assert len(recs) == 1

    def test_equal_sizes_ordered_by_name(self):
        recs = UnusedIndexDetector().detect([
            make_index("idx_b", size_bytes=100),
            make_index("idx_a", size_bytes=100),
        ])

        assert [r.subject.index for r in recs] == ["public.idx_a", "public.idx_b"]

    def test_suggestion_and_metrics(self):
        (rec,) = UnusedIndexDetector().detect([make_index("idx_x", size_bytes=3 * 1024 * 1024)])

        assert rec.suggestion == "DROP INDEX CONCURRENTLY IF EXISTS public.idx_x;"
        assert rec.metrics["size_bytes"] == 3 * 1024 * 1024
        assert "3.0 MB" in rec.title
