"""Tests for slow query ranking."""

from indexsense.analyzer.models import RecommendationKind
from indexsense.analyzer.slow_queries import SlowQueryRanker
from indexsense.snapshot.models import QueryStat


def make_queries(*totals: float) -> list[QueryStat]:
    return [
        QueryStat(
            query_id=f"q{i}",
            query_text=f"SELECT * FROM t{i} WHERE id = $1",
            total_exec_time=total,
            calls=10,
            mean_exec_time=total / 10,
        )
        for i, total in enumerate(totals, start=1)
    ]


class TestSlowQueryRanker:
    """Tests for SlowQueryRanker."""

    def test_empty_input_returns_empty(self):
        assert SlowQueryRanker().rank([]) == []

    def test_percentages_of_whole_population(self):
        ranked = SlowQueryRanker().rank(make_queries(20, 70, 10))

        assert [q.total_exec_time for q in ranked] == [70, 20, 10]
        assert [q.percent for q in ranked] == [70.0, 20.0, 10.0]
        assert [q.rank for q in ranked] == [1, 2, 3]

    def test_truncation_keeps_percentages(self):
        """Top 2 of [70, 20, 10] still reports 70.00 and 20.00."""
        ranked = SlowQueryRanker(top=2).rank(make_queries(70, 20, 10))

        assert [q.percent for q in ranked] == [70.0, 20.0]

    def test_full_set_sums_to_hundred(self):
        ranked = SlowQueryRanker(top=100).rank(make_queries(1, 1, 1, 5.5, 12.25))

        assert abs(sum(q.percent for q in ranked) - 100.0) <= 0.01 * len(ranked)

    def test_zero_total_time(self):
        ranked = SlowQueryRanker().rank(make_queries(0, 0))

        assert [q.percent for q in ranked] == [0.0, 0.0]

    def test_ties_ordered_by_query_id(self):
        ranked = SlowQueryRanker().rank(make_queries(5, 5, 5))

        assert [q.query_id for q in ranked] == ["q1", "q2", "q3"]

    def test_review_recommendation(self):
        (entry,) = SlowQueryRanker(top=1).rank(make_queries(70, 30))

        rec = SlowQueryRanker.to_recommendation(entry)

        assert rec.kind == RecommendationKind.REVIEW_QUERY
        assert rec.subject.query_id == "q1"
        assert rec.metrics["percent"] == 70.0
        assert "70.00%" in rec.title
        assert rec.facts[0] == "SELECT * FROM t1 WHERE id = $1"

    def test_numeric_query_ids_accepted(self):
        stat = QueryStat(query_id=-4_611_686_018_427_387_904, total_exec_time=1.0)

        assert stat.query_id == "-4611686018427387904"

    def test_duplicate_rows_folded_into_one_entry(self):
        """Rows for one statement from several users count once."""
        queries = [
            QueryStat(query_id="7", query_text="SELECT 7", total_exec_time=40.0, calls=4),
            QueryStat(query_id="7", query_text="SELECT 7", total_exec_time=30.0, calls=6),
            QueryStat(query_id="8", query_text="SELECT 8", total_exec_time=30.0, calls=3),
        ]

        ranked = SlowQueryRanker(top=2).rank(queries)

        assert [q.query_id for q in ranked] == ["7", "8"]
        assert ranked[0].total_exec_time == 70.0
        assert ranked[0].calls == 10
        assert ranked[0].mean_exec_time == 7.0
        assert [q.percent for q in ranked] == [70.0, 30.0]

    def test_numeric_ids_tie_break_numerically(self):
        queries = [
            QueryStat(query_id=qid, total_exec_time=5.0) for qid in ("10", "9", "-3", "abc")
        ]

        ranked = SlowQueryRanker().rank(queries)

        assert [q.query_id for q in ranked] == ["-3", "9", "10", "abc"]
