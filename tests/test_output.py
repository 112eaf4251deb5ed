"""Tests for report renderers and the JSON report document."""

import json
from datetime import datetime, timezone

from indexsense.analyzer.models import (
    AdvisoryWarning,
    Recommendation,
    RecommendationKind,
    RecommendationSubject,
)
from indexsense.config import AdvisorConfig
from indexsense.output import SCHEMA_VERSION, OutputFormat, get_json_schema, render
from indexsense.report import AdvisorReportBuilder

CAPTURED_AT = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_report(with_warning: bool = False):
    drop = Recommendation(
        kind=RecommendationKind.DROP_INDEX,
        subject=RecommendationSubject(table="public.book", index="public.idx_x"),
        title="Drop unused index public.idx_x (500 B)",
        rationale="Index has never been used.",
        suggestion="DROP INDEX CONCURRENTLY IF EXISTS public.idx_x;",
        metrics={"size_bytes": 500, "times_used": 0},
    )
    warnings = []
    if with_warning:
        warnings.append(
            AdvisoryWarning(code="insufficient_data", subject="book.isbn", message="Table is empty")
        )
    return AdvisorReportBuilder().build(
        captured_at=CAPTURED_AT,
        config=AdvisorConfig(),
        unused_indexes=[drop],
        warnings=warnings,
    )


class TestJsonDocument:
    """Tests for the versioned JSON report."""

    def test_document_shape(self):
        document = json.loads(render(make_report(), OutputFormat.JSON))

        assert document["version"] == SCHEMA_VERSION
        assert document["captured_at"] == "2024-06-01T12:00:00Z"
        assert document["summary"]["drop_index"] == 1
        assert document["summary"]["total"] == 1
        assert document["config"]["top_slow_queries"] == 20
        (rec,) = document["recommendations"]
        assert rec["kind"] == "drop_index"
        assert rec["subject"]["index"] == "public.idx_x"

    def test_keys_sorted(self):
        output = render(make_report(), OutputFormat.JSON)

        assert output == json.dumps(json.loads(output), indent=2, sort_keys=True)

    def test_json_schema_lists_top_level_fields(self):
        schema = get_json_schema()

        for key in ("version", "captured_at", "summary", "recommendations", "ranked_queries"):
            assert key in schema["properties"]


class TestTextAndMarkdown:
    """Human-readable renderers."""

    def test_text_contains_suggestion(self):
        output = render(make_report(), OutputFormat.TEXT)

        assert "DROP INDEX" in output
        assert "DROP INDEX CONCURRENTLY IF EXISTS public.idx_x;" in output

    def test_text_lists_warnings(self):
        output = render(make_report(with_warning=True), OutputFormat.TEXT)

        assert "[insufficient_data] book.isbn" in output

    def test_markdown_heading(self):
        output = render(make_report(), OutputFormat.MARKDOWN)

        assert output.startswith("# IndexSense Advisory Report")
        assert "public.idx_x" in output
