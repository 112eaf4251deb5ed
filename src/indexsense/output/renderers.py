"""
Output renderers for different formats.

Separates presentation logic from analysis logic. The JSON renderer
serializes the AdvisorReport model directly, with sorted keys, so the
same report always renders to the same bytes.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from indexsense.analyzer.models import KIND_ORDER, RecommendationKind

if TYPE_CHECKING:
    from indexsense.analyzer.models import Recommendation
    from indexsense.report import AdvisorReport


class OutputFormat(str, Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


SECTION_TITLES = {
    RecommendationKind.CREATE_INDEX: "CREATE INDEX",
    RecommendationKind.DROP_INDEX: "DROP INDEX",
    RecommendationKind.RUN_MAINTENANCE: "RUN MAINTENANCE",
    RecommendationKind.REVIEW_QUERY: "REVIEW QUERY",
}


def render(report: "AdvisorReport", format: OutputFormat = OutputFormat.TEXT) -> str:
    """
    Render an advisory report in the specified format.

    Args:
        report: Report to render
        format: Output format (text, json, markdown)

    Returns:
        Formatted string
    """
    if format == OutputFormat.TEXT:
        return render_text(report)
    elif format == OutputFormat.JSON:
        return render_json(report)
    elif format == OutputFormat.MARKDOWN:
        return render_markdown(report)
    else:
        raise ValueError(f"Unknown output format: {format}")


# =============================================================================
# Text renderer (terminal)
# =============================================================================


def _recommendation_text(index: int, rec: "Recommendation") -> list[str]:
    lines = ["", f"[{index}] {rec.title}"]
    if rec.index_structure is not None:
        lines.append(f"    Structure: {rec.index_structure.value}")
    if rec.predicted_scan_strategy is not None:
        lines.append(f"    Predicted scan: {rec.predicted_scan_strategy.value}")
    lines.append("")
    lines.append(f"    {rec.rationale}")

    if rec.facts:
        lines.append("")
        lines.append("    Facts:")
        for fact in rec.facts:
            lines.append(f"      • {fact}")

    if rec.suggestion:
        lines.append("")
        lines.append("    Suggestion:")
        for line in rec.suggestion.split("\n"):
            lines.append(f"      {line}")
    return lines


def render_text(report: "AdvisorReport") -> str:
    """Render the report as plain terminal text."""
    lines: list[str] = []
    summary = report.summary()

    lines.append("=" * 60)
    lines.append("IndexSense Advisory Report")
    lines.append("=" * 60)
    lines.append("")
    lines.append(f"Snapshot: {report.captured_at.isoformat()}")
    lines.append("")
    lines.append("Summary:")
    lines.append(f"  Total Recommendations: {summary['total']}")
    for kind in KIND_ORDER:
        if summary[kind.value]:
            lines.append(f"  {SECTION_TITLES[kind].title()}: {summary[kind.value]}")
    lines.append("")

    counter = 0
    for kind in KIND_ORDER:
        group = report.by_kind(kind)
        if not group:
            continue
        lines.append("-" * 60)
        lines.append(SECTION_TITLES[kind])
        lines.append("-" * 60)
        for rec in group:
            counter += 1
            lines.extend(_recommendation_text(counter, rec))
        lines.append("")

    if report.is_empty:
        lines.append("✓ Nothing to recommend")
        lines.append("")

    if report.warnings:
        lines.append("Warnings:")
        for warning in report.warnings:
            lines.append(f"  ⚠ [{warning.code}] {warning.subject}: {warning.message}")
        lines.append("")

    lines.append("=" * 60)
    return "\n".join(lines)


# =============================================================================
# JSON renderer
# =============================================================================


def render_json(report: "AdvisorReport", indent: int = 2) -> str:
    """
    Render the report as JSON.

    Suitable for CI/CD integration and log aggregation.
    """
    return report.to_json(indent=indent)


# =============================================================================
# Markdown renderer
# =============================================================================


def render_markdown(report: "AdvisorReport") -> str:
    """
    Render the report as Markdown.

    Suitable for GitHub comments/issues, Slack messages, documentation.
    """
    lines: list[str] = []
    summary = report.summary()

    lines.append("# IndexSense Advisory Report")
    lines.append("")
    lines.append(f"Snapshot captured at `{report.captured_at.isoformat()}`")
    lines.append("")
    lines.append("## Summary")
    lines.append("")
    lines.append("| Kind | Count |")
    lines.append("|------|-------|")
    for kind in KIND_ORDER:
        lines.append(f"| {SECTION_TITLES[kind].title()} | {summary[kind.value]} |")
    lines.append(f"| Warnings | {summary['warnings']} |")
    lines.append("")

    for kind in KIND_ORDER:
        group = report.by_kind(kind)
        if not group:
            continue
        lines.append(f"## {SECTION_TITLES[kind].title()}")
        lines.append("")
        for rec in group:
            lines.append(f"### {rec.title}")
            lines.append("")
            if rec.predicted_scan_strategy is not None:
                lines.append(f"**Predicted scan:** {rec.predicted_scan_strategy.value}  ")
            lines.append(rec.rationale)
            lines.append("")
            for fact in rec.facts:
                lines.append(f"- {fact}")
            if rec.facts:
                lines.append("")
            if rec.suggestion:
                lines.append("```sql")
                lines.append(rec.suggestion)
                lines.append("```")
                lines.append("")

    if report.warnings:
        lines.append("## Warnings")
        lines.append("")
        for warning in report.warnings:
            lines.append(f"- `{warning.code}` **{warning.subject}**: {warning.message}")
        lines.append("")

    return "\n".join(lines)
