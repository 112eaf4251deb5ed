"""
JSON Schema definitions for stable report output.

The document produced by `indexsense advise --format json` is an
AdvisorReportDocument. Its schema is stable across minor versions;
breaking changes only in major versions.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from indexsense.analyzer.models import AdvisoryWarning, RankedQuery, Recommendation
from indexsense.config import AdvisorConfig

if TYPE_CHECKING:
    from indexsense.report import AdvisorReport

# Schema version - increment on breaking changes
SCHEMA_VERSION = "1.0"


class SummarySchema(BaseModel):
    """Per-kind recommendation counts."""

    model_config = ConfigDict(frozen=True)

    create_index: int = Field(0, description="Index creation (or do-not-index) advice")
    drop_index: int = Field(0, description="Unused indexes")
    run_maintenance: int = Field(0, description="Tables needing VACUUM/ANALYZE")
    review_query: int = Field(0, description="Slow queries to review")
    total: int = Field(0, description="Total recommendations")
    warnings: int = Field(0, description="Recoverable problems")


class AdvisorReportDocument(BaseModel):
    """Top-level JSON document for one advisory run."""

    model_config = ConfigDict(frozen=True)

    version: str = Field(SCHEMA_VERSION, description="Schema version")
    captured_at: datetime = Field(..., description="When the statistics snapshot was taken")
    config: AdvisorConfig = Field(..., description="Effective thresholds for the run")
    summary: SummarySchema = Field(..., description="Result summary")
    recommendations: list[Recommendation] = Field(
        default_factory=list,
        description="Recommendations grouped create, drop, maintenance, review",
    )
    ranked_queries: list[RankedQuery] = Field(default_factory=list, description="Slow-query ranking")
    warnings: list[AdvisoryWarning] = Field(default_factory=list, description="Omitted advice")


def report_to_document(report: "AdvisorReport") -> dict[str, Any]:
    """Build the JSON-ready document for a report."""
    document = AdvisorReportDocument(
        captured_at=report.captured_at,
        config=report.config,
        summary=SummarySchema(**report.summary()),
        recommendations=list(report.recommendations),
        ranked_queries=list(report.ranked_queries),
        warnings=list(report.warnings),
    )
    return document.model_dump(mode="json")


def get_json_schema() -> dict[str, Any]:
    """Get the JSON Schema of the report document."""
    return AdvisorReportDocument.model_json_schema()
