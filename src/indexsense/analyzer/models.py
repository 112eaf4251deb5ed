"""
Data models for the analyzer module.

These models represent the output of the analyzers - the advice derived
from a snapshot. They're designed to be:
- Immutable (frozen=True): Recommendations don't change after creation
- Serializable: Easy JSON output for --format json
- Deterministic: Field order and contents depend only on the inputs
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RecommendationKind(str, Enum):
    """What the recommendation asks the operator to do."""

    CREATE_INDEX = "create_index"
    DROP_INDEX = "drop_index"
    RUN_MAINTENANCE = "run_maintenance"
    REVIEW_QUERY = "review_query"


# Fixed report order
KIND_ORDER: tuple[RecommendationKind, ...] = (
    RecommendationKind.CREATE_INDEX,
    RecommendationKind.DROP_INDEX,
    RecommendationKind.RUN_MAINTENANCE,
    RecommendationKind.REVIEW_QUERY,
)


class IndexStructure(str, Enum):
    """
    Index access methods the advisor can recommend.

    BTREE: ordered; supports range, prefix and uniqueness
    HASH: equality only, never enforces uniqueness
    GIN_TRGM: trigram inverted index for unanchored pattern search
    NONE: do not index
    """

    BTREE = "btree"
    HASH = "hash"
    GIN_TRGM = "gin_trgm"
    NONE = "none"


class ScanStrategy(str, Enum):
    """Scan the planner is predicted to choose once the advice is applied."""

    INDEX_SCAN = "Index Scan"
    BITMAP_INDEX_SCAN = "Bitmap Index Scan"
    SEQ_SCAN = "Seq Scan"


class ColumnSelectivity(BaseModel):
    """Ratio of distinct values to rows for one column, rounded to 2 places."""

    model_config = ConfigDict(frozen=True)

    table: str
    column: str
    value: float = Field(..., ge=0.0, le=1.0)


class RecommendationSubject(BaseModel):
    """
    What a recommendation is about: a table, a table column, an index,
    or a query.
    """

    model_config = ConfigDict(frozen=True)

    table: str | None = None
    column: str | None = None
    index: str | None = None
    query_id: str | None = None

    @property
    def label(self) -> str:
        if self.index:
            return self.index
        if self.query_id:
            return f"query {self.query_id}"
        if self.column:
            return f"{self.table}.{self.column}"
        return self.table or "?"


class Recommendation(BaseModel):
    """
    A single piece of advice.

    Attributes:
        kind: What to do (create/drop index, maintenance, review query).
        subject: What it applies to.
        title: One-line summary.
        rationale: Why the advice was given.
        facts: Supporting facts from the snapshot, in citation order.
        index_structure: Recommended index type (CREATE_INDEX only).
        predicted_scan_strategy: Expected plan shape after applying the advice.
        suggestion: Copy-paste SQL, if the advice is actionable.
        metrics: Quantitative data for programmatic use.
    """

    model_config = ConfigDict(frozen=True)

    kind: RecommendationKind
    subject: RecommendationSubject
    title: str = Field(..., min_length=1)
    rationale: str = Field(..., min_length=1)
    facts: tuple[str, ...] = ()
    index_structure: IndexStructure | None = None
    predicted_scan_strategy: ScanStrategy | None = None
    suggestion: str | None = None
    metrics: dict[str, int | float] = Field(default_factory=dict)

    @property
    def is_actionable(self) -> bool:
        """False for 'do not index' outcomes."""
        return self.index_structure is not IndexStructure.NONE


class RankedQuery(BaseModel):
    """One entry of the slow-query ranking."""

    model_config = ConfigDict(frozen=True)

    rank: int = Field(..., ge=1)
    query_id: str
    query_text: str
    total_exec_time: float
    calls: int
    mean_exec_time: float
    percent: float = Field(
        ...,
        description="Share of total execution time across the whole snapshot",
    )


class AdvisoryWarning(BaseModel):
    """A recoverable problem that caused some advice to be omitted."""

    model_config = ConfigDict(frozen=True)

    code: str
    subject: str
    message: str
