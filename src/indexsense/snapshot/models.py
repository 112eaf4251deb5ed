"""
Pydantic models for a point-in-time statistics snapshot.

The snapshot is produced once by a statistics provider and then shared,
read-only, by every analyzer in the run. All models are frozen so that
no analyzer can mutate what another one is reading.

Field names mirror the PostgreSQL statistics views they are usually
collected from (pg_stat_user_tables, pg_stat_user_indexes,
pg_stat_statements), converted to snake_case.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PredicateShape(str, Enum):
    """How a candidate column is filtered in the workload."""

    EQUALITY = "equality"
    RANGE = "range"
    PREFIX_MATCH = "prefix_match"
    SUBSTRING_MATCH = "substring_match"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class TableStat(_Frozen):
    """Scan counters for one table (pg_stat_user_tables)."""

    schema_name: str = Field(default="public", alias="schema")
    name: str = Field(..., min_length=1)
    seq_scan_count: int = Field(default=0, ge=0)
    seq_tup_read: int = Field(default=0, ge=0)
    idx_scan_count: int = Field(default=0, ge=0)
    idx_tup_fetch: int = Field(default=0, ge=0)
    live_row_count: int | None = Field(default=None, ge=0)

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.name}"

    @property
    def prefers_sequential(self) -> bool:
        """Whether the table is read sequentially more often than via an index."""
        return self.seq_scan_count > self.idx_scan_count


class ColumnCardinality(_Frozen):
    """Distinct and total row counts for one column."""

    table: str = Field(..., min_length=1)
    column: str = Field(..., min_length=1)
    distinct_count: int = Field(..., ge=0)
    row_count: int = Field(..., ge=0)
    is_not_null: bool = False

    @model_validator(mode="after")
    def _distinct_within_rows(self) -> "ColumnCardinality":
        if self.distinct_count > self.row_count:
            raise ValueError(
                f"distinct_count ({self.distinct_count}) exceeds "
                f"row_count ({self.row_count}) for {self.table}.{self.column}"
            )
        return self


class IndexStat(_Frozen):
    """
    Usage counters for one index (pg_stat_user_indexes + pg_index).

    is_expression is computed by the provider; the analyzers never look
    at catalog sentinels themselves.
    """

    schema_name: str = Field(default="public", alias="schema")
    table: str = Field(..., min_length=1)
    index_name: str = Field(..., min_length=1)
    definition: str = ""
    times_used: int = Field(default=0, ge=0)
    size_bytes: int = Field(default=0, ge=0)
    is_unique: bool = False
    is_expression: bool = False

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.index_name}"


class MaintenanceRecord(_Frozen):
    """Vacuum/analyze history for one table. None means never run."""

    schema_name: str = Field(default="public", alias="schema")
    table: str = Field(..., min_length=1)
    last_vacuum: datetime | None = None
    vacuum_count: int = Field(default=0, ge=0)
    last_analyze: datetime | None = None
    analyze_count: int = Field(default=0, ge=0)

    @field_validator("last_vacuum", "last_analyze")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.table}"


class QueryStat(_Frozen):
    """Aggregated timing for one normalized statement (pg_stat_statements)."""

    query_id: str = Field(..., min_length=1)
    query_text: str = ""
    total_exec_time: float = Field(default=0.0, ge=0.0)
    calls: int = Field(default=0, ge=0)
    mean_exec_time: float = Field(default=0.0, ge=0.0)

    @field_validator("query_id", mode="before")
    @classmethod
    def _coerce_query_id(cls, value: object) -> object:
        # pg_stat_statements reports queryid as a bigint
        if isinstance(value, int):
            return str(value)
        return value


class ColumnCandidate(_Frozen):
    """
    A column the caller wants advice on, with its declared predicate shape.

    Exactly one predicate shape per candidate; a column filtered both by
    equality and by range is submitted as two candidates.
    """

    table: str = Field(..., min_length=1)
    column: str = Field(..., min_length=1)
    predicate: PredicateShape = PredicateShape.EQUALITY
    requires_unique: bool = False

    @property
    def label(self) -> str:
        return f"{self.table}.{self.column}"


class SkippedColumn(_Frozen):
    """A candidate column the provider could not measure, and why."""

    table: str = Field(..., min_length=1)
    column: str = Field(..., min_length=1)
    reason: str


class StatsSnapshot(_Frozen):
    """
    Immutable bundle of statistics for one analysis run.

    Collections are tuples so the snapshot can be shared across threads
    without copying.
    """

    captured_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the statistics were read; the reference 'now' for staleness",
    )
    tables: tuple[TableStat, ...] = ()
    indexes: tuple[IndexStat, ...] = ()
    cardinalities: tuple[ColumnCardinality, ...] = ()
    maintenance: tuple[MaintenanceRecord, ...] = ()
    queries: tuple[QueryStat, ...] = ()
    candidates: tuple[ColumnCandidate, ...] = ()
    skipped_columns: tuple[SkippedColumn, ...] = ()

    @field_validator("captured_at")
    @classmethod
    def _captured_at_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def table_stat(self, table: str) -> TableStat | None:
        """Look up a table by bare or schema-qualified name."""
        for stat in self.tables:
            if table in (stat.name, stat.qualified_name):
                return stat
        return None

    def cardinality(self, table: str, column: str) -> ColumnCardinality | None:
        for card in self.cardinalities:
            if card.table == table and card.column == column:
                return card
        return None

    def skipped(self, table: str, column: str) -> SkippedColumn | None:
        for skip in self.skipped_columns:
            if skip.table == table and skip.column == column:
                return skip
        return None
