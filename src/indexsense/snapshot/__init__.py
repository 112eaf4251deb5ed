"""
Snapshot module - the immutable statistics input of an advisory run.

Providers read statistics from PostgreSQL (or an exported JSON document)
and collect_snapshot() freezes them into a StatsSnapshot before any
analysis starts.
"""

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
from indexsense.snapshot.providers import (
    JsonFileStatsProvider,
    PostgresStatsProvider,
    StatsProvider,
    collect_snapshot,
)

__all__ = [
    "ColumnCandidate",
    "ColumnCardinality",
    "IndexStat",
    "MaintenanceRecord",
    "PredicateShape",
    "QueryStat",
    "SkippedColumn",
    "StatsSnapshot",
    "TableStat",
    "JsonFileStatsProvider",
    "PostgresStatsProvider",
    "StatsProvider",
    "collect_snapshot",
]
