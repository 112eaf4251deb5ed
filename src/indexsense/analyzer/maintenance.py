"""
Maintenance status tracking.

Tables whose VACUUM or ANALYZE history is stale get a maintenance
recommendation. The two operations are judged independently, so a table
may need vacuum, analyze, both, or neither. A missing timestamp means
the operation never ran and is always stale, whatever the run counters
say.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable

from indexsense.analyzer.models import (
    Recommendation,
    RecommendationKind,
    RecommendationSubject,
)
from indexsense.snapshot.models import MaintenanceRecord


def is_stale(last_run: datetime | None, now: datetime, threshold: timedelta) -> bool:
    """None (never run) is maximally stale."""
    if last_run is None:
        return True
    return now - last_run > threshold


def _describe(operation: str, last_run: datetime | None, now: datetime) -> str:
    if last_run is None:
        return f"{operation} has never run"
    days = (now - last_run).total_seconds() / 86400
    return f"Last {operation.lower()} {days:.1f} days ago ({last_run.isoformat()})"


class MaintenanceStatusTracker:
    """Flag tables whose vacuum/analyze statistics are stale."""

    def __init__(self, stale_days: int = 7) -> None:
        self.threshold = timedelta(days=stale_days)

    def check(
        self,
        records: Iterable[MaintenanceRecord],
        now: datetime,
    ) -> list[Recommendation]:
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        recommendations = [
            rec
            for rec in (self.check_record(record, now) for record in records)
            if rec is not None
        ]
        return sorted(recommendations, key=lambda r: r.subject.table or "")

    def check_record(self, record: MaintenanceRecord, now: datetime) -> Recommendation | None:
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        needs_vacuum = is_stale(record.last_vacuum, now, self.threshold)
        needs_analyze = is_stale(record.last_analyze, now, self.threshold)

        if not needs_vacuum and not needs_analyze:
            return None

        facts: list[str] = []
        operations: list[str] = []
        if needs_vacuum:
            operations.append("VACUUM")
            facts.append(_describe("Vacuum", record.last_vacuum, now))
        if needs_analyze:
            operations.append("ANALYZE")
            facts.append(_describe("Analyze", record.last_analyze, now))

        # Always schema-qualified, never resolved through search_path
        table = record.qualified_name
        if needs_vacuum and needs_analyze:
            suggestion = f"VACUUM (ANALYZE) {table};"
        elif needs_vacuum:
            suggestion = f"VACUUM {table};"
        else:
            suggestion = f"ANALYZE {table};"

        days = self.threshold.days
        return Recommendation(
            kind=RecommendationKind.RUN_MAINTENANCE,
            subject=RecommendationSubject(table=table),
            title=f"Run {' and '.join(operations)} on {table}",
            rationale=(
                f"Maintenance older than {days} day(s) leaves dead tuples unreclaimed "
                "and planner statistics out of date, which leads to poor plan choices."
            ),
            facts=tuple(facts),
            suggestion=suggestion,
            metrics={
                "vacuum_count": record.vacuum_count,
                "analyze_count": record.analyze_count,
            },
        )
