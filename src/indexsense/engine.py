"""
Advisory engine - first-class orchestration layer for IndexSense.

This is the single entry point for turning a snapshot into a report.
The CLI and any other caller use advise() (or AdvisoryService, which
also collects the snapshot) rather than wiring analyzers themselves.

Flow:
    provider --collect_snapshot--> StatsSnapshot
        ├── index strategy (selectivity -> advisor)   ┐
        ├── unused index detection                    │ independent tasks
        ├── maintenance status                        │
        └── slow query ranking                        ┘
                    └──> AdvisorReportBuilder (join) --> AdvisorReport

The snapshot is immutable, so the four tasks share it without locks.

Usage:
    from indexsense.engine import advise

    report = advise(snapshot, AdvisorConfig(top_slow_queries=10))
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable

from indexsense.analyzer.index_strategy import IndexStrategyAdvisor
from indexsense.analyzer.maintenance import MaintenanceStatusTracker
from indexsense.analyzer.models import AdvisoryWarning, RankedQuery, Recommendation
from indexsense.analyzer.selectivity import compute_selectivity
from indexsense.analyzer.slow_queries import SlowQueryRanker
from indexsense.analyzer.unused_indexes import UnusedIndexDetector
from indexsense.config import AdvisorConfig
from indexsense.exceptions import InsufficientData
from indexsense.report import AdvisorReport, AdvisorReportBuilder
from indexsense.snapshot.models import ColumnCandidate, StatsSnapshot
from indexsense.snapshot.providers import StatsProvider, collect_snapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexAdviceResult:
    """Output of the index strategy task."""

    recommendations: tuple[Recommendation, ...]
    warnings: tuple[AdvisoryWarning, ...]


@dataclass(frozen=True)
class QueryRankingResult:
    """Output of the slow query task."""

    ranked: tuple[RankedQuery, ...]
    reviews: tuple[Recommendation, ...]


def advise_indexes(snapshot: StatsSnapshot, config: AdvisorConfig) -> IndexAdviceResult:
    """
    Run selectivity + index strategy over every candidate column.

    Columns without usable cardinality are skipped with a warning that
    carries the provider's reason when one was recorded.
    """
    advisor = IndexStrategyAdvisor(config)
    recommendations: list[Recommendation] = []
    warnings: list[AdvisoryWarning] = []

    for candidate in snapshot.candidates:
        cardinality = snapshot.cardinality(candidate.table, candidate.column)
        if cardinality is None:
            skip = snapshot.skipped(candidate.table, candidate.column)
            if skip is not None:
                warnings.append(AdvisoryWarning(
                    code="insufficient_data",
                    subject=candidate.label,
                    message=skip.reason,
                ))
                continue
            warnings.append(AdvisoryWarning(
                code="missing_cardinality",
                subject=candidate.label,
                message=f"No cardinality statistics were collected for {candidate.label}",
            ))
            continue

        try:
            selectivity = compute_selectivity(cardinality)
        except InsufficientData as e:
            logger.info("Skipping %s: %s", candidate.label, e.message)
            warnings.append(AdvisoryWarning(
                code="insufficient_data",
                subject=candidate.label,
                message=e.message,
            ))
            continue

        recommendations.append(advisor.advise(
            candidate,
            selectivity,
            not_null=cardinality.is_not_null,
            table_stat=snapshot.table_stat(candidate.table),
        ))

    return IndexAdviceResult(tuple(recommendations), tuple(warnings))


def detect_unused_indexes(snapshot: StatsSnapshot, config: AdvisorConfig) -> list[Recommendation]:
    return UnusedIndexDetector().detect(snapshot.indexes)


def check_maintenance(snapshot: StatsSnapshot, config: AdvisorConfig) -> list[Recommendation]:
    tracker = MaintenanceStatusTracker(stale_days=config.maintenance_stale_days)
    return tracker.check(snapshot.maintenance, now=snapshot.captured_at)


def rank_queries(snapshot: StatsSnapshot, config: AdvisorConfig) -> QueryRankingResult:
    ranker = SlowQueryRanker(top=config.top_slow_queries)
    ranked = ranker.rank(snapshot.queries)
    return QueryRankingResult(
        ranked=tuple(ranked),
        reviews=tuple(ranker.to_recommendation(entry) for entry in ranked),
    )


def advise(
    snapshot: StatsSnapshot,
    config: AdvisorConfig | None = None,
    parallel: bool = True,
) -> AdvisorReport:
    """
    Produce an advisory report for one snapshot.

    Args:
        snapshot: Fully materialized statistics.
        config: Thresholds; defaults apply when omitted.
        parallel: Run the four analyzer tasks on a thread pool. The
            report is identical either way.

    Raises:
        InternalInconsistency: An analyzer produced malformed output.
    """
    config = config or AdvisorConfig()
    start = time.perf_counter()

    if parallel:
        with ThreadPoolExecutor(max_workers=4, thread_name_prefix="indexsense") as pool:
            index_future = pool.submit(advise_indexes, snapshot, config)
            unused_future = pool.submit(detect_unused_indexes, snapshot, config)
            maintenance_future = pool.submit(check_maintenance, snapshot, config)
            queries_future = pool.submit(rank_queries, snapshot, config)

            index_result = index_future.result()
            unused = unused_future.result()
            maintenance = maintenance_future.result()
            queries = queries_future.result()
    else:
        index_result = advise_indexes(snapshot, config)
        unused = detect_unused_indexes(snapshot, config)
        maintenance = check_maintenance(snapshot, config)
        queries = rank_queries(snapshot, config)

    report = AdvisorReportBuilder().build(
        captured_at=snapshot.captured_at,
        config=config,
        index_advice=index_result.recommendations,
        unused_indexes=unused,
        maintenance=maintenance,
        query_reviews=queries.reviews,
        ranked_queries=queries.ranked,
        warnings=index_result.warnings,
    )

    logger.debug(
        "Advisory run finished in %.1fms: %s",
        (time.perf_counter() - start) * 1000,
        report.summary(),
    )
    return report


class AdvisoryService:
    """
    Collect a snapshot from a provider and advise on it.

    Snapshot acquisition is the only I/O and completes before any
    analyzer starts; if it fails, no partial report is produced.
    """

    def __init__(self, config: AdvisorConfig | None = None, parallel: bool = True) -> None:
        self.config = config or AdvisorConfig()
        self.parallel = parallel

    def run(
        self,
        provider: StatsProvider,
        candidates: Iterable[ColumnCandidate] = (),
    ) -> AdvisorReport:
        snapshot = collect_snapshot(provider, candidates)
        return self.advise(snapshot)

    def advise(self, snapshot: StatsSnapshot) -> AdvisorReport:
        return advise(snapshot, self.config, parallel=self.parallel)
