"""
Analyzer module - the decision core of IndexSense.

Each analyzer is a pure function of (snapshot data, config):
- compute_selectivity: distinct/total ratio per column
- IndexStrategyAdvisor: index structure + predicted scan per column
- UnusedIndexDetector: never-used, droppable indexes
- MaintenanceStatusTracker: stale vacuum/analyze history
- SlowQueryRanker: statements by share of total execution time
"""

from indexsense.analyzer.index_strategy import IndexStrategyAdvisor
from indexsense.analyzer.maintenance import MaintenanceStatusTracker
from indexsense.analyzer.models import (
    KIND_ORDER,
    AdvisoryWarning,
    ColumnSelectivity,
    IndexStructure,
    RankedQuery,
    Recommendation,
    RecommendationKind,
    RecommendationSubject,
    ScanStrategy,
)
from indexsense.analyzer.selectivity import compute_selectivity, round_half_up
from indexsense.analyzer.slow_queries import SlowQueryRanker
from indexsense.analyzer.unused_indexes import UnusedIndexDetector

__all__ = [
    "IndexStrategyAdvisor",
    "MaintenanceStatusTracker",
    "SlowQueryRanker",
    "UnusedIndexDetector",
    "compute_selectivity",
    "round_half_up",
    "KIND_ORDER",
    "AdvisoryWarning",
    "ColumnSelectivity",
    "IndexStructure",
    "RankedQuery",
    "Recommendation",
    "RecommendationKind",
    "RecommendationSubject",
    "ScanStrategy",
]
