"""IndexSense - index, maintenance and slow-query advisor for PostgreSQL statistics."""

__version__ = "0.3.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from indexsense.exceptions import (
    IndexSenseError,
    DataSourceUnavailable,
    InsufficientData,
    InvalidConfiguration,
    InternalInconsistency,
)

# Public API exports
from indexsense.analyzer.models import (
    AdvisoryWarning,
    ColumnSelectivity,
    IndexStructure,
    RankedQuery,
    Recommendation,
    RecommendationKind,
    RecommendationSubject,
    ScanStrategy,
)
from indexsense.config import (
    AdvisorConfig,
    get_config,
)
from indexsense.engine import (
    AdvisoryService,
    advise,
)
from indexsense.report import (
    AdvisorReport,
    AdvisorReportBuilder,
)
from indexsense.snapshot import (
    ColumnCandidate,
    ColumnCardinality,
    IndexStat,
    JsonFileStatsProvider,
    MaintenanceRecord,
    PostgresStatsProvider,
    PredicateShape,
    QueryStat,
    StatsProvider,
    StatsSnapshot,
    TableStat,
    collect_snapshot,
)

__all__ = [
    # Exception hierarchy
    "IndexSenseError",
    "DataSourceUnavailable",
    "InsufficientData",
    "InvalidConfiguration",
    "InternalInconsistency",
    # Core
    "advise",
    "AdvisoryService",
    "AdvisorReport",
    "AdvisorReportBuilder",
    # Snapshot
    "StatsSnapshot",
    "TableStat",
    "ColumnCardinality",
    "IndexStat",
    "MaintenanceRecord",
    "QueryStat",
    "ColumnCandidate",
    "PredicateShape",
    "StatsProvider",
    "PostgresStatsProvider",
    "JsonFileStatsProvider",
    "collect_snapshot",
    # Models
    "Recommendation",
    "RecommendationKind",
    "RecommendationSubject",
    "IndexStructure",
    "ScanStrategy",
    "ColumnSelectivity",
    "RankedQuery",
    "AdvisoryWarning",
    # Configuration
    "AdvisorConfig",
    "get_config",
    # Metadata
    "__version__",
    "__license__",
]
