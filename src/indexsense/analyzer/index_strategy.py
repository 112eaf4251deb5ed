"""
Index strategy advisor.

Turns a column's selectivity and the shape of the predicate used against
it into exactly one recommendation: which index structure to build (or
not to build) and which scan the planner is expected to choose.

Decision rules, evaluated in order:
1. Substring match -> trigram GIN, Bitmap Index Scan (B-trees can't help)
2. Equality on a NOT NULL, all-distinct column -> hash, or B-tree when
   uniqueness must be enforced; Index Scan
3. Selectivity >= high threshold -> B-tree, Index Scan
4. Selectivity < high threshold -> B-tree, Bitmap Index Scan
5. Selectivity <= low threshold -> downgrade (4) to "do not index"

The classifier is stateless; thresholds come from AdvisorConfig.
"""

from __future__ import annotations

from indexsense.analyzer.models import (
    ColumnSelectivity,
    IndexStructure,
    Recommendation,
    RecommendationKind,
    RecommendationSubject,
    ScanStrategy,
)
from indexsense.config import AdvisorConfig
from indexsense.snapshot.models import ColumnCandidate, PredicateShape, TableStat

# Fraction of rows below which an index typically beats a full scan
INDEX_WORTHWHILE_ROW_FRACTION = 0.15


def index_name_for(table: str, column: str, structure: IndexStructure) -> str:
    """Generate a sensible index name."""
    base = f"idx_{table.replace('.', '_')}_{column}"
    if structure is IndexStructure.HASH:
        return f"{base}_hash"
    if structure is IndexStructure.GIN_TRGM:
        return f"{base}_trgm"
    return base


def create_index_sql(
    table: str,
    column: str,
    structure: IndexStructure,
    unique: bool = False,
    pattern_ops: bool = False,
) -> str | None:
    """Generate the CREATE INDEX statement for a recommendation."""
    if structure is IndexStructure.NONE:
        return None

    name = index_name_for(table, column, structure)

    if structure is IndexStructure.GIN_TRGM:
        return (
            "CREATE EXTENSION IF NOT EXISTS pg_trgm;\n"
            f"CREATE INDEX {name} ON {table} USING gin ({column} gin_trgm_ops);"
        )
    if structure is IndexStructure.HASH:
        return f"CREATE INDEX {name} ON {table} USING hash ({column});"

    keyword = "CREATE UNIQUE INDEX" if unique else "CREATE INDEX"
    opclass = " text_pattern_ops" if pattern_ops else ""
    return f"{keyword} {name} ON {table} ({column}{opclass});"


class IndexStrategyAdvisor:
    """
    Recommend an index structure for one (column, predicate shape) pair.

    Example:
        advisor = IndexStrategyAdvisor(AdvisorConfig())
        rec = advisor.advise(candidate, selectivity, not_null=True)
    """

    def __init__(self, config: AdvisorConfig | None = None) -> None:
        self.config = config or AdvisorConfig()

    def advise(
        self,
        candidate: ColumnCandidate,
        selectivity: ColumnSelectivity,
        not_null: bool = False,
        table_stat: TableStat | None = None,
    ) -> Recommendation:
        """Classify one column. Never mutates its inputs."""
        high = self.config.selectivity_high_threshold
        low = self.config.selectivity_low_threshold
        value = selectivity.value
        predicate = candidate.predicate

        facts = [f"Selectivity {value:.2f} under a {predicate.value} predicate"]
        if table_stat is not None and table_stat.prefers_sequential:
            fact = (
                f"{table_stat.name} was read by {table_stat.seq_scan_count:,} sequential "
                f"scans ({table_stat.seq_tup_read:,} rows) vs "
                f"{table_stat.idx_scan_count:,} index scans"
            )
            if table_stat.live_row_count is not None:
                fact += f" and holds about {table_stat.live_row_count:,} live rows"
            facts.append(fact)

        pattern_ops = False

        if predicate is PredicateShape.SUBSTRING_MATCH:
            structure = IndexStructure.GIN_TRGM
            scan = ScanStrategy.BITMAP_INDEX_SCAN
            rationale = (
                "Unanchored pattern search (LIKE '%...%') cannot be serviced by an "
                "ordered index at all. A trigram GIN index indexes overlapping "
                "three-character substrings and is read through a bitmap scan."
            )
            facts.append("Requires the pg_trgm extension")

        elif predicate is PredicateShape.EQUALITY and not_null and value == 1.0:
            scan = ScanStrategy.INDEX_SCAN
            if candidate.requires_unique:
                structure = IndexStructure.BTREE
                rationale = (
                    "Every value is distinct and uniqueness must be enforced; only an "
                    "ordered (B-tree) index supports unique constraints."
                )
            else:
                structure = IndexStructure.HASH
                rationale = (
                    "Every value is distinct, the column is NOT NULL and it is only "
                    "compared for equality; a hash index is more compact than a B-tree "
                    "and uniqueness enforcement is not required."
                )

        elif value >= high:
            structure = IndexStructure.BTREE
            scan = ScanStrategy.INDEX_SCAN
            rationale = (
                f"Selectivity {value:.2f} is at or above {high:.2f}: each lookup "
                "returns few rows, so the planner is expected to use an Index Scan."
            )

        elif value <= low:
            structure = IndexStructure.NONE
            scan = ScanStrategy.SEQ_SCAN
            rationale = (
                f"Selectivity {value:.2f} is at or below {low:.2f}: lookups return a "
                "large share of the table. An index generally pays off only when a "
                f"query retrieves under ~{INDEX_WORTHWHILE_ROW_FRACTION:.0%} of rows, "
                "so its maintenance cost likely exceeds the benefit."
            )

        else:
            structure = IndexStructure.BTREE
            scan = ScanStrategy.BITMAP_INDEX_SCAN
            rationale = (
                f"Selectivity {value:.2f} is below {high:.2f}: lookups return many rows "
                "per value, so a Bitmap Index Scan is expected. The planner may still "
                "prefer a full sequential scan as selectivity degrades toward 0."
            )

        if structure is IndexStructure.BTREE and predicate is PredicateShape.PREFIX_MATCH:
            pattern_ops = True
            facts.append(
                "Prefix LIKE needs the text_pattern_ops operator class unless the "
                "database collation is C"
            )

        if structure is IndexStructure.NONE:
            title = f"Do not index {candidate.label}"
        else:
            title = f"Create {structure.value} index on {candidate.label}"

        return Recommendation(
            kind=RecommendationKind.CREATE_INDEX,
            subject=RecommendationSubject(table=candidate.table, column=candidate.column),
            title=title,
            rationale=rationale,
            facts=tuple(facts),
            index_structure=structure,
            predicted_scan_strategy=scan,
            suggestion=create_index_sql(
                candidate.table,
                candidate.column,
                structure,
                unique=candidate.requires_unique and structure is IndexStructure.BTREE,
                pattern_ops=pattern_ops,
            ),
            metrics={"selectivity": value},
        )
