"""
Advisor report and its builder.

The builder only assembles: it groups the analyzers' recommendations in
the fixed order CREATE_INDEX, DROP_INDEX, RUN_MAINTENANCE, REVIEW_QUERY,
keeping each producer's own ordering inside its group. Anything handed in
that breaks the model contracts is a programming defect and raises
InternalInconsistency.

Reports contain no wall-clock or timing fields, so the same snapshot and
config always serialize to the same bytes.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Iterable, Sequence

from pydantic import BaseModel, ConfigDict

from indexsense.analyzer.models import (
    KIND_ORDER,
    AdvisoryWarning,
    RankedQuery,
    Recommendation,
    RecommendationKind,
)
from indexsense.config import AdvisorConfig
from indexsense.exceptions import InternalInconsistency


class AdvisorReport(BaseModel):
    """Structured, ordered output of one advisory run."""

    model_config = ConfigDict(frozen=True)

    captured_at: datetime
    config: AdvisorConfig
    recommendations: tuple[Recommendation, ...] = ()
    ranked_queries: tuple[RankedQuery, ...] = ()
    warnings: tuple[AdvisoryWarning, ...] = ()

    def by_kind(self, kind: RecommendationKind) -> list[Recommendation]:
        """Recommendations of one kind, in report order."""
        return [r for r in self.recommendations if r.kind == kind]

    @property
    def is_empty(self) -> bool:
        return not self.recommendations

    def summary(self) -> dict[str, int]:
        counts = {kind.value: len(self.by_kind(kind)) for kind in KIND_ORDER}
        counts["total"] = len(self.recommendations)
        counts["warnings"] = len(self.warnings)
        return counts

    def to_dict(self) -> dict[str, Any]:
        """The versioned report document (see indexsense.output.schema)."""
        from indexsense.output.schema import report_to_document

        return report_to_document(self)

    def to_json(self, indent: int | None = 2) -> str:
        """Deterministic JSON serialization."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)


class AdvisorReportBuilder:
    """Join the analyzers' outputs into one AdvisorReport."""

    STAGE = "report_builder"

    def build(
        self,
        *,
        captured_at: datetime,
        config: AdvisorConfig,
        index_advice: Sequence[Recommendation] = (),
        unused_indexes: Sequence[Recommendation] = (),
        maintenance: Sequence[Recommendation] = (),
        query_reviews: Sequence[Recommendation] = (),
        ranked_queries: Sequence[RankedQuery] = (),
        warnings: Iterable[AdvisoryWarning] = (),
    ) -> AdvisorReport:
        groups = {
            RecommendationKind.CREATE_INDEX: index_advice,
            RecommendationKind.DROP_INDEX: unused_indexes,
            RecommendationKind.RUN_MAINTENANCE: maintenance,
            RecommendationKind.REVIEW_QUERY: query_reviews,
        }

        ordered: list[Recommendation] = []
        for kind in KIND_ORDER:
            ordered.extend(self._checked_group(groups[kind], kind))

        ranked = self._checked_ranking(ranked_queries)
        if len(ranked) != len(groups[RecommendationKind.REVIEW_QUERY]):
            raise InternalInconsistency(
                f"{len(ranked)} ranked queries but "
                f"{len(groups[RecommendationKind.REVIEW_QUERY])} query reviews",
                stage=self.STAGE,
            )

        warning_list = list(warnings)
        for warning in warning_list:
            if not isinstance(warning, AdvisoryWarning):
                raise InternalInconsistency(
                    f"Expected AdvisoryWarning, got {type(warning).__name__}",
                    stage=self.STAGE,
                )

        return AdvisorReport(
            captured_at=captured_at,
            config=config,
            recommendations=tuple(ordered),
            ranked_queries=tuple(ranked),
            warnings=tuple(warning_list),
        )

    def _checked_group(
        self,
        items: Sequence[Recommendation],
        kind: RecommendationKind,
    ) -> list[Recommendation]:
        checked: list[Recommendation] = []
        for item in items:
            if not isinstance(item, Recommendation):
                raise InternalInconsistency(
                    f"Expected Recommendation in {kind.value} group, "
                    f"got {type(item).__name__}",
                    stage=self.STAGE,
                )
            if item.kind != kind:
                raise InternalInconsistency(
                    f"{item.kind.value} recommendation handed in as {kind.value}",
                    stage=self.STAGE,
                )
            checked.append(item)
        return checked

    def _checked_ranking(self, ranked_queries: Sequence[RankedQuery]) -> list[RankedQuery]:
        checked: list[RankedQuery] = []
        for position, entry in enumerate(ranked_queries, start=1):
            if not isinstance(entry, RankedQuery):
                raise InternalInconsistency(
                    f"Expected RankedQuery, got {type(entry).__name__}",
                    stage=self.STAGE,
                )
            if not 0.0 <= entry.percent <= 100.0:
                raise InternalInconsistency(
                    f"Query {entry.query_id} has percent {entry.percent} outside [0, 100]",
                    stage=self.STAGE,
                )
            if entry.rank != position:
                raise InternalInconsistency(
                    f"Query {entry.query_id} has rank {entry.rank}, expected {position}",
                    stage=self.STAGE,
                )
            checked.append(entry)
        return checked
