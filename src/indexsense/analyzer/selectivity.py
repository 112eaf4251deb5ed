"""
Column selectivity.

Selectivity = distinct values / total rows. A value near 1 means an
equality lookup returns very few rows; a value near 0 means most lookups
return a large share of the table.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from indexsense.analyzer.models import ColumnSelectivity
from indexsense.exceptions import InsufficientData
from indexsense.snapshot.models import ColumnCardinality


def round_half_up(value: float, places: int = 2) -> float:
    """Round with ties away from zero (0.125 -> 0.13), unlike round()."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def compute_selectivity(cardinality: ColumnCardinality) -> ColumnSelectivity:
    """
    Compute the selectivity of one column.

    Only an all-distinct column reports 1.00; a ratio that would round up
    to 1.00 is capped at 0.99.

    Raises:
        InsufficientData: The table has no rows.
    """
    if cardinality.row_count == 0:
        raise InsufficientData(
            f"Cannot compute selectivity of {cardinality.table}.{cardinality.column}: "
            "table has no rows",
            table=cardinality.table,
            column=cardinality.column,
        )

    value = round_half_up(cardinality.distinct_count / cardinality.row_count)
    if value >= 1.0 and cardinality.distinct_count < cardinality.row_count:
        value = 0.99

    return ColumnSelectivity(
        table=cardinality.table,
        column=cardinality.column,
        value=value,
    )
