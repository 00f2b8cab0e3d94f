"""System vs physical count reconciliation.

Compares a "system" dataset (A) against a "physical/count" dataset (B) on a
shared key and one quantity column per side:

| In A? | In B? | variance              | status            |
|-------|-------|-----------------------|-------------------|
| yes   | yes   | physical - system = 0 | MATCHED           |
| yes   | yes   | physical - system != 0| VARIANCE          |
| yes   | no    | -system               | MISSING_IN_TARGET |
| no    | yes   | +physical             | MISSING_IN_SOURCE |

Quantities are parsed leniently: null, blank and malformed values count as
zero. Conditional aggregation takes the opposite, strict, approach to
malformed numbers (see ``profiler.aggregate``); the two policies differ on
purpose.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .._types import EngineResult, Explanation
from ..dataset import Dataset
from ..keys import KeyMode, parse_quantity
from .index import IndexEntry, build_index, full_outer_match

logger = logging.getLogger(__name__)


class MatchStatus(str, Enum):
    """Reconciliation classification of a key."""

    MATCHED = "matched"
    VARIANCE = "variance"
    MISSING_IN_TARGET = "missing_in_target"  # in system, absent from count
    MISSING_IN_SOURCE = "missing_in_source"  # in count, absent from system

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    MatchStatus.MATCHED: "Match",
    MatchStatus.VARIANCE: "Variance",
    MatchStatus.MISSING_IN_TARGET: "Missing in Physical",
    MatchStatus.MISSING_IN_SOURCE: "Missing in System",
}

_ADJUSTMENT_REASONS = {
    MatchStatus.VARIANCE: "Quantity discrepancy",
    MatchStatus.MISSING_IN_TARGET: "Not found in physical count",
    MatchStatus.MISSING_IN_SOURCE: "Found in physical count",
}


class ReconItem(BaseModel):
    """One reconciled key."""
    key: str
    status: MatchStatus
    system_qty: float = 0.0
    physical_qty: float = 0.0
    variance: float = 0.0
    unit_cost: Optional[float] = None
    dollar_impact: Optional[float] = None
    index_a: Optional[int] = None
    index_b: Optional[int] = None
    side: str = "both"  # "A", "B" or "both"


class ReconcileResult(EngineResult):
    """Reconciliation output: display rows plus every bucket in sorted order."""
    key_column: str
    unit_cost_column: Optional[str] = None
    items: List[ReconItem] = Field(default_factory=list)
    variances: List[ReconItem] = Field(default_factory=list)
    missing_in_target: List[ReconItem] = Field(default_factory=list)
    missing_in_source: List[ReconItem] = Field(default_factory=list)
    matched: List[ReconItem] = Field(default_factory=list)


def _sort_bucket(items: List[ReconItem]) -> List[ReconItem]:
    """Largest absolute dollar impact first, or absolute variance without cost data."""
    use_dollars = bool(items) and all(item.dollar_impact is not None for item in items)

    def magnitude(item: ReconItem) -> float:
        return abs(item.dollar_impact) if use_dollars else abs(item.variance)

    return sorted(items, key=lambda item: (-magnitude(item), item.key))


def _unit_cost(entry: IndexEntry, unit_cost_column: Optional[str]) -> Optional[float]:
    if not unit_cost_column:
        return None
    return parse_quantity(entry.row.get(unit_cost_column))


def _impact(variance: float, unit_cost: Optional[float]) -> Optional[float]:
    return None if unit_cost is None else variance * unit_cost


def _display_row(item: ReconItem, has_cost: bool) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "key": item.key,
        "status": item.status.label,
        "system_qty": item.system_qty,
        "physical_qty": item.physical_qty,
        "variance": item.variance,
    }
    if has_cost:
        row["unit_cost"] = None if item.unit_cost is None else round(item.unit_cost, 2)
        row["dollar_impact"] = None if item.dollar_impact is None else round(item.dollar_impact, 2)
    row["side"] = item.side
    row["index_a"] = item.index_a
    row["index_b"] = item.index_b
    return row


def reconcile(
    system: Dataset,
    count: Dataset,
    key_column: str,
    quantity_column_a: str,
    quantity_column_b: str,
    unit_cost_column: Optional[str] = None,
    include_matches: bool = False,
    key_mode: KeyMode = KeyMode.EXACT,
) -> ReconcileResult:
    """Reconcile system quantities (A) against physical counts (B).

    Args:
        system: Dataset A, the system of record.
        count: Dataset B, the physical count.
        key_column: Column present in both datasets that identifies an item.
        quantity_column_a: Quantity column in A.
        quantity_column_b: Quantity column in B.
        unit_cost_column: Optional unit cost column in A, enables dollar impact.
        include_matches: Also list perfectly matched keys in the display rows.
        key_mode: Key normalization applied to both sides.

    Returns:
        ReconcileResult with display rows, all four buckets and statistics.

    Raises:
        ConfigurationError: If a configured column is not in its dataset.
    """
    system.require_columns(key_column, role="Key column")
    count.require_columns(key_column, role="Key column")
    system.require_columns(quantity_column_a, role="Quantity column")
    count.require_columns(quantity_column_b, role="Quantity column")
    if unit_cost_column:
        system.require_columns(unit_cost_column, role="Unit cost column")

    index_a = build_index(system, key_column, key_mode)
    index_b = build_index(count, key_column, key_mode)
    join = full_outer_match(index_a, index_b)

    variances: List[ReconItem] = []
    matched: List[ReconItem] = []
    missing_in_target: List[ReconItem] = []
    missing_in_source: List[ReconItem] = []

    for pair in join.in_both:
        system_qty = parse_quantity(pair.left.row.get(quantity_column_a))
        physical_qty = parse_quantity(pair.right.row.get(quantity_column_b))
        variance = physical_qty - system_qty
        unit_cost = _unit_cost(pair.left, unit_cost_column)
        item = ReconItem(
            key=pair.key,
            status=MatchStatus.MATCHED if variance == 0 else MatchStatus.VARIANCE,
            system_qty=system_qty,
            physical_qty=physical_qty,
            variance=variance,
            unit_cost=unit_cost,
            dollar_impact=_impact(variance, unit_cost),
            index_a=pair.left.origin_index,
            index_b=pair.right.origin_index,
            side="both",
        )
        (matched if variance == 0 else variances).append(item)

    for side in join.only_in_a:
        system_qty = parse_quantity(side.entry.row.get(quantity_column_a))
        unit_cost = _unit_cost(side.entry, unit_cost_column)
        missing_in_target.append(ReconItem(
            key=side.key,
            status=MatchStatus.MISSING_IN_TARGET,
            system_qty=system_qty,
            physical_qty=0.0,
            variance=-system_qty,
            unit_cost=unit_cost,
            dollar_impact=_impact(-system_qty, unit_cost),
            index_a=side.entry.origin_index,
            side="A",
        ))

    for side in join.only_in_b:
        physical_qty = parse_quantity(side.entry.row.get(quantity_column_b))
        missing_in_source.append(ReconItem(
            key=side.key,
            status=MatchStatus.MISSING_IN_SOURCE,
            system_qty=0.0,
            physical_qty=physical_qty,
            variance=physical_qty,
            index_b=side.entry.origin_index,
            side="B",
        ))

    variances = _sort_bucket(variances)
    missing_in_target = _sort_bucket(missing_in_target)
    missing_in_source = _sort_bucket(missing_in_source)

    items = variances + missing_in_target + missing_in_source
    if include_matches:
        items = items + matched

    has_cost = bool(unit_cost_column)
    columns = ["key", "status", "system_qty", "physical_qty", "variance"]
    if has_cost:
        columns += ["unit_cost", "dollar_impact"]
    columns += ["side", "index_a", "index_b"]

    variance_dollars = sum(i.dollar_impact for i in variances if i.dollar_impact is not None)
    missing_dollars = sum(
        i.dollar_impact for i in missing_in_target + missing_in_source if i.dollar_impact is not None
    )
    in_both = len(join.in_both)

    statistics: Dict[str, Any] = {
        "total_in_a": len(system.rows),
        "total_in_b": len(count.rows),
        "distinct_keys_a": len(index_a),
        "distinct_keys_b": len(index_b),
        "duplicate_keys_a": len(index_a.duplicate_keys()),
        "duplicate_keys_b": len(index_b.duplicate_keys()),
        "matched": in_both,
        "perfect_matches": len(matched),
        "variances": len(variances),
        "missing_in_target": len(missing_in_target),
        "missing_in_source": len(missing_in_source),
        "total_variance_qty": sum(abs(i.variance) for i in variances),
        "total_dollar_impact": variance_dollars,
        "total_dollar_impact_all": variance_dollars + missing_dollars,
        "match_rate_percent": round(len(matched) / max(in_both, 1) * 100, 2),
    }

    logger.info(
        "Reconciled '%s' vs '%s' on %s: %d matched, %d variances, %d missing in target, "
        "%d missing in source",
        system.label, count.label, key_column, len(matched), len(variances),
        len(missing_in_target), len(missing_in_source),
    )

    return ReconcileResult(
        key_column=key_column,
        unit_cost_column=unit_cost_column,
        columns=columns,
        rows=[_display_row(item, has_cost) for item in items],
        statistics=statistics,
        explanation=explain_reconcile(key_column, quantity_column_a, quantity_column_b, unit_cost_column),
        items=items,
        variances=variances,
        missing_in_target=missing_in_target,
        missing_in_source=missing_in_source,
        matched=matched,
    )


def variance_report(result: ReconcileResult) -> List[Dict[str, Any]]:
    """Variance and missing items as plain records, keyed by the key column name."""
    discrepancies = result.variances + result.missing_in_source + result.missing_in_target
    return [
        {
            result.key_column: item.key,
            "status": item.status.label,
            "system_qty": item.system_qty,
            "physical_qty": item.physical_qty,
            "variance": item.variance,
            "unit_cost": item.unit_cost,
            "dollar_impact": item.dollar_impact,
        }
        for item in discrepancies
    ]


def adjustment_upload(result: ReconcileResult) -> List[Dict[str, Any]]:
    """Inventory adjustment records for every item with a non-zero variance."""
    discrepancies = result.variances + result.missing_in_source + result.missing_in_target
    return [
        {
            result.key_column: item.key,
            "adjustment_qty": item.variance,
            "reason": _ADJUSTMENT_REASONS[item.status],
            "current_system_qty": item.system_qty,
            "counted_qty": item.physical_qty,
        }
        for item in discrepancies
        if item.variance != 0
    ]


def explain_reconcile(
    key_column: str,
    quantity_column_a: str,
    quantity_column_b: str,
    unit_cost_column: Optional[str] = None,
) -> Explanation:
    has_cost = bool(unit_cost_column)
    steps = [
        "Build lookup maps for both datasets using the key column",
        "For each key in dataset A, check whether it exists in dataset B",
        f"Calculate variance: {quantity_column_b} (physical) - {quantity_column_a} (system)",
    ]
    if has_cost:
        steps.append(f"Calculate dollar impact: variance x {unit_cost_column}")
    steps += [
        "Identify missing items (in one dataset but not the other)",
        "Rank discrepancies by dollar impact (or absolute quantity)",
    ]
    cost_sql = f",\n       (b.{quantity_column_b} - a.{quantity_column_a}) * a.{unit_cost_column} AS dollar_impact" if has_cost else ""
    return Explanation(
        description=(
            f"Reconciliation compares system quantities (A) against physical counts (B) "
            f"using {key_column} as the matching key."
            + (" Dollar impact is computed using unit cost." if has_cost else "")
        ),
        steps=steps,
        excel_equivalent="=VLOOKUP() + IF() statements with variance calculations",
        sql_equivalent=(
            f"SELECT COALESCE(a.{key_column}, b.{key_column}) AS key,\n"
            f"       a.{quantity_column_a} AS system_qty, b.{quantity_column_b} AS physical_qty,\n"
            f"       (b.{quantity_column_b} - a.{quantity_column_a}) AS variance{cost_sql}\n"
            f"FROM system a\n"
            f"FULL OUTER JOIN physical b ON a.{key_column} = b.{key_column}\n"
            f"WHERE a.{quantity_column_a} != b.{quantity_column_b} "
            f"OR a.{key_column} IS NULL OR b.{key_column} IS NULL"
        ),
        why=(
            "Negative variances point to shrinkage or receiving errors, positive variances to "
            "unreported receipts or miscounts. Missing items in either direction need investigation."
        ),
        notes=[
            "Malformed or blank quantities are treated as zero",
            "When a key repeats, the first row on each side is used",
            "total_dollar_impact covers Variance rows only; total_dollar_impact_all adds missing rows",
        ],
    )
