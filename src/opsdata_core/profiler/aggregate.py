"""Conditional aggregation (COUNTIF / SUMIF), optionally grouped.

A row matches when its field satisfies the predicate. Null fields never
match. Numeric operators parse both sides strictly and exclude rows where
either side is not a number. This is stricter than reconciliation, which
reads malformed quantities as zero. Values being summed are read leniently
(non-numeric adds 0) and counted in ``non_numeric_values``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator

from .._errors import ConfigurationError
from .._types import EngineResult, Explanation, percent
from ..dataset import Dataset, Row
from ..keys import parse_number, parse_quantity, stringify

logger = logging.getLogger(__name__)

EMPTY_GROUP_LABEL = "(empty)"


class Operator(str, Enum):
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"


class AggregateOp(str, Enum):
    COUNT = "count"
    SUM = "sum"


_OPERATOR_ALIASES: Dict[str, Operator] = {
    "=": Operator.EQ,
    "==": Operator.EQ,
    "!=": Operator.NE,
    "<>": Operator.NE,
    ">": Operator.GT,
    "<": Operator.LT,
    ">=": Operator.GTE,
    "<=": Operator.LTE,
    "starts": Operator.STARTS_WITH,
    "starts_with": Operator.STARTS_WITH,
    "ends": Operator.ENDS_WITH,
    "ends_with": Operator.ENDS_WITH,
}

NUMERIC_OPERATORS = frozenset({Operator.GT, Operator.LT, Operator.GTE, Operator.LTE})

_SYMBOLS = {
    Operator.EQ: "=",
    Operator.NE: "!=",
    Operator.GT: ">",
    Operator.LT: "<",
    Operator.GTE: ">=",
    Operator.LTE: "<=",
    Operator.CONTAINS: "contains",
    Operator.STARTS_WITH: "starts with",
    Operator.ENDS_WITH: "ends with",
}


class Predicate(BaseModel):
    """``column <operator> value``."""
    column: str
    operator: Operator
    value: Any = None

    @field_validator("operator", mode="before")
    @classmethod
    def _resolve_alias(cls, v: Any) -> Any:
        if isinstance(v, str) and v in _OPERATOR_ALIASES:
            return _OPERATOR_ALIASES[v]
        return v

    def describe(self) -> str:
        return f'{self.column} {_SYMBOLS[self.operator]} "{stringify(self.value)}"'


class AggregateGroup(BaseModel):
    label: str
    count: int
    value: Union[int, float]
    origin_indices: List[int] = Field(default_factory=list)


class AggregateResult(EngineResult):
    predicate: Predicate
    op: AggregateOp
    value: Optional[Union[int, float]] = None
    groups: List[AggregateGroup] = Field(default_factory=list)
    matched_indices: List[int] = Field(default_factory=list)


def evaluate_predicate(predicate: Predicate, value: Any) -> bool:
    """True if ``value`` satisfies ``predicate``."""
    if value is None:
        return False

    op = predicate.operator
    if op in NUMERIC_OPERATORS:
        left = parse_number(value)
        right = parse_number(predicate.value)
        if left is None or right is None:
            return False
        if op == Operator.GT:
            return left > right
        if op == Operator.LT:
            return left < right
        if op == Operator.GTE:
            return left >= right
        return left <= right

    text = stringify(value).lower()
    wanted = stringify(predicate.value).lower()
    if op == Operator.EQ:
        return text == wanted
    if op == Operator.NE:
        return text != wanted
    if op == Operator.CONTAINS:
        return wanted in text
    if op == Operator.STARTS_WITH:
        return text.startswith(wanted)
    if op == Operator.ENDS_WITH:
        return text.endswith(wanted)
    raise ValueError(f"Unhandled operator: {op!r}")


def _group_label(value: Any) -> str:
    text = stringify(value)
    return text if text else EMPTY_GROUP_LABEL


def _total(rows: List[Row], op: AggregateOp, sum_column: Optional[str]) -> Tuple[Union[int, float], int]:
    """Aggregate ``rows``; also return how many summed values were not numeric."""
    if op == AggregateOp.COUNT:
        return len(rows), 0
    total = 0.0
    non_numeric = 0
    for row in rows:
        value = row.get(sum_column)
        if parse_number(value) is None:
            non_numeric += 1
        total += parse_quantity(value)
    return total, non_numeric


def aggregate(
    dataset: Dataset,
    predicate: Union[Predicate, Dict[str, Any]],
    op: Union[AggregateOp, str] = AggregateOp.COUNT,
    sum_column: Optional[str] = None,
    group_by_column: Optional[str] = None,
) -> AggregateResult:
    """Count or sum the rows of ``dataset`` that match ``predicate``.

    Args:
        dataset: Rows to scan.
        predicate: Condition, as a model or ``{"column", "operator", "value"}``.
        op: ``count`` or ``sum``.
        sum_column: Column summed when ``op`` is ``sum``.
        group_by_column: Optional column to partition matching rows by.

    Returns:
        AggregateResult with a single ``value`` or, when grouped, ``groups``
        sorted by aggregate value (largest first).

    Raises:
        ConfigurationError: If ``sum`` has no ``sum_column`` or a column is
            not in the dataset's schema.
    """
    if not isinstance(predicate, Predicate):
        predicate = Predicate.model_validate(predicate)
    op = AggregateOp(op)

    dataset.require_columns(predicate.column, role="Condition column")
    if op == AggregateOp.SUM:
        if not sum_column:
            raise ConfigurationError("Sum column is required for sum", option="sum_column", value=sum_column)
        dataset.require_columns(sum_column, role="Sum column")
    if group_by_column:
        dataset.require_columns(group_by_column, role="Group by column")

    if predicate.operator in NUMERIC_OPERATORS and parse_number(predicate.value) is None:
        logger.warning(
            "Numeric operator %s with non-numeric value %r matches no rows",
            predicate.operator.value, predicate.value,
        )

    matching = [row for row in dataset.rows if evaluate_predicate(predicate, row.get(predicate.column))]
    matched_indices = [row.origin_index for row in matching]
    total_rows = len(dataset.rows)
    explanation = explain_aggregate(predicate, op, sum_column, group_by_column)

    if not group_by_column:
        value, non_numeric = _total(matching, op, sum_column)
        logger.info(
            "%s on '%s' where %s: %s (%d of %d rows)",
            op.value, dataset.label, predicate.describe(), value, len(matching), total_rows,
        )
        return AggregateResult(
            predicate=predicate,
            op=op,
            value=value,
            matched_indices=matched_indices,
            columns=["condition", "result", "matching_rows", "total_rows", "origin_indices"],
            rows=[{
                "condition": predicate.describe(),
                "result": value,
                "matching_rows": len(matching),
                "total_rows": total_rows,
                "origin_indices": matched_indices,
            }],
            statistics={
                "result": value,
                "matching_rows": len(matching),
                "total_rows": total_rows,
                "match_rate_percent": percent(len(matching), total_rows),
                "non_numeric_values": non_numeric,
            },
            explanation=explanation,
        )

    partitions: Dict[str, List[Row]] = {}
    for row in matching:
        partitions.setdefault(_group_label(row.get(group_by_column)), []).append(row)

    groups: List[AggregateGroup] = []
    grand_total: Union[int, float] = 0
    non_numeric_total = 0
    for label, rows in partitions.items():
        value, non_numeric = _total(rows, op, sum_column)
        grand_total += value
        non_numeric_total += non_numeric
        groups.append(AggregateGroup(
            label=label, count=len(rows), value=value,
            origin_indices=[r.origin_index for r in rows],
        ))
    # stable: equal values keep first-seen group order
    groups = sorted(groups, key=lambda g: -g.value)

    logger.info(
        "%s on '%s' where %s grouped by %s: %d groups from %d of %d rows",
        op.value, dataset.label, predicate.describe(), group_by_column,
        len(groups), len(matching), total_rows,
    )

    return AggregateResult(
        predicate=predicate,
        op=op,
        groups=groups,
        matched_indices=matched_indices,
        columns=["group", "count", "result", "origin_indices"],
        rows=[
            {"group": g.label, "count": g.count, "result": g.value, "origin_indices": list(g.origin_indices)}
            for g in groups
        ],
        statistics={
            "total_result": grand_total,
            "groups": len(groups),
            "matching_rows": len(matching),
            "total_rows": total_rows,
            "non_numeric_values": non_numeric_total,
        },
        explanation=explanation,
    )


def explain_aggregate(
    predicate: Predicate,
    op: AggregateOp,
    sum_column: Optional[str] = None,
    group_by_column: Optional[str] = None,
) -> Explanation:
    condition = predicate.describe()
    col = predicate.column
    literal = stringify(predicate.value)
    if op == AggregateOp.COUNT:
        excel = f'=COUNTIF({col}:{col}, "{literal}")'
        sql = f"SELECT COUNT(*) FROM table WHERE {condition}"
        action = "Count matching rows"
    else:
        excel = f'=SUMIF({col}:{col}, "{literal}", {sum_column}:{sum_column})'
        sql = f"SELECT SUM({sum_column}) FROM table WHERE {condition}"
        action = f"Sum {sum_column} values from matching rows"
    if group_by_column:
        sql = sql.replace("SELECT ", f"SELECT {group_by_column}, ", 1) + f" GROUP BY {group_by_column}"

    name = "COUNTIF" if op == AggregateOp.COUNT else "SUMIF"
    return Explanation(
        description=(
            f"{name} finds rows matching {condition} and "
            + ("counts them." if op == AggregateOp.COUNT else f"sums the {sum_column} column.")
            + (f" Results are grouped by {group_by_column}." if group_by_column else "")
        ),
        steps=[
            f"Check each row's {col} value",
            f"Keep rows where {condition}",
            action,
            f"Group results by {group_by_column}" if group_by_column else "Return single result",
        ],
        excel_equivalent=excel,
        sql_equivalent=sql,
        why=(
            "Conditional aggregation answers questions such as how many items are below a reorder "
            "point or what the total value held in one location is."
        ),
        notes=[
            "Null values never match",
            "Numeric comparisons exclude rows whose value is not a number",
        ],
    )
