"""Duplicate detection on single or composite keys.

Unlike the first-match index used for lookups, duplicate grouping keeps
every occurrence of a key.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence, Union

from pydantic import BaseModel, Field

from .._types import EngineResult, Explanation, percent
from ..dataset import Dataset
from ..keys import KeyMode, parse_columns, stringify
from .index import build_index

logger = logging.getLogger(__name__)

SAMPLE_FIELDS = 3


class DuplicateGroup(BaseModel):
    """A key shared by two or more rows."""
    key: str
    origin_indices: List[int] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.origin_indices)


class DuplicateResult(EngineResult):
    key_columns: List[str] = Field(default_factory=list)
    mode: KeyMode = KeyMode.EXACT
    groups: List[DuplicateGroup] = Field(default_factory=list)


def find_duplicates(
    dataset: Dataset,
    key_columns: Union[str, Sequence[str]],
    mode: KeyMode = KeyMode.EXACT,
) -> DuplicateResult:
    """Group rows by key and report keys that occur more than once.

    Args:
        dataset: Rows to scan.
        key_columns: One column or several (list or comma-separated) forming
            a composite key.
        mode: ``EXACT`` or ``NORMALIZED`` key comparison.

    Returns:
        DuplicateResult with groups sorted by size (largest first, ties in
        first-seen order) and statistics.

    Raises:
        ConfigurationError: If a key column is not in the dataset's schema.
    """
    columns = parse_columns(key_columns)
    index = build_index(dataset, columns, mode)

    groups = [
        DuplicateGroup(key=key, origin_indices=[e.origin_index for e in entries])
        for key, entries in index.groups.items()
        if len(entries) > 1
    ]
    # sorted() is stable, so equal sizes keep first-seen key order
    groups = sorted(groups, key=lambda g: -g.count)

    duplicate_rows = sum(g.count for g in groups)
    statistics: Dict[str, Any] = {
        "total_rows": len(dataset.rows),
        "distinct_keys": len(index),
        "unique_keys": len(index) - len(groups),
        "duplicate_keys": len(groups),
        "duplicate_rows": duplicate_rows,
        "duplicate_percentage": percent(duplicate_rows, len(dataset.rows), 2),
    }

    rows_by_index = {row.origin_index: row for row in dataset.rows}
    display = []
    for group in groups:
        sample = rows_by_index[group.origin_indices[0]]
        sample_fields = list(sample.values.items())[:SAMPLE_FIELDS]
        display.append({
            "key_value": group.key,
            "count": group.count,
            "row_numbers": ", ".join(str(i + 1) for i in group.origin_indices),
            "sample_data": " | ".join(f"{k}: {stringify(v)}" for k, v in sample_fields),
        })

    logger.info(
        "Found %d duplicate keys covering %d of %d rows in '%s'",
        len(groups), duplicate_rows, len(dataset.rows), dataset.label,
    )

    return DuplicateResult(
        key_columns=columns,
        mode=KeyMode(mode),
        groups=groups,
        columns=["key_value", "count", "row_numbers", "sample_data"],
        rows=display,
        statistics=statistics,
        explanation=explain_duplicates(columns, mode),
    )


def duplicate_rows(dataset: Dataset, result: DuplicateResult) -> Dataset:
    """Every row that belongs to a duplicate group, in dataset order."""
    indices = {i for group in result.groups for i in group.origin_indices}
    return dataset.subset(indices, name=f"{dataset.name}_duplicates")


def unique_rows(dataset: Dataset, result: DuplicateResult) -> Dataset:
    """Rows whose key occurs exactly once."""
    in_groups = {i for group in result.groups for i in group.origin_indices}
    keep = [row.origin_index for row in dataset.rows if row.origin_index not in in_groups]
    return dataset.subset(keep, name=f"{dataset.name}_unique")


def explain_duplicates(key_columns: List[str], mode: KeyMode = KeyMode.EXACT) -> Explanation:
    if len(key_columns) > 1:
        key_description = f"composite key ({' + '.join(key_columns)})"
    else:
        key_description = f"single key ({key_columns[0]})"
    normalized = KeyMode(mode) == KeyMode.NORMALIZED
    match_mode = (
        "Normalized matching (case-insensitive, whitespace-insensitive)"
        if normalized else "Exact matching (case-sensitive, whitespace-sensitive)"
    )
    keys_sql = ", ".join(key_columns)
    return Explanation(
        description=(
            f"Duplicate detection groups records by {key_description} and identifies "
            f"rows that appear more than once. {match_mode}."
        ),
        steps=[
            "Extract key value(s) from each row",
            "Normalize keys (lowercase, trim, collapse spaces)" if normalized else "Use exact key values",
            "Group rows by identical keys",
            "Flag groups with 2+ rows as duplicates",
            "Sort by duplicate count (most duplicates first)",
        ],
        excel_equivalent="=COUNTIF($A$2:$A$100, A2) > 1",
        sql_equivalent=f"SELECT {keys_sql}, COUNT(*) AS count FROM table GROUP BY {keys_sql} HAVING COUNT(*) > 1",
        why=(
            "Duplicates cause double-counted inventory, location conflicts and pick list errors. "
            "Finding them before import prevents these issues."
        ),
        notes=[f"Using {key_description} with {KeyMode(mode).value} matching"],
    )
