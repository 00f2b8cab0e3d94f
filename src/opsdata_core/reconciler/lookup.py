"""Single-key lookups from a source dataset into a target dataset (VLOOKUP).

The first source row with a given key wins. Unresolved keys yield the
:data:`NOT_FOUND` sentinel, which is never ``None``: a found row whose
return field is empty still resolves to ``None``.

``NOT_FOUND`` is a ``str`` enum member and compares equal to ``"#N/A"``,
so a source cell that literally holds ``"#N/A"`` reads the same as a miss
under ``==``. Test ``LookupMatch.found`` or ``value is NOT_FOUND`` instead.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from .._types import EngineResult, Explanation, percent
from ..dataset import Dataset, Row
from ..keys import KeyMode, build_key
from .index import build_first_match_index

logger = logging.getLogger(__name__)


class LookupSentinel(str, Enum):
    NOT_FOUND = "#N/A"


NOT_FOUND = LookupSentinel.NOT_FOUND


class LookupMatch(BaseModel):
    """Resolution of one target row."""
    origin_index: int
    key: str
    found: bool
    value: Any = NOT_FOUND


class LookupResult(EngineResult):
    return_column: str
    matches: List[LookupMatch] = Field(default_factory=list)


def lookup(
    target: Dataset,
    source: Dataset,
    key_column_target: str,
    key_column_source: str,
    return_column: str,
    case_insensitive: bool = False,
) -> LookupResult:
    """Resolve ``return_column`` from ``source`` for every row of ``target``.

    Args:
        target: Rows to enrich.
        source: Reference rows to look values up in.
        key_column_target: Key column in the target.
        key_column_source: Key column in the source.
        return_column: Source column whose value is returned.
        case_insensitive: Lowercase keys on both sides before matching.

    Returns:
        LookupResult with one match per target row, in target order.

    Raises:
        ConfigurationError: If a configured column is not in its dataset.
    """
    target.require_columns(key_column_target, role="Key column")
    source.require_columns(key_column_source, role="Key column")
    source.require_columns(return_column, role="Return column")

    mode = KeyMode.LOWERCASE if case_insensitive else KeyMode.EXACT
    index = build_first_match_index(source, key_column_source, mode)

    matches: List[LookupMatch] = []
    display: List[Dict[str, Any]] = []
    found_count = 0
    empty_values = 0

    for row in target.rows:
        key = build_key(row, [key_column_target], mode)
        entry = index.get(key)
        if entry is None:
            match = LookupMatch(origin_index=row.origin_index, key=key, found=False, value=NOT_FOUND)
        else:
            value = entry.row.get(return_column)
            found_count += 1
            if value is None or value == "":
                empty_values += 1
            match = LookupMatch(origin_index=row.origin_index, key=key, found=True, value=value)
        matches.append(match)
        display.append({
            "row": row.origin_index + 1,
            "key": row.get(key_column_target),
            "lookup_result": match.value if match.found else NOT_FOUND.value,
            "status": "Found" if match.found else "Not Found",
        })

    total = len(target.rows)
    statistics = {
        "total_rows": total,
        "matches_found": found_count,
        "not_found": total - found_count,
        "empty_values": empty_values,
        "match_rate_percent": percent(found_count, total),
        "source_keys": len(index),
    }

    logger.info(
        "Looked up %s from '%s' for %d rows of '%s': %d found",
        return_column, source.label, total, target.label, found_count,
    )

    return LookupResult(
        return_column=return_column,
        matches=matches,
        columns=["row", "key", "lookup_result", "status"],
        rows=display,
        statistics=statistics,
        explanation=explain_lookup(
            key_column_target, key_column_source, return_column, case_insensitive,
        ),
    )


def with_lookup_column(target: Dataset, result: LookupResult, return_column: str = "") -> Dataset:
    """Copy of ``target`` with a ``lookup_<return_column>`` column appended.

    Misses hold the :data:`NOT_FOUND` member itself, so they can be told apart
    from a resolved ``"#N/A"`` string by identity.
    """
    column = f"lookup_{return_column or result.return_column}"
    resolved = {m.origin_index: m for m in result.matches}
    rows = []
    for row in target.rows:
        match = resolved.get(row.origin_index)
        value = match.value if match is not None and match.found else NOT_FOUND
        rows.append(Row(origin_index=row.origin_index, values={**row.values, column: value}))
    columns = list(target.columns)
    if column not in columns:
        columns.append(column)
    return Dataset(name=target.name, columns=columns, rows=rows, key_column=target.key_column)


def explain_lookup(
    key_column_target: str,
    key_column_source: str,
    return_column: str,
    case_insensitive: bool = False,
) -> Explanation:
    return Explanation(
        description=(
            f"Lookup finds values by matching {key_column_target} with {key_column_source}, "
            f"then returns the value from {return_column}."
        ),
        steps=[
            "Build lookup table from the source dataset (first match wins)",
            f"For each row in the target dataset, extract key from {key_column_target}",
            "Convert keys to lowercase for matching" if case_insensitive else "Use exact key matching",
            f"Search for the key in the source's {key_column_source} column",
            f"If found, return the value from {return_column}",
            "If not found, return #N/A",
        ],
        excel_equivalent=(
            f"=XLOOKUP({key_column_target}, {key_column_source}:{key_column_source}, "
            f"{return_column}:{return_column}, \"#N/A\")"
        ),
        sql_equivalent=(
            f"SELECT target.*, source.{return_column}\n"
            f"FROM target_table target\n"
            f"LEFT JOIN source_table source ON target.{key_column_target} = source.{key_column_source}"
        ),
        why="Lookups enrich data with descriptions, prices or locations from reference tables.",
        notes=["If the source table is A:Z, =VLOOKUP(key, A:Z, col_index, FALSE)"],
    )
