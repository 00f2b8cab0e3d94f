"""Dataset cleaning -- trim, collapse spaces, case, remove_special, nulls, numbers."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List

from pydantic import Field

from .._errors import ConfigurationError
from .._types import EngineResult, Explanation, percent
from ..dataset import Dataset, Row
from ..keys import parse_number

logger = logging.getLogger(__name__)

NULL_TOKENS = frozenset({"null", "n/a", "na", "none", "-", ""})

_SPECIAL_RE = re.compile(r"[^a-zA-Z0-9\s]")
_SPACES_RE = re.compile(r"\s+")


class CleanResult(EngineResult):
    dataset: Dataset
    changed_by_column: Dict[str, int] = Field(default_factory=dict)


def _display(value: Any) -> str:
    if value is None:
        return "(null)"
    if value == "":
        return "(empty)"
    return str(value)


def _as_number(text: str) -> Any:
    number = parse_number(text)
    if number is None:
        return text
    return int(number) if number.is_integer() and "." not in text and "e" not in text.lower() else number


def clean_dataset(
    dataset: Dataset,
    trim: bool = True,
    collapse_spaces: bool = True,
    uppercase: bool = False,
    lowercase: bool = False,
    remove_special: bool = False,
    standardize_nulls: bool = True,
    convert_numbers: bool = False,
) -> CleanResult:
    """Apply text clean-up operations to every text cell.

    The input dataset is left untouched; the cleaned copy keeps each row's
    origin index.

    Args:
        dataset: Rows to clean.
        trim: Strip leading and trailing whitespace.
        collapse_spaces: Replace whitespace runs with a single space.
        uppercase: Convert text to upper case.
        lowercase: Convert text to lower case.
        remove_special: Keep only letters, digits and whitespace.
        standardize_nulls: Turn placeholders such as "N/A" or "" into ``None``.
        convert_numbers: Turn fully numeric text into ``int``/``float``.

    Returns:
        CleanResult with the cleaned dataset, a per-column preview and statistics.

    Raises:
        ConfigurationError: If both ``uppercase`` and ``lowercase`` are set.
    """
    if uppercase and lowercase:
        raise ConfigurationError(
            "uppercase and lowercase are mutually exclusive", option="case", value="upper+lower",
        )

    total_cells = 0
    cells_changed = 0
    rows_affected = 0
    by_column: Dict[str, int] = {}
    first_change: Dict[str, tuple] = {}

    cleaned_rows: List[Row] = []
    for row in dataset.rows:
        values = dict(row.values)
        row_changed = False

        for col in dataset.columns:
            original = row.get(col)
            if original is None:
                continue
            total_cells += 1
            if not isinstance(original, str):
                continue

            value: Any = original
            if standardize_nulls and value.strip().lower() in NULL_TOKENS:
                value = None
            else:
                if trim:
                    value = value.strip()
                if collapse_spaces:
                    value = _SPACES_RE.sub(" ", value)
                if uppercase:
                    value = value.upper()
                elif lowercase:
                    value = value.lower()
                if remove_special:
                    value = _SPECIAL_RE.sub("", value)
                if convert_numbers:
                    value = _as_number(value)

            if value != original or type(value) is not type(original):
                values[col] = value
                cells_changed += 1
                row_changed = True
                by_column[col] = by_column.get(col, 0) + 1
                first_change.setdefault(col, (original, value))

        if row_changed:
            rows_affected += 1
        cleaned_rows.append(Row(origin_index=row.origin_index, values=values))

    preview = [
        {
            "column": col,
            "before": _display(before),
            "after": _display(after),
            "changed": by_column.get(col, 0),
        }
        for col, (before, after) in first_change.items()
    ]

    logger.info(
        "Cleaned '%s': %d of %d cells changed in %d rows",
        dataset.label, cells_changed, total_cells, rows_affected,
    )

    options = {
        "trim": trim,
        "collapse_spaces": collapse_spaces,
        "uppercase": uppercase,
        "lowercase": lowercase,
        "remove_special": remove_special,
        "standardize_nulls": standardize_nulls,
        "convert_numbers": convert_numbers,
    }
    return CleanResult(
        dataset=Dataset(
            name=dataset.name, columns=list(dataset.columns), rows=cleaned_rows,
            key_column=dataset.key_column,
        ),
        changed_by_column=by_column,
        columns=["column", "before", "after", "changed"],
        rows=preview,
        statistics={
            "total_cells": total_cells,
            "cells_changed": cells_changed,
            "rows_affected": rows_affected,
            "change_rate_percent": percent(cells_changed, total_cells),
        },
        explanation=explain_cleaning(**options),
    )


_STEP_TEXT = {
    "standardize_nulls": ("Convert null placeholders (NULL, N/A, -, empty) to real nulls", "IF(OR(A1=\"N/A\", A1=\"\"), NA(), A1)"),
    "trim": ("Remove leading and trailing whitespace from all text fields", "TRIM()"),
    "collapse_spaces": ("Replace multiple consecutive spaces with a single space", "SUBSTITUTE() or regex"),
    "uppercase": ("Convert all text to UPPERCASE", "UPPER()"),
    "lowercase": ("Convert all text to lowercase", "LOWER()"),
    "remove_special": ("Remove characters other than letters, digits and spaces", "REGEXREPLACE()"),
    "convert_numbers": ("Convert numeric text to numbers", "VALUE()"),
}


def explain_cleaning(**options: bool) -> Explanation:
    active = [name for name in _STEP_TEXT if options.get(name)]
    return Explanation(
        description="Cleaning standardizes text fields so that lookups, duplicate checks and imports line up.",
        steps=[_STEP_TEXT[name][0] for name in active] or ["No operations applied"],
        excel_equivalent=" + ".join(_STEP_TEXT[name][1] for name in active) or "No operations applied",
        sql_equivalent="TRIM(UPPER(REGEXP_REPLACE(column, pattern, replacement)))",
        why=(
            "Data from different sources has inconsistent formatting. Cleaning prevents failed "
            "lookups from stray spaces and duplicate records that differ only by case."
        ),
    )
