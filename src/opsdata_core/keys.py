"""Key construction and value coercion.

Every engine turns field values into text keys or numbers through the helpers
here, so that null handling is identical across components:

- :func:`stringify` renders a field value as text (``None`` becomes ``""``).
- :func:`build_key` joins one or more stringified values into a lookup key.
- :func:`parse_number` is the strict numeric parse (``None`` on failure).
- :func:`parse_quantity` is the lenient parse (``0.0`` on failure).
"""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any, List, Optional, Sequence, Union

from ._errors import ConfigurationError
from .dataset import Row

KEY_SEPARATOR = "|"

_WHITESPACE_RE = re.compile(r"\s+")
# Plain decimal or scientific notation. float() alone would also accept
# "1_000", "inf" and "nan".
_NUMBER_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


class KeyMode(str, Enum):
    """How raw values are turned into comparable keys."""

    EXACT = "exact"
    NORMALIZED = "normalized"  # lowercase, trimmed, whitespace collapsed
    LOWERCASE = "lowercase"  # lowercase only


def stringify(value: Any) -> str:
    """Render a field value as text for keys, messages and string predicates."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def normalize_text(text: str) -> str:
    """Lowercase, trim and collapse internal whitespace runs to one space."""
    return _WHITESPACE_RE.sub(" ", text.strip()).lower()


def apply_mode(text: str, mode: KeyMode) -> str:
    if mode == KeyMode.NORMALIZED:
        return normalize_text(text)
    if mode == KeyMode.LOWERCASE:
        return text.lower()
    return text


def parse_columns(columns: Union[str, Sequence[str]]) -> List[str]:
    """Accept ``"sku,location"`` or ``["sku", "location"]``.

    Raises:
        ConfigurationError: If no column names remain after splitting.
    """
    if isinstance(columns, str):
        names = [c.strip() for c in columns.split(",")]
    else:
        names = [str(c).strip() for c in columns]
    names = [c for c in names if c]
    if not names:
        raise ConfigurationError("At least one key column is required", option="key_columns", value=columns)
    return names


def build_key(row: Row, columns: Union[str, Sequence[str]], mode: KeyMode = KeyMode.EXACT) -> str:
    """Build the lookup key for ``row`` from one or more columns.

    Null and absent values contribute empty text, so two rows with null keys
    produce the same key.
    """
    names = parse_columns(columns)
    key = KEY_SEPARATOR.join(stringify(row.get(col)) for col in names)
    return apply_mode(key, KeyMode(mode))


def parse_number(value: Any) -> Optional[float]:
    """Strictly parse ``value`` as a finite number.

    Returns ``None`` for null, booleans, blank text and anything that is not
    entirely a numeric literal.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        text = value.strip()
        if not _NUMBER_RE.fullmatch(text):
            return None
        number = float(text)
        return number if math.isfinite(number) else None
    return None


def parse_quantity(value: Any) -> float:
    """Leniently parse a quantity: null, blank and malformed values become 0."""
    number = parse_number(value)
    return 0.0 if number is None else number
