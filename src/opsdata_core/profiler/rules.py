"""Validation rule types and their validators.

Rule types form a closed enum; a tag outside it resolves to
:class:`UnknownRuleType`, which keeps the raw tag for error reporting.
Thresholds are parsed once per rule by :func:`prepare_threshold`, and
:func:`check_value` is the single dispatch point for all validators.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, List, Union

from pydantic import BaseModel

from .._errors import ConfigurationError
from ..keys import parse_number, stringify


class Severity(str, Enum):
    """Blocking (error) or advisory (warning) finding."""

    ERROR = "error"
    WARNING = "warning"


class RuleType(str, Enum):
    REQUIRED = "required"
    NUMERIC = "numeric"
    INTEGER = "integer"
    POSITIVE = "positive"
    MIN = "min"
    MAX = "max"
    LENGTH = "length"
    MIN_LENGTH = "minLength"
    PATTERN = "pattern"
    ONE_OF = "oneOf"


class UnknownRuleType(BaseModel):
    """A rule tag that names no known validator."""
    tag: str


_ALIASES: Dict[str, RuleType] = {
    "min_length": RuleType.MIN_LENGTH,
    "minlength": RuleType.MIN_LENGTH,
    "one_of": RuleType.ONE_OF,
    "oneof": RuleType.ONE_OF,
}

RULE_LABELS: Dict[RuleType, str] = {
    RuleType.REQUIRED: "Required",
    RuleType.NUMERIC: "Must be Numeric",
    RuleType.INTEGER: "Must be Integer",
    RuleType.POSITIVE: "Must be Positive",
    RuleType.MIN: "Minimum Value",
    RuleType.MAX: "Maximum Value",
    RuleType.LENGTH: "Exact Length",
    RuleType.MIN_LENGTH: "Minimum Length",
    RuleType.PATTERN: "Matches Pattern",
    RuleType.ONE_OF: "One Of",
}

THRESHOLD_RULES = frozenset({
    RuleType.MIN, RuleType.MAX, RuleType.LENGTH, RuleType.MIN_LENGTH,
    RuleType.PATTERN, RuleType.ONE_OF,
})


def resolve_rule_type(tag: Any) -> Union[RuleType, UnknownRuleType]:
    """Map a raw rule tag to a :class:`RuleType`, or wrap it as unknown."""
    if isinstance(tag, RuleType):
        return tag
    text = str(tag).strip() if tag is not None else ""
    try:
        return RuleType(text)
    except ValueError:
        pass
    alias = _ALIASES.get(text.lower())
    if alias is not None:
        return alias
    return UnknownRuleType(tag=text)


def _threshold_error(rule_type: RuleType, threshold: Any, expected: str) -> ConfigurationError:
    return ConfigurationError(
        f"Rule '{rule_type.value}' needs {expected}, got {threshold!r}",
        option="threshold", value=threshold,
    )


def prepare_threshold(rule_type: RuleType, threshold: Any) -> Any:
    """Parse a rule threshold into the form :func:`check_value` expects.

    Returns ``None`` for rules without a threshold, a float for ``min``/``max``,
    an int for the length rules, a compiled pattern for ``pattern`` and a list
    of allowed strings for ``oneOf``.

    Raises:
        ConfigurationError: If a required threshold is missing or malformed.
    """
    if rule_type not in THRESHOLD_RULES:
        return None

    if rule_type in (RuleType.MIN, RuleType.MAX):
        number = parse_number(threshold)
        if number is None:
            raise _threshold_error(rule_type, threshold, "a numeric threshold")
        return number

    if rule_type in (RuleType.LENGTH, RuleType.MIN_LENGTH):
        number = parse_number(threshold)
        if number is None or not number.is_integer() or number < 0:
            raise _threshold_error(rule_type, threshold, "a non-negative whole number")
        return int(number)

    if rule_type == RuleType.PATTERN:
        if threshold is None or threshold == "":
            raise _threshold_error(rule_type, threshold, "a regular expression")
        try:
            return re.compile(str(threshold))
        except re.error as exc:
            raise ConfigurationError(
                f"Invalid pattern {threshold!r}: {exc}", option="threshold", value=threshold,
            ) from exc

    # ONE_OF
    allowed = [item.strip() for item in stringify(threshold).split(",")]
    allowed = [item for item in allowed if item]
    if not allowed:
        raise _threshold_error(rule_type, threshold, "a comma-separated list of values")
    return allowed


def check_value(rule_type: RuleType, value: Any, prepared: Any = None) -> bool:
    """Return True if ``value`` satisfies the rule.

    Numeric rules fail on null, blank and non-numeric values; pair them with
    ``required`` only to get a clearer message.
    """
    if rule_type == RuleType.REQUIRED:
        return value is not None and value != ""

    if rule_type == RuleType.NUMERIC:
        return parse_number(value) is not None

    if rule_type == RuleType.INTEGER:
        number = parse_number(value)
        return number is not None and number.is_integer()

    if rule_type == RuleType.POSITIVE:
        number = parse_number(value)
        return number is not None and number > 0

    if rule_type == RuleType.MIN:
        number = parse_number(value)
        return number is not None and number >= prepared

    if rule_type == RuleType.MAX:
        number = parse_number(value)
        return number is not None and number <= prepared

    if rule_type == RuleType.LENGTH:
        return len(stringify(value)) == prepared

    if rule_type == RuleType.MIN_LENGTH:
        return len(stringify(value)) >= prepared

    if rule_type == RuleType.PATTERN:
        return prepared.search(stringify(value)) is not None

    if rule_type == RuleType.ONE_OF:
        return stringify(value) in prepared

    raise ValueError(f"Unhandled rule type: {rule_type!r}")


def failure_message(rule_type: RuleType, column: str, threshold: Any = None) -> str:
    """Human-readable message for a failed rule."""
    shown = stringify(threshold)
    messages = {
        RuleType.REQUIRED: f"{column} is required",
        RuleType.NUMERIC: f"{column} must be a number",
        RuleType.INTEGER: f"{column} must be a whole number",
        RuleType.POSITIVE: f"{column} must be positive",
        RuleType.MIN: f"{column} must be >= {shown}",
        RuleType.MAX: f"{column} must be <= {shown}",
        RuleType.LENGTH: f"{column} must be exactly {shown} characters",
        RuleType.MIN_LENGTH: f"{column} must be at least {shown} characters",
        RuleType.PATTERN: f"{column} must match pattern: {shown}",
        RuleType.ONE_OF: f"{column} must be one of: {shown}",
    }
    return messages[rule_type]


def describe_rule(rule_type: Union[RuleType, UnknownRuleType], column: str, threshold: Any = None) -> str:
    if isinstance(rule_type, UnknownRuleType):
        return f"{column}: unknown rule '{rule_type.tag}'"
    suffix = f" ({stringify(threshold)})" if threshold not in (None, "") else ""
    return f"{column}: {RULE_LABELS[rule_type]}{suffix}"


def rule_types() -> List[Dict[str, Any]]:
    """Catalogue of supported rule types for rule-builder UIs."""
    return [
        {"type": rt.value, "label": RULE_LABELS[rt], "has_threshold": rt in THRESHOLD_RULES}
        for rt in RuleType
    ]
