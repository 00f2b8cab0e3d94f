"""opsdata Profiler -- Conditional aggregation and rule-based validation.

Public API:
    aggregate          -- COUNTIF / SUMIF over a predicate, optionally grouped
    evaluate_predicate -- Test a single value against a predicate
    validate_dataset   -- Apply per-column validation rules to every row
    rule_types         -- Catalogue of supported validation rule types
"""

from .aggregate import (
    aggregate,
    evaluate_predicate,
    explain_aggregate,
    EMPTY_GROUP_LABEL,
    AggregateOp,
    AggregateGroup,
    AggregateResult,
    Operator,
    Predicate,
)
from .rules import (
    check_value,
    prepare_threshold,
    resolve_rule_type,
    rule_types,
    RuleType,
    Severity,
    UnknownRuleType,
)
from .validation import (
    validate_dataset,
    explain_validation,
    RuleIssue,
    ValidationFinding,
    ValidationResult,
    ValidationRule,
)

__all__ = [
    # Aggregate
    "aggregate",
    "evaluate_predicate",
    "explain_aggregate",
    "EMPTY_GROUP_LABEL",
    "AggregateOp",
    "AggregateGroup",
    "AggregateResult",
    "Operator",
    "Predicate",
    # Rules
    "check_value",
    "prepare_threshold",
    "resolve_rule_type",
    "rule_types",
    "RuleType",
    "Severity",
    "UnknownRuleType",
    # Validation
    "validate_dataset",
    "explain_validation",
    "RuleIssue",
    "ValidationFinding",
    "ValidationResult",
    "ValidationRule",
]
