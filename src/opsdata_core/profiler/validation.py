"""Rule-based row validation.

Every rule is applied to every row. A misconfigured rule (malformed
definition, unknown type, bad threshold, column not in the schema) is
reported in ``skipped_rules`` and skipped; the remaining rules still run.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple, Union

from pydantic import BaseModel, Field, ValidationError

from .._errors import ConfigurationError
from .._types import EngineResult, Explanation, percent
from ..dataset import Dataset
from ..keys import stringify
from .rules import (
    RULE_LABELS,
    RuleType,
    Severity,
    UnknownRuleType,
    check_value,
    describe_rule,
    failure_message,
    prepare_threshold,
    resolve_rule_type,
)

logger = logging.getLogger(__name__)


class ValidationRule(BaseModel):
    """A per-column rule as configured by the user."""
    column: str
    type: str
    threshold: Any = None
    severity: Severity = Severity.ERROR

    def resolve_type(self) -> Union[RuleType, UnknownRuleType]:
        return resolve_rule_type(self.type)


class ValidationFinding(BaseModel):
    """A single rule violation."""
    origin_index: int
    row: int  # 1-based, for display
    column: str
    value: str
    rule: str
    rule_type: RuleType
    severity: Severity
    message: str


class RuleIssue(BaseModel):
    """A rule that could not be applied."""
    rule_index: int
    column: str
    type: str
    reason: str


class ValidationResult(EngineResult):
    findings: List[ValidationFinding] = Field(default_factory=list)
    error_row_indices: List[int] = Field(default_factory=list)
    warning_row_indices: List[int] = Field(default_factory=list)
    skipped_rules: List[RuleIssue] = Field(default_factory=list)


def _coerce_rules(
    rules: Sequence[Union[ValidationRule, Mapping[str, Any]]],
) -> Tuple[List[Tuple[int, ValidationRule]], List[RuleIssue]]:
    """Parse rule dicts, keeping each rule's position in the caller's list."""
    parsed: List[Tuple[int, ValidationRule]] = []
    issues: List[RuleIssue] = []
    for i, raw in enumerate(rules):
        if isinstance(raw, ValidationRule):
            parsed.append((i, raw))
            continue
        raw = dict(raw)
        try:
            parsed.append((i, ValidationRule.model_validate(raw)))
        except ValidationError as exc:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
            reason = f"Invalid rule definition ({fields})"
            logger.warning("Skipping validation rule %d (%s): %s", i, raw.get("column"), reason)
            issues.append(RuleIssue(
                rule_index=i,
                column=str(raw.get("column") or ""),
                type=str(raw.get("type") or ""),
                reason=reason,
            ))
    return parsed, issues


def _prepare_rules(
    dataset: Dataset, rules: List[Tuple[int, ValidationRule]],
) -> Tuple[List[Tuple[ValidationRule, RuleType, Any]], List[RuleIssue]]:
    """Resolve each rule's type and threshold, collecting rules that cannot run."""
    ready: List[Tuple[ValidationRule, RuleType, Any]] = []
    issues: List[RuleIssue] = []

    for i, rule in rules:
        rule_type = rule.resolve_type()
        reason: Optional[str] = None
        prepared: Any = None

        if isinstance(rule_type, UnknownRuleType):
            reason = f"Unknown rule type: {rule_type.tag}"
        elif not dataset.has_column(rule.column):
            reason = f"Column '{rule.column}' not found in dataset '{dataset.label}'"
        else:
            try:
                prepared = prepare_threshold(rule_type, rule.threshold)
            except ConfigurationError as exc:
                reason = str(exc)

        if reason is not None:
            logger.warning("Skipping validation rule %d (%s): %s", i, rule.column, reason)
            issues.append(RuleIssue(rule_index=i, column=rule.column, type=str(rule.type), reason=reason))
            continue
        ready.append((rule, rule_type, prepared))

    return ready, issues


def validate_dataset(
    dataset: Dataset,
    rules: Sequence[Union[ValidationRule, Mapping[str, Any]]],
) -> ValidationResult:
    """Apply ``rules`` to every row of ``dataset``.

    Args:
        dataset: Rows to validate.
        rules: Ordered rules, as models or plain dicts
            (``{"column": "qty", "type": "positive", "severity": "error"}``).

    Returns:
        ValidationResult with findings in row order then rule order.

    Raises:
        ConfigurationError: If no rules are given.
    """
    if not rules:
        raise ConfigurationError("No validation rules defined", option="rules", value=[])

    parsed, invalid = _coerce_rules(rules)
    ready, issues = _prepare_rules(dataset, parsed)
    issues = sorted(invalid + issues, key=lambda issue: issue.rule_index)

    findings: List[ValidationFinding] = []
    error_rows: List[int] = []
    warning_rows: List[int] = []
    counts: Dict[Severity, int] = {Severity.ERROR: 0, Severity.WARNING: 0}

    for row in dataset.rows:
        severities: Set[Severity] = set()
        for rule, rule_type, prepared in ready:
            value = row.get(rule.column)
            if check_value(rule_type, value, prepared):
                continue
            findings.append(ValidationFinding(
                origin_index=row.origin_index,
                row=row.origin_index + 1,
                column=rule.column,
                value="(null)" if value is None else stringify(value),
                rule=RULE_LABELS[rule_type],
                rule_type=rule_type,
                severity=rule.severity,
                message=failure_message(rule_type, rule.column, rule.threshold),
            ))
            counts[rule.severity] += 1
            severities.add(rule.severity)

        if Severity.ERROR in severities:
            error_rows.append(row.origin_index)
        elif Severity.WARNING in severities:
            warning_rows.append(row.origin_index)

    total_rows = len(dataset.rows)
    statistics = {
        "total_rows": total_rows,
        "rows_with_errors": len(error_rows),
        "rows_with_warnings": len(warning_rows),
        "total_findings": len(findings),
        "error_findings": counts[Severity.ERROR],
        "warning_findings": counts[Severity.WARNING],
        "error_rate_percent": percent(len(error_rows), total_rows),
        "rules_applied": len(ready),
        "rules_skipped": len(issues),
    }

    logger.info(
        "Validated %d rows of '%s' with %d rules: %d findings, %d rows with errors",
        total_rows, dataset.label, len(ready), len(findings), len(error_rows),
    )

    return ValidationResult(
        findings=findings,
        error_row_indices=error_rows,
        warning_row_indices=warning_rows,
        skipped_rules=issues,
        columns=["row", "column", "value", "rule", "severity", "message"],
        rows=[
            {
                "row": f.row,
                "column": f.column,
                "value": f.value,
                "rule": f.rule,
                "severity": f.severity.value,
                "message": f.message,
            }
            for f in findings
        ],
        statistics=statistics,
        explanation=explain_validation([rule for _, rule in parsed]),
    )


def explain_validation(rules: Sequence[ValidationRule]) -> Explanation:
    return Explanation(
        description=(
            "Validation checks data quality by applying rules to each row, catching entry errors, "
            "formatting issues and missing required fields before they reach downstream systems."
        ),
        steps=[
            "For each row in the dataset",
            "Apply all validation rules to their columns",
            "Flag violations with their severity (error or warning)",
            "Report each violation with row number and details",
        ],
        excel_equivalent="Data Validation (Data tab) + Conditional Formatting for highlighting",
        sql_equivalent="CASE WHEN validation_condition THEN 'valid' ELSE 'error' END",
        why=(
            "Pre-import validation prevents import failures, negative inventory from bad "
            "quantities and orphaned records from invalid keys."
        ),
        notes=[describe_rule(r.resolve_type(), r.column, r.threshold) for r in rules],
    )
