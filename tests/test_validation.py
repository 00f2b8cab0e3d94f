"""Tests for validation rules and the row validator."""

import re

import pytest

from opsdata_core import ConfigurationError, Dataset, RuleType, Severity, ValidationRule
from opsdata_core.profiler import (
    UnknownRuleType,
    check_value,
    prepare_threshold,
    resolve_rule_type,
    rule_types,
    validate_dataset,
)


class TestRuleTypes:
    def test_resolve_known(self):
        assert resolve_rule_type("positive") == RuleType.POSITIVE
        assert resolve_rule_type("min_length") == RuleType.MIN_LENGTH
        assert resolve_rule_type("oneOf") == RuleType.ONE_OF

    def test_resolve_unknown(self):
        resolved = resolve_rule_type("luhn")
        assert isinstance(resolved, UnknownRuleType)
        assert resolved.tag == "luhn"

    def test_catalogue(self):
        catalogue = {entry["type"]: entry for entry in rule_types()}
        assert len(catalogue) == len(RuleType)
        assert catalogue["min"]["has_threshold"] is True
        assert catalogue["required"]["has_threshold"] is False


class TestPrepareThreshold:
    def test_numeric(self):
        assert prepare_threshold(RuleType.MIN, "2.5") == 2.5

    def test_length_must_be_whole(self):
        assert prepare_threshold(RuleType.LENGTH, "4") == 4
        with pytest.raises(ConfigurationError):
            prepare_threshold(RuleType.LENGTH, "4.5")

    def test_pattern_compiles(self):
        assert isinstance(prepare_threshold(RuleType.PATTERN, r"^A\d+$"), re.Pattern)

    def test_bad_pattern(self):
        with pytest.raises(ConfigurationError, match="Invalid pattern"):
            prepare_threshold(RuleType.PATTERN, "(")

    def test_one_of_list(self):
        assert prepare_threshold(RuleType.ONE_OF, "EA, CS ,PK") == ["EA", "CS", "PK"]

    def test_missing_min(self):
        with pytest.raises(ConfigurationError, match="numeric threshold"):
            prepare_threshold(RuleType.MIN, None)


class TestCheckValue:
    @pytest.mark.parametrize("rule_type,threshold,value,expected", [
        (RuleType.REQUIRED, None, "", False),
        (RuleType.REQUIRED, None, 0, True),
        (RuleType.NUMERIC, None, "12.5", True),
        (RuleType.NUMERIC, None, "", False),
        (RuleType.INTEGER, None, "3.0", True),
        (RuleType.INTEGER, None, 3.5, False),
        (RuleType.POSITIVE, None, 0, False),
        (RuleType.MIN, 5, "5", True),
        (RuleType.MAX, 5, 6, False),
        (RuleType.LENGTH, 4, "A100", True),
        (RuleType.MIN_LENGTH, 3, "AB", False),
        (RuleType.PATTERN, r"^A\d+$", "A100", True),
        (RuleType.ONE_OF, "EA,CS", "CS", True),
        (RuleType.ONE_OF, "EA,CS", "cs", False),
    ])
    def test_rules(self, rule_type, threshold, value, expected):
        prepared = prepare_threshold(rule_type, threshold)
        assert check_value(rule_type, value, prepared) is expected


class TestValidateDataset:
    def test_single_failure(self):
        ds = Dataset.from_records([{"qty": -5}])
        result = validate_dataset(ds, [{"column": "qty", "type": "positive"}])

        assert len(result.findings) == 1
        finding = result.findings[0]
        assert finding.severity == Severity.ERROR
        assert finding.message == "qty must be positive"
        assert finding.row == 1
        assert result.statistics["rows_with_errors"] == 1

    def test_row_counted_once(self):
        ds = Dataset.from_records([{"qty": -5, "sku": ""}])
        result = validate_dataset(ds, [
            {"column": "qty", "type": "positive"},
            {"column": "qty", "type": "min", "threshold": 0},
            {"column": "sku", "type": "required"},
        ])
        assert result.statistics["total_findings"] == 3
        assert result.statistics["rows_with_errors"] == 1
        assert result.error_row_indices == [0]

    def test_warning_severity(self):
        ds = Dataset.from_records([{"uom": "BOX"}, {"uom": "EA"}])
        result = validate_dataset(ds, [
            ValidationRule(column="uom", type="oneOf", threshold="EA,CS", severity=Severity.WARNING),
        ])
        assert result.warning_row_indices == [0]
        assert result.statistics["rows_with_warnings"] == 1
        assert result.statistics["rows_with_errors"] == 0
        assert result.rows[0]["severity"] == "warning"

    def test_error_row_not_counted_as_warning(self):
        ds = Dataset.from_records([{"qty": -1, "uom": "BOX"}])
        result = validate_dataset(ds, [
            {"column": "qty", "type": "positive"},
            {"column": "uom", "type": "oneOf", "threshold": "EA", "severity": "warning"},
        ])
        assert result.error_row_indices == [0]
        assert result.warning_row_indices == []

    def test_findings_in_row_then_rule_order(self, system_stock):
        result = validate_dataset(system_stock, [
            {"column": "location", "type": "required"},
            {"column": "qty", "type": "max", "threshold": 15},
        ])
        assert [(f.row, f.column) for f in result.findings] == [(3, "qty"), (4, "qty"), (6, "location")]

    def test_unknown_rule_skipped(self, system_stock):
        result = validate_dataset(system_stock, [
            {"column": "sku", "type": "luhn"},
            {"column": "qty", "type": "positive"},
        ])
        assert result.statistics["rules_applied"] == 1
        assert result.statistics["rules_skipped"] == 1
        assert result.skipped_rules[0].reason == "Unknown rule type: luhn"

    def test_missing_column_and_bad_threshold_skipped(self, system_stock, caplog):
        result = validate_dataset(system_stock, [
            {"column": "size", "type": "required"},
            {"column": "qty", "type": "min", "threshold": "lots"},
            {"column": "qty", "type": "positive"},
        ])
        assert [issue.rule_index for issue in result.skipped_rules] == [0, 1]
        assert "Skipping validation rule" in caplog.text
        assert result.findings == []

    def test_no_rules(self, system_stock):
        with pytest.raises(ConfigurationError, match="No validation rules"):
            validate_dataset(system_stock, [])

    def test_null_value_display(self):
        ds = Dataset.from_records([{"sku": None}])
        result = validate_dataset(ds, [{"column": "sku", "type": "required"}])
        assert result.findings[0].value == "(null)"

    def test_explanation_lists_rules(self, system_stock):
        result = validate_dataset(system_stock, [{"column": "qty", "type": "min", "threshold": 1}])
        assert result.explanation.notes == ["qty: Minimum Value (1)"]

    def test_bad_severity_skipped(self, system_stock):
        result = validate_dataset(system_stock, [
            {"column": "qty", "type": "positive", "severity": "critical"},
            {"column": "location", "type": "required"},
        ])
        assert result.statistics["rules_skipped"] == 1
        assert result.statistics["rules_applied"] == 1
        issue = result.skipped_rules[0]
        assert issue.rule_index == 0
        assert issue.column == "qty"
        assert "severity" in issue.reason
        assert [(f.row, f.column) for f in result.findings] == [(6, "location")]

    def test_skipped_rules_in_rule_order(self, system_stock):
        result = validate_dataset(system_stock, [
            {"column": "size", "type": "required"},
            {"column": "qty", "type": "positive", "severity": "critical"},
        ])
        assert [issue.rule_index for issue in result.skipped_rules] == [0, 1]

    def test_repeatable(self, system_stock):
        rules = [
            {"column": "qty", "type": "max", "threshold": 15},
            {"column": "location", "type": "required", "severity": "warning"},
        ]
        assert validate_dataset(system_stock, rules).model_dump() == validate_dataset(system_stock, rules).model_dump()
