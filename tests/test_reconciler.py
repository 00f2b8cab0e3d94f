"""Tests for system vs physical count reconciliation."""

import pytest

from opsdata_core import ConfigurationError, Dataset, KeyMode, MatchStatus
from opsdata_core.reconciler import adjustment_upload, reconcile, variance_report


class TestReconcile:
    def test_single_variance(self):
        a = Dataset.from_records([{"sku": "X", "qty": 10}])
        b = Dataset.from_records([{"sku": "X", "qty": 8}])
        result = reconcile(a, b, "sku", "qty", "qty")

        assert len(result.rows) == 1
        assert result.rows[0]["status"] == "Variance"
        assert result.rows[0]["variance"] == -2
        assert result.columns == [
            "key", "status", "system_qty", "physical_qty", "variance", "side", "index_a", "index_b",
        ]

    def test_empty_count_marks_missing_in_target(self):
        a = Dataset.from_records([{"sku": "X", "qty": 10, "cost": 5}])
        b = Dataset.from_records([])
        result = reconcile(a, b, "sku", "qty", "qty", unit_cost_column="cost")

        assert len(result.missing_in_target) == 1
        item = result.missing_in_target[0]
        assert item.status == MatchStatus.MISSING_IN_TARGET
        assert item.variance == -10
        assert item.dollar_impact == -50
        assert result.statistics["total_dollar_impact"] == 0
        assert result.statistics["total_dollar_impact_all"] == -50

    def test_buckets(self, system_stock, physical_count):
        result = reconcile(system_stock, physical_count, "sku", "qty", "counted", unit_cost_column="unit_cost")

        assert [i.key for i in result.variances] == ["A100", "A300"]
        assert [i.key for i in result.matched] == ["A200", "A400"]
        assert [i.key for i in result.missing_in_target] == ["A500", "A600"]
        assert [i.key for i in result.missing_in_source] == ["A700"]
        assert [r["key"] for r in result.rows] == ["A100", "A300", "A500", "A600", "A700"]

    def test_statistics(self, system_stock, physical_count):
        stats = reconcile(
            system_stock, physical_count, "sku", "qty", "counted", unit_cost_column="unit_cost",
        ).statistics

        assert stats["total_in_a"] == 6
        assert stats["total_in_b"] == 5
        assert stats["matched"] == 4
        assert stats["perfect_matches"] == 2
        assert stats["variances"] == 2
        assert stats["missing_in_target"] == 2
        assert stats["missing_in_source"] == 1
        assert stats["total_variance_qty"] == 7
        assert stats["total_dollar_impact"] == pytest.approx(0.0)
        assert stats["total_dollar_impact_all"] == pytest.approx(-27.0)
        assert stats["match_rate_percent"] == 50.0

    def test_conservation(self, system_stock, physical_count):
        result = reconcile(system_stock, physical_count, "sku", "qty", "counted")
        stats = result.statistics
        assert stats["perfect_matches"] + stats["variances"] == stats["matched"]
        assert stats["matched"] + stats["missing_in_target"] == stats["distinct_keys_a"]
        assert stats["matched"] + stats["missing_in_source"] == stats["distinct_keys_b"]

    def test_sorted_by_quantity_without_cost(self, system_stock, physical_count):
        result = reconcile(system_stock, physical_count, "sku", "qty", "counted")
        assert [i.key for i in result.variances] == ["A300", "A100"]
        assert [i.key for i in result.missing_in_target] == ["A600", "A500"]
        assert "dollar_impact" not in result.columns

    def test_missing_in_source_has_no_cost(self, system_stock, physical_count):
        result = reconcile(system_stock, physical_count, "sku", "qty", "counted", unit_cost_column="unit_cost")
        item = result.missing_in_source[0]
        assert item.variance == 4
        assert item.unit_cost is None
        assert item.dollar_impact is None

    def test_rows_trace_back_to_source(self):
        a = Dataset.from_records([{"sku": "X", "qty": 10}, {"sku": "Y", "qty": 1}])
        b = Dataset.from_records([{"sku": "X", "qty": 8}, {"sku": "Z", "qty": 2}])
        rows = {r["key"]: r for r in reconcile(a, b, "sku", "qty", "qty").rows}

        assert rows["Z"]["status"] == "Missing in System"
        assert rows["Z"]["side"] == "B"
        assert rows["Z"]["index_b"] == 1
        assert rows["Z"]["index_a"] is None
        assert rows["Y"]["side"] == "A"
        assert rows["Y"]["index_a"] == 1
        assert (rows["X"]["side"], rows["X"]["index_a"], rows["X"]["index_b"]) == ("both", 0, 0)

    def test_include_matches(self, system_stock, physical_count):
        result = reconcile(system_stock, physical_count, "sku", "qty", "counted", include_matches=True)
        assert [r["status"] for r in result.rows[-2:]] == ["Match", "Match"]

    def test_malformed_quantity_is_zero(self):
        a = Dataset.from_records([{"sku": "X", "qty": "n/a"}])
        b = Dataset.from_records([{"sku": "X", "qty": ""}])
        result = reconcile(a, b, "sku", "qty", "qty")
        assert result.matched[0].variance == 0

    def test_duplicate_keys_use_first_row(self):
        a = Dataset.from_records([{"sku": "X", "qty": 1}, {"sku": "X", "qty": 50}])
        b = Dataset.from_records([{"sku": "X", "qty": 1}])
        result = reconcile(a, b, "sku", "qty", "qty")
        assert result.statistics["perfect_matches"] == 1
        assert result.statistics["duplicate_keys_a"] == 1

    def test_key_mode(self):
        a = Dataset.from_records([{"sku": "abc ", "qty": 1}])
        b = Dataset.from_records([{"sku": "ABC", "qty": 1}])
        assert reconcile(a, b, "sku", "qty", "qty").statistics["matched"] == 0
        assert reconcile(a, b, "sku", "qty", "qty", key_mode=KeyMode.NORMALIZED).statistics["matched"] == 1

    def test_idempotent(self, system_stock, physical_count):
        first = reconcile(system_stock, physical_count, "sku", "qty", "counted", unit_cost_column="unit_cost")
        second = reconcile(system_stock, physical_count, "sku", "qty", "counted", unit_cost_column="unit_cost")
        assert first.model_dump() == second.model_dump()

    def test_inputs_unchanged(self, system_stock, physical_count):
        before = system_stock.records()
        reconcile(system_stock, physical_count, "sku", "qty", "counted")
        assert system_stock.records() == before

    def test_explanation(self, system_stock, physical_count):
        result = reconcile(system_stock, physical_count, "sku", "qty", "counted", unit_cost_column="unit_cost")
        assert "FULL OUTER JOIN" in result.explanation.sql_equivalent
        assert any("unit_cost" in s for s in result.explanation.steps)


class TestReconcileConfig:
    def test_missing_key_column(self, system_stock, physical_count):
        with pytest.raises(ConfigurationError, match="not found"):
            reconcile(system_stock, physical_count, "item", "qty", "counted")

    def test_missing_quantity_column(self, system_stock, physical_count):
        with pytest.raises(ConfigurationError, match="Quantity column 'qty' not found in dataset 'count'"):
            reconcile(system_stock, physical_count, "sku", "qty", "qty")

    def test_missing_cost_column(self, system_stock, physical_count):
        with pytest.raises(ValueError, match="Unit cost column"):
            reconcile(system_stock, physical_count, "sku", "qty", "counted", unit_cost_column="price")


class TestExports:
    def test_variance_report(self, system_stock, physical_count):
        result = reconcile(system_stock, physical_count, "sku", "qty", "counted", unit_cost_column="unit_cost")
        report = variance_report(result)
        assert [r["sku"] for r in report] == ["A100", "A300", "A700", "A500", "A600"]
        assert report[2]["status"] == "Missing in System"

    def test_adjustment_upload(self, system_stock, physical_count):
        result = reconcile(system_stock, physical_count, "sku", "qty", "counted")
        upload = adjustment_upload(result)
        by_sku = {r["sku"]: r for r in upload}
        assert by_sku["A100"]["adjustment_qty"] == -2
        assert by_sku["A100"]["reason"] == "Quantity discrepancy"
        assert by_sku["A700"]["reason"] == "Found in physical count"
        assert by_sku["A500"]["reason"] == "Not found in physical count"
        assert "A200" not in by_sku

    def test_adjustment_skips_zero_missing(self):
        a = Dataset.from_records([{"sku": "X", "qty": 0}])
        b = Dataset.from_records([{"sku": "Y", "qty": 3}])
        upload = adjustment_upload(reconcile(a, b, "sku", "qty", "qty"))
        assert [r["sku"] for r in upload] == ["Y"]
