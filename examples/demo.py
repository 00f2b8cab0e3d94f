"""opsdata Core -- Quick demo.

Run: python examples/demo.py
"""

SYSTEM = [
    {"sku": "A100", "qty": 10, "unit_cost": 2.5, "location": "R1"},
    {"sku": "A200", "qty": 5, "unit_cost": 10.0, "location": "R1"},
    {"sku": "A300", "qty": 20, "unit_cost": 1.0, "location": "R2"},
    {"sku": "a300 ", "qty": 1, "unit_cost": 1.0, "location": "R2"},
    {"sku": "A500", "qty": -7, "unit_cost": 3.0, "location": None},
]

COUNT = [
    {"sku": "A100", "counted": 8},
    {"sku": "A200", "counted": 5},
    {"sku": "A300", "counted": 25},
    {"sku": "A700", "counted": 4},
]

PRICES = [
    {"code": "A100", "price": 4.99},
    {"code": "A300", "price": 1.49},
]


def main():
    from opsdata_core import (
        Dataset,
        KeyMode,
        aggregate,
        find_duplicates,
        lookup,
        reconcile,
        validate_dataset,
    )

    system = Dataset.from_records(SYSTEM, name="system")
    count = Dataset.from_records(COUNT, name="count")
    prices = Dataset.from_records(PRICES, name="prices")

    # 1. Reconcile system quantities against the physical count
    print("=" * 60)
    print("1. RECONCILE")
    print("=" * 60)
    result = reconcile(system, count, "sku", "qty", "counted", unit_cost_column="unit_cost")
    stats = result.statistics
    for row in result.rows:
        print(f"  {row['key']:<6} {row['status']:<20} variance={row['variance']:>6} "
              f"impact={row['dollar_impact']}")
    print(f"  Match rate: {stats['match_rate_percent']}%")
    print(f"  Dollar impact (variances only): {stats['total_dollar_impact']}")
    print()

    # 2. Duplicates
    print("=" * 60)
    print("2. DUPLICATES (normalized keys)")
    print("=" * 60)
    dupes = find_duplicates(system, "sku", KeyMode.NORMALIZED)
    for row in dupes.rows:
        print(f"  {row['key_value']}: rows {row['row_numbers']}")
    print()

    # 3. SUMIF by location
    print("=" * 60)
    print("3. SUMIF qty > 0 BY LOCATION")
    print("=" * 60)
    totals = aggregate(
        system, {"column": "qty", "operator": ">", "value": 0},
        op="sum", sum_column="qty", group_by_column="location",
    )
    for group in totals.groups:
        print(f"  {group.label}: {group.value}")
    print()

    # 4. Validation
    print("=" * 60)
    print("4. VALIDATE")
    print("=" * 60)
    checked = validate_dataset(system, [
        {"column": "qty", "type": "positive"},
        {"column": "location", "type": "required", "severity": "warning"},
    ])
    for finding in checked.findings:
        print(f"  row {finding.row} [{finding.severity.value}] {finding.message}")
    print()

    # 5. Lookup
    print("=" * 60)
    print("5. LOOKUP PRICE")
    print("=" * 60)
    priced = lookup(count, prices, "sku", "code", "price")
    for row in priced.rows:
        print(f"  {row['key']}: {row['lookup_result']}")


if __name__ == "__main__":
    main()
