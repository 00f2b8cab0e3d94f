"""opsdata Core -- Tabular reconciliation and rule-evaluation engine.

Load two inventory snapshots, reconcile them, find duplicate keys, look
values up across tables and check rows against validation rules.

Quick start::

    from opsdata_core import Dataset, reconcile

    system = Dataset.from_records([{"sku": "A", "qty": 10}], name="system")
    count = Dataset.from_records([{"sku": "A", "qty": 8}], name="count")

    result = reconcile(system, count, "sku", "qty", "qty")
    print(result.statistics["variances"], "variances")
"""

__version__ = "1.0.0"

# Data model
from .dataset import Dataset, Row
from ._types import EngineResult, Explanation
from ._errors import ConfigurationError

# Keys
from .keys import (
    KEY_SEPARATOR,
    KeyMode,
    build_key,
    normalize_text,
    parse_columns,
    parse_number,
    parse_quantity,
    stringify,
)

# pandas interop
from ._io import dataset_from_frame, dataset_to_frame, result_to_frame

# Reconciler
from .reconciler import (
    build_index,
    build_first_match_index,
    full_outer_match,
    reconcile,
    variance_report,
    adjustment_upload,
    find_duplicates,
    duplicate_rows,
    unique_rows,
    lookup,
    with_lookup_column,
    clean_dataset,
    NOT_FOUND,
    MatchStatus,
)

# Profiler
from .profiler import (
    aggregate,
    evaluate_predicate,
    validate_dataset,
    rule_types,
    AggregateOp,
    Operator,
    Predicate,
    RuleType,
    Severity,
    ValidationRule,
)

__all__ = [
    "__version__",
    # Data model
    "Dataset",
    "Row",
    "EngineResult",
    "Explanation",
    "ConfigurationError",
    # Keys
    "KEY_SEPARATOR",
    "KeyMode",
    "build_key",
    "normalize_text",
    "parse_columns",
    "parse_number",
    "parse_quantity",
    "stringify",
    # pandas interop
    "dataset_from_frame",
    "dataset_to_frame",
    "result_to_frame",
    # Reconciler
    "build_index",
    "build_first_match_index",
    "full_outer_match",
    "reconcile",
    "variance_report",
    "adjustment_upload",
    "find_duplicates",
    "duplicate_rows",
    "unique_rows",
    "lookup",
    "with_lookup_column",
    "clean_dataset",
    "NOT_FOUND",
    "MatchStatus",
    # Profiler
    "aggregate",
    "evaluate_predicate",
    "validate_dataset",
    "rule_types",
    "AggregateOp",
    "Operator",
    "Predicate",
    "RuleType",
    "Severity",
    "ValidationRule",
]
