"""opsdata Reconciler -- Keyed joins, reconciliation, duplicates, lookups, cleaning.

Public API:
    build_index / build_first_match_index -- Hash indexes over a key
    full_outer_match   -- Classify keys as only-in-A, only-in-B or in-both
    reconcile          -- System vs physical count reconciliation
    variance_report    -- Discrepancy records for export
    adjustment_upload  -- Inventory adjustment records for export
    find_duplicates    -- Group rows sharing a single or composite key
    duplicate_rows / unique_rows -- Split a dataset by duplicate result
    lookup             -- VLOOKUP-style single-key resolution
    with_lookup_column -- Append resolved values as a new column
    clean_dataset      -- Trim, case, null and number standardization
"""

from .index import (
    build_index,
    build_first_match_index,
    full_outer_match,
    iter_keyed_rows,
    # Types
    IndexEntry,
    KeyIndex,
    JoinSide,
    JoinPair,
    JoinResult,
)

from .reconcile import (
    reconcile,
    variance_report,
    adjustment_upload,
    explain_reconcile,
    MatchStatus,
    ReconItem,
    ReconcileResult,
)

from .duplicates import (
    find_duplicates,
    duplicate_rows,
    unique_rows,
    explain_duplicates,
    DuplicateGroup,
    DuplicateResult,
)

from .lookup import (
    lookup,
    with_lookup_column,
    explain_lookup,
    NOT_FOUND,
    LookupSentinel,
    LookupMatch,
    LookupResult,
)

from .transform import clean_dataset, explain_cleaning, CleanResult

__all__ = [
    # Index
    "build_index",
    "build_first_match_index",
    "full_outer_match",
    "iter_keyed_rows",
    # Reconcile
    "reconcile",
    "variance_report",
    "adjustment_upload",
    "explain_reconcile",
    # Duplicates
    "find_duplicates",
    "duplicate_rows",
    "unique_rows",
    "explain_duplicates",
    # Lookup
    "lookup",
    "with_lookup_column",
    "explain_lookup",
    "NOT_FOUND",
    # Transform
    "clean_dataset",
    "explain_cleaning",
    # Types
    "IndexEntry",
    "KeyIndex",
    "JoinSide",
    "JoinPair",
    "JoinResult",
    "MatchStatus",
    "ReconItem",
    "ReconcileResult",
    "DuplicateGroup",
    "DuplicateResult",
    "LookupSentinel",
    "LookupMatch",
    "LookupResult",
    "CleanResult",
]
