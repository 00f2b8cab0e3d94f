"""Hash indexes over a dataset's key and full outer join classification.

Two index shapes are built from the same keyed walk over the rows:

- :func:`build_index` keeps every occurrence of a key (duplicate detection,
  join bookkeeping).
- :func:`build_first_match_index` keeps only the first occurrence of a key
  (single-value lookups, spreadsheet VLOOKUP behaviour).

Keys are recorded in first-seen order, which is the order of the original
row sequence, and all output ordering derives from that.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from ..dataset import Dataset, Row
from ..keys import KeyMode, build_key, parse_columns

logger = logging.getLogger(__name__)


class IndexEntry(BaseModel):
    """A row and its origin index, as stored in an index."""
    origin_index: int
    row: Row


class KeyIndex(BaseModel):
    """All rows of a dataset grouped by key, keys in first-seen order."""
    dataset_name: str = ""
    key_columns: List[str] = Field(default_factory=list)
    mode: KeyMode = KeyMode.EXACT
    groups: Dict[str, List[IndexEntry]] = Field(default_factory=dict)

    def keys(self) -> List[str]:
        return list(self.groups)

    def first(self, key: str) -> Optional[IndexEntry]:
        entries = self.groups.get(key)
        return entries[0] if entries else None

    def occurrences(self, key: str) -> int:
        return len(self.groups.get(key, ()))

    def duplicate_keys(self) -> List[str]:
        return [key for key, entries in self.groups.items() if len(entries) > 1]

    def __contains__(self, key: object) -> bool:
        return key in self.groups

    def __len__(self) -> int:
        return len(self.groups)


class JoinSide(BaseModel):
    """A key present on one side only, with its first row."""
    key: str
    entry: IndexEntry
    occurrences: int = 1


class JoinPair(BaseModel):
    """A key present on both sides, with the first row from each."""
    key: str
    left: IndexEntry
    right: IndexEntry


class JoinResult(BaseModel):
    """Full outer join classification of two indexes."""
    only_in_a: List[JoinSide] = Field(default_factory=list)
    only_in_b: List[JoinSide] = Field(default_factory=list)
    in_both: List[JoinPair] = Field(default_factory=list)


def iter_keyed_rows(
    dataset: Dataset,
    key_columns: Union[str, Sequence[str]],
    mode: KeyMode = KeyMode.EXACT,
) -> Iterator[Tuple[str, IndexEntry]]:
    """Yield ``(key, entry)`` for every row, in row order."""
    columns = parse_columns(key_columns)
    dataset.require_columns(*columns, role="Key column")
    for row in dataset.rows:
        yield build_key(row, columns, mode), IndexEntry(origin_index=row.origin_index, row=row)


def build_index(
    dataset: Dataset,
    key_columns: Union[str, Sequence[str]],
    mode: KeyMode = KeyMode.EXACT,
) -> KeyIndex:
    """Group every row of ``dataset`` by key, keeping all occurrences.

    Raises:
        ConfigurationError: If a key column is not in the dataset's schema.
    """
    groups: Dict[str, List[IndexEntry]] = {}
    for key, entry in iter_keyed_rows(dataset, key_columns, mode):
        groups.setdefault(key, []).append(entry)

    logger.debug(
        "Indexed %d rows of '%s' into %d keys", len(dataset.rows), dataset.label, len(groups),
    )
    return KeyIndex(
        dataset_name=dataset.name,
        key_columns=parse_columns(key_columns),
        mode=KeyMode(mode),
        groups=groups,
    )


def build_first_match_index(
    dataset: Dataset,
    key_columns: Union[str, Sequence[str]],
    mode: KeyMode = KeyMode.EXACT,
) -> Dict[str, IndexEntry]:
    """Map each key to its first row; later rows with the same key are dropped."""
    index: Dict[str, IndexEntry] = {}
    for key, entry in iter_keyed_rows(dataset, key_columns, mode):
        if key not in index:
            index[key] = entry
    return index


def full_outer_match(index_a: KeyIndex, index_b: KeyIndex) -> JoinResult:
    """Classify every key of either index as only-in-A, only-in-B or in-both.

    A's keys are visited first in first-seen order, then B's keys that A
    lacks, so the output order depends only on the row order of the inputs.
    Where a key repeats, the first row on each side represents it.
    """
    result = JoinResult()

    for key in index_a.keys():
        left = index_a.first(key)
        if key in index_b:
            result.in_both.append(JoinPair(key=key, left=left, right=index_b.first(key)))
        else:
            result.only_in_a.append(
                JoinSide(key=key, entry=left, occurrences=index_a.occurrences(key))
            )

    for key in index_b.keys():
        if key not in index_a:
            result.only_in_b.append(
                JoinSide(key=key, entry=index_b.first(key), occurrences=index_b.occurrences(key))
            )

    return result
