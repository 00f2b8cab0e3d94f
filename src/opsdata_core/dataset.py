"""Row and Dataset models consumed by every engine."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ._errors import ConfigurationError


class Row(BaseModel):
    """One record plus its position in the dataset it was loaded from."""

    model_config = ConfigDict(frozen=True)

    origin_index: int
    values: Dict[str, Any] = Field(default_factory=dict)

    def get(self, column: str, default: Any = None) -> Any:
        return self.values.get(column, default)

    def __getitem__(self, column: str) -> Any:
        return self.values.get(column)


class Dataset(BaseModel):
    """An ordered snapshot of rows sharing one column set."""

    name: str = ""
    columns: List[str] = Field(default_factory=list)
    rows: List[Row] = Field(default_factory=list)
    key_column: Optional[str] = None

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        name: str = "",
        columns: Optional[Sequence[str]] = None,
        key_column: Optional[str] = None,
    ) -> "Dataset":
        """Build a dataset from plain mappings.

        Each mapping is copied, and its position becomes the row's
        ``origin_index``. Without ``columns`` the column list is the
        first-seen union of the record keys.
        """
        rows = [Row(origin_index=i, values=dict(record)) for i, record in enumerate(records)]
        if columns is None:
            seen: Dict[str, None] = {}
            for row in rows:
                for col in row.values:
                    seen.setdefault(col, None)
            columns = list(seen)
        dataset = cls(name=name, columns=list(columns), rows=rows, key_column=key_column)
        if key_column is not None:
            dataset.require_columns(key_column, role="Key column")
        return dataset

    def __len__(self) -> int:
        return len(self.rows)

    def has_column(self, column: str) -> bool:
        """True if ``column`` is in the schema.

        A dataset with neither columns nor rows has no schema to contradict
        and accepts any column.
        """
        if not self.columns and not self.rows:
            return True
        return column in self.columns

    def require_columns(self, *columns: Optional[str], role: str = "Column") -> None:
        """Raise :class:`ConfigurationError` for the first column not in the schema."""
        for col in columns:
            if not col:
                raise ConfigurationError(
                    f"{role} is required for dataset '{self.label}'", option=role, value=col,
                )
            if not self.has_column(col):
                raise ConfigurationError(
                    f"{role} '{col}' not found in dataset '{self.label}'", option=role, value=col,
                )

    @property
    def label(self) -> str:
        return self.name or "unnamed"

    def records(self) -> List[Dict[str, Any]]:
        """Copies of the row mappings, in row order."""
        return [dict(row.values) for row in self.rows]

    def subset(self, origin_indices: Iterable[int], name: Optional[str] = None) -> "Dataset":
        """New dataset holding the rows whose origin index is listed.

        Rows keep their original ``origin_index`` and dataset order.
        """
        wanted = set(origin_indices)
        return Dataset(
            name=self.name if name is None else name,
            columns=list(self.columns),
            rows=[row for row in self.rows if row.origin_index in wanted],
            key_column=self.key_column,
        )
