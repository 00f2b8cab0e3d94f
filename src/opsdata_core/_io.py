"""pandas interop at the library boundary."""

from typing import Optional

import pandas as pd

from ._types import EngineResult
from .dataset import Dataset


def dataset_from_frame(df: pd.DataFrame, name: str = "", key_column: Optional[str] = None) -> Dataset:
    """Convert a DataFrame into a Dataset, mapping NaN/NaT to ``None``."""
    cleaned = df.astype(object).where(pd.notna(df), None)
    cleaned.columns = [str(c) for c in df.columns]
    records = cleaned.to_dict(orient="records")
    return Dataset.from_records(
        records, name=name, columns=list(cleaned.columns), key_column=key_column,
    )


def dataset_to_frame(dataset: Dataset) -> pd.DataFrame:
    """Convert a Dataset back into a DataFrame indexed by origin index."""
    index = [row.origin_index for row in dataset.rows]
    return pd.DataFrame(dataset.records(), columns=dataset.columns, index=index)


def result_to_frame(result: EngineResult) -> pd.DataFrame:
    """Display rows of an engine result, in display column order."""
    return pd.DataFrame(result.rows, columns=result.columns)
