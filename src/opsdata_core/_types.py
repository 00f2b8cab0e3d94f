"""Shared result types for the opsdata-core library.

Every engine returns a pydantic model derived from :class:`EngineResult`.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Explanation(BaseModel):
    """Plain-language description of how a result was produced."""
    description: str
    steps: List[str] = Field(default_factory=list)
    excel_equivalent: str = ""
    sql_equivalent: str = ""
    why: str = ""
    notes: List[str] = Field(default_factory=list)


class EngineResult(BaseModel):
    """Display rows, flat statistics and an optional explanation."""
    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    statistics: Dict[str, Any] = Field(default_factory=dict)
    explanation: Optional[Explanation] = None


def percent(part: int, whole: int, places: int = 1) -> float:
    """Return ``part / whole`` as a rounded percentage, 0.0 when whole is 0."""
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, places)
