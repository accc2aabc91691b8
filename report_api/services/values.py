# report_api/services/values.py
# Coercion rules shared by filtering, grouping and slicers.
import numbers
from typing import Any, Iterable, List, Optional

import pandas as pd

from ..models import Row

MISSING_X_LABEL = "N/A"
MISSING_SERIES_LABEL = "Other"


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    return bool(pd.api.types.is_scalar(value) and pd.isna(value))


def as_text(value: Any, missing: Optional[str] = MISSING_X_LABEL) -> Optional[str]:
    if is_missing(value):
        return missing
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_frame(rows: Iterable[Row], columns: List[str]) -> pd.DataFrame:
    """Object-typed frame over the requested columns; absent keys become NaN."""
    records = [r if isinstance(r, dict) else {} for r in rows]
    cols = list(dict.fromkeys(c for c in columns if c))
    return pd.DataFrame(records, columns=cols, dtype=object)


def text_column(frame: pd.DataFrame, column: Optional[str], missing: str) -> pd.Series:
    if not column or column not in frame.columns:
        return pd.Series(missing, index=frame.index, dtype=object)
    return frame[column].map(lambda v: as_text(v, missing))


def numeric_column(frame: pd.DataFrame, column: Optional[str]) -> pd.Series:
    # missing / non-numeric -> 0, never NaN
    if not column or column not in frame.columns:
        return pd.Series(0.0, index=frame.index, dtype=float)
    values = frame[column].map(lambda v: v if isinstance(v, (numbers.Number, str)) and not isinstance(v, bool) else None)
    return pd.to_numeric(values, errors="coerce").fillna(0.0).astype(float)
