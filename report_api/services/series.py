# report_api/services/series.py
from typing import Dict, List, Optional, Sequence

from ..models import AggregatedRow

SINGLE_SERIES = "value"

PALETTE = ["#0088FE", "#00C49F", "#FFBB28", "#FF8042", "#8884d8", "#82ca9d"]


def series_keys(rows: Sequence[AggregatedRow]) -> List[str]:
    """Legend entries of an aggregated result, first row's series first."""
    keys: Dict[str, None] = {}
    for row in rows or []:
        for key in row.series:
            keys.setdefault(key, None)
    return list(keys)


def is_multi_series(keys: Sequence[str], legend_key: Optional[str] = None) -> bool:
    """A legend split is multi-series even when its only value is named like the fixed series."""
    if legend_key:
        return bool(keys)
    return list(keys) not in ([], [SINGLE_SERIES])


def color_for(series_key: str, index: int, overrides: Optional[Dict[str, str]] = None) -> str:
    if overrides and overrides.get(series_key):
        return overrides[series_key]
    return PALETTE[index % len(PALETTE)]
