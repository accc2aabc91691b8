# report_api/services/filtering.py
from typing import Dict, Iterable, List, Set

import pandas as pd

from ..models import FilterSet, Row
from .values import MISSING_X_LABEL, text_column, to_frame


def active_dimensions(filters: FilterSet) -> Dict[str, Set[str]]:
    """Dimensions with a non-empty selection; ``[]`` imposes no restriction."""
    active: Dict[str, Set[str]] = {}
    for dim, values in (filters or {}).items():
        if not values:
            continue
        if isinstance(values, str):
            values = [values]
        active[dim] = {str(v) for v in values}
    return active


def apply_filters(rows: Iterable[Row], filters: FilterSet) -> List[Row]:
    """AND across dimensions, OR within one dimension's selected values.

    Returns the matching input rows themselves, in input order.
    """
    rows = list(rows or [])
    active = active_dimensions(filters)
    if not rows or not active:
        return rows
    frame = to_frame(rows, list(active))
    mask = pd.Series(True, index=frame.index)
    for dim, allowed in active.items():
        mask &= text_column(frame, dim, MISSING_X_LABEL).isin(allowed)
    return [row for row, keep in zip(rows, mask.tolist()) if keep]
