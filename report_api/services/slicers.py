# report_api/services/slicers.py
# Raw-row helpers for slicers and the filter pane. Values are string-coerced
# the same way filtering compares them, so a selection always round-trips.
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from dateutil import parser as date_parser

from ..config import FILTER_PANE_MAX_VALUES, SLICER_MAX_VALUES
from ..models import FieldDescriptor, Row
from .values import as_text, is_missing


def distinct_values(rows: Iterable[Row], field: Optional[str], limit: Optional[int] = SLICER_MAX_VALUES) -> List[str]:
    if not field:
        return []
    seen = {as_text(r.get(field), None) for r in rows or [] if isinstance(r, dict) and not is_missing(r.get(field))}
    values = sorted(v for v in seen if v is not None)
    return values[:limit] if limit else values


def parse_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return value
    elif is_missing(value):
        return None
    else:
        try:
            dt = date_parser.parse(str(value))
        except (ValueError, OverflowError, TypeError):
            return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.date()


def date_bounds(rows: Iterable[Row], field: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    if not field:
        return None, None
    dates = [d for d in (parse_date(r.get(field)) for r in rows or [] if isinstance(r, dict)) if d is not None]
    if not dates:
        return None, None
    return min(dates).isoformat(), max(dates).isoformat()


def values_in_range(rows: Iterable[Row], field: Optional[str],
                    start: Optional[str] = None, end: Optional[str] = None) -> List[str]:
    """Distinct raw values of ``field`` whose date falls in [start, end] (inclusive, by day)."""
    if not field:
        return []
    lo, hi = parse_date(start), parse_date(end)
    picked = set()
    for r in rows or []:
        if not isinstance(r, dict):
            continue
        d = parse_date(r.get(field))
        if d is None or (lo and d < lo) or (hi and d > hi):
            continue
        picked.add(as_text(r.get(field)))
    return sorted(picked)


def filter_options(rows: Sequence[Row], fields: Sequence[FieldDescriptor],
                   limit: int = FILTER_PANE_MAX_VALUES) -> Dict[str, List[str]]:
    return {f.name: distinct_values(rows, f.name, limit) for f in fields or []}
