# report_api/services/aggregation.py
"""Grouping/aggregation of filtered submission rows into chart rows.

Rows are grouped by the string value of ``x_key`` (first-seen order), split
into series by ``legend_key`` when one is configured, and each
(group, series) cell is reduced with count/sum/avg/min/max. An optional
``secondary_y_key`` gets one series-independent value per group for combo
chart overlays. Sorting happens before top-N truncation.
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd
from pydantic import ValidationError

from ..models import AGGREGATIONS, AUTO_AGGREGATION, AggregatedRow, FieldDescriptor, Row, WidgetConfig
from .series import SINGLE_SERIES, series_keys
from .values import MISSING_SERIES_LABEL, MISSING_X_LABEL, numeric_column, text_column, to_frame

logger = logging.getLogger("report_api.aggregation")

LABEL_SORTS = {"ascending": False, "label_asc": False, "descending": True, "label_desc": True}
VALUE_SORTS = {"value_asc": False, "value_desc": True}


@dataclass
class SeriesStats:
    sum: float = 0.0
    count: int = 0
    min: float = math.inf
    max: float = -math.inf

    @classmethod
    def from_agg(cls, agg: Mapping[str, Any]) -> "SeriesStats":
        return cls(sum=float(agg["sum"]), count=int(agg["count"]),
                   min=float(agg["min"]), max=float(agg["max"]))

    def finalize(self, aggregation: str) -> float:
        if aggregation == "count":
            return float(self.count)
        if aggregation == "avg":
            return self.sum / self.count if self.count else 0.0
        # an empty group never surfaces +/-inf
        if aggregation == "min":
            return self.min if self.count else 0.0
        if aggregation == "max":
            return self.max if self.count else 0.0
        return self.sum


def as_config(config: Union[WidgetConfig, Mapping[str, Any], None]) -> Optional[WidgetConfig]:
    if isinstance(config, WidgetConfig):
        return config
    try:
        return WidgetConfig.model_validate(config or {})
    except ValidationError:
        logger.warning("Ignoring invalid widget config: %r", config)
        return None


def find_field(fields: Optional[Sequence[FieldDescriptor]], name: Optional[str]) -> Optional[FieldDescriptor]:
    if not name:
        return None
    for f in fields or []:
        if f.name == name:
            return f
    return None


def resolve_aggregation(aggregation: Optional[str], field_key: Optional[str],
                        fields: Optional[Sequence[FieldDescriptor]]) -> str:
    """Explicit choice wins; ``auto``/unset means sum for measures, count otherwise."""
    if aggregation and aggregation != AUTO_AGGREGATION:
        return aggregation if aggregation in AGGREGATIONS else "sum"
    field = find_field(fields, field_key)
    if field is not None and field.is_measure:
        return field.aggregation if field.aggregation in AGGREGATIONS else "sum"
    return "count"


def _group_stats(frame: pd.DataFrame, by: Union[str, List[str]], column: str) -> Dict[Any, SeriesStats]:
    grouped = frame.groupby(by, sort=False)[column].agg(["sum", "count", "min", "max"])
    return {key: SeriesStats.from_agg(agg) for key, agg in grouped.to_dict("index").items()}


def sort_target(rows: Sequence[AggregatedRow], sort_series: Optional[str] = None) -> Optional[str]:
    if sort_series:
        return sort_series
    keys = series_keys(rows)
    return keys[0] if len(keys) == 1 else None


def sort_rows(rows: List[AggregatedRow], sort_by: Optional[str],
              sort_series: Optional[str] = None) -> List[AggregatedRow]:
    if not sort_by:
        return rows
    if sort_by in LABEL_SORTS:
        return sorted(rows, key=lambda r: r.x_value, reverse=LABEL_SORTS[sort_by])
    if sort_by in VALUE_SORTS:
        target = sort_target(rows, sort_series)
        if target is None:
            if rows:
                logger.warning("sort_by=%s needs sort_series when several series exist; keeping group order", sort_by)
            return rows
        return sorted(rows, key=lambda r: r.value(target), reverse=VALUE_SORTS[sort_by])
    logger.warning("Unknown sort_by=%r; keeping group order", sort_by)
    return rows


def aggregate(rows: Iterable[Row], config: Union[WidgetConfig, Mapping[str, Any], None],
              fields: Optional[Sequence[FieldDescriptor]] = None) -> List[AggregatedRow]:
    cfg = as_config(config)
    rows = list(rows or [])
    if cfg is None or not cfg.x_key or not rows:
        return []

    frame = to_frame(rows, [cfg.x_key, cfg.legend_key, cfg.y_key, cfg.secondary_y_key])
    work = pd.DataFrame({
        "x": text_column(frame, cfg.x_key, MISSING_X_LABEL),
        "series": text_column(frame, cfg.legend_key, MISSING_SERIES_LABEL) if cfg.legend_key else SINGLE_SERIES,
        "y": numeric_column(frame, cfg.y_key),
    })
    primary = _group_stats(work, ["x", "series"], "y")

    secondary: Dict[Any, SeriesStats] = {}
    if cfg.secondary_y_key:
        work["y2"] = numeric_column(frame, cfg.secondary_y_key)
        secondary = _group_stats(work, "x", "y2")

    y_agg = resolve_aggregation(cfg.y_aggregation, cfg.y_key, fields)
    y2_agg = resolve_aggregation(cfg.secondary_y_aggregation, cfg.secondary_y_key, fields)

    out: Dict[str, AggregatedRow] = {}
    for (x_value, series), stats in primary.items():
        row = out.setdefault(x_value, AggregatedRow(x_value=x_value))
        row.series[series] = round(stats.finalize(y_agg), 2)
    for x_value, stats in secondary.items():
        if x_value in out:
            out[x_value].secondary_value = round(stats.finalize(y2_agg), 2)

    result = sort_rows(list(out.values()), cfg.sort_by, cfg.sort_series)
    if cfg.top_n and cfg.top_n > 0:
        result = result[:cfg.top_n]
    return result
