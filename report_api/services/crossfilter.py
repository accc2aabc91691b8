# report_api/services/crossfilter.py
"""Turns chart clicks into cross-filter updates.

Three click shapes are recognised, in priority order:

1. a series/legend mark (``dataKey``) when the widget has a legend key,
2. a chart background or category-axis click (``activePayload`` or
   ``activeLabel``) when the widget has an x key,
3. a direct mark carrying its own label (``name``, or the x field itself)
   when the widget has an x key.

The resolver never stores anything: it computes the next value list for one
dimension and hands it to the single ``on_filter_change(dimension, values)``
callback owned by the report session.
"""
import logging
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from ..models import ClickEvent, FilterSet, WidgetConfig
from .aggregation import as_config
from .values import as_text, is_missing

logger = logging.getLogger("report_api.crossfilter")

FilterCallback = Callable[[str, List[str]], Any]


def _as_event(event: Union[ClickEvent, Mapping[str, Any], None]) -> Optional[ClickEvent]:
    if event is None or isinstance(event, ClickEvent):
        return event
    if not isinstance(event, Mapping):
        return None
    try:
        return ClickEvent.model_validate(dict(event))
    except ValidationError:
        return None


def _payload_label(event: ClickEvent) -> Any:
    if event.active_payload:
        payload = event.active_payload[0].payload or {}
        for key in ("xValue", "x_value", "name"):
            if payload.get(key) is not None:
                return payload[key]
    return event.active_label


def resolve_click(config: Union[WidgetConfig, Mapping[str, Any], None],
                  event: Union[ClickEvent, Mapping[str, Any], None]) -> Optional[Tuple[str, str]]:
    cfg = as_config(config)
    ev = _as_event(event)
    if cfg is None or ev is None:
        return None

    dimension, value = None, None
    if ev.data_key is not None and cfg.legend_key:
        dimension, value = cfg.legend_key, ev.data_key
    elif (ev.active_payload or ev.active_label is not None) and cfg.x_key:
        dimension, value = cfg.x_key, _payload_label(ev)
    elif cfg.x_key:
        extra = ev.model_extra or {}
        if ev.name is not None:
            dimension, value = cfg.x_key, ev.name
        elif cfg.x_key in extra:
            dimension, value = cfg.x_key, extra[cfg.x_key]

    if dimension is None or value is None or is_missing(value):
        return None
    return dimension, as_text(value)


def toggle_values(current: Optional[List[str]], value: str) -> List[str]:
    """Multi-select toggle: remove when present, append otherwise."""
    current = list(current or [])
    if value in current:
        return [v for v in current if v != value]
    return current + [value]


def next_filters(filters: FilterSet, dimension: str, values: List[str]) -> FilterSet:
    """New FilterSet with ``dimension`` replaced; an empty list drops the dimension."""
    updated = {k: list(v) for k, v in (filters or {}).items() if k != dimension and v}
    if values:
        updated[dimension] = list(values)
    return updated


def handle_click(config: Union[WidgetConfig, Mapping[str, Any], None], filters: FilterSet,
                 event: Union[ClickEvent, Mapping[str, Any], None],
                 on_filter_change: Optional[FilterCallback]) -> bool:
    """Resolve ``event`` and report the toggled value list; True when the callback ran."""
    if on_filter_change is None:
        return False
    resolved = resolve_click(config, event)
    if resolved is None:
        return False
    dimension, value = resolved
    values = toggle_values((filters or {}).get(dimension), value)
    logger.debug("Cross-filter %s -> %s", dimension, values)
    on_filter_change(dimension, values)
    return True
