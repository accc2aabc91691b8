# report_api/services/dispatcher.py
"""Routes each widget variant to its rendering path.

- charts: aggregated rows -> ``ChartView`` (or ``EmptyView``)
- slicers: raw rows -> ``SlicerView``
- analytic widgets: selectors -> delegate -> ``AnalyticView`` / ``ErrorView``
- unknown tags -> ``UnsupportedView``

Every variant of ``widgets.Widget`` must have a renderer; this is checked
when the module is imported.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from fastapi import HTTPException

from ..config import TABLE_PAGE_SIZE
from ..models import (
    AnalyticView, ChartView, EmptyView, ErrorView, FieldDescriptor, FilterSet, Row,
    SeriesView, SlicerOption, SlicerView, UnsupportedView, WidgetConfig,
)
from ..widgets import (
    ANALYTIC_VARIANTS, WIDGET_VARIANTS, AnomalyWidget, ChartWidget, CohortWidget, ForecastWidget,
    KeyDriverWidget, PivotWidget, SlicerWidget, StatSigWidget, TableWidget, TextWidget,
    UnsupportedWidget, WordCloudWidget,
)
from .aggregation import aggregate
from .axes import axis_label, secondary_y_axis_props, x_axis_props, y_axis_props
from .crossfilter import FilterCallback, handle_click, resolve_click
from .filtering import apply_filters
from .series import color_for, is_multi_series, series_keys
from .slicers import date_bounds, distinct_values, parse_date, values_in_range

logger = logging.getLogger("report_api.dispatcher")

Delegate = Callable[[str, Dict[str, Any]], Any]

CARTESIAN_TYPES = {"bar", "column", "stacked_bar", "line", "area", "line_stacked_column", "line_clustered_column"}
STACKED_TYPES = {"stacked_bar", "line_stacked_column"}


@dataclass(frozen=True)
class RenderContext:
    rows: Sequence[Row] = ()
    filtered_rows: Sequence[Row] = ()
    fields: Sequence[FieldDescriptor] = ()
    filters: FilterSet = field(default_factory=dict)
    survey_id: Optional[str] = None
    delegate: Optional[Delegate] = None
    on_filter_change: Optional[FilterCallback] = None

    @classmethod
    def build(cls, rows: Sequence[Row], filters: FilterSet, **kwargs) -> "RenderContext":
        rows = list(rows or [])
        return cls(rows=rows, filtered_rows=apply_filters(rows, filters), filters=dict(filters or {}), **kwargs)


# ---------- charts ----------
def _render_chart(widget: ChartWidget, ctx: RenderContext):
    cfg = widget.config
    rows = aggregate(ctx.filtered_rows, cfg, ctx.fields)
    if not rows:
        return EmptyView(widget_id=widget.id, widget_type=widget.type, title=widget.title)

    keys = series_keys(rows)
    multi = is_multi_series(keys, cfg.legend_key)
    if multi:
        series = [SeriesView(key=k, label=k, color=color_for(k, i, cfg.series_colors)) for i, k in enumerate(keys)]
    else:
        label = axis_label(cfg.y_key, cfg.y_aggregation, ctx.fields, cfg.y_label) or widget.title or keys[0]
        series = [SeriesView(key=keys[0], label=label, color=cfg.series_colors.get(keys[0]) or cfg.color)]

    view = ChartView(
        widget_id=widget.id,
        chart_type=widget.type,
        title=widget.title,
        layout="multi" if multi else "single",
        series=series,
        rows=rows,
        show_legend=cfg.show_legend,
        stacked=widget.type in STACKED_TYPES,
        horizontal=widget.type == "bar" or cfg.swap_axis,
    )
    if widget.type in CARTESIAN_TYPES:
        view.x_axis = x_axis_props(cfg, ctx.fields)
        view.y_axis = y_axis_props(cfg, ctx.fields)
        view.secondary_y_axis = secondary_y_axis_props(cfg, ctx.fields)
    elif widget.type == "kpi":
        view.content = rows[0].value(keys[0])
    elif widget.type == "card_date":
        first = parse_date(rows[0].x_value)
        view.content = first.isoformat() if first else rows[0].x_value
    elif widget.type == "map":
        view.content = [[r.x_value, r.value(keys[0])] for r in rows]
    return view


def _render_text(widget: TextWidget, ctx: RenderContext):
    content = widget.config.model_dump(by_alias=True)
    content["textContent"] = widget.config.text_content or "Double click to edit text"
    return ChartView(widget_id=widget.id, chart_type="text", title=widget.title, show_legend=False, content=content)


# ---------- slicers ----------
def _slicer_source(widget: SlicerWidget, ctx: RenderContext) -> Sequence[Row]:
    return ctx.filtered_rows if widget.config.use_filtered_data else ctx.rows


def _render_slicer(widget: SlicerWidget, ctx: RenderContext):
    name = widget.config.x_key
    selected = list(ctx.filters.get(name) or []) if name else []
    view = SlicerView(widget_id=widget.id, slicer_type=widget.type, title=widget.title,
                      field=name, selected=selected)
    source = _slicer_source(widget, ctx)
    if widget.type == "slicer_date":
        view.control = "date_range"
        view.date_min, view.date_max = date_bounds(source, name)
    else:
        view.options = [SlicerOption(value=v, selected=v in selected) for v in distinct_values(source, name)]
    return view


def select_values(widget: SlicerWidget, values: List[str], ctx: RenderContext) -> bool:
    """Checklist write: replace the allowed values of the slicer's field."""
    name = widget.config.x_key
    if not name or ctx.on_filter_change is None:
        return False
    ctx.on_filter_change(name, [str(v) for v in values or []])
    return True


def select_date_range(widget: SlicerWidget, start: Optional[str], end: Optional[str], ctx: RenderContext) -> bool:
    """Date-range write, expressed as the distinct raw values inside the range."""
    name = widget.config.x_key
    if not name or ctx.on_filter_change is None:
        return False
    values = values_in_range(ctx.rows, name, start, end) if (start or end) else []
    ctx.on_filter_change(name, values)
    return True


# ---------- delegated analytics ----------
def _survey(widget, ctx: RenderContext) -> Optional[str]:
    return widget.config.survey_id or ctx.survey_id


def analytic_request(widget, ctx: RenderContext) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """Selectors sent to the delegate, or ``(None, hint)`` when the widget is not configured yet."""
    cfg = widget.config
    survey_id = _survey(widget, ctx)
    if not survey_id:
        return None, "Bind report to survey first."
    if isinstance(widget, KeyDriverWidget):
        if not cfg.target_metric:
            return None, "Select a target metric (e.g., NPS) in settings."
        return {"surveyId": survey_id, "targetMetric": cfg.target_metric}, None
    if isinstance(widget, WordCloudWidget):
        if not cfg.x_key:
            return None, "Select a text field to analyze."
        return {"surveyId": survey_id, "textField": cfg.x_key, "sentimentMetric": cfg.target_metric}, None
    if isinstance(widget, StatSigWidget):
        return {"surveyId": survey_id}, None
    if isinstance(widget, PivotWidget):
        if not cfg.x_key or not cfg.legend_key:
            return None, "Configure rows and columns."
        return {"surveyId": survey_id, "rowField": cfg.x_key, "colField": cfg.legend_key,
                "valueField": cfg.y_key, "operation": cfg.operation}, None
    if isinstance(widget, AnomalyWidget):
        if not cfg.target_metric:
            return None, "Select a metric to watch."
        return {"surveyId": survey_id, "targetMetric": cfg.target_metric}, None
    if isinstance(widget, CohortWidget):
        return {"surveyId": survey_id, "metric": cfg.metric, "cohortBy": cfg.cohort_by}, None
    if isinstance(widget, ForecastWidget):
        return {"surveyId": survey_id, "metric": cfg.metric, "periods": cfg.forecast_periods,
                "interval": cfg.interval}, None
    if isinstance(widget, TableWidget):
        return {"surveyId": survey_id, "filters": {k: list(v) for k, v in ctx.filters.items() if v},
                "page": cfg.page, "pageSize": cfg.page_size or TABLE_PAGE_SIZE}, None
    return None, "Visual type not supported"


def error_view(widget, message: str) -> ErrorView:
    return ErrorView(widget_id=getattr(widget, "id", None), widget_type=getattr(widget, "type", None) or "unknown",
                     title=getattr(widget, "title", None), message=message, retryable=True)


def _render_analytic(widget, ctx: RenderContext):
    request, hint = analytic_request(widget, ctx)
    base = dict(widget_id=widget.id, widget_type=widget.type, title=widget.title)
    if request is None:
        return AnalyticView(status="unconfigured", message=hint, **base)
    if ctx.delegate is None:
        return AnalyticView(status="pending", request=request, **base)
    try:
        payload = ctx.delegate(widget.type, request)
    except HTTPException as e:
        logger.warning("Widget %s (%s) delegate failed: %s", widget.id, widget.type, e.detail)
        return error_view(widget, str(e.detail))
    return AnalyticView(status="ok", request=request, payload=payload, **base)


# ---------- dispatch ----------
_RENDERERS: Dict[type, Callable[[Any, RenderContext], Any]] = {
    ChartWidget: _render_chart,
    TextWidget: _render_text,
    SlicerWidget: _render_slicer,
    **{variant: _render_analytic for variant in ANALYTIC_VARIANTS},
}

_missing = [v.__name__ for v in WIDGET_VARIANTS if v not in _RENDERERS]
if _missing:
    raise RuntimeError(f"No renderer for widget variants: {_missing}")


def is_analytic(widget) -> bool:
    return isinstance(widget, ANALYTIC_VARIANTS)


def render_widget(widget, ctx: RenderContext):
    if isinstance(widget, UnsupportedWidget):
        return UnsupportedView(widget_id=widget.id, widget_type=widget.type, message=widget.reason)
    renderer = _RENDERERS.get(type(widget))
    if renderer is None:
        return UnsupportedView(widget_id=getattr(widget, "id", None), widget_type=getattr(widget, "type", None))
    return renderer(widget, ctx)


def _click_config(widget) -> Optional[WidgetConfig]:
    if isinstance(widget, ChartWidget):
        return widget.config
    if isinstance(widget, WordCloudWidget) and widget.config.x_key:
        # a word click filters the analysed text field by that word
        return WidgetConfig(x_key=widget.config.x_key)
    return None


def click_target(widget, event: Any) -> Optional[Tuple[str, str]]:
    """The (dimension, value) a click on ``widget`` toggles, or None."""
    config = _click_config(widget)
    return resolve_click(config, event) if config is not None else None


def click(widget, event: Any, ctx: RenderContext) -> bool:
    """Cross-filter from a click on a rendered widget; False when nothing changed."""
    config = _click_config(widget)
    if config is None:
        return False
    return handle_click(config, ctx.filters, event, ctx.on_filter_change)
