# report_api/models.py
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Row = Dict[str, Any]
FilterSet = Dict[str, List[str]]

AGGREGATIONS = ("count", "sum", "avg", "min", "max")
AUTO_AGGREGATION = "auto"


class CamelModel(BaseModel):
    """Accepts both the front end's camelCase keys and snake_case names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FieldDescriptor(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str
    label: Optional[str] = None
    type: str = Field(default="text", pattern="^(text|number|date|category)$")
    is_measure: bool = False
    aggregation: Optional[str] = None

    @property
    def display_label(self) -> str:
        return self.label or self.name


class WidgetConfig(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore")

    x_key: Optional[str] = None
    y_key: Optional[str] = None
    legend_key: Optional[str] = None
    y_aggregation: Optional[str] = None
    secondary_y_key: Optional[str] = None
    secondary_y_aggregation: Optional[str] = None
    sort_by: Optional[str] = None        # "ascending"|"descending"|"value_asc"|"value_desc"
    sort_series: Optional[str] = None    # series used by value sorts when a legend splits the data
    top_n: Optional[int] = None
    series_colors: Dict[str, str] = Field(default_factory=dict)
    # display
    color: str = "#0088FE"
    show_legend: bool = True
    swap_axis: bool = False
    x_label: Optional[str] = None
    y_label: Optional[str] = None
    secondary_y_label: Optional[str] = None
    x_axis_angle: int = 0
    hide_x_axis: bool = False
    hide_y_axis: bool = False
    x_axis_show_values: bool = True
    y_axis_show_values: bool = True
    secondary_y_axis_show_values: bool = True
    x_axis_font_size: int = 12
    y_axis_font_size: int = 12
    y_fmt: Optional[str] = None          # "int"|"float0"|"float1"|"k"
    theme: Optional[str] = "light"       # "light"|"dark"

    @field_validator("y_aggregation", "secondary_y_aggregation", "sort_by")
    @classmethod
    def _normalize_keyword(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().lower()
        return v or None


class AggregatedRow(CamelModel):
    x_value: str
    series: Dict[str, float] = Field(default_factory=dict)
    secondary_value: Optional[float] = None

    def value(self, series_key: str) -> float:
        return self.series.get(series_key, 0.0)


# ---------- click events ----------
class ActivePayloadItem(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")
    payload: Dict[str, Any] = Field(default_factory=dict)


class ClickEvent(CamelModel):
    """Union of the shapes a chart click can produce.

    - legend/series mark: ``dataKey``
    - chart background or category axis: ``activePayload`` (or ``activeLabel``)
    - direct mark (pie slice, funnel step, treemap cell): ``name``
    Any other keys (a clicked point's own fields) are kept as extras.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    data_key: Optional[Any] = None
    active_payload: Optional[List[ActivePayloadItem]] = None
    active_label: Optional[Any] = None
    name: Optional[Any] = None
    value: Optional[Any] = None


class FilterUpdate(CamelModel):
    values: List[str] = Field(default_factory=list)


class DateRange(CamelModel):
    start: Optional[str] = None
    end: Optional[str] = None


# ---------- axes ----------
class TickStyle(CamelModel):
    font_size: int = 12
    fill: str = "#64748b"
    angle: int = 0
    text_anchor: str = "middle"


class AxisLabel(CamelModel):
    value: str
    angle: int = 0
    position: str = "insideBottom"


class AxisProps(CamelModel):
    data_key: Optional[str] = None
    axis_id: Optional[str] = None
    orientation: Optional[str] = None
    hide: bool = False
    angle: int = 0
    text_anchor: str = "middle"
    tick: Optional[TickStyle] = None
    label: Optional[AxisLabel] = None


# ---------- rendered views ----------
class SeriesView(CamelModel):
    key: str
    label: str
    color: str


class ChartView(CamelModel):
    kind: Literal["chart"] = "chart"
    widget_id: Optional[str] = None
    chart_type: str
    title: Optional[str] = None
    layout: Literal["single", "multi"] = "single"
    series: List[SeriesView] = Field(default_factory=list)
    rows: List[AggregatedRow] = Field(default_factory=list)
    x_axis: Optional[AxisProps] = None
    y_axis: Optional[AxisProps] = None
    secondary_y_axis: Optional[AxisProps] = None
    show_legend: bool = True
    stacked: bool = False
    horizontal: bool = False
    content: Optional[Any] = None        # text body, card date, kpi value


class SlicerOption(CamelModel):
    value: str
    selected: bool = False


class SlicerView(CamelModel):
    kind: Literal["slicer"] = "slicer"
    widget_id: Optional[str] = None
    slicer_type: str
    title: Optional[str] = None
    field: Optional[str] = None
    control: Literal["checklist", "date_range"] = "checklist"
    options: List[SlicerOption] = Field(default_factory=list)
    selected: List[str] = Field(default_factory=list)
    date_min: Optional[str] = None
    date_max: Optional[str] = None


class AnalyticView(CamelModel):
    kind: Literal["analytic"] = "analytic"
    widget_id: Optional[str] = None
    widget_type: str
    title: Optional[str] = None
    status: Literal["ok", "unconfigured", "pending"] = "ok"
    request: Optional[Dict[str, Any]] = None
    payload: Optional[Any] = None
    message: Optional[str] = None


class EmptyView(CamelModel):
    kind: Literal["empty"] = "empty"
    widget_id: Optional[str] = None
    widget_type: str
    title: Optional[str] = None
    message: str = "No data available"


class ErrorView(CamelModel):
    kind: Literal["error"] = "error"
    widget_id: Optional[str] = None
    widget_type: str
    title: Optional[str] = None
    message: str
    retryable: bool = True


class UnsupportedView(CamelModel):
    kind: Literal["unsupported"] = "unsupported"
    widget_id: Optional[str] = None
    widget_type: Optional[str] = None
    message: str = "Visual type not supported"


WidgetView = Annotated[
    Union[ChartView, SlicerView, AnalyticView, EmptyView, ErrorView, UnsupportedView],
    Field(discriminator="kind"),
]


# ---------- reports ----------
def clean_filters(filters: Any) -> FilterSet:
    """Persisted filters may carry nulls or scalars; keep non-empty string lists only."""
    cleaned: FilterSet = {}
    for dim, values in (filters or {}).items():
        if values is None:
            continue
        if not isinstance(values, (list, tuple, set)):
            values = [values]
        values = [str(v) for v in values if v is not None]
        if values:
            cleaned[str(dim)] = values
    return cleaned


class ReportDefinition(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    title: Optional[str] = None
    survey_id: Optional[str] = None
    layout: List[Dict[str, Any]] = Field(default_factory=list)
    widgets: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    fields: List[FieldDescriptor] = Field(default_factory=list)
    theme: Optional[Union[str, Dict[str, Any]]] = None
    filters: FilterSet = Field(default_factory=dict)

    @field_validator("filters", mode="before")
    @classmethod
    def _clean_filters(cls, v: Any) -> FilterSet:
        return clean_filters(v if isinstance(v, dict) else {})


class ReportPage(CamelModel):
    session_id: str
    report_id: Optional[str] = None
    title: Optional[str] = None
    filters: FilterSet = Field(default_factory=dict)
    row_count: int = 0
    filtered_count: int = 0
    layout: List[Dict[str, Any]] = Field(default_factory=list)
    widgets: Dict[str, WidgetView] = Field(default_factory=dict)


class RenderRequest(CamelModel):
    """Stateless render: one widget over an inline dataset."""
    rows: List[Row] = Field(default_factory=list)
    fields: List[FieldDescriptor] = Field(default_factory=list)
    widget: Dict[str, Any]
    filters: FilterSet = Field(default_factory=dict)
    survey_id: Optional[str] = None

    @field_validator("filters", mode="before")
    @classmethod
    def _clean_filters(cls, v: Any) -> FilterSet:
        return clean_filters(v if isinstance(v, dict) else {})
