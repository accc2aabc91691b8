# report_api/widgets.py
"""Report widgets as a closed tagged union keyed on ``type``.

Each variant carries its own typed config. ``parse_widget`` turns an unknown
tag into an ``UnsupportedWidget`` so one stray widget never breaks a report,
while a known tag with a malformed config still fails validation.
"""
import logging
from typing import Annotated, Any, Dict, Literal, Mapping, Optional, Tuple, Union, get_args

from pydantic import Field, TypeAdapter, ValidationError

from .models import CamelModel, WidgetConfig

logger = logging.getLogger("report_api.widgets")

ChartType = Literal[
    "bar", "column", "stacked_bar", "line", "area", "pie", "donut", "map", "card_date",
    "kpi", "funnel", "radar", "treemap", "radial", "line_stacked_column", "line_clustered_column",
]
SlicerType = Literal["slicer_dropdown", "slicer_list", "slicer_button", "slicer_date"]


class _Widget(CamelModel):
    id: Optional[str] = None
    title: Optional[str] = None


# ---------- aggregation-backed ----------
class ChartWidget(_Widget):
    type: ChartType
    config: WidgetConfig = Field(default_factory=WidgetConfig)


class TextConfig(CamelModel):
    text_content: Optional[str] = None
    text_size: int = 16
    text_font: str = "sans-serif"
    text_bold: bool = False
    text_italic: bool = False
    text_color: str = "#1e293b"
    text_bg_color: str = "transparent"
    text_align: Literal["left", "center", "right"] = "left"


class TextWidget(_Widget):
    type: Literal["text"]
    config: TextConfig = Field(default_factory=TextConfig)


# ---------- raw-data slicers ----------
class SlicerConfig(CamelModel):
    x_key: Optional[str] = None
    use_filtered_data: bool = False


class SlicerWidget(_Widget):
    type: SlicerType
    config: SlicerConfig = Field(default_factory=SlicerConfig)


# ---------- delegated analytics ----------
class AnalyticConfig(CamelModel):
    survey_id: Optional[str] = None


class KeyDriverConfig(AnalyticConfig):
    target_metric: Optional[str] = None


class KeyDriverWidget(_Widget):
    type: Literal["key_driver"]
    config: KeyDriverConfig = Field(default_factory=KeyDriverConfig)


class WordCloudConfig(AnalyticConfig):
    x_key: Optional[str] = None            # text field
    target_metric: Optional[str] = None    # sentiment metric


class WordCloudWidget(_Widget):
    type: Literal["word_cloud"]
    config: WordCloudConfig = Field(default_factory=WordCloudConfig)


class StatSigWidget(_Widget):
    type: Literal["stat_sig"]
    config: AnalyticConfig = Field(default_factory=AnalyticConfig)


class PivotConfig(AnalyticConfig):
    x_key: Optional[str] = None        # rows
    legend_key: Optional[str] = None   # columns
    y_key: Optional[str] = None        # values
    operation: str = "count"


class PivotWidget(_Widget):
    type: Literal["pivot"]
    config: PivotConfig = Field(default_factory=PivotConfig)


class AnomalyConfig(AnalyticConfig):
    target_metric: Optional[str] = None


class AnomalyWidget(_Widget):
    type: Literal["anomaly"]
    config: AnomalyConfig = Field(default_factory=AnomalyConfig)


class CohortConfig(AnalyticConfig):
    metric: str = "nps"
    cohort_by: Literal["day", "week", "month", "quarter", "year"] = "month"


class CohortWidget(_Widget):
    type: Literal["cohort"]
    config: CohortConfig = Field(default_factory=CohortConfig)


class ForecastConfig(AnalyticConfig):
    metric: str = "nps"
    forecast_periods: int = Field(default=7, ge=1, le=365)
    interval: Literal["day", "week", "month"] = "day"


class ForecastWidget(_Widget):
    type: Literal["forecast"]
    config: ForecastConfig = Field(default_factory=ForecastConfig)


class TableConfig(AnalyticConfig):
    page: int = Field(default=1, ge=1)
    page_size: Optional[int] = Field(default=None, ge=1, le=1000)


class TableWidget(_Widget):
    type: Literal["table"]
    config: TableConfig = Field(default_factory=TableConfig)


AnalyticWidget = Union[
    KeyDriverWidget, WordCloudWidget, StatSigWidget, PivotWidget,
    AnomalyWidget, CohortWidget, ForecastWidget, TableWidget,
]

Widget = Annotated[
    Union[
        ChartWidget, TextWidget, SlicerWidget,
        KeyDriverWidget, WordCloudWidget, StatSigWidget, PivotWidget,
        AnomalyWidget, CohortWidget, ForecastWidget, TableWidget,
    ],
    Field(discriminator="type"),
]

WIDGET_VARIANTS: Tuple[type, ...] = get_args(get_args(Widget)[0])
ANALYTIC_VARIANTS: Tuple[type, ...] = get_args(AnalyticWidget)


def _tags(variant: type) -> Tuple[str, ...]:
    return get_args(variant.model_fields["type"].annotation)


WIDGET_TYPES = frozenset(tag for variant in WIDGET_VARIANTS for tag in _tags(variant))

_ADAPTER = TypeAdapter(Widget)


class UnsupportedWidget(_Widget):
    type: Optional[str] = None
    reason: str = "Visual type not supported"


def parse_widget(payload: Mapping[str, Any], widget_id: Optional[str] = None):
    """Validate one widget payload; unknown type tags yield ``UnsupportedWidget``."""
    data: Dict[str, Any] = dict(payload) if isinstance(payload, Mapping) else {}
    if widget_id and not data.get("id"):
        data["id"] = widget_id
    tag = data.get("type")
    if not isinstance(tag, str) or tag not in WIDGET_TYPES:
        logger.warning("Unsupported widget type %r (widget %s)", tag, data.get("id"))
        return UnsupportedWidget(id=data.get("id"), title=data.get("title"),
                                 type=None if tag is None else str(tag))
    return _ADAPTER.validate_python(data)


def parse_report_widgets(widgets: Mapping[str, Mapping[str, Any]]) -> Dict[str, Any]:
    """Parse every widget of a report; an invalid one is isolated, not fatal."""
    parsed: Dict[str, Any] = {}
    for widget_id, payload in (widgets or {}).items():
        try:
            parsed[widget_id] = parse_widget(payload, widget_id)
        except ValidationError as e:
            logger.warning("Invalid config for widget %s: %s", widget_id, e.errors()[:1])
            parsed[widget_id] = UnsupportedWidget(
                id=widget_id, title=(payload or {}).get("title"), type=str((payload or {}).get("type")),
                reason="Invalid widget configuration",
            )
    return parsed
