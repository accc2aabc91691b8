import pytest
from fastapi import HTTPException

from report_api.models import AggregatedRow, ChartView, SeriesView, WidgetConfig
from report_api.services.axes import secondary_y_axis_props, x_axis_props, y_axis_props
from report_api.services.charts import render_png

PNG = b"\x89PNG\r\n\x1a\n"


def _view(chart_type, **kwargs):
    rows = [
        AggregatedRow(x_value="N", series={"web": 1.0, "store": 2.0}, secondary_value=4.0),
        AggregatedRow(x_value="S", series={"web": 3.0}, secondary_value=1.0),
    ]
    series = [SeriesView(key="web", label="web", color="#0088FE"),
              SeriesView(key="store", label="store", color="#00C49F")]
    return ChartView(chart_type=chart_type, title="t", layout="multi", series=series, rows=rows, **kwargs)


@pytest.mark.parametrize("chart_type", ["bar", "column", "line", "area", "pie", "donut"])
def test_basic_types(chart_type):
    assert render_png(_view(chart_type, horizontal=chart_type == "bar")).startswith(PNG)


def test_stacked_combo_with_axes():
    cfg = WidgetConfig(x_key="region", y_key="n", secondary_y_key="m", y_fmt="k", x_axis_angle=-45, theme="dark")
    view = _view("line_stacked_column", stacked=True, x_axis=x_axis_props(cfg), y_axis=y_axis_props(cfg),
                 secondary_y_axis=secondary_y_axis_props(cfg))
    assert render_png(view, cfg).startswith(PNG)


def test_text_like_views():
    assert render_png(ChartView(chart_type="kpi", content=42.0)).startswith(PNG)
    text = ChartView(chart_type="text", content={"textContent": "Hello", "textBold": True})
    assert render_png(text).startswith(PNG)


def test_unsupported_and_empty():
    with pytest.raises(HTTPException) as exc:
        render_png(_view("treemap"))
    assert exc.value.status_code == 400
    with pytest.raises(HTTPException) as exc:
        render_png(ChartView(chart_type="bar"))
    assert exc.value.status_code == 404
