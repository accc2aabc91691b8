from report_api.models import WidgetConfig
from report_api.services.axes import (
    axis_label, secondary_y_axis_props, tick_style, x_axis_props, y_axis_props,
)


def test_axis_label(sales_fields):
    assert axis_label("sales", "sum", sales_fields) == "Sum of Sales"
    assert axis_label("revenue", "avg", sales_fields) == "Avg of revenue"
    assert axis_label("sales", "auto", sales_fields) == "Sales"
    assert axis_label("sales", "sum", sales_fields, override="Revenue") == "Revenue"
    assert axis_label(None) is None


def test_tick_rotation():
    assert tick_style(10, -45).text_anchor == "end"
    assert tick_style(10, 0).text_anchor == "middle"


def test_axis_props(sales_fields):
    cfg = WidgetConfig(x_key="region", y_key="sales", y_aggregation="sum", x_axis_angle=-30,
                       y_axis_show_values=False)
    x = x_axis_props(cfg, sales_fields)
    assert x.data_key == "region"
    assert x.label.value == "Region"
    assert x.tick.angle == -30 and x.text_anchor == "end"
    y = y_axis_props(cfg, sales_fields)
    assert y.label.value == "Sum of Sales" and y.label.angle == -90
    assert y.tick is None
    assert secondary_y_axis_props(cfg, sales_fields) is None


def test_secondary_axis(sales_fields):
    cfg = WidgetConfig(x_key="region", secondary_y_key="sales", secondary_y_aggregation="max")
    props = secondary_y_axis_props(cfg, sales_fields)
    assert props.orientation == "right"
    assert props.label.value == "Max of Sales"
