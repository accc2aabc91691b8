# report_api/services/axes.py
from typing import Optional, Sequence

from ..models import AUTO_AGGREGATION, AxisLabel, AxisProps, FieldDescriptor, TickStyle, WidgetConfig
from .aggregation import find_field


def axis_label(key: Optional[str], aggregation: Optional[str] = None,
               fields: Optional[Sequence[FieldDescriptor]] = None,
               override: Optional[str] = None) -> Optional[str]:
    """"Sum of Sales" from the field label (or name) and the aggregation verb."""
    if override:
        return override
    if not key:
        return None
    field = find_field(fields, key)
    label = field.display_label if field else key
    if aggregation and aggregation != AUTO_AGGREGATION:
        label = f"{aggregation.capitalize()} of {label}"
    return label


def tick_style(font_size: int = 12, angle: int = 0) -> TickStyle:
    return TickStyle(font_size=font_size, angle=angle, text_anchor="end" if angle else "middle")


def x_axis_props(config: WidgetConfig, fields: Optional[Sequence[FieldDescriptor]] = None) -> AxisProps:
    angle = config.x_axis_angle or 0
    label = axis_label(config.x_key, None, fields, config.x_label)
    return AxisProps(
        data_key=config.x_key,
        hide=config.hide_x_axis,
        angle=angle,
        text_anchor="end" if angle else "middle",
        tick=tick_style(config.x_axis_font_size, angle) if config.x_axis_show_values else None,
        label=AxisLabel(value=label or "", angle=0, position="insideBottom"),
    )


def y_axis_props(config: WidgetConfig, fields: Optional[Sequence[FieldDescriptor]] = None) -> AxisProps:
    label = axis_label(config.y_key, config.y_aggregation, fields, config.y_label)
    return AxisProps(
        data_key=config.y_key,
        axis_id="left",
        orientation="left",
        hide=config.hide_y_axis,
        tick=tick_style(config.y_axis_font_size) if config.y_axis_show_values else None,
        label=AxisLabel(value=label or "", angle=-90, position="insideLeft"),
    )


def secondary_y_axis_props(config: WidgetConfig,
                           fields: Optional[Sequence[FieldDescriptor]] = None) -> Optional[AxisProps]:
    if not config.secondary_y_key:
        return None
    label = axis_label(config.secondary_y_key, config.secondary_y_aggregation, fields, config.secondary_y_label)
    return AxisProps(
        data_key=config.secondary_y_key,
        axis_id="right",
        orientation="right",
        tick=tick_style(config.y_axis_font_size) if config.secondary_y_axis_show_values else None,
        label=AxisLabel(value=label or "", angle=90, position="insideRight"),
    )
