# report_api/services/charts.py
# Server-side PNG of a rendered ChartView (same rows and colors the
# front end draws).
import io
from typing import List, Optional

import pandas as pd

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.ticker import FuncFormatter

from fastapi import HTTPException
from ..models import ChartView, WidgetConfig

plt.rcParams.update({
    "figure.figsize": (12, 6),
    "axes.titlesize": 18,
    "axes.labelsize": 14,
    "xtick.labelsize": 11,
    "ytick.labelsize": 11,
    "axes.grid": True,
    "grid.alpha": 0.25,
    "lines.linewidth": 2.0,
    "lines.markersize": 5.5,
})

BAR_TYPES = {"bar", "column", "stacked_bar"}
COMBO_TYPES = {"line_stacked_column", "line_clustered_column"}
PIE_TYPES = {"pie", "donut"}
TEXT_TYPES = {"text", "kpi", "card_date"}


# ---------- helpers ----------
def _to_png(fig) -> bytes:
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=144, bbox_inches="tight")
    plt.close(fig)
    buf.seek(0)
    return buf.read()


def _apply_theme(theme: Optional[str]):
    plt.style.use("dark_background" if (theme or "light").lower() == "dark" else "default")


def _format_y(ax, y_fmt: Optional[str]):
    if not y_fmt:
        return
    def _fmt_k(x, _pos):
        sign = "-" if x < 0 else ""
        v = abs(x)
        if v >= 1_000_000: return f"{sign}{v/1_000_000:.1f}M"
        if v >= 1_000:     return f"{sign}{v/1_000:.1f}k"
        return f"{sign}{v:.1f}"
    fmts = {
        "int":    FuncFormatter(lambda x, _pos: f"{int(round(x))}"),
        "float0": FuncFormatter(lambda x, _pos: f"{x:.0f}"),
        "float1": FuncFormatter(lambda x, _pos: f"{x:.1f}"),
        "k":      FuncFormatter(_fmt_k),
    }
    if y_fmt in fmts:
        ax.yaxis.set_major_formatter(fmts[y_fmt])


def _frame(view: ChartView) -> pd.DataFrame:
    """One row per x value, one column per series (absent cells are 0)."""
    keys = [s.key for s in view.series]
    data = {"x": [r.x_value for r in view.rows]}
    for k in keys:
        data[k] = [r.value(k) for r in view.rows]
    data["secondary"] = [r.secondary_value for r in view.rows]
    return pd.DataFrame(data)


def _style_axes(ax, view: ChartView, cfg: WidgetConfig):
    x_axis, y_axis = view.x_axis, view.y_axis
    if x_axis is not None:
        if x_axis.label:
            (ax.set_ylabel if view.horizontal else ax.set_xlabel)(x_axis.label.value)
        labels = ax.get_yticklabels() if view.horizontal else ax.get_xticklabels()
        plt.setp(labels, rotation=-x_axis.angle if x_axis.angle else 0,
                 ha="right" if x_axis.angle else "center")
        if x_axis.hide:
            (ax.yaxis if view.horizontal else ax.xaxis).set_visible(False)
    if y_axis is not None:
        if y_axis.label:
            (ax.set_xlabel if view.horizontal else ax.set_ylabel)(y_axis.label.value)
        if y_axis.hide:
            (ax.xaxis if view.horizontal else ax.yaxis).set_visible(False)
    if not view.horizontal:
        _format_y(ax, cfg.y_fmt)


def _bars(ax, df: pd.DataFrame, view: ChartView, keys: List[str], colors: List[str]):
    positions = list(range(len(df)))
    if view.stacked:
        bottom = [0.0] * len(df)
        for key, color, label in zip(keys, colors, [s.label for s in view.series]):
            if view.horizontal:
                ax.barh(positions, df[key], left=bottom, color=color, label=label)
            else:
                ax.bar(positions, df[key], bottom=bottom, color=color, label=label)
            bottom = [b + v for b, v in zip(bottom, df[key])]
    else:
        width = 0.8 / max(1, len(keys))
        for i, (key, color, label) in enumerate(zip(keys, colors, [s.label for s in view.series])):
            offs = [k + (i - (len(keys) - 1) / 2) * width for k in positions]
            if view.horizontal:
                ax.barh(offs, df[key], height=width, color=color, label=label)
            else:
                ax.bar(offs, df[key], width=width, color=color, label=label)
    if view.horizontal:
        ax.set_yticks(positions); ax.set_yticklabels(list(df["x"]))
    else:
        ax.set_xticks(positions); ax.set_xticklabels(list(df["x"]))


def _text_figure(view: ChartView) -> bytes:
    fig, ax = plt.subplots(figsize=(6, 3))
    ax.axis("off")
    content = view.content
    if isinstance(content, dict):
        body = content.get("textContent") or ""
        ax.text(0.02, 0.5, body, ha="left", va="center", fontsize=content.get("textSize", 16),
                fontweight="bold" if content.get("textBold") else "normal",
                fontstyle="italic" if content.get("textItalic") else "normal",
                color=content.get("textColor") or "#1e293b", wrap=True)
    else:
        ax.text(0.5, 0.5, "" if content is None else str(content), ha="center", va="center", fontsize=40)
    if view.title:
        ax.set_title(view.title)
    return _to_png(fig)


# ---------- core ----------
def render_png(view: ChartView, cfg: Optional[WidgetConfig] = None) -> bytes:
    cfg = cfg or WidgetConfig()
    _apply_theme(cfg.theme)
    t = view.chart_type

    if t in TEXT_TYPES:
        return _text_figure(view)
    if not view.rows:
        raise HTTPException(status_code=404, detail="No data available")

    df = _frame(view)
    keys = [s.key for s in view.series]
    colors = [s.color for s in view.series]

    # PIE / DONUT
    if t in PIE_TYPES:
        key = keys[0]
        fig, ax = plt.subplots()
        ax.pie(df[key], labels=df["x"], autopct="%1.0f%%",
               wedgeprops={"width": 0.45} if t == "donut" else None)
        ax.set_title(view.title or "")
        fig.tight_layout()
        return _to_png(fig)

    # BAR / LINE / AREA / COMBOS
    if t in BAR_TYPES | COMBO_TYPES | {"line", "area"}:
        fig, ax = plt.subplots()
        positions = list(range(len(df)))
        if t in BAR_TYPES or t in COMBO_TYPES:
            _bars(ax, df, view, keys, colors)
        elif t == "line":
            for key, color, s in zip(keys, colors, view.series):
                ax.plot(positions, df[key], marker="o", color=color, label=s.label)
        else:
            cumulative = None
            for key, color, s in zip(keys, colors, view.series):
                if cumulative is None:
                    cumulative = df[key].copy()
                    ax.fill_between(positions, cumulative, alpha=0.3, color=color, label=s.label)
                else:
                    new_cum = cumulative + df[key]
                    ax.fill_between(positions, cumulative, new_cum, alpha=0.3, color=color, label=s.label)
                    cumulative = new_cum
        if t in {"line", "area"}:
            ax.set_xticks(positions); ax.set_xticklabels(list(df["x"]))

        if t in COMBO_TYPES and view.secondary_y_axis is not None:
            ax2 = ax.twinx()
            ax2.plot(positions, df["secondary"].fillna(0.0), marker="o", color="#ff7300",
                     label=view.secondary_y_axis.label.value if view.secondary_y_axis.label else "secondary")
            if view.secondary_y_axis.label:
                ax2.set_ylabel(view.secondary_y_axis.label.value)
            ax2.grid(False)

        ax.set_title(view.title or "")
        _style_axes(ax, view, cfg)
        if view.show_legend and (len(keys) > 1 or view.layout == "multi"):
            ax.legend()
        fig.tight_layout()
        return _to_png(fig)

    raise HTTPException(status_code=400, detail=f"Unsupported chart type for PNG export: {t}")
