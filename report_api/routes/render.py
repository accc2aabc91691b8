# report_api/routes/render.py
# Stateless rendering: one widget over an inline dataset, no session.
import base64

import pandas as pd
from fastapi import APIRouter, HTTPException, Response
from pydantic import ValidationError

from ..config import DRY_RUN_ROWS
from ..models import ChartView, RenderRequest
from ..services.analytics_client import fetch_analytics
from ..services.charts import render_png
from ..services.dispatcher import RenderContext, render_widget
from ..widgets import ChartWidget, parse_widget

router = APIRouter()


def _render(req: RenderRequest):
    try:
        widget = parse_widget(req.widget)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    ctx = RenderContext.build(req.rows, req.filters, fields=tuple(req.fields),
                              survey_id=req.survey_id, delegate=fetch_analytics)
    return widget, render_widget(widget, ctx)


def _chart_png(req: RenderRequest) -> bytes:
    widget, view = _render(req)
    if not isinstance(view, ChartView):
        raise HTTPException(status_code=400 if view.kind != "empty" else 404,
                            detail=getattr(view, "message", None) or f"Nothing to draw ({view.kind})")
    return render_png(view, widget.config if isinstance(widget, ChartWidget) else None)


@router.post("/render", summary="Render one widget to its JSON view")
def render_view(req: RenderRequest):
    return _render(req)[1]


@router.post("/render/png", summary="Render one chart widget to PNG")
def render_chart_png(req: RenderRequest):
    png = _chart_png(req)
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": 'inline; filename="chart.png"'}
    )


@router.post("/render/base64", summary="PNG encoded as base64")
def render_chart_base64(req: RenderRequest):
    png = _chart_png(req)
    b64 = base64.b64encode(png).decode("ascii")
    return {"content_type": "image/png", "filename": "chart.png", "base64": b64}


@router.post("/dry-run", summary="Preview of the filtered rows (limited)")
def dry_run(req: RenderRequest):
    ctx = RenderContext.build(req.rows, req.filters)
    rows = list(ctx.filtered_rows)
    df = pd.DataFrame(rows)
    return {"rows": rows[:DRY_RUN_ROWS], "columns": list(df.columns),
            "count": len(ctx.rows), "filteredCount": len(df)}
