# report_api/routes/reports.py
from typing import Any, Dict

import pandas as pd
from fastapi import APIRouter, HTTPException, Response

from ..models import ChartView, ClickEvent, DateRange, FilterUpdate, ReportPage
from ..services.charts import render_png
from ..services.session import sessions
from ..widgets import ChartWidget

router = APIRouter()


@router.post("/reports/{report_id}/sessions", summary="Open a report session and render every widget")
def open_session(report_id: str) -> ReportPage:
    return sessions.open(report_id).render_page()


@router.get("/sessions/{session_id}", summary="Render every widget under the active filters")
def get_page(session_id: str) -> ReportPage:
    return sessions.get(session_id).render_page()


@router.delete("/sessions/{session_id}", status_code=204, response_class=Response)
def close_session(session_id: str):
    sessions.close(session_id)
    return Response(status_code=204)


# ---------- filters ----------
@router.post("/sessions/{session_id}/widgets/{widget_id}/click", summary="Cross-filter from a chart click")
def click_widget(session_id: str, widget_id: str, event: ClickEvent) -> ReportPage:
    session = sessions.get(session_id)
    session.click(widget_id, event)
    return session.render_page()


@router.put("/sessions/{session_id}/filters/{dimension}", summary="Replace the allowed values of one dimension")
def put_filter(session_id: str, dimension: str, body: FilterUpdate) -> ReportPage:
    session = sessions.get(session_id)
    session.set_filter(dimension, body.values)
    return session.render_page()


@router.post("/sessions/{session_id}/widgets/{widget_id}/select", summary="Slicer write")
def select_values(session_id: str, widget_id: str, body: FilterUpdate) -> ReportPage:
    session = sessions.get(session_id)
    session.select(widget_id, body.values)
    return session.render_page()


@router.post("/sessions/{session_id}/widgets/{widget_id}/date-range", summary="Date slicer write")
def put_date_range(session_id: str, widget_id: str, body: DateRange) -> ReportPage:
    session = sessions.get(session_id)
    session.select_date_range(widget_id, body.start, body.end)
    return session.render_page()


@router.delete("/sessions/{session_id}/filters", summary="Clear every filter")
def clear_filters(session_id: str) -> ReportPage:
    session = sessions.get(session_id)
    session.clear_filters()
    return session.render_page()


@router.get("/sessions/{session_id}/filters/options", summary="Filter pane values per field")
def filter_options(session_id: str) -> Dict[str, Any]:
    return sessions.get(session_id).filter_options()


# ---------- widgets ----------
@router.put("/sessions/{session_id}/widgets/{widget_id}", summary="Replace one widget's configuration")
def replace_widget(session_id: str, widget_id: str, payload: Dict[str, Any]):
    return sessions.get(session_id).replace_widget(widget_id, payload)


@router.post("/sessions/{session_id}/widgets/{widget_id}/refresh", summary="Re-run one widget")
def refresh_widget(session_id: str, widget_id: str):
    return sessions.get(session_id).refresh(widget_id)


@router.get("/sessions/{session_id}/widgets/{widget_id}/png", summary="PNG preview of a chart widget")
def widget_png(session_id: str, widget_id: str):
    session = sessions.get(session_id)
    view = session.render_widget(widget_id)
    if not isinstance(view, ChartView):
        raise HTTPException(status_code=400, detail=f"Widget {widget_id} has no chart to export ({view.kind})")
    widget = session.widget(widget_id)
    png = render_png(view, widget.config if isinstance(widget, ChartWidget) else None)
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="{widget_id}.png"'}
    )


@router.get("/sessions/{session_id}/csv", summary="Export the filtered rows", response_class=Response)
def export_csv(session_id: str):
    rows = sessions.get(session_id).filtered_rows()
    if not rows:
        raise HTTPException(status_code=404, detail="0 rows")
    csv = pd.DataFrame(rows).to_csv(index=False).encode("utf-8")
    return Response(
        content=csv,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="export.csv"'}
    )
