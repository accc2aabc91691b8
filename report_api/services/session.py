# report_api/services/session.py
"""Interactive report sessions.

A session owns one loaded report: its rows, field metadata, parsed widgets
and the active filter set. ``set_filter`` and ``toggle_filter`` are the only
writers of that filter set; charts, slicers and clicks all go through them.
"""
import logging
import threading
import time
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi import HTTPException
from pydantic import ValidationError

from ..config import MAX_SESSIONS, SESSION_TTL_SECONDS
from ..models import (
    AnalyticView, FieldDescriptor, FilterSet, ReportDefinition, ReportPage, Row,
)
from ..widgets import SlicerWidget, parse_report_widgets, parse_widget
from . import dispatcher
from .analytics_client import fetch_analytics
from .crossfilter import next_filters, toggle_values
from .datasets import load_report_data
from .slicers import filter_options

logger = logging.getLogger("report_api.session")

Loader = Callable[[str], Tuple[ReportDefinition, List[Row], List[FieldDescriptor]]]


class GenerationGuard:
    """Per-widget request tickets; only the newest ticket may publish a result.

    Results are kept with the request that produced them so an unchanged
    request can reuse the committed view without another delegate call.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._issued: Dict[str, int] = {}
        self._committed: Dict[str, Tuple[int, Optional[Dict[str, Any]], Any]] = {}

    def begin(self, widget_id: str) -> int:
        with self._lock:
            ticket = self._issued.get(widget_id, 0) + 1
            self._issued[widget_id] = ticket
            return ticket

    def commit(self, widget_id: str, ticket: int, request: Optional[Dict[str, Any]], view: Any) -> Any:
        """Store ``view`` if ``ticket`` is still current, else return the latest committed view (or None)."""
        with self._lock:
            current = self._issued.get(widget_id, 0)
            if ticket != current:
                logger.info("Dropping stale result for widget %s (ticket %d, current %d)", widget_id, ticket, current)
                prev = self._committed.get(widget_id)
                return prev[2] if prev else None
            self._committed[widget_id] = (ticket, request, view)
            return view

    def cached(self, widget_id: str, request: Optional[Dict[str, Any]]) -> Any:
        with self._lock:
            prev = self._committed.get(widget_id)
            if prev is None or prev[1] != request:
                return None
            return prev[2]

    def invalidate(self, widget_id: str) -> None:
        with self._lock:
            self._committed.pop(widget_id, None)


class ReportSession:
    def __init__(
        self,
        session_id: str,
        report: ReportDefinition,
        rows: List[Row],
        fields: List[FieldDescriptor],
        delegate: Optional[dispatcher.Delegate] = None,
    ):
        self.id = session_id
        self.report = report
        self.rows: List[Row] = list(rows or [])
        self.fields: List[FieldDescriptor] = list(fields or [])
        self.widgets: Dict[str, Any] = parse_report_widgets(report.widgets)
        self._filters: FilterSet = dict(report.filters)
        self._delegate = delegate
        self._lock = threading.Lock()
        self._guard = GenerationGuard()

    # ---------- filters ----------
    @property
    def filters(self) -> FilterSet:
        with self._lock:
            return {k: list(v) for k, v in self._filters.items()}

    def set_filter(self, dimension: str, values: List[str]) -> FilterSet:
        """Replace the allowed values of one dimension; an empty list removes it."""
        with self._lock:
            self._filters = next_filters(self._filters, dimension, [str(v) for v in values or []])
            snapshot = {k: list(v) for k, v in self._filters.items()}
        logger.info("Session %s filter %s -> %s", self.id, dimension, snapshot.get(dimension, []))
        return snapshot

    def toggle_filter(self, dimension: str, value: str) -> FilterSet:
        """Add or remove one value; the read and the write happen under one lock."""
        with self._lock:
            values = toggle_values(self._filters.get(dimension), value)
            self._filters = next_filters(self._filters, dimension, values)
            snapshot = {k: list(v) for k, v in self._filters.items()}
        logger.info("Session %s filter %s -> %s", self.id, dimension, snapshot.get(dimension, []))
        return snapshot

    def clear_filters(self) -> FilterSet:
        with self._lock:
            self._filters = {}
        logger.info("Session %s filters cleared", self.id)
        return {}

    def filter_options(self) -> Dict[str, List[str]]:
        return filter_options(self.rows, self.fields)

    def context(self) -> dispatcher.RenderContext:
        return dispatcher.RenderContext.build(
            self.rows,
            self.filters,
            fields=tuple(self.fields),
            survey_id=self.report.survey_id,
            delegate=self._delegate or fetch_analytics,
            on_filter_change=self.set_filter,
        )

    def filtered_rows(self) -> List[Row]:
        return list(self.context().filtered_rows)

    # ---------- widgets ----------
    def widget(self, widget_id: str):
        widget = self.widgets.get(widget_id)
        if widget is None:
            raise HTTPException(status_code=404, detail=f"Widget {widget_id} not found")
        return widget

    def _render_analytic(self, widget_id: str, widget, ctx: dispatcher.RenderContext, force: bool):
        request, _ = dispatcher.analytic_request(widget, ctx)
        if request is not None and not force:
            cached = self._guard.cached(widget_id, request)
            if cached is not None:
                return cached
        ticket = self._guard.begin(widget_id)
        view = dispatcher.render_widget(widget, ctx)
        committed = self._guard.commit(widget_id, ticket, request, view)
        if committed is None:
            return AnalyticView(widget_id=widget.id, widget_type=widget.type, title=widget.title,
                                status="pending", request=request)
        return committed

    def render_widget(self, widget_id: str, ctx: Optional[dispatcher.RenderContext] = None, force: bool = False):
        widget = self.widget(widget_id)
        ctx = ctx or self.context()
        try:
            if dispatcher.is_analytic(widget):
                return self._render_analytic(widget_id, widget, ctx, force)
            return dispatcher.render_widget(widget, ctx)
        except Exception as e:
            logger.exception("Widget %s failed to render", widget_id)
            return dispatcher.error_view(widget, str(e) or e.__class__.__name__)

    def render_page(self) -> ReportPage:
        ctx = self.context()
        views = {wid: self.render_widget(wid, ctx) for wid in list(self.widgets)}
        return ReportPage(
            session_id=self.id,
            report_id=self.report.id,
            title=self.report.title,
            filters=dict(ctx.filters),
            row_count=len(ctx.rows),
            filtered_count=len(ctx.filtered_rows),
            layout=self.report.layout,
            widgets=views,
        )

    def refresh(self, widget_id: str):
        """Manual retry: always re-issue the request, even when it is unchanged."""
        self.widget(widget_id)
        self._guard.invalidate(widget_id)
        return self.render_widget(widget_id, force=True)

    def replace_widget(self, widget_id: str, payload: Dict[str, Any]):
        try:
            widget = parse_widget(payload, widget_id)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
        with self._lock:
            self.widgets[widget_id] = widget
        self._guard.invalidate(widget_id)
        logger.info("Session %s widget %s replaced (%s)", self.id, widget_id, widget.type)
        return self.render_widget(widget_id)

    # ---------- interactions ----------
    def click(self, widget_id: str, event: Any) -> bool:
        target = dispatcher.click_target(self.widget(widget_id), event)
        if target is None:
            return False
        self.toggle_filter(*target)
        return True

    def _slicer(self, widget_id: str) -> SlicerWidget:
        widget = self.widget(widget_id)
        if not isinstance(widget, SlicerWidget):
            raise HTTPException(status_code=400, detail=f"Widget {widget_id} is not a slicer")
        return widget

    def select(self, widget_id: str, values: List[str]) -> bool:
        return dispatcher.select_values(self._slicer(widget_id), values, self.context())

    def select_date_range(self, widget_id: str, start: Optional[str], end: Optional[str]) -> bool:
        widget = self._slicer(widget_id)
        if widget.type != "slicer_date":
            raise HTTPException(status_code=400, detail=f"Widget {widget_id} is not a date slicer")
        return dispatcher.select_date_range(widget, start, end, self.context())


class SessionStore:
    """Open sessions by id; idle ones expire after ``ttl`` seconds and the
    least recently used are dropped past ``max_sessions``."""

    def __init__(
        self,
        loader: Optional[Loader] = None,
        ttl: Optional[float] = SESSION_TTL_SECONDS,
        max_sessions: Optional[int] = MAX_SESSIONS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self._ttl = ttl
        self._max = max_sessions
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, ReportSession] = {}
        self._last_used: Dict[str, float] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _evict(self, now: float) -> None:
        # caller holds self._lock
        if self._ttl is not None and self._ttl > 0:
            for sid, used in list(self._last_used.items()):
                if now - used > self._ttl:
                    self._sessions.pop(sid, None)
                    self._last_used.pop(sid, None)
                    logger.info("Session %s expired (idle %.0fs)", sid, now - used)
        if self._max is not None and self._max > 0:
            while len(self._sessions) > self._max:
                sid = min(self._last_used, key=self._last_used.get)
                self._sessions.pop(sid, None)
                self._last_used.pop(sid, None)
                logger.info("Session %s evicted (more than %d open)", sid, self._max)

    def open(self, report_id: str) -> ReportSession:
        loader = self._loader or load_report_data
        report, rows, fields = loader(report_id)
        if report.id is None:
            report = report.model_copy(update={"id": report_id})
        session = ReportSession(uuid.uuid4().hex, report, rows, fields)
        with self._lock:
            now = self._clock()
            self._sessions[session.id] = session
            self._last_used[session.id] = now
            self._evict(now)
        logger.info("Session %s opened for report %s (%d widgets)", session.id, report_id, len(session.widgets))
        return session

    def get(self, session_id: str) -> ReportSession:
        with self._lock:
            now = self._clock()
            self._evict(now)
            session = self._sessions.get(session_id)
            if session is not None:
                self._last_used[session_id] = now
        if session is None:
            raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
        return session

    def close(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
            self._last_used.pop(session_id, None)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
        logger.info("Session %s closed", session_id)


sessions = SessionStore()
