import pytest
from fastapi import HTTPException

from report_api.models import AnalyticView, ErrorView
from report_api.services import session as session_module
from report_api.services.session import GenerationGuard, ReportSession, SessionStore


@pytest.fixture
def session(report, sales_rows, sales_fields, delegate):
    return ReportSession("sid", report, sales_rows, sales_fields, delegate=delegate)


def test_initial_filters_drop_null_entries(session):
    assert session.filters == {}


def test_page_renders_every_widget_in_isolation(session, delegate):
    delegate.failing.add("key_driver")
    page = session.render_page()
    assert set(page.widgets) == {"w_bar", "w_slicer", "w_dates", "w_kd", "w_table", "w_odd"}
    assert page.widgets["w_bar"].kind == "chart"
    assert page.widgets["w_kd"].kind == "error"
    assert page.widgets["w_table"].kind == "analytic"
    assert page.widgets["w_odd"].kind == "unsupported"
    assert (page.row_count, page.filtered_count) == (3, 3)


def test_click_and_slicer_share_one_filter_state(session):
    assert session.click("w_bar", {"activeLabel": "N"})
    assert session.select("w_slicer", ["web"])
    assert session.filters == {"region": ["N"], "channel": ["web"]}
    page = session.render_page()
    assert page.filtered_count == 1
    assert [r.x_value for r in page.widgets["w_bar"].rows] == ["N"]
    session.click("w_bar", {"activeLabel": "N"})
    assert session.filters == {"channel": ["web"]}
    session.clear_filters()
    assert session.filters == {}


def test_date_range_becomes_raw_values(session):
    session.select_date_range("w_dates", "2024-01-01", "2024-01-31")
    assert session.filters == {"date": ["2024-01-03", "2024-01-10"]}
    with pytest.raises(HTTPException) as exc:
        session.select_date_range("w_slicer", "2024-01-01", None)
    assert exc.value.status_code == 400


def test_analytic_request_reused_until_selectors_change(session, delegate):
    session.render_page()
    session.set_filter("region", ["N"])
    session.render_page()
    kd_calls = [c for c in delegate.calls if c[0] == "key_driver"]
    table_calls = [c for c in delegate.calls if c[0] == "table"]
    assert len(kd_calls) == 1
    assert len(table_calls) == 2
    assert table_calls[-1][1]["filters"] == {"region": ["N"]}


def test_refresh_retries_a_failed_widget(session, delegate):
    delegate.failing.add("key_driver")
    assert isinstance(session.render_widget("w_kd"), ErrorView)
    assert isinstance(session.render_widget("w_kd"), ErrorView)
    assert len([c for c in delegate.calls if c[0] == "key_driver"]) == 1
    delegate.failing.clear()
    view = session.refresh("w_kd")
    assert isinstance(view, AnalyticView) and view.status == "ok"


def test_replace_widget_reparses_and_rerenders(session):
    view = session.replace_widget("w_odd", {"type": "pie", "config": {"xKey": "channel"}})
    assert view.kind == "chart"
    assert [r.x_value for r in view.rows] == ["web", "store"]
    with pytest.raises(HTTPException) as exc:
        session.replace_widget("w_odd", {"type": "forecast", "config": {"forecastPeriods": -1}})
    assert exc.value.status_code == 422


def test_unexpected_renderer_error_is_contained(session, monkeypatch):
    def boom(rows, config, fields=None):
        raise RuntimeError("kaboom")

    monkeypatch.setattr("report_api.services.dispatcher.aggregate", boom)
    page = session.render_page()
    assert page.widgets["w_bar"].kind == "error"
    assert page.widgets["w_bar"].message == "kaboom"
    assert page.widgets["w_slicer"].kind == "slicer"


def test_unknown_widget_is_404(session):
    with pytest.raises(HTTPException) as exc:
        session.render_widget("nope")
    assert exc.value.status_code == 404


def test_stale_result_is_dropped():
    guard = GenerationGuard()
    first = guard.begin("w")
    second = guard.begin("w")
    assert guard.commit("w", second, {"q": 2}, "new") == "new"
    assert guard.commit("w", first, {"q": 1}, "old") == "new"
    assert guard.cached("w", {"q": 2}) == "new"
    assert guard.cached("w", {"q": 1}) is None


def test_stale_result_before_any_commit_is_pending(session, delegate, monkeypatch):
    real_render = session_module.dispatcher.render_widget

    def racing_render(widget, ctx):
        # a newer request for the same widget starts while this one is in flight
        session._guard.begin(widget.id)
        return real_render(widget, ctx)

    monkeypatch.setattr(session_module.dispatcher, "render_widget", racing_render)
    view = session.render_widget("w_kd")
    assert isinstance(view, AnalyticView)
    assert view.status == "pending"


def test_store_open_get_close(report, sales_rows, sales_fields):
    store = SessionStore(loader=lambda report_id: (report, sales_rows, sales_fields))
    opened = store.open("r1")
    assert store.get(opened.id) is opened
    store.close(opened.id)
    with pytest.raises(HTTPException) as exc:
        store.get(opened.id)
    assert exc.value.status_code == 404


def test_interleaved_clicks_keep_both_values(session, monkeypatch):
    real_target = session_module.dispatcher.click_target
    nested = []

    def racing_target(widget, event):
        # another click lands between this click's resolve and its write
        if not nested:
            nested.append(True)
            session.click("w_bar", {"activeLabel": "S"})
        return real_target(widget, event)

    monkeypatch.setattr(session_module.dispatcher, "click_target", racing_target)
    assert session.click("w_bar", {"activeLabel": "N"})
    assert session.filters == {"region": ["S", "N"]}


def test_click_on_widget_without_dimension_changes_nothing(session):
    assert not session.click("w_odd", {"activeLabel": "N"})
    assert session.filters == {}


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_store_expires_idle_sessions(report, sales_rows, sales_fields):
    clock = FakeClock()
    store = SessionStore(loader=lambda report_id: (report, sales_rows, sales_fields),
                         ttl=60, max_sessions=None, clock=clock)
    idle = store.open("r1")
    active = store.open("r1")
    clock.now = 45
    store.get(active.id)
    clock.now = 90
    assert store.get(active.id) is active
    with pytest.raises(HTTPException) as exc:
        store.get(idle.id)
    assert exc.value.status_code == 404
    assert len(store) == 1


def test_store_drops_least_recently_used_past_cap(report, sales_rows, sales_fields):
    clock = FakeClock()
    store = SessionStore(loader=lambda report_id: (report, sales_rows, sales_fields),
                         ttl=None, max_sessions=2, clock=clock)
    first = store.open("r1")
    clock.now = 1
    second = store.open("r1")
    clock.now = 2
    store.get(first.id)
    clock.now = 3
    third = store.open("r1")
    assert len(store) == 2
    assert store.get(first.id) is first
    assert store.get(third.id) is third
    with pytest.raises(HTTPException):
        store.get(second.id)
