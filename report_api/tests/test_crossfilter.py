from report_api.models import ClickEvent
from report_api.services.crossfilter import handle_click, next_filters, resolve_click, toggle_values
from report_api.services.filtering import apply_filters


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, dimension, values):
        self.calls.append((dimension, values))


def test_click_toggles_value_in_and_out():
    rec = Recorder()
    event = {"activePayload": [{"payload": {"xValue": "South", "value": 3}}]}
    assert handle_click({"xKey": "region"}, {}, event, rec)
    assert rec.calls == [("region", ["South"])]

    filters = next_filters({}, *rec.calls[-1])
    assert handle_click({"xKey": "region"}, filters, event, rec)
    assert rec.calls[-1] == ("region", [])
    assert next_filters(filters, *rec.calls[-1]) == {}


def test_multi_select_appends():
    assert toggle_values(["North"], "South") == ["North", "South"]
    assert toggle_values(["North", "South"], "North") == ["South"]
    assert toggle_values(None, "x") == ["x"]


def test_legend_click_wins_when_legend_key_configured():
    cfg = {"xKey": "region", "legendKey": "channel"}
    event = {"dataKey": "web", "activePayload": [{"payload": {"xValue": "N"}}]}
    assert resolve_click(cfg, event) == ("channel", "web")
    assert resolve_click({"xKey": "region"}, event) == ("region", "N")


def test_active_label_and_direct_mark():
    assert resolve_click({"xKey": "region"}, {"activeLabel": "S"}) == ("region", "S")
    assert resolve_click({"xKey": "region"}, {"name": "Pie slice", "value": 4}) == ("region", "Pie slice")
    assert resolve_click({"xKey": "region"}, {"region": "E"}) == ("region", "E")
    assert resolve_click({"xKey": "score"}, ClickEvent(name=7)) == ("score", "7")


def test_noops_do_not_call_back():
    rec = Recorder()
    assert not handle_click({"xKey": "region"}, {}, {"name": "S"}, None)
    assert not handle_click({}, {}, {"name": "S"}, rec)
    assert not handle_click({"xKey": "region"}, {}, {}, rec)
    assert not handle_click({"xKey": "region"}, {}, {"activePayload": [{"payload": {}}]}, rec)
    assert not handle_click({"legendKey": "ch"}, {}, {"name": "S"}, rec)
    assert not handle_click({"xKey": "region"}, {}, "not an event", rec)
    assert rec.calls == []


def test_next_filters_replaces_without_mutating():
    current = {"a": ["1"], "b": ["2"], "c": []}
    updated = next_filters(current, "a", ["1", "3"])
    assert updated == {"a": ["1", "3"], "b": ["2"]}
    assert current == {"a": ["1"], "b": ["2"], "c": []}


def test_numeric_and_boolean_clicks_match_their_rows():
    rows = [{"score": 7.0, "flag": True}, {"score": 8.5, "flag": False}]
    rec = Recorder()

    assert handle_click({"xKey": "score"}, {}, {"score": 7.0}, rec)
    assert rec.calls[-1] == ("score", ["7"])
    assert apply_filters(rows, next_filters({}, *rec.calls[-1])) == [rows[0]]

    assert handle_click({"xKey": "flag"}, {}, {"activeLabel": False}, rec)
    assert rec.calls[-1] == ("flag", ["false"])
    assert apply_filters(rows, next_filters({}, *rec.calls[-1])) == [rows[1]]
