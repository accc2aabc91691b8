from report_api.services.filtering import active_dimensions, apply_filters


ROWS = [
    {"region": "N", "channel": "web", "score": 9},
    {"region": "N", "channel": "store", "score": 7.0},
    {"region": "S", "channel": "web", "score": None},
    {"region": "E", "score": 3},
]


def test_empty_selection_imposes_no_filter():
    assert apply_filters(ROWS, {"region": []}) == ROWS
    assert apply_filters(ROWS, {}) == ROWS
    assert active_dimensions({"region": [], "channel": ["web"]}) == {"channel": {"web"}}


def test_or_within_and_across_dimensions():
    out = apply_filters(ROWS, {"region": ["N", "S"], "channel": ["web"]})
    assert out == [ROWS[0], ROWS[2]]


def test_commutative():
    a_then_b = apply_filters(apply_filters(ROWS, {"region": ["N"]}), {"channel": ["store"]})
    b_then_a = apply_filters(apply_filters(ROWS, {"channel": ["store"]}), {"region": ["N"]})
    assert a_then_b == b_then_a == [ROWS[1]]


def test_values_are_string_coerced():
    assert apply_filters(ROWS, {"score": ["7"]}) == [ROWS[1]]
    assert apply_filters(ROWS, {"score": ["9"]}) == [ROWS[0]]


def test_missing_value_matches_na():
    assert apply_filters(ROWS, {"channel": ["N/A"]}) == [ROWS[3]]


def test_returns_original_rows_untouched():
    out = apply_filters(ROWS, {"region": ["E"]})
    assert out[0] is ROWS[3]
    assert ROWS[3] == {"region": "E", "score": 3}
