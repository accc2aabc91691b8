from report_api.services.fields import fields_from_definition


def test_fields_from_definition():
    definition = {
        "pages": [
            {"elements": [
                {"type": "rating", "name": "nps", "title": "How likely..."},
                {"type": "text", "name": "age", "inputType": "number"},
                {"type": "panel", "elements": [{"type": "dropdown", "name": "city", "title": "City"}]},
                {"type": "matrix", "name": "q", "title": "Service",
                 "rows": [{"value": "speed", "text": "Speed"}, "price"]},
                {"type": "html"},
            ]},
        ],
    }
    fields = fields_from_definition(definition)
    assert [(f.name, f.type, f.label) for f in fields] == [
        ("submission_date", "date", "Response Date"),
        ("nps", "number", "How likely..."),
        ("age", "number", "age"),
        ("city", "category", "City"),
        ("q.speed", "category", "Service - Speed"),
        ("q.price", "category", "Service - price"),
    ]


def test_no_definition_keeps_submission_date():
    assert [f.name for f in fields_from_definition(None)] == ["submission_date"]
