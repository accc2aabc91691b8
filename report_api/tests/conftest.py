import pytest

from report_api.models import FieldDescriptor, ReportDefinition


@pytest.fixture
def sales_rows():
    return [
        {"region": "N", "sales": 100, "channel": "web", "date": "2024-01-03"},
        {"region": "N", "sales": 150, "channel": "store", "date": "2024-01-10"},
        {"region": "S", "sales": 200, "channel": "web", "date": "2024-02-01"},
    ]


@pytest.fixture
def sales_fields():
    return [
        FieldDescriptor(name="region", label="Region", type="category"),
        FieldDescriptor(name="channel", label="Channel", type="category"),
        FieldDescriptor(name="sales", label="Sales", type="number", is_measure=True),
        FieldDescriptor(name="date", label="Date", type="date"),
    ]


@pytest.fixture
def report(sales_fields):
    return ReportDefinition.model_validate({
        "id": "r1",
        "title": "Sales",
        "surveyId": "s1",
        "fields": [f.model_dump(by_alias=True) for f in sales_fields],
        "widgets": {
            "w_bar": {"type": "column", "title": "Sales by region",
                      "config": {"xKey": "region", "yKey": "sales", "yAggregation": "sum"}},
            "w_slicer": {"type": "slicer_list", "config": {"xKey": "channel"}},
            "w_dates": {"type": "slicer_date", "config": {"xKey": "date"}},
            "w_kd": {"type": "key_driver", "config": {"targetMetric": "nps"}},
            "w_table": {"type": "table"},
            "w_odd": {"type": "sparkline"},
        },
        "filters": {"channel": None},
    })


class FakeDelegate:
    """Records every delegated request; raises for types listed in ``failing``."""

    def __init__(self, failing=()):
        self.calls = []
        self.failing = set(failing)

    def __call__(self, widget_type, request):
        from fastapi import HTTPException
        self.calls.append((widget_type, request))
        if widget_type in self.failing:
            raise HTTPException(status_code=502, detail=f"{widget_type} backend down")
        return {"type": widget_type, "echo": request}


@pytest.fixture
def delegate():
    return FakeDelegate()
