"""
Smoke script: calls /render/png on a running API for each chart type and
writes the PNGs to OUT_DIR. Not collected by pytest.
"""

import os
import random
from pathlib import Path

import requests

API_URL = os.getenv("API_URL", "http://localhost:8080")
OUT_DIR = Path(os.getenv("OUT_DIR", "./tmp_api_charts"))

CHART_TYPES = ["bar", "column", "stacked_bar", "line", "area", "pie", "donut", "kpi", "line_clustered_column"]


def sample_rows(n: int = 200):
    rng = random.Random(7)
    regions = ["North", "South", "East", "West"]
    channels = ["web", "store", "phone"]
    return [
        {
            "region": rng.choice(regions),
            "channel": rng.choice(channels),
            "nps": rng.randint(0, 10),
            "spend": round(rng.uniform(5, 500), 2),
            "submission_date": f"2024-{rng.randint(1, 12):02d}-{rng.randint(1, 28):02d}",
        }
        for _ in range(n)
    ]


def call_chart(rows, widget: dict, name: str):
    payload = {"rows": rows, "widget": widget}
    resp = requests.post(f"{API_URL}/render/png", json=payload, timeout=30)
    resp.raise_for_status()
    OUT_DIR.mkdir(parents=True, exist_ok=True)
    out = OUT_DIR / f"{name}.png"
    out.write_bytes(resp.content)
    print(f"OK {name} -> {out}")


def run():
    rows = sample_rows()
    for chart_type in CHART_TYPES:
        config = {"xKey": "region", "yKey": "spend", "yAggregation": "sum", "sortBy": "value_desc"}
        if chart_type in {"stacked_bar", "line_clustered_column"}:
            config.update({"legendKey": "channel", "sortBy": "ascending"})
        if chart_type.startswith("line_"):
            config.update({"secondaryYKey": "nps", "secondaryYAggregation": "avg"})
        widget = {"type": chart_type, "title": f"Spend by region ({chart_type})", "config": config}
        try:
            call_chart(rows, widget, f"spend_{chart_type}")
        except Exception as e:
            print(f"[WARN] {chart_type}: {e}")


if __name__ == "__main__":
    run()
