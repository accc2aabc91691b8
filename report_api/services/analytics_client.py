# report_api/services/analytics_client.py
# One backend endpoint per analytic widget type. Payloads are returned as-is;
# every failure is raised as HTTPException(502) so the caller can scope it to
# the widget that asked.
from __future__ import annotations

import logging
from typing import Any, Dict

import requests
from fastapi import HTTPException

from ..config import ANALYTICS_API_URL, ANALYTICS_TIMEOUT, API_TOKEN

logger = logging.getLogger("report_api.analytics")

ENDPOINTS: Dict[str, tuple] = {
    "key_driver": ("POST", "/api/analytics/key-drivers"),
    "word_cloud": ("POST", "/api/analytics/text-analytics"),
    "stat_sig":   ("POST", "/api/analytics/nps-significance"),
    "pivot":      ("POST", "/api/analytics/cross-tab"),
    "anomaly":    ("POST", "/api/analytics/anomalies"),
    "table":      ("POST", "/api/analytics/query-data"),
    "cohort":     ("GET",  "/api/analytics/cohorts"),
    "forecast":   ("GET",  "/api/analytics/forecast"),
}


def auth_headers() -> Dict[str, str]:
    headers = {"Accept": "application/json"}
    if API_TOKEN:
        headers["Authorization"] = f"Bearer {API_TOKEN}"
    return headers


def _error_detail(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Analytics API error {resp.status_code}: {resp.text[:200]}"


def fetch_analytics(widget_type: str, request: Dict[str, Any]) -> Any:
    if widget_type not in ENDPOINTS:
        raise HTTPException(status_code=400, detail=f"No analytics endpoint for widget type: {widget_type}")
    method, path = ENDPOINTS[widget_type]
    url = f"{ANALYTICS_API_URL}{path}"
    try:
        if method == "GET":
            resp = requests.get(url, params=request, headers=auth_headers(), timeout=ANALYTICS_TIMEOUT)
        else:
            resp = requests.post(url, json=request, headers=auth_headers(), timeout=ANALYTICS_TIMEOUT)
    except requests.RequestException as e:
        raise HTTPException(status_code=502, detail=f"Analytics service unreachable: {e}")
    if resp.status_code >= 400:
        raise HTTPException(status_code=502, detail=_error_detail(resp))
    try:
        data = resp.json()
    except ValueError:
        raise HTTPException(status_code=502, detail="Invalid analytics response (JSON parse error).")
    if isinstance(data, dict) and data.get("error"):
        raise HTTPException(status_code=502, detail=str(data["error"]))
    logger.debug("%s %s ok", method, path)
    return data
