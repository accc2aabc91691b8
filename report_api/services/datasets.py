# report_api/services/datasets.py
# Report/dataset provider. Loaded once per session; any failure blocks the
# whole report (no automatic retry).
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests
from fastapi import HTTPException

from ..config import PROVIDER_TIMEOUT, REPORTS_API_URL
from ..models import FieldDescriptor, ReportDefinition, Row
from .analytics_client import auth_headers
from .fields import fields_from_definition

logger = logging.getLogger("report_api.datasets")


def _get_json(path: str, what: str) -> Any:
    url = f"{REPORTS_API_URL}{path}"
    try:
        resp = requests.get(url, headers=auth_headers(), timeout=PROVIDER_TIMEOUT)
    except requests.RequestException as e:
        logger.error("Loading %s failed: %s", what, e)
        raise HTTPException(status_code=502, detail=f"Failed to load {what}: {e}")
    if resp.status_code == 404:
        raise HTTPException(status_code=404, detail=f"{what.capitalize()} not found")
    if resp.status_code >= 400:
        logger.error("Loading %s failed: HTTP %s", what, resp.status_code)
        raise HTTPException(status_code=502, detail=f"Failed to load {what}: HTTP {resp.status_code}")
    try:
        return resp.json()
    except ValueError:
        raise HTTPException(status_code=502, detail=f"Failed to load {what}: invalid JSON")


def _flatten_submission(item: Dict[str, Any]) -> Row:
    """Submissions may wrap answers in ``data``; the response date rides along."""
    if isinstance(item.get("data"), dict):
        row = dict(item["data"])
        row.setdefault("submission_date", item.get("created_at") or item.get("createdAt"))
        return row
    return dict(item)


def load_report(report_id: str) -> ReportDefinition:
    data = _get_json(f"/api/reports/{report_id}", "report")
    if not isinstance(data, dict):
        raise HTTPException(status_code=502, detail="Failed to load report: unexpected payload")
    if not data.get("surveyId") and data.get("form_id"):
        data["surveyId"] = data["form_id"]
    return ReportDefinition.model_validate(data)


def load_rows(survey_id: str) -> List[Row]:
    data = _get_json(f"/api/forms/{survey_id}/submissions", "submissions")
    if isinstance(data, dict):
        data = data.get("data") or []
    if not isinstance(data, list):
        raise HTTPException(status_code=502, detail="Failed to load submissions: unexpected payload")
    return [_flatten_submission(item) for item in data if isinstance(item, dict)]


def load_form_fields(survey_id: str) -> List[FieldDescriptor]:
    form = _get_json(f"/api/forms/{survey_id}", "form")
    definition = form.get("definition") if isinstance(form, dict) else None
    return fields_from_definition(definition)


def load_report_data(report_id: str) -> Tuple[ReportDefinition, List[Row], List[FieldDescriptor]]:
    report = load_report(report_id)
    rows: List[Row] = []
    fields: List[FieldDescriptor] = list(report.fields)
    if report.survey_id:
        rows = load_rows(report.survey_id)
        if not fields:
            fields = load_form_fields(report.survey_id)
    logger.info("Report %s loaded: %d rows, %d fields", report_id, len(rows), len(fields))
    return report, rows, fields
