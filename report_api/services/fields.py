# report_api/services/fields.py
from typing import Any, Dict, List, Optional

from ..models import FieldDescriptor

SUBMISSION_DATE = FieldDescriptor(name="submission_date", type="date", label="Response Date")


def _question_fields(elements: List[Dict[str, Any]], out: List[FieldDescriptor]) -> None:
    for el in elements or []:
        if not isinstance(el, dict):
            continue
        if el.get("elements"):
            # panel
            _question_fields(el["elements"], out)
        elif el.get("type") == "matrix":
            title = el.get("title") or el.get("name")
            for row in el.get("rows") or []:
                row_name = row.get("value") if isinstance(row, dict) else row
                row_label = row.get("text", row_name) if isinstance(row, dict) else row
                out.append(FieldDescriptor(name=f"{el.get('name')}.{row_name}", type="category",
                                           label=f"{title} - {row_label}"))
        elif el.get("name"):
            numeric = el.get("type") == "rating" or (el.get("type") == "text" and el.get("inputType") == "number")
            out.append(FieldDescriptor(name=el["name"], type="number" if numeric else "category",
                                       label=el.get("title") or el["name"]))


def fields_from_definition(definition: Optional[Dict[str, Any]]) -> List[FieldDescriptor]:
    """Field list of a survey definition: response date, then every named question."""
    fields = [SUBMISSION_DATE]
    if not isinstance(definition, dict):
        return fields
    for page in definition.get("pages") or []:
        if isinstance(page, dict):
            _question_fields(page.get("elements") or [], fields)
    return fields
