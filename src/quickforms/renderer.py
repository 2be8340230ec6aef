from __future__ import annotations

import math
import re
from datetime import date
from typing import Any, Iterable

import orjson

from quickforms.utils import dumps_json, loads_json

REQUIRED_MESSAGE = "This field is required."
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

WIDGETS: dict[str, dict[str, Any]] = {
    "text": {"input_type": "text", "placeholder": "Your answer"},
    "textarea": {"input_type": "textarea", "placeholder": "Your detailed answer", "rows": 4},
    "radio": {"input_type": "radio"},
    "checkbox": {"input_type": "checkbox", "multiple": True},
    "number": {"input_type": "number", "placeholder": "Enter a number"},
    "date": {"input_type": "date"},
}


def widget_for(field: dict[str, Any]) -> dict[str, Any]:
    base = WIDGETS.get(field.get("type", ""), WIDGETS["text"])
    return {
        "input_type": base["input_type"],
        "multiple": base.get("multiple", False),
        "placeholder": base.get("placeholder", ""),
        "rows": base.get("rows"),
        "name": field["id"],
        "options": list(field.get("options") or []),
        "required": bool(field.get("required")),
    }


def serialize_choices(values: Iterable[Any]) -> str:
    return dumps_json([str(value) for value in values])


def parse_choices(value: str | None) -> list[str]:
    if not value:
        return []
    try:
        parsed = loads_json(value)
    except orjson.JSONDecodeError:
        return [value]
    if isinstance(parsed, list):
        return [str(item) for item in parsed]
    return [value]


def collect_answers(fields: list[dict[str, Any]], form_data: Any) -> list[dict[str, str]]:
    answers: list[dict[str, str]] = []
    for field in fields:
        if field["type"] == "checkbox":
            selected = [str(v) for v in form_data.getlist(field["id"]) if v not in (None, "")]
            value = serialize_choices(selected)
        else:
            raw = form_data.get(field["id"])
            value = str(raw) if raw is not None else ""
        answers.append({"field_id": field["id"], "value": value})
    return answers


def answer_values(answers: list[dict[str, Any]], fields: list[dict[str, Any]]) -> dict[str, Any]:
    """Answers keyed by field id in the shape the fill template expects."""
    types = {field["id"]: field["type"] for field in fields}
    values: dict[str, Any] = {}
    for answer in answers:
        if types.get(answer["field_id"]) == "checkbox":
            values[answer["field_id"]] = parse_choices(answer["value"])
        else:
            values[answer["field_id"]] = answer["value"]
    return values


def _is_number(value: str) -> bool:
    try:
        return math.isfinite(float(value))
    except ValueError:
        return False


def _is_date(value: str) -> bool:
    if not DATE_PATTERN.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def validate_answer(field: dict[str, Any], value: str | None) -> str | None:
    field_type = field["type"]
    options = field.get("options") or []
    if field_type == "checkbox":
        selected = parse_choices(value)
        if not selected:
            return REQUIRED_MESSAGE if field.get("required") else None
        if any(item not in options for item in selected):
            return "Please choose from the listed options."
        return None

    text = (value or "").strip()
    if not text:
        return REQUIRED_MESSAGE if field.get("required") else None
    if field_type == "number" and not _is_number(text):
        return "Please enter a valid number."
    if field_type == "date" and not _is_date(text):
        return "Please enter a valid date (YYYY-MM-DD)."
    if field_type == "radio" and text not in options:
        return "Please choose one of the listed options."
    return None


def validate_answers(
    fields: list[dict[str, Any]], answers: list[dict[str, Any]]
) -> dict[str, str]:
    by_field = {answer["field_id"]: answer["value"] for answer in answers}
    errors: dict[str, str] = {}
    for field in fields:
        message = validate_answer(field, by_field.get(field["id"]))
        if message:
            errors[field["id"]] = message
    return errors


def display_value(field: dict[str, Any], answer: dict[str, Any] | None) -> str:
    if answer is None:
        return "N/A"
    if field["type"] == "checkbox":
        value = ", ".join(parse_choices(answer["value"]))
    else:
        value = answer["value"] or ""
    return value or "No answer"


def response_rows(
    fields: list[dict[str, Any]], response: dict[str, Any]
) -> list[dict[str, str]]:
    by_field = {answer["field_id"]: answer for answer in response["answers"]}
    return [
        {"label": field["label"], "value": display_value(field, by_field.get(field["id"]))}
        for field in fields
    ]
