from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from jsonschema import Draft7Validator

from quickforms.auth import current_user_id
from quickforms.config import FIELD_TYPES
from quickforms.errors import ValidationError
from quickforms.renderer import serialize_choices
from quickforms.stores import public_user
from quickforms.utils import to_iso

router = APIRouter(prefix="/api")

CREDENTIALS_SCHEMA = {
    "type": "object",
    "required": ["email", "password"],
    "properties": {
        "name": {"type": "string"},
        "email": {"type": "string"},
        "password": {"type": "string"},
    },
}

FORM_SCHEMA = {
    "type": "object",
    "required": ["title"],
    "properties": {
        "title": {"type": "string"},
        "description": {"type": ["string", "null"]},
    },
}

FIELD_SCHEMA = {
    "type": "object",
    "required": ["label"],
    "properties": {
        "type": {"enum": list(FIELD_TYPES)},
        "label": {"type": "string"},
        "required": {"type": "boolean"},
        "options": {"type": "array", "items": {"type": "string"}},
    },
}

SUBMISSION_SCHEMA = {
    "type": "object",
    "required": ["answers"],
    "properties": {
        "answers": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["fieldId", "value"],
                "properties": {
                    "fieldId": {"type": "string", "minLength": 1},
                    "value": {
                        "type": ["string", "number", "array"],
                        "items": {"type": "string"},
                    },
                },
            },
        }
    },
}


async def read_payload(request: Request, schema: dict[str, Any], message: str | None = None) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError(message or "Request body must be JSON.")
    errors = sorted(Draft7Validator(schema).iter_errors(payload), key=lambda err: list(err.path))
    if errors:
        raise ValidationError(message or errors[0].message)
    return payload


def field_output(field: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": field["id"],
        "formId": field["form_id"],
        "type": field["type"],
        "label": field["label"],
        "required": field["required"],
        "options": field["options"],
        "createdAt": to_iso(field["created_at"]),
        "updatedAt": to_iso(field["updated_at"]),
    }


def form_output(form: dict[str, Any]) -> dict[str, Any]:
    output = {
        "id": form["id"],
        "title": form["title"],
        "description": form.get("description"),
        "userId": form["user_id"],
        "createdAt": to_iso(form["created_at"]),
        "updatedAt": to_iso(form["updated_at"]),
    }
    if "fields" in form:
        output["fields"] = [field_output(field) for field in form["fields"]]
    return output


def response_output(response: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": response["id"],
        "formId": response["form_id"],
        "submittedAt": to_iso(response["submitted_at"]),
        "answers": [
            {
                "id": answer["id"],
                "responseId": answer["response_id"],
                "fieldId": answer["field_id"],
                "value": answer["value"],
            }
            for answer in response["answers"]
        ],
    }


def submitted_value(value: Any) -> str:
    if isinstance(value, list):
        return serialize_choices(value)
    return str(value)


@router.post("/auth/register", tags=["auth"])
async def api_register(request: Request) -> JSONResponse:
    payload = await read_payload(request, CREDENTIALS_SCHEMA)
    user = request.app.state.users.register(
        payload.get("name"), payload["email"], payload["password"]
    )
    auth = request.app.state.auth_provider
    token = auth.issue_token(user["id"])
    response = JSONResponse(
        {
            "success": True,
            "message": "Registration successful!",
            "token": token,
            "user": public_user(user),
        },
        status_code=201,
    )
    auth.set_session(response, token)
    return response


@router.post("/auth/login", tags=["auth"])
async def api_login(request: Request) -> JSONResponse:
    payload = await read_payload(request, CREDENTIALS_SCHEMA)
    user = request.app.state.users.authenticate(payload["email"], payload["password"])
    auth = request.app.state.auth_provider
    token = auth.issue_token(user["id"])
    response = JSONResponse({"success": True, "token": token, "user": public_user(user)})
    auth.set_session(response, token)
    return response


@router.post("/auth/logout", tags=["auth"])
async def api_logout(request: Request) -> JSONResponse:
    response = JSONResponse({"success": True})
    request.app.state.auth_provider.clear_session(response)
    return response


@router.get("/forms", tags=["api/forms"])
async def api_list_forms(request: Request, user_id: str = Depends(current_user_id)) -> JSONResponse:
    forms = request.app.state.forms.list_forms(user_id)
    return JSONResponse([form_output(form) for form in forms])


@router.post("/forms", tags=["api/forms"])
async def api_create_form(request: Request, user_id: str = Depends(current_user_id)) -> JSONResponse:
    payload = await read_payload(request, FORM_SCHEMA)
    form = request.app.state.forms.create(payload["title"], payload.get("description"), user_id)
    return JSONResponse(
        {
            "success": True,
            "message": "Form created successfully!",
            "formId": form["id"],
            "form": form_output(form),
        },
        status_code=201,
    )


@router.get("/forms/{form_id}", tags=["api/forms"])
async def api_get_form(
    request: Request, form_id: str, user_id: str = Depends(current_user_id)
) -> JSONResponse:
    form = request.app.state.forms.get_with_fields(form_id, user_id)
    return JSONResponse(form_output(form))


@router.put("/forms/{form_id}", tags=["api/forms"])
async def api_update_form(
    request: Request, form_id: str, user_id: str = Depends(current_user_id)
) -> JSONResponse:
    payload = await read_payload(request, FORM_SCHEMA)
    form = request.app.state.forms.update(
        form_id, user_id, payload["title"], payload.get("description")
    )
    return JSONResponse(
        {"success": True, "message": "Form updated successfully!", "form": form_output(form)}
    )


@router.delete("/forms/{form_id}", tags=["api/forms"])
async def api_delete_form(
    request: Request, form_id: str, user_id: str = Depends(current_user_id)
) -> JSONResponse:
    request.app.state.forms.delete(form_id, user_id)
    return JSONResponse({"success": True, "message": "Form deleted successfully!"})


@router.post("/forms/{form_id}/fields", tags=["api/forms"])
async def api_add_field(
    request: Request, form_id: str, user_id: str = Depends(current_user_id)
) -> JSONResponse:
    payload = await read_payload(request, {**FIELD_SCHEMA, "required": ["type", "label"]})
    field = request.app.state.fields.add(
        form_id,
        user_id,
        payload["type"],
        payload["label"],
        payload.get("required", False),
        payload.get("options") or [],
    )
    return JSONResponse(field_output(field), status_code=201)


@router.put("/fields/{field_id}", tags=["api/forms"])
async def api_update_field(
    request: Request, field_id: str, user_id: str = Depends(current_user_id)
) -> JSONResponse:
    payload = await read_payload(request, FIELD_SCHEMA)
    field = request.app.state.fields.update(
        field_id,
        user_id,
        payload["label"],
        payload.get("required", False),
        payload.get("options") or [],
    )
    return JSONResponse(field_output(field))


@router.delete("/fields/{field_id}", tags=["api/forms"])
async def api_delete_field(
    request: Request, field_id: str, user_id: str = Depends(current_user_id)
) -> JSONResponse:
    request.app.state.fields.delete(field_id, user_id)
    return JSONResponse({"success": True, "message": "Field deleted successfully!"})


@router.get("/forms/{form_id}/responses", tags=["api/responses"])
async def api_list_responses(
    request: Request, form_id: str, user_id: str = Depends(current_user_id)
) -> JSONResponse:
    form, responses = request.app.state.responses.list_for_owner(form_id, user_id)
    return JSONResponse(
        {
            "form": form_output(form),
            "responses": [response_output(response) for response in responses],
        }
    )


@router.get("/public/forms/{form_id}", tags=["api/responses"])
async def api_public_form(request: Request, form_id: str) -> JSONResponse:
    form = request.app.state.forms.get_public(form_id)
    output = form_output(form)
    output.pop("userId", None)
    return JSONResponse(output)


@router.post("/forms/{form_id}/submit", tags=["api/responses"])
async def api_submit_form(request: Request, form_id: str) -> JSONResponse:
    payload = await read_payload(request, SUBMISSION_SCHEMA, message="Invalid request data")
    answers = [
        {"field_id": item["fieldId"], "value": submitted_value(item["value"])}
        for item in payload["answers"]
    ]
    response = request.app.state.responses.submit(form_id, answers)
    return JSONResponse(
        {
            "success": True,
            "message": "Response submitted successfully!",
            "responseId": response["id"],
        }
    )
