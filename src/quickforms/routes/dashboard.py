from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from quickforms.auth import current_user_id
from quickforms.config import FIELD_TYPES
from quickforms.errors import ValidationError
from quickforms.renderer import response_rows
from quickforms.stores import parse_options_text

router = APIRouter(prefix="/dashboard")


def render_editor(
    request: Request,
    form: dict[str, Any],
    errors: list[str] | None = None,
    status_code: int = 200,
) -> HTMLResponse:
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "form_edit.html",
        {
            "form": form,
            "fields": form.get("fields", []),
            "field_types": FIELD_TYPES,
            "share_url": str(request.url_for("fill_form", form_id=form["id"])),
            "errors": errors or [],
        },
        status_code=status_code,
    )


@router.get("", response_class=HTMLResponse, tags=["dashboard"])
async def dashboard_home(request: Request, user_id: str = Depends(current_user_id)) -> HTMLResponse:
    templates = request.app.state.templates
    user = request.app.state.users.get(user_id)
    return templates.TemplateResponse(request, "dashboard.html", {"user": user})


@router.get("/forms", response_class=HTMLResponse, tags=["dashboard"])
async def list_forms(request: Request, user_id: str = Depends(current_user_id)) -> HTMLResponse:
    templates = request.app.state.templates
    forms = request.app.state.forms.list_forms(user_id)
    return templates.TemplateResponse(request, "forms.html", {"forms": forms})


@router.get("/forms/new", response_class=HTMLResponse, tags=["dashboard"])
async def new_form(request: Request, _: str = Depends(current_user_id)) -> HTMLResponse:
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request, "form_create.html", {"form": {"title": "", "description": ""}, "errors": []}
    )


@router.post("/forms/new", response_class=HTMLResponse, tags=["dashboard"])
async def create_form(request: Request, user_id: str = Depends(current_user_id)) -> HTMLResponse:
    templates = request.app.state.templates
    form_data = await request.form()
    title = str(form_data.get("title", ""))
    description = str(form_data.get("description", ""))
    try:
        form = request.app.state.forms.create(title, description, user_id)
    except ValidationError as exc:
        return templates.TemplateResponse(
            request,
            "form_create.html",
            {"form": {"title": title, "description": description}, "errors": [exc.message]},
            status_code=400,
        )
    return RedirectResponse(f"/dashboard/forms/{form['id']}/edit", status_code=303)


@router.get("/forms/{form_id}/edit", response_class=HTMLResponse, tags=["dashboard"])
async def edit_form(
    request: Request, form_id: str, user_id: str = Depends(current_user_id)
) -> HTMLResponse:
    form = request.app.state.forms.get_with_fields(form_id, user_id)
    return render_editor(request, form)


@router.post("/forms/{form_id}/edit", response_class=HTMLResponse, tags=["dashboard"])
async def update_form(
    request: Request, form_id: str, user_id: str = Depends(current_user_id)
) -> HTMLResponse:
    forms = request.app.state.forms
    form_data = await request.form()
    title = str(form_data.get("title", ""))
    description = str(form_data.get("description", ""))
    try:
        forms.update(form_id, user_id, title, description)
    except ValidationError as exc:
        form = forms.get_with_fields(form_id, user_id)
        return render_editor(
            request,
            {**form, "title": title, "description": description},
            [exc.message],
            status_code=400,
        )
    return RedirectResponse(f"/dashboard/forms/{form_id}/edit", status_code=303)


@router.post("/forms/{form_id}/delete", tags=["dashboard"])
async def delete_form(
    request: Request, form_id: str, user_id: str = Depends(current_user_id)
) -> RedirectResponse:
    request.app.state.forms.delete(form_id, user_id)
    return RedirectResponse("/dashboard/forms", status_code=303)


@router.post("/forms/{form_id}/fields", response_class=HTMLResponse, tags=["dashboard"])
async def add_field(
    request: Request, form_id: str, user_id: str = Depends(current_user_id)
) -> HTMLResponse:
    form_data = await request.form()
    try:
        request.app.state.fields.add(
            form_id,
            user_id,
            form_data.get("type", ""),
            form_data.get("label", ""),
            bool(form_data.get("required")),
            parse_options_text(form_data.get("options", "")),
        )
    except ValidationError as exc:
        form = request.app.state.forms.get_with_fields(form_id, user_id)
        return render_editor(request, form, [exc.message], status_code=400)
    return RedirectResponse(f"/dashboard/forms/{form_id}/edit", status_code=303)


@router.post("/fields/{field_id}", response_class=HTMLResponse, tags=["dashboard"])
async def update_field(
    request: Request, field_id: str, user_id: str = Depends(current_user_id)
) -> HTMLResponse:
    fields = request.app.state.fields
    form_data = await request.form()
    try:
        field = fields.update(
            field_id,
            user_id,
            form_data.get("label", ""),
            bool(form_data.get("required")),
            parse_options_text(form_data.get("options", "")),
        )
    except ValidationError as exc:
        current = request.app.state.storage.fields.get_field(field_id)
        form = request.app.state.forms.get_with_fields(current["form_id"], user_id)
        return render_editor(request, form, [exc.message], status_code=400)
    return RedirectResponse(f"/dashboard/forms/{field['form_id']}/edit", status_code=303)


@router.post("/fields/{field_id}/delete", tags=["dashboard"])
async def delete_field(
    request: Request, field_id: str, user_id: str = Depends(current_user_id)
) -> RedirectResponse:
    field = request.app.state.fields.delete(field_id, user_id)
    return RedirectResponse(f"/dashboard/forms/{field['form_id']}/edit", status_code=303)


@router.get("/forms/{form_id}/responses", response_class=HTMLResponse, tags=["dashboard"])
async def list_responses(
    request: Request, form_id: str, user_id: str = Depends(current_user_id)
) -> HTMLResponse:
    templates = request.app.state.templates
    form, responses = request.app.state.responses.list_for_owner(form_id, user_id)
    rows = [
        {
            "id": response["id"],
            "submitted_at": response["submitted_at"],
            "answers": response_rows(form["fields"], response),
        }
        for response in responses
    ]
    return templates.TemplateResponse(
        request, "responses.html", {"form": form, "responses": rows}
    )
