from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from quickforms.renderer import answer_values, collect_answers, validate_answers

router = APIRouter()


@router.get("/", tags=["public"])
async def home() -> RedirectResponse:
    return RedirectResponse("/dashboard")


@router.get("/forms/{form_id}/fill", response_class=HTMLResponse, tags=["public"], name="fill_form")
async def fill_form(request: Request, form_id: str) -> HTMLResponse:
    templates = request.app.state.templates
    form = request.app.state.forms.get_public(form_id)
    return templates.TemplateResponse(
        request,
        "form_fill.html",
        {"form": form, "fields": form["fields"], "values": {}, "field_errors": {}, "errors": []},
    )


@router.post("/forms/{form_id}/fill", response_class=HTMLResponse, tags=["public"])
async def submit_form(request: Request, form_id: str) -> HTMLResponse:
    templates = request.app.state.templates
    form = request.app.state.forms.get_public(form_id)
    fields = form["fields"]
    form_data = await request.form()
    answers = collect_answers(fields, form_data)

    field_errors = validate_answers(fields, answers)
    if field_errors:
        return templates.TemplateResponse(
            request,
            "form_fill.html",
            {
                "form": form,
                "fields": fields,
                "values": answer_values(answers, fields),
                "field_errors": field_errors,
                "errors": ["Please correct the highlighted fields."],
            },
            status_code=400,
        )

    request.app.state.responses.submit(form["id"], answers)
    return templates.TemplateResponse(request, "submission_done.html", {"form": form})


@router.get("/healthz", tags=["system"])
async def healthz() -> dict[str, str]:
    return {"status": "ok"}
