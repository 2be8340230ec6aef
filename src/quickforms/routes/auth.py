from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from quickforms.errors import Unauthorized, ValidationError

router = APIRouter()


def resolve_redirect_target(next_path: Any, default: str = "/dashboard/forms") -> str:
    candidate = str(next_path or "").strip()
    if not candidate:
        return default
    if not candidate.startswith("/") or candidate.startswith("//"):
        return default
    parsed = urlsplit(candidate)
    if parsed.scheme or parsed.netloc:
        return default
    if not parsed.path.startswith("/dashboard"):
        return default
    if parsed.query:
        return f"{parsed.path}?{parsed.query}"
    return parsed.path


def signed_in_redirect(request: Request, user: dict[str, Any], next_path: Any) -> RedirectResponse:
    auth = request.app.state.auth_provider
    response = RedirectResponse(resolve_redirect_target(next_path), status_code=303)
    auth.set_session(response, auth.issue_token(user["id"]))
    return response


@router.get("/login", response_class=HTMLResponse, tags=["auth"])
async def login_page(request: Request) -> HTMLResponse:
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "login.html",
        {"email": "", "next": request.query_params.get("next", ""), "errors": []},
    )


@router.post("/login", response_class=HTMLResponse, tags=["auth"])
async def login(request: Request) -> HTMLResponse:
    templates = request.app.state.templates
    form_data = await request.form()
    email = str(form_data.get("email", "")).strip()
    next_path = str(form_data.get("next", ""))
    try:
        user = request.app.state.users.authenticate(email, form_data.get("password", ""))
    except Unauthorized as exc:
        return templates.TemplateResponse(
            request,
            "login.html",
            {"email": email, "next": next_path, "errors": [exc.message]},
            status_code=401,
        )
    return signed_in_redirect(request, user, next_path)


@router.get("/register", response_class=HTMLResponse, tags=["auth"])
async def register_page(request: Request) -> HTMLResponse:
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request, "register.html", {"name": "", "email": "", "errors": []}
    )


@router.post("/register", response_class=HTMLResponse, tags=["auth"])
async def register(request: Request) -> HTMLResponse:
    templates = request.app.state.templates
    form_data = await request.form()
    name = str(form_data.get("name", "")).strip()
    email = str(form_data.get("email", "")).strip()
    try:
        user = request.app.state.users.register(name, email, form_data.get("password", ""))
    except ValidationError as exc:
        return templates.TemplateResponse(
            request,
            "register.html",
            {"name": name, "email": email, "errors": [exc.message]},
            status_code=400,
        )
    return signed_in_redirect(request, user, "/dashboard")


@router.post("/logout", tags=["auth"])
async def logout(request: Request) -> RedirectResponse:
    response = RedirectResponse("/login", status_code=303)
    request.app.state.auth_provider.clear_session(response)
    return response
