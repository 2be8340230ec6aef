from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator
from urllib.parse import urlencode

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from quickforms.auth import get_auth_provider
from quickforms.config import BASE_DIR, Settings
from quickforms.errors import FormsError, Unauthorized
from quickforms.renderer import display_value, widget_for
from quickforms.routes.api import router as api_router
from quickforms.routes.auth import router as auth_router
from quickforms.routes.dashboard import router as dashboard_router
from quickforms.routes.public import router as public_router
from quickforms.storage import init_storage
from quickforms.stores import FieldStore, FormStore, ResponseStore, UserStore
from quickforms.utils import ensure_aware

logger = logging.getLogger(__name__)


def format_dt(value: Any, fmt: str = "%b %d, %Y %H:%M") -> str:
    if isinstance(value, datetime):
        return ensure_aware(value).astimezone().strftime(fmt)
    return str(value or "")


def is_api_request(request: Request) -> bool:
    return request.url.path.startswith("/api/")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    if settings.secret_key_generated:
        logger.warning(
            "SECRET_KEY is not set; using a random key, sessions will not survive a restart"
        )
    storage = init_storage(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("quickforms started (%s storage)", settings.storage_backend)
        try:
            yield
        finally:
            storage.close()
            logger.info("Storage closed")

    app = FastAPI(
        title="quickforms",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "auth", "description": "Sign-in and registration"},
            {"name": "dashboard", "description": "Form owner pages (HTML)"},
            {"name": "public", "description": "Public fill pages (HTML)"},
            {"name": "api/forms", "description": "REST API: forms and fields"},
            {"name": "api/responses", "description": "REST API: responses"},
            {"name": "system", "description": "System"},
        ],
    )

    app.state.settings = settings
    app.state.storage = storage
    app.state.auth_provider = get_auth_provider(settings, storage.users)
    app.state.users = UserStore(storage)
    app.state.forms = FormStore(storage)
    app.state.fields = FieldStore(storage)
    app.state.responses = ResponseStore(storage)

    templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
    templates.env.globals["widget_for"] = widget_for
    templates.env.globals["display_value"] = display_value
    templates.env.globals["format_dt"] = format_dt
    app.state.templates = templates

    @app.exception_handler(FormsError)
    async def forms_error_handler(request: Request, exc: FormsError) -> Response:
        if is_api_request(request):
            return JSONResponse(
                {"success": False, "message": exc.message}, status_code=exc.status_code
            )
        if isinstance(exc, Unauthorized):
            next_path = request.url.path if request.method == "GET" else "/dashboard/forms"
            query = urlencode({"next": next_path})
            return RedirectResponse(f"/login?{query}", status_code=303)
        return templates.TemplateResponse(
            request,
            "error.html",
            {"message": exc.message},
            status_code=exc.status_code,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        if is_api_request(request):
            return JSONResponse(
                {"success": False, "message": "Internal server error"}, status_code=500
            )
        return templates.TemplateResponse(
            request,
            "error.html",
            {"message": "Something went wrong. Please try again."},
            status_code=500,
        )

    app.include_router(auth_router)
    app.include_router(dashboard_router)
    app.include_router(public_router)
    app.include_router(api_router)

    return app
