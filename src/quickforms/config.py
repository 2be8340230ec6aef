from __future__ import annotations

import os
import re
import secrets
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

FIELD_TYPES = ("text", "textarea", "radio", "checkbox", "number", "date")
CHOICE_TYPES = {"radio", "checkbox"}
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6
SESSION_COOKIE = "session_token"


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        self.storage_backend = os.getenv("STORAGE_BACKEND", "sqlite").lower()
        self.sqlite_path = Path(os.getenv("SQLITE_PATH", "./data/app.db"))
        self.database_url = os.getenv("DATABASE_URL") or None
        self.json_path = Path(os.getenv("JSON_PATH", "./data/jsonstore.json"))
        self.secret_key = os.getenv("SECRET_KEY") or secrets.token_urlsafe(32)
        self.secret_key_generated = not os.getenv("SECRET_KEY")
        self.session_ttl_minutes = _int_env("SESSION_TTL_MINUTES", 60 * 24 * 7)
        self.cookie_secure = os.getenv("COOKIE_SECURE", "").lower() in {"1", "true", "yes"}
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = _int_env("PORT", 8000)

    @property
    def sqlalchemy_url(self) -> str:
        return self.database_url or f"sqlite:///{self.sqlite_path}"


def ensure_dirs(settings: Settings) -> None:
    if settings.storage_backend == "json":
        settings.json_path.parent.mkdir(parents=True, exist_ok=True)
    elif not settings.database_url:
        settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
