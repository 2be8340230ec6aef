"""Ownership-checked operations on users, forms, fields and responses."""

from __future__ import annotations

import logging
from typing import Any, Iterable

import bcrypt

from quickforms.config import (
    CHOICE_TYPES,
    EMAIL_PATTERN,
    FIELD_TYPES,
    MIN_PASSWORD_LENGTH,
)
from quickforms.errors import NotFound, NotOwner, Unauthorized, ValidationError
from quickforms.protocols import Storage
from quickforms.utils import new_ulid, now_utc

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of the password
MAX_PASSWORD_BYTES = 72


def normalize_title(title: Any) -> str:
    value = str(title or "").strip()
    if not value:
        raise ValidationError("Form title is required.")
    return value


def normalize_description(description: Any) -> str | None:
    value = str(description or "").strip()
    return value or None


def normalize_options(options: Iterable[Any] | None) -> list[str]:
    result: list[str] = []
    for option in options or []:
        value = str(option).strip()
        if value and value not in result:
            result.append(value)
    return result


def parse_options_text(text: Any) -> list[str]:
    """Split the comma separated options box of the field editor."""
    return normalize_options(str(text or "").split(","))


def _field_values(field_type: str, label: Any, options: Iterable[Any] | None) -> tuple[str, list[str]]:
    clean_label = str(label or "").strip()
    if not clean_label:
        raise ValidationError("Field label cannot be empty.")
    clean_options = normalize_options(options)
    if field_type in CHOICE_TYPES:
        if not clean_options:
            raise ValidationError("Options are required for radio and checkbox fields.")
    else:
        clean_options = []
    return clean_label, clean_options


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def public_user(user: dict[str, Any]) -> dict[str, Any]:
    return {"id": user["id"], "name": user["name"], "email": user["email"]}


class UserStore:
    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def register(self, name: Any, email: Any, password: Any) -> dict[str, Any]:
        clean_name = str(name or "").strip()
        clean_email = str(email or "").strip().lower()
        raw_password = str(password or "")
        if not clean_name:
            raise ValidationError("Name is required.")
        if not EMAIL_PATTERN.match(clean_email):
            raise ValidationError("Invalid email address.")
        if len(raw_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
            )
        if len(raw_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError("Password is too long.")
        if self._storage.users.get_user_by_email(clean_email):
            raise ValidationError("User with this email already exists.")

        user = {
            "id": new_ulid(),
            "name": clean_name,
            "email": clean_email,
            "password_hash": hash_password(raw_password),
            "created_at": now_utc(),
        }
        self._storage.users.create_user(user)
        logger.info("Registered user %s", user["id"])
        return user

    def authenticate(self, email: Any, password: Any) -> dict[str, Any]:
        clean_email = str(email or "").strip().lower()
        user = self._storage.users.get_user_by_email(clean_email) if clean_email else None
        if (
            not user
            or not user.get("password_hash")
            or not verify_password(str(password or ""), user["password_hash"])
        ):
            logger.warning("Failed sign-in attempt for %s", clean_email or "<blank>")
            raise Unauthorized("Invalid email or password.")
        return user

    def get(self, user_id: str) -> dict[str, Any] | None:
        return self._storage.users.get_user(user_id)


class FormStore:
    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def create(self, title: Any, description: Any, owner_id: str) -> dict[str, Any]:
        clean_title = normalize_title(title)
        now = now_utc()
        form_id = new_ulid()
        self._storage.forms.create_form(
            {
                "id": form_id,
                "title": clean_title,
                "description": normalize_description(description),
                "user_id": owner_id,
                "created_at": now,
                "updated_at": now,
            }
        )
        logger.info("Form %s created by %s", form_id, owner_id)
        return self._storage.forms.get_form(form_id) or {}

    def update(
        self, form_id: str, owner_id: str, title: Any, description: Any
    ) -> dict[str, Any]:
        self.get_with_fields(form_id, owner_id)
        clean_title = normalize_title(title)
        return self._storage.forms.update_form(
            form_id,
            {
                "title": clean_title,
                "description": normalize_description(description),
                "updated_at": now_utc(),
            },
        )

    def delete(self, form_id: str, owner_id: str) -> None:
        self.get_with_fields(form_id, owner_id)
        self._storage.forms.delete_form(form_id)
        logger.info("Form %s deleted by %s", form_id, owner_id)

    def list_forms(self, owner_id: str) -> list[dict[str, Any]]:
        return self._storage.forms.list_forms(owner_id)

    def get_with_fields(self, form_id: str, owner_id: str) -> dict[str, Any]:
        form = self.get_public(form_id)
        if form["user_id"] != owner_id:
            raise NotOwner()
        return form

    def get_public(self, form_id: str) -> dict[str, Any]:
        form = self._storage.forms.get_form(form_id)
        if not form:
            raise NotFound("Form not found")
        return form


class FieldStore:
    def __init__(self, storage: Storage) -> None:
        self._storage = storage
        self._forms = FormStore(storage)

    def add(
        self,
        form_id: str,
        owner_id: str,
        field_type: Any,
        label: Any,
        required: Any,
        options: Iterable[Any] | None,
    ) -> dict[str, Any]:
        self._forms.get_with_fields(form_id, owner_id)
        clean_type = str(field_type or "").strip()
        if clean_type not in FIELD_TYPES:
            raise ValidationError(f"Unsupported field type: {clean_type or '<blank>'}")
        clean_label, clean_options = _field_values(clean_type, label, options)
        now = now_utc()
        return self._storage.fields.create_field(
            {
                "id": new_ulid(),
                "form_id": form_id,
                "type": clean_type,
                "label": clean_label,
                "required": bool(required),
                "options": clean_options,
                "created_at": now,
                "updated_at": now,
            }
        )

    def update(
        self,
        field_id: str,
        owner_id: str,
        label: Any,
        required: Any,
        options: Iterable[Any] | None,
    ) -> dict[str, Any]:
        field = self._owned_field(field_id, owner_id)
        clean_label, clean_options = _field_values(field["type"], label, options)
        return self._storage.fields.update_field(
            field_id,
            {
                "label": clean_label,
                "required": bool(required),
                "options": clean_options,
                "updated_at": now_utc(),
            },
        )

    def delete(self, field_id: str, owner_id: str) -> dict[str, Any]:
        field = self._owned_field(field_id, owner_id)
        self._storage.fields.delete_field(field_id)
        return field

    def _owned_field(self, field_id: str, owner_id: str) -> dict[str, Any]:
        field = self._storage.fields.get_field(field_id)
        if not field:
            raise NotFound("Field not found")
        form = self._storage.forms.get_form(field["form_id"])
        if not form or form["user_id"] != owner_id:
            raise NotOwner("Unauthorized: You do not own the associated form.")
        return field


class ResponseStore:
    def __init__(self, storage: Storage) -> None:
        self._storage = storage
        self._forms = FormStore(storage)

    def submit(self, form_id: str, answers: list[dict[str, Any]]) -> dict[str, Any]:
        form = self._forms.get_public(form_id)
        response = {
            "id": new_ulid(),
            "form_id": form["id"],
            "submitted_at": now_utc(),
        }
        rows = [
            {"id": new_ulid(), "field_id": str(answer["field_id"]), "value": str(answer["value"])}
            for answer in answers
        ]
        created = self._storage.responses.create_response(response, rows)
        logger.info("Response %s submitted to form %s (%d answers)", created["id"], form_id, len(rows))
        return created

    def list_for_owner(
        self, form_id: str, owner_id: str
    ) -> tuple[dict[str, Any], list[dict[str, Any]]]:
        form = self._forms.get_with_fields(form_id, owner_id)
        return form, self._storage.responses.list_responses(form_id)
