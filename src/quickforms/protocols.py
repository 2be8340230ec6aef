from __future__ import annotations

from typing import Any, Protocol


class UserRepository(Protocol):
    def get_user(self, user_id: str) -> dict[str, Any] | None: ...

    def get_user_by_email(self, email: str) -> dict[str, Any] | None: ...

    def create_user(self, user: dict[str, Any]) -> None: ...


class FormRepository(Protocol):
    def list_forms(self, user_id: str) -> list[dict[str, Any]]: ...

    def get_form(self, form_id: str) -> dict[str, Any] | None: ...

    def create_form(self, form: dict[str, Any]) -> None: ...

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]: ...

    def delete_form(self, form_id: str) -> None: ...


class FieldRepository(Protocol):
    def get_field(self, field_id: str) -> dict[str, Any] | None: ...

    def create_field(self, field: dict[str, Any]) -> dict[str, Any]: ...

    def update_field(self, field_id: str, updates: dict[str, Any]) -> dict[str, Any]: ...

    def delete_field(self, field_id: str) -> None: ...


class ResponseRepository(Protocol):
    def create_response(
        self, response: dict[str, Any], answers: list[dict[str, Any]]
    ) -> dict[str, Any]: ...

    def list_responses(self, form_id: str) -> list[dict[str, Any]]: ...


class Storage(Protocol):
    users: UserRepository
    forms: FormRepository
    fields: FieldRepository
    responses: ResponseRepository

    def close(self) -> None: ...
