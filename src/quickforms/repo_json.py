from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from filelock import FileLock
from tinydb import Query, TinyDB

from quickforms.utils import now_utc, parse_dt, to_iso


def _iso_fields(record: dict[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    result = dict(record)
    for key in keys:
        value = result.get(key)
        if isinstance(value, datetime):
            result[key] = to_iso(value)
    return result


class JSONRepoBase:
    def __init__(self, path: Path, lock: FileLock) -> None:
        self._path = path
        self._lock = lock

    @contextmanager
    def _db(self) -> Iterable[TinyDB]:
        with self._lock:
            db = TinyDB(self._path)
            try:
                yield db
            finally:
                db.close()


class JSONUserRepo(JSONRepoBase):
    def get_user(self, user_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("users").get(Query().id == user_id)
        return self._from_record(item) if item else None

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("users").get(Query().email == email)
        return self._from_record(item) if item else None

    def create_user(self, user: dict[str, Any]) -> None:
        with self._db() as db:
            db.table("users").insert(_iso_fields(user, ["created_at"]))

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "name": record.get("name", ""),
            "email": record["email"],
            "password_hash": record.get("password_hash"),
            "created_at": parse_dt(record.get("created_at")),
        }


class JSONFormRepo(JSONRepoBase):
    def list_forms(self, user_id: str) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("forms").search(Query().user_id == user_id)
        forms = [self._from_record(item) for item in items]
        return sorted(forms, key=lambda x: (x["created_at"], x["id"]), reverse=True)

    def get_form(self, form_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("forms").get(Query().id == form_id)
            if not item:
                return None
            fields = db.table("fields").search(Query().form_id == form_id)
        form = self._from_record(item)
        form["fields"] = sorted(
            (JSONFieldRepo.from_record(field) for field in fields),
            key=lambda x: x["position"],
        )
        return form

    def create_form(self, form: dict[str, Any]) -> None:
        record = _iso_fields(form, ["created_at", "updated_at"])
        record.setdefault("created_at", to_iso(now_utc()))
        record.setdefault("updated_at", record["created_at"])
        with self._db() as db:
            db.table("forms").insert(record)

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        with self._db() as db:
            table = db.table("forms")
            if not table.get(Query().id == form_id):
                raise KeyError(form_id)
            table.update(_iso_fields(updates, ["updated_at"]), Query().id == form_id)
        form = self.get_form(form_id)
        if form is None:
            raise KeyError(form_id)
        return form

    def delete_form(self, form_id: str) -> None:
        with self._db() as db:
            db.table("responses").remove(Query().form_id == form_id)
            db.table("fields").remove(Query().form_id == form_id)
            db.table("forms").remove(Query().id == form_id)

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "title": record["title"],
            "description": record.get("description"),
            "user_id": record["user_id"],
            "created_at": parse_dt(record.get("created_at")),
            "updated_at": parse_dt(record.get("updated_at")),
        }


class JSONFieldRepo(JSONRepoBase):
    def get_field(self, field_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("fields").get(Query().id == field_id)
        return self.from_record(item) if item else None

    def create_field(self, field: dict[str, Any]) -> dict[str, Any]:
        with self._db() as db:
            table = db.table("fields")
            siblings = table.search(Query().form_id == field["form_id"])
            position = max((item.get("position", 0) for item in siblings), default=-1) + 1
            record = _iso_fields(field, ["created_at", "updated_at"])
            record["position"] = position
            record["options"] = list(field.get("options") or [])
            table.insert(record)
        return self.from_record(record)

    def update_field(self, field_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        with self._db() as db:
            table = db.table("fields")
            item = table.get(Query().id == field_id)
            if not item:
                raise KeyError(field_id)
            item.update(_iso_fields(updates, ["updated_at"]))
            table.update(item, Query().id == field_id)
        return self.from_record(item)

    def delete_field(self, field_id: str) -> None:
        def drop_answers(document: dict[str, Any]) -> None:
            document["answers"] = [
                answer for answer in document.get("answers") or [] if answer.get("field_id") != field_id
            ]

        with self._db() as db:
            db.table("responses").update(
                drop_answers, Query().answers.any(Query().field_id == field_id)
            )
            db.table("fields").remove(Query().id == field_id)

    @staticmethod
    def from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "form_id": record["form_id"],
            "type": record["type"],
            "label": record["label"],
            "required": bool(record.get("required")),
            "options": list(record.get("options") or []),
            "position": record.get("position", 0),
            "created_at": parse_dt(record.get("created_at")),
            "updated_at": parse_dt(record.get("updated_at")),
        }


class JSONResponseRepo(JSONRepoBase):
    def create_response(
        self, response: dict[str, Any], answers: list[dict[str, Any]]
    ) -> dict[str, Any]:
        record = {
            "id": response["id"],
            "form_id": response["form_id"],
            "submitted_at": to_iso(response["submitted_at"]),
            "answers": [
                {"id": answer["id"], "field_id": answer["field_id"], "value": answer["value"]}
                for answer in answers
            ],
        }
        # answers are embedded so the whole submission is a single insert
        with self._db() as db:
            db.table("responses").insert(record)
        return self._from_record(record)

    def list_responses(self, form_id: str) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("responses").search(Query().form_id == form_id)
        responses = [self._from_record(item) for item in items]
        return sorted(responses, key=lambda x: (x["submitted_at"], x["id"]), reverse=True)

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "form_id": record["form_id"],
            "submitted_at": parse_dt(record.get("submitted_at")),
            "answers": [
                {
                    "id": answer["id"],
                    "response_id": record["id"],
                    "field_id": answer.get("field_id"),
                    "value": answer.get("value", ""),
                }
                for answer in record.get("answers") or []
            ],
        }


class JSONStorage:
    def __init__(self, path: Path) -> None:
        self._lock = FileLock(f"{path}.lock")
        self.users = JSONUserRepo(path, self._lock)
        self.forms = JSONFormRepo(path, self._lock)
        self.fields = JSONFieldRepo(path, self._lock)
        self.responses = JSONResponseRepo(path, self._lock)

    def close(self) -> None:
        return None
