from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.orm import selectinload, sessionmaker

from quickforms.models import (
    AnswerModel,
    Base,
    FieldModel,
    FormModel,
    ResponseModel,
    UserModel,
)
from quickforms.utils import dumps_json, ensure_aware, loads_json


def _aware(value: Any) -> Any:
    return ensure_aware(value) if value is not None else None


def field_to_dict(row: FieldModel) -> dict[str, Any]:
    return {
        "id": row.id,
        "form_id": row.form_id,
        "type": row.type,
        "label": row.label,
        "required": bool(row.required),
        "options": loads_json(row.options) or [],
        "position": row.position or 0,
        "created_at": _aware(row.created_at),
        "updated_at": _aware(row.updated_at),
    }


class SQLiteUserRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def get_user(self, user_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(UserModel, user_id)
            return self._to_dict(row) if row else None

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.query(UserModel).filter(UserModel.email == email).first()
            return self._to_dict(row) if row else None

    def create_user(self, user: dict[str, Any]) -> None:
        with self._Session() as session:
            session.add(
                UserModel(
                    id=user["id"],
                    name=user["name"],
                    email=user["email"],
                    password_hash=user.get("password_hash"),
                    created_at=user["created_at"],
                )
            )
            session.commit()

    @staticmethod
    def _to_dict(row: UserModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "email": row.email,
            "password_hash": row.password_hash,
            "created_at": _aware(row.created_at),
        }


class SQLiteFormRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def list_forms(self, user_id: str) -> list[dict[str, Any]]:
        with self._Session() as session:
            rows = (
                session.query(FormModel)
                .filter(FormModel.user_id == user_id)
                .order_by(FormModel.created_at.desc(), FormModel.id.desc())
                .all()
            )
            return [self._to_dict(row) for row in rows]

    def get_form(self, form_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(FormModel, form_id, options=[selectinload(FormModel.fields)])
            return self._to_dict(row, with_fields=True) if row else None

    def create_form(self, form: dict[str, Any]) -> None:
        with self._Session() as session:
            row = FormModel(
                id=form["id"],
                title=form["title"],
                description=form.get("description"),
                user_id=form["user_id"],
                created_at=form["created_at"],
                updated_at=form["updated_at"],
            )
            session.add(row)
            session.commit()

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            if not row:
                raise KeyError(form_id)
            for key, value in updates.items():
                setattr(row, key, value)
            session.commit()
            session.refresh(row)
            return self._to_dict(row, with_fields=True)

    def delete_form(self, form_id: str) -> None:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            if row:
                session.delete(row)
                session.commit()

    @staticmethod
    def _to_dict(row: FormModel, with_fields: bool = False) -> dict[str, Any]:
        form = {
            "id": row.id,
            "title": row.title,
            "description": row.description,
            "user_id": row.user_id,
            "created_at": _aware(row.created_at),
            "updated_at": _aware(row.updated_at),
        }
        if with_fields:
            form["fields"] = [field_to_dict(field) for field in row.fields]
        return form


class SQLiteFieldRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def get_field(self, field_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(FieldModel, field_id)
            return field_to_dict(row) if row else None

    def create_field(self, field: dict[str, Any]) -> dict[str, Any]:
        with self._Session() as session:
            last = session.scalar(
                select(func.max(FieldModel.position)).where(
                    FieldModel.form_id == field["form_id"]
                )
            )
            row = FieldModel(
                id=field["id"],
                form_id=field["form_id"],
                type=field["type"],
                label=field["label"],
                required=bool(field["required"]),
                options=dumps_json(field["options"]),
                position=0 if last is None else last + 1,
                created_at=field["created_at"],
                updated_at=field["updated_at"],
            )
            session.add(row)
            session.commit()
            return field_to_dict(row)

    def update_field(self, field_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        with self._Session() as session:
            row = session.get(FieldModel, field_id)
            if not row:
                raise KeyError(field_id)
            for key, value in updates.items():
                if key == "options":
                    setattr(row, key, dumps_json(value))
                else:
                    setattr(row, key, value)
            session.commit()
            session.refresh(row)
            return field_to_dict(row)

    def delete_field(self, field_id: str) -> None:
        with self._Session() as session:
            session.execute(delete(AnswerModel).where(AnswerModel.field_id == field_id))
            row = session.get(FieldModel, field_id)
            if row:
                session.delete(row)
            session.commit()


class SQLiteResponseRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def create_response(
        self, response: dict[str, Any], answers: list[dict[str, Any]]
    ) -> dict[str, Any]:
        with self._Session() as session:
            row = ResponseModel(
                id=response["id"],
                form_id=response["form_id"],
                submitted_at=response["submitted_at"],
            )
            row.answers = [
                AnswerModel(
                    id=answer["id"],
                    field_id=answer["field_id"],
                    value=answer["value"],
                    position=index,
                )
                for index, answer in enumerate(answers)
            ]
            session.add(row)
            session.commit()
            return self._to_dict(row)

    def list_responses(self, form_id: str) -> list[dict[str, Any]]:
        with self._Session() as session:
            rows = (
                session.query(ResponseModel)
                .options(selectinload(ResponseModel.answers))
                .filter(ResponseModel.form_id == form_id)
                .order_by(ResponseModel.submitted_at.desc(), ResponseModel.id.desc())
                .all()
            )
            return [self._to_dict(row) for row in rows]

    @staticmethod
    def _to_dict(row: ResponseModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "form_id": row.form_id,
            "submitted_at": _aware(row.submitted_at),
            "answers": [
                {
                    "id": answer.id,
                    "response_id": row.id,
                    "field_id": answer.field_id,
                    "value": answer.value,
                }
                for answer in row.answers
            ],
        }


class SQLiteStorage:
    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        self._Session = sessionmaker(self._engine, expire_on_commit=False)
        Base.metadata.create_all(self._engine)
        self.users = SQLiteUserRepo(self._Session)
        self.forms = SQLiteFormRepo(self._Session)
        self.fields = SQLiteFieldRepo(self._Session)
        self.responses = SQLiteResponseRepo(self._Session)

    def close(self) -> None:
        self._engine.dispose()
