from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    pass


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String)
    email = Column(String, unique=True, index=True)
    password_hash = Column(String, nullable=True)
    created_at = Column(DateTime)


class FormModel(Base):
    __tablename__ = "forms"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    fields = relationship(
        "FieldModel",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="FieldModel.position",
    )
    responses = relationship(
        "ResponseModel",
        back_populates="form",
        cascade="all, delete-orphan",
    )


class FieldModel(Base):
    __tablename__ = "fields"

    id = Column(String, primary_key=True)
    form_id = Column(String, ForeignKey("forms.id"), index=True, nullable=False)
    type = Column(String, nullable=False)
    label = Column(String, nullable=False)
    required = Column(Boolean, default=False)
    options = Column(Text)
    position = Column(Integer, default=0)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    form = relationship("FormModel", back_populates="fields")


class ResponseModel(Base):
    __tablename__ = "responses"

    id = Column(String, primary_key=True)
    form_id = Column(String, ForeignKey("forms.id"), index=True, nullable=False)
    submitted_at = Column(DateTime)

    form = relationship("FormModel", back_populates="responses")
    answers = relationship(
        "AnswerModel",
        back_populates="response",
        cascade="all, delete-orphan",
        order_by="AnswerModel.position",
    )


class AnswerModel(Base):
    __tablename__ = "answers"

    id = Column(String, primary_key=True)
    response_id = Column(String, ForeignKey("responses.id"), index=True, nullable=False)
    # soft reference, cleaned up by SQLiteFieldRepo.delete_field
    field_id = Column(String, index=True)
    value = Column(Text)
    position = Column(Integer, default=0)

    response = relationship("ResponseModel", back_populates="answers")
