"""
Pydantic schemas for input validation and rubric load/save.

These schemas validate everything that crosses the application boundary:
project details entered before an assessment, rubric documents read from
JSON or the database, and answer payloads posted by clients.
"""

from __future__ import annotations

import re
from html import unescape
from pathlib import Path
from types import MappingProxyType
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import LEVEL_COUNT, Domain, ProjectInfo, Question, Rubric

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9]{7,15}$")


class BaseValidationSchema(BaseModel):
    """Base schema with common validation utilities."""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    @field_validator("*", mode="before")
    @classmethod
    def sanitize_strings(cls, v):
        """Strip markup and control characters from every string input."""
        if isinstance(v, str):
            cleaned = unescape(v.strip())
            cleaned = re.sub(
                r"<\s*script[^>]*>.*?<\s*/\s*script\s*>",
                "",
                cleaned,
                flags=re.IGNORECASE | re.DOTALL,
            )
            cleaned = re.sub(r"<[^>]+>", "", cleaned)
            cleaned = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]", "", cleaned)
            return cleaned
        return v


class ProjectInfoInput(BaseValidationSchema):
    """Details collected before an assessment starts; every field is required."""

    user_name: str = Field(..., min_length=1, max_length=255)
    project_name: str = Field(..., min_length=1, max_length=255)
    organization: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=1, max_length=320)
    phone: str = Field(..., min_length=1, max_length=16)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Email address is not valid")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if not PHONE_PATTERN.match(v):
            raise ValueError("Phone number must be 7-15 digits, optionally starting with +")
        return v

    def to_project_info(self) -> ProjectInfo:
        return ProjectInfo(**self.model_dump())


class RubricSchemaBase(BaseModel):
    """Rubric text is stored exactly as the admin wrote it."""

    model_config = ConfigDict(validate_assignment=True)


class QuestionSchema(RubricSchemaBase):
    id: str = Field(..., min_length=1, max_length=128)
    text: str = Field(..., max_length=5000)
    weight: float = Field(1.0, gt=0, le=5)
    levels: list[str] = Field(..., min_length=LEVEL_COUNT, max_length=LEVEL_COUNT)


class DomainSchema(RubricSchemaBase):
    key: str = Field(..., min_length=1, max_length=128)
    title: str = Field(..., max_length=500)
    questions: list[QuestionSchema] = Field(default_factory=list)
    recommendations: dict[Literal["weak", "medium", "advanced"], str] = Field(
        default_factory=dict
    )


class RubricDocument(RubricSchemaBase):
    """JSON form of a rubric, used for the default file, storage and the HTTP API."""

    domains: list[DomainSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_identity(self):
        """Domain keys and question ids must be unique across the rubric."""
        keys = [d.key for d in self.domains]
        if len(set(keys)) != len(keys):
            raise ValueError("Duplicate domain keys are not allowed")
        ids = [q.id for d in self.domains for q in d.questions]
        if len(set(ids)) != len(ids):
            raise ValueError("Duplicate question ids are not allowed")
        return self

    def to_rubric(self) -> Rubric:
        return Rubric(
            domains=tuple(
                Domain(
                    key=d.key,
                    title=d.title,
                    questions=tuple(
                        Question(id=q.id, text=q.text, weight=q.weight, levels=tuple(q.levels))
                        for q in d.questions
                    ),
                    recommendations=MappingProxyType(dict(d.recommendations)),
                )
                for d in self.domains
            )
        )

    @classmethod
    def from_rubric(cls, rubric: Rubric) -> RubricDocument:
        return cls(
            domains=[
                DomainSchema(
                    key=d.key,
                    title=d.title,
                    questions=[
                        QuestionSchema(id=q.id, text=q.text, weight=q.weight, levels=list(q.levels))
                        for q in d.questions
                    ],
                    recommendations=dict(d.recommendations),
                )
                for d in rubric
            ]
        )


AnswerSlot = Annotated[int, Field(ge=0, le=LEVEL_COUNT, strict=True)] | None


class AnswersInput(BaseModel):
    """Positional answers per domain key: None, 0 (not applicable) or a rung 1..5."""

    answers: dict[str, list[AnswerSlot]] = Field(default_factory=dict)


def load_rubric_file(path: str | Path) -> Rubric:
    """Read and validate a rubric JSON document."""
    raw = Path(path).read_text(encoding="utf-8")
    return RubricDocument.model_validate_json(raw).to_rubric()


class ValidationErrorDetail(BaseModel):
    field: str
    message: str
    value: Any = None


class ValidationResponse(BaseModel):
    success: bool
    errors: list[ValidationErrorDetail] = []
    data: dict[str, Any] | None = None


def validate_input(schema_class: type[BaseModel], data: dict[str, Any]) -> ValidationResponse:
    """
    Centralized validation function that returns structured validation results.

    Example:
        >>> result = validate_input(ProjectInfoInput, {"user_name": "Sara"})
        >>> result.success
        False
    """
    try:
        validated = schema_class(**data)
        return ValidationResponse(success=True, data=validated.model_dump())
    except Exception as e:
        errors = []
        if hasattr(e, "errors"):  # Pydantic validation errors
            for error in e.errors():
                errors.append(
                    ValidationErrorDetail(
                        field=".".join(str(x) for x in error["loc"]) or "general",
                        message=error["msg"],
                        value=error.get("input"),
                    )
                )
        else:
            errors.append(ValidationErrorDetail(field="general", message=str(e)))

        return ValidationResponse(success=False, errors=errors)
