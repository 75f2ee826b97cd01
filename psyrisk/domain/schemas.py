"""
Pydantic schemas validating the shape of inputs crossing into the core.

Completeness and ordering of a dimension submission are checked by the
progress tracker; these schemas only guarantee well-typed data.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .questionnaire import SCALE_VALUES


class BaseValidationSchema(BaseModel):
    """Base schema with common string sanitising."""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    @field_validator("*", mode="before")
    def sanitize_strings(cls, v):
        """Strip markup and control characters from free-text inputs."""
        if isinstance(v, str):
            cleaned = v.strip()
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


class AnswerInput(BaseValidationSchema):
    item_id: str = Field(..., min_length=1, max_length=16)
    value: int

    @field_validator("value")
    def validate_scale(cls, v):
        if v not in SCALE_VALUES:
            raise ValueError("value must be one of 0, 25, 50, 75, 100")
        return v


class DimensionSubmission(BaseValidationSchema):
    """``{dimensionId, items: [{itemId, value}]}`` as sent by the questionnaire client."""

    dimension_id: int
    items: list[AnswerInput] = Field(default_factory=list)

    def pairs(self) -> list[tuple[str, int]]:
        return [(a.item_id, a.value) for a in self.items]


class SubjectInput(BaseValidationSchema):
    name: str = Field(..., min_length=1, max_length=255)
    role_level: Literal["operational", "management"] = "operational"
    sector: str | None = Field(None, max_length=255)
    external_ref: str | None = Field(None, max_length=64)

    @field_validator("sector", "external_ref")
    def blank_to_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class AddressInput(BaseValidationSchema):
    street: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=128)
    state: str | None = Field(None, max_length=64)
    postal_code: str | None = Field(None, max_length=16)

    @field_validator("street", "city", "state", "postal_code")
    def blank_to_none(cls, v):
        return v or None


class BatchReleaseInput(BaseValidationSchema):
    employer_name: str = Field(..., min_length=1, max_length=255)
    employer_tax_id: str | None = Field(None, max_length=32)
    employer_address: AddressInput | None = None
    label: str | None = Field(None, max_length=255)
    released_at: datetime | None = None
    subjects: list[SubjectInput] = Field(..., min_length=1)


class ObservationsInput(BaseValidationSchema):
    # length is bounded by ReportLifecycle from the report settings
    observations: str | None = None


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
    Centralized validation returning structured results instead of raising.

    Example:
        >>> result = validate_input(AnswerInput, {"item_id": "Q1", "value": 30})
        >>> result.success
        False
    """
    try:
        validated = schema_class(**data)
        return ValidationResponse(success=True, data=validated.model_dump())
    except Exception as e:
        errors = []
        if hasattr(e, "errors"):
            for error in e.errors():
                errors.append(
                    ValidationErrorDetail(
                        field=".".join(str(x) for x in error["loc"]),
                        message=error["msg"],
                        value=error.get("input"),
                    )
                )
        else:
            errors.append(ValidationErrorDetail(field="general", message=str(e)))

        return ValidationResponse(success=False, errors=errors)
