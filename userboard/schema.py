"""Validation rules for user payloads submitted by forms and API clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

FieldErrors = Dict[str, List[str]]

FORM_ERROR_KEY = "_form"

_FIELD_LABELS = {
    "id": "Id",
    "email": "Email",
    "name": "Name",
    "isPaid": "Is Paid",
    "is_paid": "Is Paid",
}

_CHECKBOX_TRUE = {"on", "true", "1", "yes"}
_CHECKBOX_FALSE = {"off", "false", "0", "no", ""}


def _label(field: str) -> str:
    return _FIELD_LABELS.get(field, field.replace("_", " ").capitalize())


def _require_text(value: object, field: str) -> str:
    if value is None:
        raise ValueError(f"{_label(field)} is required")
    if not isinstance(value, str):
        raise ValueError(f"{_label(field)} must be text")
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{_label(field)} is required")
    return stripped


def coerce_checkbox(value: object) -> bool:
    """Interpret a checkbox-style form value as a boolean.

    Browsers omit unchecked checkboxes entirely and send ``"on"`` for checked
    ones, so a missing value means ``False``.
    """

    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _CHECKBOX_TRUE:
            return True
        if lowered in _CHECKBOX_FALSE:
            return False
    raise ValueError("Is Paid must be a checkbox value")


class _UserParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    def to_values(self) -> Dict[str, object]:
        """Return the validated fields keyed by their Python names."""

        return self.model_dump(exclude={"id"}, exclude_none=True)


class InsertUserParams(_UserParams):
    """Payload accepted when creating a user. Any ``id`` is ignored."""

    email: str
    name: str
    is_paid: bool = Field(default=False, alias="isPaid")

    @field_validator("email", "name", mode="before")
    @classmethod
    def _non_empty(cls, value: object, info) -> str:
        return _require_text(value, info.field_name)

    @field_validator("is_paid", mode="before")
    @classmethod
    def _checkbox(cls, value: object) -> bool:
        return coerce_checkbox(value)


class UpdateUserParams(_UserParams):
    """Payload accepted when updating a user; omitted fields are left untouched."""

    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    is_paid: Optional[bool] = Field(default=None, alias="isPaid")

    @field_validator("id", mode="before")
    @classmethod
    def _require_id(cls, value: object) -> str:
        return _require_text(value, "id")

    @field_validator("email", "name", mode="before")
    @classmethod
    def _non_empty_when_present(cls, value: object, info) -> Optional[str]:
        if value is None:
            return None
        return _require_text(value, info.field_name)

    @field_validator("is_paid", mode="before")
    @classmethod
    def _checkbox(cls, value: object) -> Optional[bool]:
        if value is None:
            return None
        return coerce_checkbox(value)


class UserIdParams(_UserParams):
    """Payload identifying a single user, used for deletion."""

    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _require_id(cls, value: object) -> str:
        return _require_text(value, "id")


ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class ParseResult(Generic[ModelT]):
    """Outcome of :func:`safe_parse`."""

    success: bool
    data: Optional[ModelT] = None
    errors: Optional[FieldErrors] = None


class SchemaValidationError(ValueError):
    """Raised by :func:`parse` when a payload fails validation."""

    def __init__(self, field_errors: FieldErrors) -> None:
        self.field_errors = field_errors
        summary = "; ".join(messages[0] for messages in field_errors.values() if messages)
        super().__init__(summary or "Invalid input")


def _message_for(error: Mapping[str, Any], field: str) -> str:
    error_type = error.get("type")
    if error_type == "missing":
        return f"{_label(field)} is required"
    if error_type == "value_error":
        ctx = error.get("ctx") or {}
        cause = ctx.get("error")
        if cause is not None and str(cause):
            return str(cause)
    if error_type == "string_type":
        return f"{_label(field)} must be text"
    return str(error.get("msg") or "Invalid value")


def flatten_errors(exc: ValidationError) -> FieldErrors:
    """Group pydantic errors by top-level field, keeping their order."""

    flattened: FieldErrors = {}
    for error in exc.errors():
        location = error.get("loc") or ()
        field = str(location[0]) if location else FORM_ERROR_KEY
        flattened.setdefault(field, []).append(_message_for(error, field))
    return flattened


def _as_dict(payload: Mapping[str, object] | BaseModel) -> Dict[str, object]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(by_alias=True)
    return dict(payload)


def safe_parse(schema: Type[ModelT], payload: Mapping[str, object] | BaseModel) -> ParseResult[ModelT]:
    """Validate ``payload`` without raising on invalid input."""

    try:
        data = schema.model_validate(_as_dict(payload))
    except ValidationError as exc:
        return ParseResult(success=False, errors=flatten_errors(exc))
    return ParseResult(success=True, data=data)


def parse(schema: Type[ModelT], payload: Mapping[str, object] | BaseModel) -> ModelT:
    """Validate ``payload`` and return the model, raising on failure."""

    result = safe_parse(schema, payload)
    if not result.success or result.data is None:
        raise SchemaValidationError(result.errors or {})
    return result.data


def validate_field(
    schema: Type[BaseModel],
    payload: Mapping[str, object],
    field: str,
) -> List[str]:
    """Return the error messages for a single field of ``payload``."""

    result = safe_parse(schema, payload)
    if result.success or not result.errors:
        return []
    return list(result.errors.get(field, []))


__all__ = [
    "FORM_ERROR_KEY",
    "FieldErrors",
    "InsertUserParams",
    "ParseResult",
    "SchemaValidationError",
    "UpdateUserParams",
    "UserIdParams",
    "coerce_checkbox",
    "flatten_errors",
    "parse",
    "safe_parse",
    "validate_field",
]
