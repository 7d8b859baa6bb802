"""Validate-or-report: turn a raw payload into a typed model or a list of field violations."""

from dataclasses import dataclass, field
from typing import Any, Generic, Type, TypeVar

import pydantic

from taskapi.core.errors import ValidationError

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


@dataclass(frozen=True)
class FieldViolation:
    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass(frozen=True)
class ValidationResult(Generic[ModelT]):
    value: ModelT | None = None
    errors: list[FieldViolation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def unwrap(self) -> ModelT:
        """Return the validated model or raise a 400 listing every violation."""
        if self.errors:
            raise ValidationError(
                ", ".join(v.message for v in self.errors),
                error_code="VALIDATION_ERROR",
                fields=[v.as_dict() for v in self.errors],
            )
        return self.value


def _violation(error: dict[str, Any]) -> FieldViolation:
    name = ".".join(str(part) for part in error["loc"]) or "body"
    if error["type"] == "missing":
        message = f"{name} is required"
    elif error["type"] == "value_error" and "error" in error.get("ctx", {}):
        # Our own validators raise ValueError with a user-facing message
        message = str(error["ctx"]["error"])
    else:
        message = f"{name}: {error['msg']}"
    return FieldViolation(field=name, message=message)


def validate(schema: Type[ModelT], payload: Any) -> ValidationResult[ModelT]:
    try:
        value = schema.model_validate(payload)
    except pydantic.ValidationError as e:
        return ValidationResult(errors=[_violation(err) for err in e.errors()])
    return ValidationResult(value=value)
