"""Request and response schemas for the HTTP API."""

import re
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

TaskStatus = Literal["pending", "in-progress", "completed"]
TaskPriority = Literal["low", "medium", "high"]
Role = Literal["user", "admin"]

PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RegisterRequest(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str
    role: Role = "user"

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        problems = []
        if len(value) < 8:
            problems.append("Password must be at least 8 characters")
        if len(value.encode("utf-8")) > 72:
            problems.append("Password must be at most 72 bytes")
        problems.extend(msg for pattern, msg in PASSWORD_RULES if not pattern.search(value))
        if problems:
            raise ValueError(", ".join(problems))
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("password")
    @classmethod
    def password_present(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required")
        return value


class TaskCreate(BaseModel):
    """Schema for creating a task. Unknown keys such as createdBy are dropped."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    status: TaskStatus = "pending"
    priority: TaskPriority = "medium"
    due_date: datetime | None = Field(default=None, alias="dueDate")

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("due_date")
    @classmethod
    def due_date_in_future(cls, value: datetime | None) -> datetime | None:
        value = as_utc(value)
        if value is not None and value <= datetime.now(timezone.utc):
            raise ValueError("Due date must be in the future")
        return value


class TaskUpdate(TaskCreate):
    """Schema for updating a task - all fields optional, null only where a field may be cleared"""

    title: str | None = Field(default=None, min_length=1, max_length=100)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None

    @field_validator("title", "status", "priority")
    @classmethod
    def not_null(cls, value, info: ValidationInfo):
        # may be omitted, but an explicit null would clear a required column
        if value is None:
            raise ValueError(f"{info.field_name.capitalize()} cannot be null")
        return value


class AssignTaskRequest(TaskCreate):
    user_id: int = Field(alias="userId")


class TaskRead(BaseModel):
    """Schema for task responses"""

    model_config = ConfigDict(
        from_attributes=True, alias_generator=to_camel, populate_by_name=True
    )

    id: int
    title: str
    description: str | None = None
    status: str
    priority: str
    due_date: datetime | None = None
    created_by: int
    created_at: datetime
    updated_at: datetime | None = None

    @field_validator("due_date", "created_at", "updated_at")
    @classmethod
    def utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class UserRead(BaseModel):
    model_config = ConfigDict(
        from_attributes=True, alias_generator=to_camel, populate_by_name=True
    )

    id: int
    name: str
    email: str
    role: str
    created_at: datetime
    updated_at: datetime | None = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


def dump(model: BaseModel) -> dict:
    """JSON-ready dict with camelCase keys."""
    return model.model_dump(mode="json", by_alias=True)
