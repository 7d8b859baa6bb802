# tests/test_validation.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from taskapi.core.errors import ValidationError
from taskapi.schemas import TaskCreate, TaskUpdate
from taskapi.validation import FieldViolation, validate


def test_validate_reports_instead_of_raising():
    result = validate(TaskCreate, {"status": "nope"})

    assert not result.ok
    assert result.value is None
    assert FieldViolation("title", "title is required") in result.errors
    assert {v.field for v in result.errors} == {"title", "status"}


def test_unwrap_raises_with_every_violation():
    result = validate(TaskCreate, {"title": "", "priority": "urgent"})

    with pytest.raises(ValidationError) as exc_info:
        result.unwrap()

    assert exc_info.value.status_code == 400
    assert [f["field"] for f in exc_info.value.fields] == ["title", "priority"]


def test_non_object_payload_is_a_violation():
    result = validate(TaskCreate, ["not", "an", "object"])
    assert [v.field for v in result.errors] == ["body"]


def test_update_keeps_only_supplied_fields():
    data = validate(TaskUpdate, {"status": "completed", "createdBy": 3}).unwrap()
    assert data.model_dump(exclude_unset=True) == {"status": "completed"}


def test_update_allows_clearing_description_and_due_date():
    data = validate(TaskUpdate, {"description": None, "dueDate": None}).unwrap()
    assert data.model_dump(exclude_unset=True) == {"description": None, "due_date": None}


def test_naive_due_date_is_read_as_utc():
    future = (datetime.now(timezone.utc) + timedelta(days=2)).replace(microsecond=0, tzinfo=None)
    data = validate(TaskCreate, {"title": "t", "dueDate": future.isoformat()}).unwrap()
    assert data.due_date.tzinfo is not None
    assert data.due_date.replace(tzinfo=None) == future


@pytest.mark.parametrize("field", ["title", "status", "priority"])
def test_update_rejects_null_for_required_fields(field):
    result = validate(TaskUpdate, {field: None})

    assert result.errors == [FieldViolation(field, f"{field.capitalize()} cannot be null")]
