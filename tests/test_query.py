# tests/test_query.py

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from taskapi.cache.keys import owner_task_lists_pattern, task_list_key
from taskapi.services.query import (
    QueryTranslationError,
    TaskQuery,
    parse_filters,
    parse_sort,
)


def test_reserved_params_are_not_filters():
    criteria = parse_filters(
        {"page": "2", "limit": "5", "sort": "title", "fields": "title", "status": "pending"},
        owner_id=7,
    )
    assert criteria == {"status": [("eq", "pending")], "created_by": [("eq", 7)]}


def test_owner_filter_overrides_client_supplied_owner():
    criteria = parse_filters({"createdBy": "99", "created_by": "98"}, owner_id=7)
    assert criteria["created_by"] == [("eq", 7)]
    assert list(criteria) == ["created_by"]


def test_owner_params_are_dropped_without_coercion():
    criteria = parse_filters({"createdBy": "someone-else", "createdBy[gt]": "x"}, owner_id=7)
    assert criteria == {"created_by": [("eq", 7)]}


def test_comparison_params_translate_to_operators():
    criteria = parse_filters(
        {"dueDate[gte]": "2030-01-01T00:00:00Z", "dueDate[lt]": "2031-01-01"},
        owner_id=1,
    )
    assert criteria["due_date"] == [
        ("gte", datetime(2030, 1, 1, tzinfo=timezone.utc)),
        ("lt", datetime(2031, 1, 1, tzinfo=timezone.utc)),
    ]


@pytest.mark.parametrize(
    "params",
    [
        {"colour": "red"},
        {"dueDate[between]": "2030-01-01"},
        {"dueDate[gt]": "not-a-date"},
    ],
)
def test_malformed_filters_raise(params):
    with pytest.raises(QueryTranslationError):
        parse_filters(params, owner_id=1)


def test_default_sort_is_newest_first_with_id_tiebreak():
    assert parse_sort(None) == [("created_at", True), ("id", True)]


def test_sort_accepts_camel_and_snake_names():
    assert parse_sort("priority,-dueDate,id") == [
        ("priority", False),
        ("due_date", True),
        ("id", False),
    ]


def test_pagination_defaults_and_cap():
    query = TaskQuery.from_params(1, {}, default_limit=10, max_limit=100)
    assert (query.page, query.limit, query.offset) == (1, 10, 0)

    query = TaskQuery.from_params(1, {"page": "3", "limit": "5"})
    assert query.offset == 10

    query = TaskQuery.from_params(1, {"limit": "100000"}, max_limit=100)
    assert query.limit == 100

    query = TaskQuery.from_params(1, {"page": "0", "limit": "abc"}, default_limit=10)
    assert (query.page, query.limit) == (1, 10)


def test_fields_projection_keeps_id():
    query = TaskQuery.from_params(1, {"fields": "title,due_date"})
    rows = [{"id": 1, "title": "a", "dueDate": None, "status": "pending"}]
    assert query.project(rows) == [{"id": 1, "title": "a", "dueDate": None}]


def test_statement_is_scoped_to_owner():
    sql = str(TaskQuery.from_params(5, {"status": "pending"}).statement())
    assert "tasks.created_by =" in sql
    assert "tasks.status =" in sql
    assert "ORDER BY tasks.created_at DESC, tasks.id DESC" in sql


def test_cache_key_is_canonical_and_owner_scoped():
    a = task_list_key(3, {"status": "pending", "page": "1"})
    b = task_list_key(3, {"page": "1", "status": "pending"})
    assert a == b
    assert a.startswith("tasks:3:")
    assert '"page":"1"' in a
    assert task_list_key(4, {"page": "1"}) != task_list_key(3, {"page": "1"})
    assert owner_task_lists_pattern(3) == "tasks:3:*"
