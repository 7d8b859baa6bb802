"""Translate list query parameters into a paged, owner-scoped task select."""

import operator
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from pydantic.alias_generators import to_camel
from sqlmodel import select

from taskapi.models import Task
from taskapi.schemas import as_utc

RESERVED_PARAMS = frozenset({"page", "limit", "sort", "fields"})
DEFAULT_SORT = "-createdAt"
OWNER_COLUMN = "created_by"

OPERATORS = {
    "eq": operator.eq,
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}

# "dueDate[gte]" -> ("dueDate", "gte")
COMPARISON_PARAM = re.compile(r"^(?P<field>\w+)\[(?P<op>\w+)\]$")

# API names (camelCase) and column names both resolve to the column
COLUMNS = {name: name for name in Task.__table__.columns.keys()}
COLUMNS.update({to_camel(name): name for name in list(COLUMNS)})


class QueryTranslationError(ValueError):
    """A filter or sort referenced an unknown field, operator or malformed value."""


def _column(name: str) -> str:
    try:
        return COLUMNS[name]
    except KeyError:
        raise QueryTranslationError(f"Unknown task field: {name}") from None


def _coerce(column: str, raw: Any) -> Any:
    python_type = Task.__table__.columns[column].type.python_type
    try:
        if python_type is datetime:
            return as_utc(datetime.fromisoformat(raw))
        if python_type is int:
            return int(raw)
    except (TypeError, ValueError) as e:
        raise QueryTranslationError(f"Invalid value for {column}: {raw!r}") from e
    return raw


def _positive_int(raw: str | None, default: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value >= 1 else default


def parse_filters(params: Mapping[str, str], owner_id: int) -> dict[str, list[tuple[str, Any]]]:
    """
    Build ``{column: [(op, value), ...]}`` from non-reserved params.

    Owner params sent by the client are dropped without being parsed; the
    owner condition is always the acting user.
    """
    criteria: dict[str, list[tuple[str, Any]]] = {}
    for key, raw in params.items():
        if key in RESERVED_PARAMS:
            continue
        match = COMPARISON_PARAM.match(key)
        name, op = (match["field"], match["op"]) if match else (key, "eq")
        if op not in OPERATORS:
            raise QueryTranslationError(f"Unknown comparison operator: {op}")
        column = _column(name)
        if column == OWNER_COLUMN:
            continue
        criteria.setdefault(column, []).append((op, _coerce(column, raw)))

    criteria[OWNER_COLUMN] = [("eq", owner_id)]
    return criteria


def parse_sort(raw: str | None) -> list[tuple[str, bool]]:
    """``"-priority,title"`` -> ``[("priority", True), ("title", False)]`` (column, descending)."""
    keys = []
    for part in (raw or DEFAULT_SORT).split(","):
        part = part.strip()
        if not part:
            continue
        descending = part.startswith("-")
        keys.append((_column(part.lstrip("-+")), descending))
    if not keys:
        return parse_sort(DEFAULT_SORT)
    if not any(column == "id" for column, _ in keys):
        # tie-break on id so equal sort values page deterministically
        keys.append(("id", keys[0][1]))
    return keys


@dataclass
class TaskQuery:
    owner_id: int
    criteria: dict[str, list[tuple[str, Any]]]
    sort: list[tuple[str, bool]]
    page: int = 1
    limit: int = 10
    fields: list[str] | None = field(default=None)

    @classmethod
    def from_params(
        cls,
        owner_id: int,
        params: Mapping[str, str],
        default_limit: int = 10,
        max_limit: int = 100,
    ) -> "TaskQuery":
        fields = None
        if params.get("fields"):
            fields = [to_camel(_column(f.strip())) for f in params["fields"].split(",") if f.strip()]

        return cls(
            owner_id=owner_id,
            criteria=parse_filters(params, owner_id),
            sort=parse_sort(params.get("sort")),
            page=_positive_int(params.get("page"), 1),
            limit=min(_positive_int(params.get("limit"), default_limit), max_limit),
            fields=fields,
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def statement(self):
        query = select(Task)
        for column, conditions in self.criteria.items():
            attr = getattr(Task, column)
            for op, value in conditions:
                query = query.where(OPERATORS[op](attr, value))

        order = [
            getattr(Task, column).desc() if descending else getattr(Task, column).asc()
            for column, descending in self.sort
        ]
        return query.order_by(*order).offset(self.offset).limit(self.limit)

    def project(self, rows: list[dict]) -> list[dict]:
        if not self.fields:
            return rows
        keep = {"id", *self.fields}
        return [{k: v for k, v in row.items() if k in keep} for row in rows]
