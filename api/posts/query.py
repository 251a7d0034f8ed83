"""
Table-state to SQL translation for the posts list.

The browser table sends its state as strings:
- start / size:   pagination window ("0", "10")
- filters:        JSON array of {"id": <column>, "value": <text>}
- sorting:        JSON array of {"id": <column>, "desc": <bool>}

Nothing here touches the database; `PostQuery` only renders SQL text plus
asyncpg positional parameters. Column names reach the SQL text only after
being checked against `POST_COLUMNS`.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

POST_TABLE = "posts"
POST_COLUMNS = ("id", "title", "text")

DEFAULT_OFFSET = 0
DEFAULT_LIMIT = 10
MAX_LIMIT = 1000
# LIMIT/OFFSET are bound as bigint.
MAX_OFFSET = 2**63 - 1

_INT_RE = re.compile(r"[+-]?[0-9]+")


class QueryParamError(ValueError):
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


@dataclass(frozen=True)
class PageWindow:
    offset: int = DEFAULT_OFFSET
    limit: int = DEFAULT_LIMIT


@dataclass(frozen=True)
class SortDirective:
    column: str
    descending: bool = False


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _parse_int(raw: str | None, *, field: str, default: int) -> int:
    text = (raw or "").strip()
    if not text:
        return default
    if not _INT_RE.fullmatch(text):
        raise QueryParamError(field, f"{field} must be an integer.")
    if len(text.lstrip("+-")) > 19:
        raise QueryParamError(field, f"{field} is out of range.")
    return int(text)


def _load_json_array(raw: str | None, *, field: str) -> list[Any]:
    text = (raw or "").strip()
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise QueryParamError(field, f"{field} is not valid JSON.") from exc
    # The table sends "{}" before any state exists.
    if data == {}:
        return []
    if not isinstance(data, list):
        raise QueryParamError(field, f"{field} must be a JSON array.")
    return data


def _column_id(entry: Any, *, field: str) -> str:
    if not isinstance(entry, dict):
        raise QueryParamError(field, f"{field} entries must be objects.")
    column = entry.get("id")
    if not isinstance(column, str) or not column:
        raise QueryParamError(field, f"{field} entries need a string 'id'.")
    if column not in POST_COLUMNS:
        raise QueryParamError(field, f"Unknown column '{column}'.")
    return column


def parse_window(start: str | None, size: str | None) -> PageWindow:
    offset = _parse_int(start, field="start", default=DEFAULT_OFFSET)
    limit = _parse_int(size, field="size", default=DEFAULT_LIMIT)
    if offset < 0:
        raise QueryParamError("start", "start must be >= 0.")
    if offset > MAX_OFFSET:
        raise QueryParamError("start", f"start must be <= {MAX_OFFSET}.")
    if limit < 1:
        raise QueryParamError("size", "size must be >= 1.")
    if limit > MAX_LIMIT:
        raise QueryParamError("size", f"size must be <= {MAX_LIMIT}.")
    return PageWindow(offset=offset, limit=limit)


def parse_filters(raw: str | None) -> dict[str, str]:
    """
    Column -> substring. A later entry for the same column replaces the
    earlier one.
    """
    filters: dict[str, str] = {}
    for entry in _load_json_array(raw, field="filters"):
        column = _column_id(entry, field="filters")
        value = entry.get("value")
        if not isinstance(value, str):
            raise QueryParamError("filters", f"Filter value for '{column}' must be a string.")
        filters[column] = value
    return filters


def parse_sorting(raw: str | None) -> list[SortDirective]:
    """
    Directives in priority order. A repeated column keeps its first
    position and takes the last direction.
    """
    directions: dict[str, bool] = {}
    for entry in _load_json_array(raw, field="sorting"):
        column = _column_id(entry, field="sorting")
        desc = entry.get("desc", False)
        if not isinstance(desc, bool):
            raise QueryParamError("sorting", f"Sort 'desc' for '{column}' must be a boolean.")
        directions[column] = desc
    return [SortDirective(column=column, descending=desc) for column, desc in directions.items()]


@dataclass
class PostQuery:
    window: PageWindow = field(default_factory=PageWindow)
    filters: dict[str, str] = field(default_factory=dict)
    sorting: list[SortDirective] = field(default_factory=list)

    def __post_init__(self) -> None:
        for column in self.filters:
            if column not in POST_COLUMNS:
                raise QueryParamError("filters", f"Unknown column '{column}'.")
        for directive in self.sorting:
            if directive.column not in POST_COLUMNS:
                raise QueryParamError("sorting", f"Unknown column '{directive.column}'.")

    def _where(self) -> tuple[str, list[Any]]:
        conditions: list[str] = []
        params: list[Any] = []
        for column, value in self.filters.items():
            params.append(f"%{_escape_like(value)}%")
            conditions.append(f"{column} LIKE ${len(params)}")
        if not conditions:
            return "", params
        return " WHERE " + " AND ".join(conditions), params

    def order_by(self) -> str:
        parts = [f"{s.column} {'DESC' if s.descending else 'ASC'}" for s in self.sorting]
        # id breaks remaining ties so pages never overlap.
        if not any(s.column == "id" for s in self.sorting):
            parts.append("id ASC")
        return ", ".join(parts)

    def select_sql(self) -> tuple[str, list[Any]]:
        where, params = self._where()
        params = [*params, self.window.limit, self.window.offset]
        sql = (
            f"SELECT {', '.join(POST_COLUMNS)} FROM {POST_TABLE}{where} "
            f"ORDER BY {self.order_by()} "
            f"LIMIT ${len(params) - 1} OFFSET ${len(params)}"
        )
        return sql, params

    def count_sql(self) -> tuple[str, list[Any]]:
        where, params = self._where()
        return f"SELECT count(*) FROM {POST_TABLE}{where}", params


def build_post_query(
    *,
    start: str | None = None,
    size: str | None = None,
    filters: str | None = None,
    sorting: str | None = None,
) -> PostQuery:
    return PostQuery(
        window=parse_window(start, size),
        filters=parse_filters(filters),
        sorting=parse_sorting(sorting),
    )
