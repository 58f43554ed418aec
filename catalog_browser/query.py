"""Category filter, free-text search, sort and pagination over item collections.

The same pipeline backs the `/api/items` endpoint and the client mirror, so a
query produces the same page whether the server or the client evaluates it.
Every step works on a copy of its input; nothing here performs I/O.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping, Sequence

Item = Mapping[str, Any]

SORTABLE_FIELDS = ("id", "name", "price", "category", "createdAt")
SEARCHABLE_FIELDS = ("name", "category", "description", "id", "price")
DEFAULT_SORT_FIELD = "id"
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
MIN_SUGGESTION_LENGTH = 2
MAX_SUGGESTIONS = 10

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


@dataclass(slots=True)
class ItemQuery:
    """Raw query parameters as received; normalization happens in `run_query`."""

    q: str | None = None
    category: str | None = None
    sort_by: str | None = None
    sort_order: str | None = None
    page: Any = None
    limit: Any = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "ItemQuery":
        return cls(
            q=params.get("q"),
            category=params.get("category"),
            sort_by=params.get("sortBy"),
            sort_order=params.get("sortOrder"),
            page=params.get("page"),
            limit=params.get("limit"),
        )

    def to_params(self) -> dict[str, str]:
        """Return query-string parameters, dropping empty values."""
        raw = {
            "q": self.q,
            "category": self.category,
            "sortBy": self.sort_by,
            "sortOrder": self.sort_order,
            "page": self.page,
            "limit": self.limit,
        }
        return {key: str(value) for key, value in raw.items() if value is not None and value != ""}


@dataclass(slots=True)
class Pagination:
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "totalItems": self.total_items,
            "itemsPerPage": self.items_per_page,
            "hasNextPage": self.has_next_page,
            "hasPrevPage": self.has_prev_page,
            "nextPage": self.current_page + 1 if self.has_next_page else None,
            "prevPage": self.current_page - 1 if self.has_prev_page else None,
        }


@dataclass(slots=True)
class SearchMetadata:
    query: str | None
    category: str | None
    sort_by: str
    sort_order: str
    results_found: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "category": self.category,
            "sortBy": self.sort_by,
            "sortOrder": self.sort_order,
            "resultsFound": self.results_found,
        }


@dataclass(slots=True)
class PageResult:
    items: list[dict[str, Any]]
    pagination: Pagination
    search: SearchMetadata

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": self.items,
            "pagination": self.pagination.to_dict(),
            "search": self.search.to_dict(),
        }


# --------------------------------------------------------------------------- #
# Parameter normalization
# --------------------------------------------------------------------------- #


def parse_int(value: Any) -> int | None:
    """Parse the leading integer of a query value (`"2abc"` -> 2, `"x"` -> None)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return math.trunc(value) if math.isfinite(value) else None
    match = _LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else None


def resolve_page(value: Any) -> int:
    return max(1, parse_int(value) or 1)


def resolve_limit(value: Any, default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    # zero and unparsable values mean "use the default", negatives clamp to 1
    parsed = parse_int(value) or default
    return min(maximum, max(1, parsed))


def resolve_sort_field(value: Any) -> str:
    return value if value in SORTABLE_FIELDS else DEFAULT_SORT_FIELD


def resolve_sort_order(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() == "desc":
        return "desc"
    return "asc"


# --------------------------------------------------------------------------- #
# Pipeline steps
# --------------------------------------------------------------------------- #


def _stringify(value: Any) -> str:
    # Render numbers the way they appear in the JSON document (5.0 -> "5").
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _searchable_values(item: Item) -> Iterator[str]:
    for key in SEARCHABLE_FIELDS:
        value = item.get(key)
        if value is None or value == "":
            continue
        yield _stringify(value).lower()


def filter_by_category(items: Iterable[Item], category: str | None) -> list[Item]:
    if not isinstance(category, str) or not category.strip():
        return list(items)
    wanted = category.strip().lower()
    return [
        item
        for item in items
        if isinstance(item.get("category"), str) and item["category"].lower() == wanted
    ]


def search_items(items: Iterable[Item], q: str | None) -> list[Item]:
    """Keep items where any searchable field contains the term, case-insensitively."""
    if not isinstance(q, str) or not q.strip():
        return list(items)
    term = q.strip().lower()
    return [item for item in items if any(term in value for value in _searchable_values(item))]


def _sort_key(value: Any, text_field: bool) -> tuple[int, Any]:
    if isinstance(value, str):
        return (1, value.lower())
    if value is None:
        return (1, "") if text_field else (-1, 0)
    if isinstance(value, (int, float)):
        return (0, value)
    return (2, _stringify(value).lower())


def sort_items(items: Iterable[Item], sort_by: str | None = None, sort_order: str | None = None) -> list[Item]:
    """Stable sort; `desc` flips the comparison so ties keep their original order."""
    sort_field = resolve_sort_field(sort_by)
    descending = resolve_sort_order(sort_order) == "desc"
    rows = list(items)
    text_field = any(isinstance(item.get(sort_field), str) for item in rows)
    return sorted(
        rows,
        key=lambda item: _sort_key(item.get(sort_field), text_field),
        reverse=descending,
    )


def paginate(
    items: Sequence[Item],
    page: Any = None,
    limit: Any = None,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> tuple[list[dict[str, Any]], Pagination]:
    page_number = resolve_page(page)
    page_size = resolve_limit(limit, default_limit, max_limit)
    start = (page_number - 1) * page_size
    window = [dict(item) for item in items[start : start + page_size]]
    total_items = len(items)
    pagination = Pagination(
        current_page=page_number,
        total_pages=math.ceil(total_items / page_size),
        total_items=total_items,
        items_per_page=page_size,
    )
    return window, pagination


def run_query(
    items: Iterable[Item],
    query: ItemQuery,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> PageResult:
    """Apply category filter, search, sort and pagination in that order."""
    matched = search_items(filter_by_category(items, query.category), query.q)
    ordered = sort_items(matched, query.sort_by, query.sort_order)
    page_items, pagination = paginate(
        ordered,
        query.page,
        query.limit,
        default_limit=default_limit,
        max_limit=max_limit,
    )
    search = SearchMetadata(
        query=query.q or None,
        category=query.category or None,
        sort_by=resolve_sort_field(query.sort_by),
        sort_order=resolve_sort_order(query.sort_order),
        results_found=len(matched),
    )
    return PageResult(items=page_items, pagination=pagination, search=search)


# --------------------------------------------------------------------------- #
# Collection helpers
# --------------------------------------------------------------------------- #


def extract_categories(items: Iterable[Item]) -> list[str]:
    return sorted(
        {
            value
            for value in (item.get("category") for item in items)
            if isinstance(value, str) and value.strip()
        }
    )


def suggest(items: Iterable[Item], q: str | None, limit: int = MAX_SUGGESTIONS) -> list[str]:
    """Names and categories containing the term, unique, in collection order."""
    if not isinstance(q, str) or len(q.strip()) < MIN_SUGGESTION_LENGTH:
        return []
    term = q.strip().lower()
    suggestions: dict[str, None] = {}
    for item in items:
        for key in ("name", "category"):
            value = item.get(key)
            if isinstance(value, str) and term in value.lower():
                suggestions.setdefault(value, None)
        if len(suggestions) >= limit:
            break
    return list(suggestions)[:limit]
