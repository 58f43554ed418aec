"""API routers for the catalog browser."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from .config_loader import AppConfig
from .item_store import ItemStore
from .models import InvalidItemError, build_item, parse_new_item
from .query import MIN_SUGGESTION_LENGTH, ItemQuery, extract_categories, run_query, suggest
from .stats_cache import StatsCache

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)
ITEM_ID_PATTERN = re.compile(r"^[+-]?\d+$")


# --------------------------------------------------------------------------- #
# Pydantic schemas
# --------------------------------------------------------------------------- #


class PaginationInfo(BaseModel):
    current_page: int = Field(alias="currentPage")
    total_pages: int = Field(alias="totalPages")
    total_items: int = Field(alias="totalItems")
    items_per_page: int = Field(alias="itemsPerPage")
    has_next_page: bool = Field(alias="hasNextPage")
    has_prev_page: bool = Field(alias="hasPrevPage")
    next_page: int | None = Field(alias="nextPage")
    prev_page: int | None = Field(alias="prevPage")


class SearchInfo(BaseModel):
    query: str | None
    category: str | None
    sort_by: str = Field(alias="sortBy")
    sort_order: str = Field(alias="sortOrder")
    results_found: int = Field(alias="resultsFound")


class ItemPage(BaseModel):
    items: list[dict[str, Any]]
    pagination: PaginationInfo
    search: SearchInfo


class CategoriesResponse(BaseModel):
    categories: list[str]
    total: int


class SuggestionsResponse(BaseModel):
    suggestions: list[str]
    query: str | None = None


class StatsResponse(BaseModel):
    total: int
    average_price: float = Field(alias="averagePrice")


class CacheStatusResponse(BaseModel):
    cached: bool
    cache_age: int = Field(alias="cacheAge")
    cache_valid: bool = Field(alias="cacheValid")
    last_updated: str | None = Field(alias="lastUpdated")


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _request_state(request: Request):
    return request.app.state


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_item_id(raw: str) -> int:
    if not ITEM_ID_PATTERN.match(raw.strip()):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid item ID")
    return int(raw)


# --------------------------------------------------------------------------- #
# Items
# --------------------------------------------------------------------------- #


@router.get("/items", response_model=ItemPage)
async def list_items(
    request: Request,
    q: str | None = None,
    category: str | None = None,
    sort_by: str | None = Query(default=None, alias="sortBy"),
    sort_order: str | None = Query(default=None, alias="sortOrder"),
    page: str | None = None,
    limit: str | None = None,
) -> ItemPage:
    state = _request_state(request)
    store: ItemStore = state.item_store
    app_config: AppConfig = state.app_config

    items = await store.load_items()
    result = run_query(
        items,
        ItemQuery(q=q, category=category, sort_by=sort_by, sort_order=sort_order, page=page, limit=limit),
        default_limit=app_config.pagination.default_limit,
        max_limit=app_config.pagination.max_limit,
    )
    return ItemPage.model_validate(result.to_dict())


@router.get("/items/categories", response_model=CategoriesResponse)
async def list_categories(request: Request) -> CategoriesResponse:
    store: ItemStore = _request_state(request).item_store
    categories = extract_categories(await store.load_items())
    return CategoriesResponse(categories=categories, total=len(categories))


@router.get("/items/search/suggestions", response_model=SuggestionsResponse)
async def search_suggestions(request: Request, q: str | None = None) -> SuggestionsResponse:
    if not q or len(q.strip()) < MIN_SUGGESTION_LENGTH:
        return SuggestionsResponse(suggestions=[], query=q)
    store: ItemStore = _request_state(request).item_store
    return SuggestionsResponse(suggestions=suggest(await store.load_items(), q), query=q)


@router.get("/items/{item_id}")
async def get_item(request: Request, item_id: str) -> dict[str, Any]:
    wanted = _parse_item_id(item_id)
    store: ItemStore = _request_state(request).item_store
    for item in await store.load_items():
        if isinstance(item, dict) and item.get("id") == wanted:
            return item
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")


@router.post("/items", status_code=status.HTTP_201_CREATED)
async def create_item(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body") from exc
    try:
        new_item = parse_new_item(payload)
    except InvalidItemError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    state = _request_state(request)
    store: ItemStore = state.item_store
    stats_cache: StatsCache = state.stats_cache

    stored = await store.append_item(build_item(new_item, now=_utcnow()))
    stats_cache.invalidate()
    logger.info("Created item %s (%s)", stored["id"], stored["name"])
    return stored


# --------------------------------------------------------------------------- #
# Stats
# --------------------------------------------------------------------------- #


@router.get("/stats", response_model=StatsResponse)
async def get_stats(request: Request) -> StatsResponse:
    stats_cache: StatsCache = _request_state(request).stats_cache
    return StatsResponse.model_validate(await stats_cache.get_stats())


@router.delete("/stats/cache")
async def invalidate_stats_cache(request: Request) -> dict[str, str]:
    stats_cache: StatsCache = _request_state(request).stats_cache
    stats_cache.invalidate()
    logger.info("Stats cache manually invalidated")
    return {"message": "Cache invalidated successfully"}


@router.get("/stats/cache/status", response_model=CacheStatusResponse)
async def stats_cache_status(request: Request) -> CacheStatusResponse:
    stats_cache: StatsCache = _request_state(request).stats_cache
    return CacheStatusResponse.model_validate(await stats_cache.status())
