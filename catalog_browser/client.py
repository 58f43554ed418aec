"""Async client for the catalog API with a local mirror of the query pipeline.

`CatalogBrowser` keeps the state a catalog UI binds to (current page, search
metadata, categories, loading/error flags). When the server answers the
capability probe with a legacy array-shaped body, or not at all, the browser
fetches the full collection and pages it locally through the same
`run_query` the server uses.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .config_loader import ClientConfig
from .query import MAX_LIMIT, MIN_SUGGESTION_LENGTH, ItemQuery, extract_categories, run_query, suggest

logger = logging.getLogger(__name__)


class CatalogClientError(RuntimeError):
    """Raised when the catalog API answers with an error or an unexpected body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CancellationToken:
    """Marks a pending fetch as superseded; checked before any state is committed."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


@dataclass(slots=True)
class CatalogClientConfig:
    base_url: str = "http://localhost:3001"
    timeout_seconds: float = 10.0
    default_limit: int = 12
    legacy_fetch_limit: int = 1000

    @classmethod
    def from_app_config(cls, config: ClientConfig) -> "CatalogClientConfig":
        return cls(
            base_url=config.base_url,
            timeout_seconds=config.timeout_seconds,
            default_limit=config.default_limit,
            legacy_fetch_limit=config.legacy_fetch_limit,
        )


def _is_page_body(body: Any) -> bool:
    return isinstance(body, dict) and isinstance(body.get("items"), list) and "pagination" in body


def _collection_items(body: Any) -> list[dict[str, Any]]:
    if isinstance(body, dict):
        body = body.get("items")
    if not isinstance(body, list):
        return []
    return [item for item in body if isinstance(item, dict)]


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return f"HTTP error! status: {response.status_code}"


class CatalogApi:
    """Thin wrapper around the catalog HTTP endpoints."""

    def __init__(
        self,
        *,
        config: CatalogClientConfig | None = None,
        session: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or CatalogClientConfig()
        self._session = session
        self._owns_session = session is None

    @property
    def session(self) -> httpx.AsyncClient:
        if self._session is None:
            self._session = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=httpx.Timeout(self.config.timeout_seconds),
            )
        return self._session

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.aclose()
            self._session = None

    async def __aenter__(self) -> "CatalogApi":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        await self.aclose()

    # -- Public API -----------------------------------------------------

    async def probe_enhanced(self) -> bool:
        """Return True when `/api/items` speaks the paginated contract."""
        try:
            response = await self.session.get("/api/items", params={"limit": 1})
        except httpx.HTTPError as exc:
            logger.debug("Capability probe failed: %s", exc)
            return False
        if not response.is_success:
            return False
        try:
            return _is_page_body(response.json())
        except ValueError:
            return False

    async def fetch_page(self, query: ItemQuery) -> Any:
        return await self._get_json("/api/items", params=query.to_params())

    async def fetch_all(self, q: str | None = None) -> Any:
        params: dict[str, Any] = {"limit": self.config.legacy_fetch_limit}
        if q:
            params["q"] = q
        return await self._get_json("/api/items", params=params)

    async def fetch_item(self, item_id: int | str) -> dict[str, Any]:
        return await self._get_json(f"/api/items/{item_id}")

    async def fetch_categories(self) -> list[str]:
        body = await self._get_json("/api/items/categories")
        if not isinstance(body, dict) or not isinstance(body.get("categories"), list):
            raise CatalogClientError("Unexpected categories response")
        return [str(category) for category in body["categories"]]

    async def fetch_suggestions(self, q: str) -> list[str]:
        body = await self._get_json("/api/items/search/suggestions", params={"q": q})
        if not isinstance(body, dict) or not isinstance(body.get("suggestions"), list):
            raise CatalogClientError("Unexpected suggestions response")
        return [str(suggestion) for suggestion in body["suggestions"]]

    async def create_item(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request_json("POST", "/api/items", json=payload)

    async def fetch_stats(self) -> dict[str, Any]:
        return await self._get_json("/api/stats")

    # -- Internal helpers ------------------------------------------------

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self._request_json("GET", path, params=params)

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self.session.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise CatalogClientError(f"Request to {path} failed: {exc}") from exc
        if not response.is_success:
            raise CatalogClientError(_error_message(response), status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise CatalogClientError(f"Invalid JSON from {path}") from exc


class CatalogBrowser:
    """Client-side state for browsing the catalog.

    Each `fetch_items` call supersedes the previous one: the older call's token
    is cancelled and its response is dropped without touching state.
    """

    def __init__(
        self,
        api: CatalogApi,
        *,
        default_limit: int | None = None,
        max_limit: int = MAX_LIMIT,
    ) -> None:
        self.api = api
        self.default_limit = default_limit or api.config.default_limit
        self.max_limit = max_limit
        self.items: list[dict[str, Any]] = []
        self.all_items: list[dict[str, Any]] = []
        self.pagination: dict[str, Any] | None = None
        self.search: dict[str, Any] | None = None
        self.categories: list[str] = []
        self.loading = False
        self.error: str | None = None
        self.mirror_mode = False
        self._active_token: CancellationToken | None = None

    async def fetch_items(self, query: ItemQuery | None = None) -> dict[str, Any] | None:
        """Load one page; returns None when a newer call superseded this one."""
        if self._active_token is not None:
            self._active_token.cancel()
        token = CancellationToken()
        self._active_token = token
        return await self._load(query or ItemQuery(), token)

    async def _load(self, query: ItemQuery, token: CancellationToken) -> dict[str, Any] | None:
        self.loading = True
        self.error = None
        try:
            enhanced = await self.api.probe_enhanced()
            if token.cancelled:
                return None
            if enhanced:
                body = await self.api.fetch_page(self._paged(query))
            else:
                body = await self.api.fetch_all(query.q)
                if not token.cancelled and _is_page_body(body):
                    # the probe failed but the server pages; ask again with the full query
                    logger.info("Server answered the legacy fetch with a page; re-requesting with the query")
                    body = await self.api.fetch_page(self._paged(query))
            if token.cancelled:
                return None
            page = self._resolve_page(body, query)
            self._commit(page)
            return page
        except CatalogClientError as exc:
            if not token.cancelled:
                self.error = str(exc)
            raise
        finally:
            if not token.cancelled:
                self.loading = False

    def _paged(self, query: ItemQuery) -> ItemQuery:
        if query.limit in (None, ""):
            return dataclasses.replace(query, limit=self.default_limit)
        return query

    def _resolve_page(self, body: Any, query: ItemQuery) -> dict[str, Any]:
        if _is_page_body(body):
            self.mirror_mode = False
            self.all_items = list(body["items"])
            return body
        if isinstance(body, list):
            if not self.mirror_mode:
                logger.info("Server lacks the paginated contract; paging %d items locally", len(body))
            self.mirror_mode = True
            self.all_items = list(body)
            result = run_query(body, query, default_limit=self.default_limit, max_limit=self.max_limit)
            return result.to_dict()
        raise CatalogClientError("Unexpected response shape from /api/items")

    def _commit(self, page: dict[str, Any]) -> None:
        self.items = list(page.get("items") or [])
        self.pagination = page.get("pagination")
        self.search = page.get("search")

    async def fetch_categories(self) -> list[str]:
        try:
            categories = await self.api.fetch_categories()
        except CatalogClientError as exc:
            logger.debug("Categories endpoint unavailable (%s); deriving from items", exc)
            try:
                if not self.all_items:
                    self.all_items = _collection_items(await self.api.fetch_all())
                categories = extract_categories(self.all_items)
            except CatalogClientError:
                categories = []
        self.categories = categories
        return categories

    async def fetch_suggestions(self, q: str | None) -> list[str]:
        """Search-as-you-type suggestions; derived from loaded items when the server refuses."""
        if not q or len(q.strip()) < MIN_SUGGESTION_LENGTH:
            return []
        try:
            return await self.api.fetch_suggestions(q)
        except CatalogClientError as exc:
            if exc.status_code is None:
                logger.debug("Suggestions unavailable: %s", exc)
                return []
            return suggest(self.all_items, q)

    async def fetch_item(self, item_id: int | str) -> dict[str, Any]:
        return await self.api.fetch_item(item_id)

    async def create_item(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self.api.create_item(payload)

    async def fetch_stats(self) -> dict[str, Any]:
        return await self.api.fetch_stats()

    def reset(self) -> None:
        self.items = []
        self.all_items = []
        self.pagination = None
        self.search = None
        self.error = None

    def cleanup(self) -> None:
        """Cancel the in-flight fetch, e.g. when the view is left."""
        if self._active_token is not None:
            self._active_token.cancel()
            self._active_token = None
