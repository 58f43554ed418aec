"""FastAPI entry point for the catalog browser service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import routes
from .config_loader import AppConfig, load_app_config
from .file_watcher import DataFileWatcher
from .item_store import ItemStore, ItemStoreError
from .stats_cache import StatsCache

LOGGER = logging.getLogger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            message = "Route Not Found"
        return _error_response(exc.status_code, message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = errors[0]["msg"] if errors else "Invalid request"
        return _error_response(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(ItemStoreError)
    async def handle_store_error(request: Request, exc: ItemStoreError) -> JSONResponse:
        LOGGER.error("Item store failure on %s %s: %s", request.method, request.url.path, exc)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


def create_app(app_config: AppConfig | None = None, config_path: Path | None = None) -> FastAPI:
    app_config = app_config or load_app_config(config_path)
    items_path = app_config.resolve_items_path()

    item_store = ItemStore(items_path)
    stats_cache = StatsCache(item_store, ttl_seconds=app_config.stats.cache_ttl_seconds)
    watcher = DataFileWatcher(items_path) if app_config.stats.watch_data_file else None
    if watcher is not None:
        stats_cache.attach(watcher)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:  # pragma: no cover - server lifecycle
        if watcher is not None and not watcher.start():
            LOGGER.warning("Stats cache falls back to TTL and modification-time checks only")
        try:
            yield
        finally:
            if watcher is not None:
                watcher.stop()

    app = FastAPI(
        title="Catalog Browser",
        description="Browse, search and page through a JSON-backed item catalog.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.app_config = app_config
    app.state.item_store = item_store
    app.state.stats_cache = stats_cache
    app.state.file_watcher = watcher

    _install_error_handlers(app)
    app.include_router(routes.router)
    return app


app = create_app()
