from __future__ import annotations

from pathlib import Path

import orjson
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from catalog_browser.config_loader import AppConfig
from catalog_browser.main import create_app

MOCK_ITEMS = [
    {"id": 1, "name": "Test Item 1", "price": 10.99, "category": "electronics"},
    {"id": 2, "name": "Test Item 2", "price": 25.50, "category": "books"},
    {"id": 3, "name": "Another Item", "price": 5.00, "category": "electronics"},
]


def write_items(path: Path, items: list[dict]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(orjson.dumps(items, option=orjson.OPT_INDENT_2))


class FakeChangeSource:
    """Change source that fires only when a test asks it to."""

    def __init__(self) -> None:
        self.callbacks = []

    def subscribe(self, callback) -> None:
        self.callbacks.append(callback)

    def fire(self) -> None:
        for callback in self.callbacks:
            callback()


@pytest.fixture
def items_path(tmp_path) -> Path:
    path = tmp_path / "data" / "items.json"
    write_items(path, MOCK_ITEMS)
    return path


@pytest.fixture
def app_config(items_path) -> AppConfig:
    return AppConfig.model_validate(
        {
            "data": {"items-path": str(items_path)},
            "stats": {"cache-ttl-seconds": 300, "watch-data-file": False},
        }
    )


@pytest.fixture
def app(app_config) -> FastAPI:
    return create_app(app_config)


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async_client = AsyncClient(transport=transport, base_url="http://testserver", timeout=10.0)
    try:
        yield async_client
    finally:
        await async_client.aclose()
