"""Utilities for loading project configuration files."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"


class DataConfig(BaseModel):
    items_path: str = Field(alias="items-path", default="data/items.json")


class StatsConfig(BaseModel):
    cache_ttl_seconds: float = Field(alias="cache-ttl-seconds", default=300.0)
    watch_data_file: bool = Field(alias="watch-data-file", default=True)


class PaginationConfig(BaseModel):
    default_limit: int = Field(alias="default-limit", default=10)
    max_limit: int = Field(alias="max-limit", default=100)


class ClientConfig(BaseModel):
    base_url: str = Field(alias="base-url", default="http://localhost:3001")
    timeout_seconds: float = Field(alias="timeout-seconds", default=10.0)
    default_limit: int = Field(alias="default-limit", default=12)
    legacy_fetch_limit: int = Field(alias="legacy-fetch-limit", default=1000)


class ServerConfig(BaseModel):
    cors_origins: list[str] = Field(
        alias="cors-origins",
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"],
    )


class AppConfig(BaseModel):
    data: DataConfig = Field(default_factory=DataConfig)
    stats: StatsConfig = Field(default_factory=StatsConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    def resolve_items_path(self, root: Path | None = None) -> Path:
        """Return the backing file path, anchored at the project root when relative."""
        path = Path(self.data.items_path)
        if path.is_absolute():
            return path
        return ((root or PROJECT_ROOT) / path).resolve()


def _load_yaml(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_app_config(path: Path | None = None) -> AppConfig:
    """Return application config from `app.config.yaml`."""
    target = path or DATA_DIR / "app.config.yaml"
    data = _load_yaml(target)
    if not isinstance(data, dict):
        raise ValueError(f"{target.name} must contain a mapping of config sections.")
    return AppConfig.model_validate(data)
