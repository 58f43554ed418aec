"""Persistence helper for the item collection."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, List

import orjson

logger = logging.getLogger(__name__)


class ItemStoreError(RuntimeError):
    """Raised when the backing file exists but cannot be read, parsed or written."""


class ItemStore:
    """Stores items as a single JSON array on disk.

    A missing file is an empty collection, never an error. Reads and writes run
    in a worker thread so a slow disk does not stall the event loop.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._write_lock = asyncio.Lock()

    def _read(self) -> List[dict[str, Any]]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise ItemStoreError(f"Could not read {self.path.name}: {exc.strerror or exc}") from exc
        try:
            items = orjson.loads(raw)
        except orjson.JSONDecodeError as exc:
            raise ItemStoreError(f"Invalid JSON in {self.path.name}: {exc}") from exc
        if not isinstance(items, list):
            raise ItemStoreError(f"{self.path.name} must contain a JSON array of items.")
        return items

    def _write(self, items: List[dict[str, Any]]) -> None:
        payload = orjson.dumps(items, option=orjson.OPT_INDENT_2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_bytes(payload)
        except OSError as exc:
            raise ItemStoreError(f"Could not write {self.path.name}: {exc.strerror or exc}") from exc

    def _stat_mtime(self) -> int | None:
        try:
            return int(self.path.stat().st_mtime_ns // 1_000_000)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise ItemStoreError(f"Could not stat {self.path.name}: {exc.strerror or exc}") from exc

    async def load_items(self) -> List[dict[str, Any]]:
        return await asyncio.to_thread(self._read)

    async def modification_time(self) -> int | None:
        """Return the file's modification time in epoch milliseconds, None when absent."""
        return await asyncio.to_thread(self._stat_mtime)

    async def append_item(self, item: dict[str, Any]) -> dict[str, Any]:
        async with self._write_lock:
            items = await asyncio.to_thread(self._read)
            item = dict(item)
            taken = {existing.get("id") for existing in items if isinstance(existing, dict)}
            # ids are creation timestamps; two creations in one millisecond get consecutive ids
            while item.get("id") in taken:
                item["id"] += 1
            items.append(item)
            await asyncio.to_thread(self._write, items)
        logger.info("Stored item %s in %s (%d items)", item.get("id"), self.path.name, len(items))
        return item
