"""Aggregate item statistics with a TTL + modification-time cache."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Callable, Iterable

from .file_watcher import ChangeSource
from .item_store import ItemStore
from .models import to_iso8601

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


@dataclass(slots=True)
class CacheEntry:
    data: dict[str, Any] | None = None
    timestamp: float = 0.0
    file_mod_time: int | None = None


def _numeric_price(item: Any) -> float:
    price = item.get("price") if isinstance(item, dict) else None
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        return 0
    return price


def compute_stats(items: Iterable[Any]) -> dict[str, Any]:
    """Count items and average their prices to the cent (half away from zero)."""
    rows = list(items)
    total = len(rows)
    if total == 0:
        return {"total": 0, "averagePrice": 0}
    prices = [Decimal(repr(_numeric_price(item))) for item in rows]
    with localcontext() as ctx:
        # room for every integer digit of the sum plus the cents
        largest = max(price.adjusted() for price in prices)
        ctx.prec = max(ctx.prec, largest + len(str(total)) + 12)
        average = sum(prices, Decimal(0)) / total
        rounded = average.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return {"total": total, "averagePrice": float(rounded)}


class StatsCache:
    """Process-wide stats cache held on `app.state`.

    A cached value is served only while it is younger than the TTL and the
    backing file still has the modification time recorded at fill time.
    Change notifications and `invalidate()` drop the entry immediately.
    """

    def __init__(
        self,
        store: ItemStore,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.ttl_ms = ttl_seconds * 1000
        self._clock = clock
        self._entry = CacheEntry()
        self.recompute_count = 0

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _fresh(self, entry: CacheEntry, now_ms: float) -> bool:
        return entry.data is not None and now_ms - entry.timestamp < self.ttl_ms

    async def get_stats(self) -> dict[str, Any]:
        entry = self._entry
        now_ms = self._now_ms()
        mod_time = await self.store.modification_time()
        if self._fresh(entry, now_ms) and mod_time == entry.file_mod_time:
            logger.debug("Serving stats from cache")
            return dict(entry.data)
        return await self._refill(mod_time)

    async def _refill(self, mod_time: int | None) -> dict[str, Any]:
        logger.debug("Loading fresh stats data")
        items = await self.store.load_items()
        stats = compute_stats(items)
        self._entry = CacheEntry(data=stats, timestamp=self._now_ms(), file_mod_time=mod_time)
        self.recompute_count += 1
        logger.info("Stats cache updated (%d items)", stats["total"])
        return dict(stats)

    def invalidate(self) -> None:
        self._entry = CacheEntry()

    def attach(self, source: ChangeSource) -> None:
        source.subscribe(self._on_file_change)

    def _on_file_change(self) -> None:
        logger.info("Data file changed, invalidating stats cache")
        self.invalidate()

    async def status(self) -> dict[str, Any]:
        entry = self._entry
        now_ms = self._now_ms()
        cached = entry.data is not None
        valid = self._fresh(entry, now_ms)
        if valid:
            valid = await self.store.modification_time() == entry.file_mod_time
        last_updated = None
        if entry.timestamp:
            last_updated = to_iso8601(datetime.fromtimestamp(entry.timestamp / 1000, tz=timezone.utc))
        return {
            "cached": cached,
            "cacheAge": int(now_ms - entry.timestamp) if entry.timestamp else 0,
            "cacheValid": valid,
            "lastUpdated": last_updated,
        }
