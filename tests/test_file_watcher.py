from __future__ import annotations

import asyncio

import pytest
from watchdog.events import DirModifiedEvent, FileModifiedEvent, FileMovedEvent

from catalog_browser.file_watcher import DataFileWatcher, _DataFileHandler
from tests.conftest import write_items


def test_handler_matches_only_the_target_file(tmp_path) -> None:
    target = (tmp_path / "items.json").resolve()
    calls = []
    handler = _DataFileHandler(target, lambda: calls.append("changed"))

    handler.on_any_event(FileModifiedEvent(str(tmp_path / "other.json")))
    handler.on_any_event(DirModifiedEvent(str(tmp_path)))
    assert calls == []

    handler.on_any_event(FileModifiedEvent(str(target)))
    handler.on_any_event(FileMovedEvent(str(tmp_path / "items.json.tmp"), str(target)))
    assert calls == ["changed", "changed"]


def test_dispatch_without_loop_calls_subscribers_directly(tmp_path) -> None:
    watcher = DataFileWatcher(tmp_path / "items.json")
    calls = []
    watcher.subscribe(lambda: calls.append(1))
    watcher._dispatch()
    assert calls == [1]


def test_start_fails_for_missing_directory(tmp_path) -> None:
    watcher = DataFileWatcher(tmp_path / "missing" / "items.json")
    assert watcher.start() is False
    assert watcher.is_running is False


@pytest.mark.asyncio
async def test_file_write_notifies_on_event_loop(items_path) -> None:
    watcher = DataFileWatcher(items_path)
    changed = asyncio.Event()
    watcher.subscribe(changed.set)
    assert watcher.start() is True
    try:
        assert watcher.is_running
        write_items(items_path, [{"id": 9, "name": "Fresh", "price": 1}])
        await asyncio.wait_for(changed.wait(), timeout=5)
    finally:
        watcher.stop()
    assert watcher.is_running is False


@pytest.mark.asyncio
async def test_start_is_idempotent_and_stop_is_safe(items_path) -> None:
    watcher = DataFileWatcher(items_path)
    watcher.stop()
    assert watcher.start() is True
    assert watcher.start() is True
    watcher.stop()
    watcher.stop()
    assert watcher.is_running is False
