"""Watch the item data file and notify subscribers when it changes."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Callable, Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[], None]

RELEVANT_EVENTS = {"modified", "created", "deleted", "moved"}


class ChangeSource(Protocol):
    """Anything that can tell subscribers a watched file changed."""

    def subscribe(self, callback: ChangeCallback) -> None: ...


class _DataFileHandler(FileSystemEventHandler):
    def __init__(self, target: Path, notify: ChangeCallback) -> None:
        self._target = target
        self._notify = notify

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in RELEVANT_EVENTS:
            return
        paths = [event.src_path, getattr(event, "dest_path", None)]
        if any(path and Path(os.fsdecode(path)).resolve() == self._target for path in paths):
            self._notify()


class DataFileWatcher:
    """watchdog-backed change source for a single file.

    The parent directory is observed so atomic replace-style writes are seen
    too. Callbacks fire on the event loop that was running when `start()` was
    called; the observer thread never touches subscriber state directly.
    """

    def __init__(self, path: Path) -> None:
        self.path = path.resolve()
        self._callbacks: list[ChangeCallback] = []
        self._observer: BaseObserver | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def subscribe(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    def start(self) -> bool:
        if self._observer is not None:
            return True
        directory = self.path.parent
        if not directory.is_dir():
            logger.warning("Could not watch %s: directory %s does not exist", self.path.name, directory)
            return False
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

        observer = Observer()
        observer.schedule(_DataFileHandler(self.path, self._dispatch), str(directory), recursive=False)
        try:
            observer.start()
        except OSError as exc:
            logger.warning("Could not watch %s: %s", self.path, exc)
            return False
        self._observer = observer
        logger.info("Watching %s for changes", self.path)
        return True

    def stop(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5)
        logger.info("Stopped watching %s", self.path)

    def _dispatch(self) -> None:
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self._notify_subscribers)
        else:
            self._notify_subscribers()

    def _notify_subscribers(self) -> None:
        logger.info("Data file %s changed", self.path.name)
        for callback in list(self._callbacks):
            callback()
