"""File system watcher for WebApp Updater.

Uses the watchdog library to monitor the documents folder for writes,
then emits a single coalesced "something changed" signal once the
folder has been quiet for a short settle period.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from webapp_updater.config import DEFAULT_SETTLE_TIME
from webapp_updater.events import Signal

logger = logging.getLogger(__name__)

WRITE_EVENT_TYPES = frozenset({
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
})


class WriteEventHandler(FileSystemEventHandler):
    """Watchdog handler that forwards write-type events to a callback."""

    def __init__(self, on_write: Callable[[FileSystemEvent], None]):
        super().__init__()
        self._on_write = on_write

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in WRITE_EVENT_TYPES:
            self._on_write(event)


class ChangeNotifier:
    """Watches one folder and emits ``changed`` after writes settle.

    Usage:
        notifier = ChangeNotifier(documents, settle_seconds=1.0)
        notifier.changed.connect(on_change)
        notifier.start()
        ...
        notifier.stop()

    Only one watchdog observer is ever alive; starting again replaces it.
    """

    def __init__(
        self,
        watched_root: str | Path,
        settle_seconds: float = DEFAULT_SETTLE_TIME,
        observer_factory: Callable[[], Any] = Observer,
    ):
        self.watched_root = Path(watched_root)
        self.changed = Signal("documents_changed")
        self._settle_seconds = max(0.0, settle_seconds)
        self._observer_factory = observer_factory
        self._handler = WriteEventHandler(self._on_write)
        self._observer: Any | None = None
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    # ---- lifecycle ----

    def start(self) -> bool:
        """Start watching.  Returns False if the folder could not be watched."""
        if self._observer is not None:
            logger.debug("Replacing the active watch on %s", self.watched_root)
            self.stop()

        if not os.path.isdir(self.watched_root):
            logger.error("Documents folder does not exist: %s", self.watched_root)
            return False

        observer = self._observer_factory()
        try:
            observer.schedule(self._handler, str(self.watched_root), recursive=True)
            observer.start()
        except OSError as exc:
            logger.error("Could not watch %s: %s", self.watched_root, exc)
            return False

        self._observer = observer
        logger.info(
            "Started watching '%s' for replacement web app files (settle=%.1fs).",
            self.watched_root,
            self._settle_seconds,
        )
        return True

    def stop(self) -> None:
        """Stop watching and release the observer.

        A change that was already detected is still delivered once its
        settle period ends; use :meth:`cancel_pending` to drop it.
        """
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join(timeout=5)
            logger.info("Stopped watching '%s'.", self.watched_root)

    def cancel_pending(self) -> None:
        """Discard a change signal that is waiting for its settle period."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def is_running(self) -> bool:
        """Return whether the watcher is currently active."""
        return self._observer is not None and self._observer.is_alive()

    @property
    def has_pending_change(self) -> bool:
        with self._lock:
            return self._timer is not None

    # ---- events ----

    def _on_write(self, event: FileSystemEvent) -> None:
        logger.debug("Write event: %s %s", event.event_type, event.src_path)
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._settle_seconds, self._fire)
            self._timer.daemon = True
            self._timer.name = "ChangeSettle"
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            # superseded by a later write
            if self._timer is not threading.current_thread():
                return
            self._timer = None
        logger.info("Changes detected in '%s'.", self.watched_root)
        self.changed.emit()
