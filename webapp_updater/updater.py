"""
Lifecycle controller for WebApp Updater.

Ties together the change notifier, the storage path resolver and the
merge engine, and follows the host app's lifecycle: the documents
folder is watched while the host is in the foreground and not while it
is in the background.

For security reasons this must never run in production; construction
fails in production mode.
"""

import enum
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from webapp_updater.config import Config
from webapp_updater.copier import MergeCopier, MergeRecord
from webapp_updater.enumerator import subdirectories
from webapp_updater.events import HostLifecycle, Subscription
from webapp_updater.paths import StoragePathResolver
from webapp_updater.watcher import ChangeNotifier

logger = logging.getLogger(__name__)


class UpdaterDisabledError(RuntimeError):
    """Raised when the updater is created outside development mode."""


class UpdaterState(enum.Enum):
    IDLE = "idle"
    WATCHING = "watching"


class WebAppUpdater:
    """
    Watches the documents folder and merges dropped folders into loaded web apps.

    Parameters
    ----------
    config : Config
        Folder locations, run mode, settle time and merge depth.
    lifecycle : HostLifecycle, optional
        Foreground/background notifications of the host.  A private one
        is created when omitted.
    resolver, notifier, copier : optional
        Collaborators; built from *config* when omitted.
    """

    def __init__(
        self,
        config: Config,
        lifecycle: HostLifecycle | None = None,
        resolver: StoragePathResolver | None = None,
        notifier: ChangeNotifier | None = None,
        copier: MergeCopier | None = None,
    ):
        if not config.is_development:
            raise UpdaterDisabledError(
                f"WebApp Updater is for development only (mode={config.mode!r})."
            )

        self.lifecycle = lifecycle or HostLifecycle()
        self.resolver = resolver or StoragePathResolver(
            config.documents_folder, config.storage_folder
        )
        self.notifier = notifier or ChangeNotifier(
            config.documents_folder, settle_seconds=config.settle_time
        )
        self.copier = copier or MergeCopier(
            on_entry_complete=self._on_entry_complete,
            max_depth=config.max_merge_depth,
        )
        # entries of the merge in progress; only the update worker touches it
        self._merge_records: list[MergeRecord] = []

        # merges run serially, off the watch thread
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="WebAppUpdate")
        self._state = UpdaterState.IDLE
        self._lock = threading.Lock()
        self._closed = False

        self._subscriptions: list[Subscription] = [
            self.notifier.changed.connect(self._on_documents_changed),
            self.lifecycle.will_enter_foreground.connect(self.start_watcher),
            self.lifecycle.did_enter_background.connect(self.stop_watcher),
        ]

        self.start_watcher()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> UpdaterState:
        with self._lock:
            return self._state

    def start_watcher(self) -> None:
        """Idle -> Watching."""
        with self._lock:
            if self._closed:
                return
            if self.notifier.start():
                self._state = UpdaterState.WATCHING
            else:
                self._state = UpdaterState.IDLE

    def stop_watcher(self) -> None:
        """Watching -> Idle.  A merge already dispatched still completes."""
        with self._lock:
            if self._closed:
                return
            self.notifier.stop()
            self._state = UpdaterState.IDLE

    def close(self) -> None:
        """Unsubscribe everything, stop watching and wait for any in-flight merge."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for sub in self._subscriptions:
                sub.cancel()
            self._subscriptions.clear()
            self.notifier.cancel_pending()
            self.notifier.stop()
            self._state = UpdaterState.IDLE
        self._executor.shutdown(wait=True)
        logger.info("WebApp Updater closed.")

    def __enter__(self) -> "WebAppUpdater":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def wait_for_pending(self, timeout: float | None = None) -> None:
        """Block until every update dispatched so far has finished."""
        with self._lock:
            if self._closed:
                return
            marker = self._executor.submit(lambda: None)
        marker.result(timeout=timeout)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def _on_documents_changed(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._executor.submit(self._run_update)

    def _run_update(self) -> None:
        try:
            self.documents_updated()
        except Exception:
            logger.exception("Unexpected error while applying web app updates")

    def documents_updated(self) -> int:
        """
        Merge every drop folder that names a loaded web app.

        Returns the number of drop folders merged.
        """
        logger.info("Checking the documents folder for web app updates.")
        documents = self.resolver.resolve_documents_root()
        if documents is None:
            return 0

        merged = 0
        for drop_folder in subdirectories(documents):
            target = self.resolver.resolve_loaded_app_path(drop_folder.name)
            if target is None:
                logger.info("No loaded web app named '%s'; skipping.", drop_folder.name)
                continue
            self.merge_drop_folder(drop_folder, target)
            merged += 1
        return merged

    def merge_drop_folder(self, drop_folder: Path, target: Path) -> list[MergeRecord]:
        """Merge one drop folder and log a summary.  Returns the entry records."""
        logger.info("Updating web app '%s' in %s", drop_folder.name, target)
        self._merge_records = []
        self.copier.merge(drop_folder, target)
        records, self._merge_records = self._merge_records, []

        failed = [rec for rec in records if not rec.success]
        copy_time = sum(rec.duration for rec in records)
        logger.info(
            "Updated web app '%s': %d entries, %d failed, %.2fs copying.",
            drop_folder.name, len(records), len(failed), copy_time,
        )
        for rec in failed:
            logger.warning("Not updated: %s (%s)", rec.destination, rec.error)
        return records

    def _on_entry_complete(self, rec: MergeRecord) -> None:
        self._merge_records.append(rec)
