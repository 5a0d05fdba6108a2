"""
Merge-copy engine for WebApp Updater.

Copies a dropped folder into a loaded web app's storage directory the
"gentle" way: matching files are replaced, new files and directories
are created, and anything in the destination without a counterpart in
the drop is left alone.  Copying the whole tree over the destination
would be quicker but would delete files the developer did not send.

Failures are isolated per entry: a file that cannot be copied is
logged and recorded, and its siblings are still processed.
"""

import logging
import os
import shutil
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from webapp_updater.config import DEFAULT_MAX_MERGE_DEPTH
from webapp_updater.enumerator import iter_children

logger = logging.getLogger(__name__)

# Entry actions
ACTION_CREATE_DIR = "created_dir"
ACTION_COPY = "copied"
ACTION_REPLACE = "replaced"

_TMP_SUFFIX = ".webapp-updater.tmp"


@dataclass
class MergeRecord:
    """Record of a single entry handled by a merge."""
    source: str
    destination: str
    action: str
    size_bytes: int = 0
    started: float = 0.0
    finished: float = 0.0
    success: bool = False
    error: str = ""

    @property
    def duration(self) -> float:
        if self.finished and self.started:
            return self.finished - self.started
        return 0.0


@dataclass
class MergeStats:
    """Aggregated merge statistics."""
    total_dirs_created: int = 0
    total_copied: int = 0
    total_replaced: int = 0
    total_failed: int = 0
    total_bytes: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(self, rec: MergeRecord) -> None:
        with self._lock:
            if not rec.success:
                self.total_failed += 1
            elif rec.action == ACTION_CREATE_DIR:
                self.total_dirs_created += 1
            else:
                if rec.action == ACTION_REPLACE:
                    self.total_replaced += 1
                else:
                    self.total_copied += 1
                self.total_bytes += rec.size_bytes


def replace_file(source: Path, target: Path) -> None:
    """
    Atomically replace *target* with a copy of *source*.

    The copy is staged next to *target* and renamed over it, so readers
    never see a half-written file.  Content and metadata come from
    *source*.
    """
    staging = target.with_name(f".{target.name}{_TMP_SUFFIX}")
    try:
        shutil.copy2(source, staging)
        os.replace(staging, target)
    except OSError:
        staging.unlink(missing_ok=True)
        raise


class MergeCopier:
    """
    Merges a source tree into a destination tree.

    Parameters
    ----------
    on_entry_complete : callable, optional
        Callback invoked after each entry with its MergeRecord.
    max_depth : int
        Deepest directory level to descend into below the merge root.
    """

    def __init__(
        self,
        on_entry_complete: Callable[[MergeRecord], None] | None = None,
        max_depth: int = DEFAULT_MAX_MERGE_DEPTH,
    ):
        self._on_entry_complete = on_entry_complete
        self._max_depth = max(1, max_depth)
        self.stats = MergeStats()

    def merge(self, source_dir: Path, dest_dir: Path) -> None:
        """Gently merge the contents of *source_dir* into *dest_dir*."""
        source_dir, dest_dir = Path(source_dir), Path(dest_dir)
        logger.info("Merging %s -> %s", source_dir, dest_dir)
        try:
            self._merge_dir(source_dir, dest_dir, depth=0)
        except Exception:
            logger.exception("Unexpected error merging %s", source_dir)

    def _merge_dir(self, source_dir: Path, dest_dir: Path, depth: int) -> None:
        for entry in iter_children(source_dir):
            logger.debug("Entry: %s", entry.path)
            target = dest_dir / entry.name
            if entry.is_dir:
                if depth + 1 >= self._max_depth:
                    logger.error(
                        "Not descending into %s: deeper than %d levels",
                        entry.path, self._max_depth,
                    )
                    continue
                if self._ensure_dir(entry.path, target):
                    self._merge_dir(entry.path, target, depth + 1)
            else:
                self._merge_file(entry.path, target)

    def _ensure_dir(self, source: Path, target: Path) -> bool:
        """Make sure *target* is a directory.  Returns False if the branch must be skipped."""
        if target.is_dir():
            return True

        rec = MergeRecord(
            source=str(source),
            destination=str(target),
            action=ACTION_CREATE_DIR,
            started=time.time(),
        )
        try:
            if os.path.lexists(target):
                rec.error = "A file with the same name is in the way"
                logger.error("Cannot merge directory %s: %s is not a directory", source, target)
            else:
                logger.debug("Creating directory: %s", target)
                target.mkdir(parents=True, exist_ok=True)
                rec.success = True
        except OSError as exc:
            rec.error = str(exc)
            logger.error("Error creating subdirectory %s: %s", target, exc)
        finally:
            rec.finished = time.time()
            self._finish(rec)
        return rec.success

    def _merge_file(self, source: Path, target: Path) -> None:
        exists = os.path.lexists(target)
        rec = MergeRecord(
            source=str(source),
            destination=str(target),
            action=ACTION_REPLACE if exists else ACTION_COPY,
            started=time.time(),
        )
        try:
            rec.size_bytes = source.stat().st_size
            if exists and target.is_dir() and not target.is_symlink():
                rec.error = "A directory with the same name is in the way"
                logger.error("Cannot merge file %s: %s is a directory", source, target)
            elif exists:
                logger.debug("Replacing file: %s with file: %s", target, source)
                replace_file(source, target)
                rec.success = True
            else:
                logger.debug("Copying file: %s to file: %s", source, target)
                shutil.copy2(source, target)
                rec.success = True
        except OSError as exc:
            rec.error = str(exc)
            verb = "replacing" if exists else "copying"
            logger.error("Error %s file %s: %s", verb, target, exc)
        finally:
            rec.finished = time.time()
            self._finish(rec)

    def _finish(self, rec: MergeRecord) -> None:
        self.stats.record(rec)
        if self._on_entry_complete:
            try:
                self._on_entry_complete(rec)
            except Exception:
                logger.exception("Error in on_entry_complete callback")
