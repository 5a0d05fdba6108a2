"""Shallow directory enumeration for WebApp Updater.

Lists the immediate children of a directory, skipping hidden entries
(dot-names, plus entries the platform flags as hidden),
and classifies each one as a file or a directory.  Nothing here
descends into subdirectories; the merge engine recurses itself.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from webapp_updater.platform_utils import is_hidden_entry, is_hidden_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Entry:
    """One immediate child of an enumerated directory."""
    path: Path
    is_dir: bool

    @property
    def name(self) -> str:
        return self.path.name


def iter_children(directory: Path, skip_hidden: bool = True) -> Iterator[Entry]:
    """
    Lazily yield the immediate children of *directory*.

    Symlinks are never classified as directories, so a merge cannot
    follow a link back into its own tree.  Errors are logged and the
    offending entry (or the whole listing) is skipped.
    """
    try:
        scanner = os.scandir(directory)
    except OSError as exc:
        logger.error("Error enumerating %s: %s", directory, exc)
        return

    with scanner:
        for dir_entry in scanner:
            if skip_hidden and is_hidden_name(dir_entry.name):
                continue
            try:
                if skip_hidden and is_hidden_entry(
                    dir_entry.name, dir_entry.stat(follow_symlinks=False)
                ):
                    continue
                is_dir = dir_entry.is_dir(follow_symlinks=False)
            except OSError as exc:
                logger.error("Error inspecting %s: %s", dir_entry.path, exc)
                continue
            yield Entry(path=Path(dir_entry.path), is_dir=is_dir)


def subdirectories(directory: Path) -> list[Path]:
    """Return the non-hidden immediate subdirectories of *directory*, sorted by name."""
    return sorted(
        (entry.path for entry in iter_children(directory) if entry.is_dir),
        key=lambda p: p.name,
    )
