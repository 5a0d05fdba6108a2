"""Storage location lookup for WebApp Updater.

Maps a dropped folder's name to the on-disk location of the loaded web
app with the same name.  Loaded apps live under::

    <storage root>/WebApps/<app name>/<version>/

and a drop is merged into the ``<version>`` directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

from webapp_updater.enumerator import subdirectories

logger = logging.getLogger(__name__)

WEBAPPS_DIR_NAME = "WebApps"


class StoragePathResolver:
    """Resolve the documents folder and loaded-app storage paths."""

    def __init__(self, documents_folder: str | Path, storage_folder: str | Path):
        self._documents = Path(documents_folder)
        self._storage = Path(storage_folder)

    def resolve_documents_root(self) -> Path | None:
        """Return the watched documents folder, or None if it is missing."""
        if self._documents.is_dir():
            return self._documents
        logger.error("Documents folder not found: %s", self._documents)
        return None

    def resolve_user_storage_root(self) -> Path | None:
        """Return the user local storage root, or None if it is missing."""
        if self._storage.is_dir():
            return self._storage
        logger.error("User storage folder not found: %s", self._storage)
        return None

    def resolve_loaded_app_path(self, name: str | None) -> Path | None:
        """
        Return the storage directory of the loaded web app called *name*.

        An app may have several version directories; the first one by name
        wins.  Returns None when the app was never loaded.
        """
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            return None

        storage = self.resolve_user_storage_root()
        if storage is None:
            return None

        app_dir = storage / WEBAPPS_DIR_NAME / name
        if not app_dir.is_dir():
            return None

        versions = subdirectories(app_dir)
        if len(versions) > 1:
            logger.debug(
                "Web app %s has %d versions; using %s",
                name, len(versions), versions[0].name,
            )
        return versions[0] if versions else None
