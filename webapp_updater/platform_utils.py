"""
Cross-platform utilities for WebApp Updater.

Centralises all OS-detection logic so every other module can import
a single canonical set of helpers rather than scattering ``sys.platform``
checks throughout the codebase.

Supported platforms:
  - Windows 10/11
  - macOS 12+ (Monterey and newer)
  - Linux (best-effort)
"""

from __future__ import annotations

import logging
import os
import stat
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

# ---- platform flags ----------------------------------------------------

IS_WINDOWS: bool = sys.platform == "win32"
IS_MACOS: bool = sys.platform == "darwin"
IS_LINUX: bool = sys.platform.startswith("linux")

_APP_DIR_NAME = "WebAppUpdater"

# ---- directories -------------------------------------------------------


def get_config_dir() -> Path:
    """
    Return the application config directory, created if needed.

    - Windows : ``%APPDATA%\\WebAppUpdater``
    - macOS   : ``~/Library/Application Support/WebAppUpdater``
    - Linux   : ``$XDG_CONFIG_HOME/WebAppUpdater`` (default ``~/.config``)
    """
    if IS_WINDOWS:
        base = os.environ.get("APPDATA", str(Path.home()))
    elif IS_MACOS:
        base = str(Path.home() / "Library" / "Application Support")
    else:
        base = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))

    config_dir = Path(base) / _APP_DIR_NAME
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_log_path() -> Path:
    """Return the path to the log file (inside the config directory)."""
    return get_config_dir() / "webapp_updater.log"


def get_documents_dir() -> Path:
    """
    Return the user's shared documents folder (the default drop area).

    Not created here: the drop area belongs to the host platform.

    - Windows/macOS : ``~/Documents``
    - Linux         : ``$XDG_DOCUMENTS_DIR`` (default ``~/Documents``)
    """
    if IS_LINUX:
        xdg = os.environ.get("XDG_DOCUMENTS_DIR")
        if xdg:
            return Path(xdg).expanduser()
    return Path.home() / "Documents"


def get_user_storage_dir() -> Path:
    """
    Return the default local storage root for loaded web apps.

    - Windows : ``%LOCALAPPDATA%\\WebAppUpdater\\Storage``
    - macOS   : ``~/Library/Application Support/WebAppUpdater/Storage``
    - Linux   : ``$XDG_DATA_HOME/WebAppUpdater/Storage`` (default ``~/.local/share``)
    """
    if IS_WINDOWS:
        base = os.environ.get("LOCALAPPDATA", str(Path.home()))
    elif IS_MACOS:
        base = str(Path.home() / "Library" / "Application Support")
    else:
        base = os.environ.get("XDG_DATA_HOME", str(Path.home() / ".local" / "share"))
    return Path(base) / _APP_DIR_NAME / "Storage"


def is_hidden_name(name: str) -> bool:
    """Return True for dot-files and dot-directories."""
    return name.startswith(".")


def is_hidden_entry(name: str, st: os.stat_result | None = None) -> bool:
    """
    Return True if an entry is hidden.

    Dot-names are hidden everywhere.  Given the entry's *st* (not
    following symlinks), the macOS ``UF_HIDDEN`` flag and the Windows
    ``FILE_ATTRIBUTE_HIDDEN`` attribute count as hidden too, on the
    platforms that report them.
    """
    if is_hidden_name(name):
        return True
    if st is None:
        return False
    if getattr(st, "st_flags", 0) & stat.UF_HIDDEN:
        return True
    return bool(getattr(st, "st_file_attributes", 0) & stat.FILE_ATTRIBUTE_HIDDEN)
