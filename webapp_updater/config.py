"""Configuration management for WebApp Updater.

Stores and retrieves user settings from a JSON config file
in the platform-appropriate application data directory.
"""

import json
import logging
from pathlib import Path
from typing import Any

from webapp_updater.platform_utils import (
    get_config_dir as _platform_config_dir,
)
from webapp_updater.platform_utils import (
    get_documents_dir,
    get_user_storage_dir,
)
from webapp_updater.platform_utils import (
    get_log_path as _platform_log_path,
)

logger = logging.getLogger(__name__)

# Run modes; the updater only runs in development mode
MODE_DEVELOPMENT = "development"
MODE_PRODUCTION = "production"

DEFAULT_SETTLE_TIME = 1.0
DEFAULT_MAX_MERGE_DEPTH = 32

DEFAULT_CONFIG: dict[str, Any] = {
    "documents_folder": "",  # blank = platform documents folder
    "storage_folder": "",  # blank = platform user storage folder
    "mode": MODE_DEVELOPMENT,
    # ---- change detection ----
    "settle_time_seconds": DEFAULT_SETTLE_TIME,  # quiet period before merging
    # ---- merge ----
    "max_merge_depth": DEFAULT_MAX_MERGE_DEPTH,
    "log_level": "INFO",
    # ---- log rotation ----
    "max_log_size_mb": 10,  # rotate log when it exceeds this size
    "log_backup_count": 3,  # number of rotated log files to keep
}

# (key, type, minimum) for values clamped on load
_NUMERIC_KEYS = (
    ("settle_time_seconds", float, 0.0),
    ("max_merge_depth", int, 1),
    ("max_log_size_mb", int, 1),
    ("log_backup_count", int, 0),
)


def get_config_dir() -> Path:
    """Return the platform-appropriate application config directory."""
    return _platform_config_dir()


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return get_config_dir() / "config.json"


def get_log_path() -> Path:
    """Return the path to the log file."""
    return _platform_log_path()


class Config:
    """Configuration manager backed by a JSON file."""

    def __init__(self, path: Path | None = None):
        """Load config from *path*, falling back to the platform default."""
        self._path = path or get_config_path()
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    # ---- persistence ----

    def load(self) -> None:
        """Load configuration from disk, applying defaults for missing keys."""
        if self._path.exists():
            try:
                with open(self._path, encoding="utf-8") as fh:
                    stored = json.load(fh)
                if not isinstance(stored, dict):
                    raise ValueError("top-level JSON value is not an object")
                # Merge stored values over defaults so new keys get defaults
                self._data = {**DEFAULT_CONFIG, **stored}
                self._normalise()
                logger.info("Configuration loaded from %s", self._path)
            except (ValueError, OSError) as exc:
                logger.warning("Could not read config (%s); using defaults.", exc)
                self._data = dict(DEFAULT_CONFIG)
        else:
            self._data = dict(DEFAULT_CONFIG)
            self.save()
            logger.info("Created default configuration at %s", self._path)

    def _normalise(self) -> None:
        """Coerce hand-edited values; anything unusable falls back to its default."""
        for key, kind, minimum in _NUMERIC_KEYS:
            try:
                value = kind(self._data[key])
            except (TypeError, ValueError):
                logger.warning(
                    "Invalid %s %r in config; using %r.",
                    key, self._data[key], DEFAULT_CONFIG[key],
                )
                value = DEFAULT_CONFIG[key]
            self._data[key] = max(minimum, value)

        for key in ("documents_folder", "storage_folder", "log_level", "mode"):
            if not isinstance(self._data[key], str):
                logger.warning("Invalid %s %r in config; using default.", key, self._data[key])
                self._data[key] = DEFAULT_CONFIG[key]
        self.mode = self._data["mode"]
        self.log_level = self._data["log_level"]

    def save(self) -> None:
        """Persist the current configuration to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2)
            logger.info("Configuration saved.")
        except OSError as exc:
            logger.error("Failed to save configuration: %s", exc)

    # ---- folders ----

    @property
    def documents_folder(self) -> str:
        """Return the watched documents folder (platform default when blank)."""
        return self._data.get("documents_folder") or str(get_documents_dir())

    @documents_folder.setter
    def documents_folder(self, value: str) -> None:
        """Set the watched documents folder path."""
        self._data["documents_folder"] = value.strip()

    @property
    def storage_folder(self) -> str:
        """Return the user local storage root (platform default when blank)."""
        return self._data.get("storage_folder") or str(get_user_storage_dir())

    @storage_folder.setter
    def storage_folder(self, value: str) -> None:
        """Set the user local storage root."""
        self._data["storage_folder"] = value.strip()

    # ---- mode ----

    @property
    def mode(self) -> str:
        """Return the run mode."""
        return self._data.get("mode", MODE_DEVELOPMENT)

    @mode.setter
    def mode(self, value: str) -> None:
        """Set the run mode; anything unrecognised is treated as production."""
        value = value.strip().lower()
        if value not in (MODE_DEVELOPMENT, MODE_PRODUCTION):
            value = MODE_PRODUCTION
        self._data["mode"] = value

    @property
    def is_development(self) -> bool:
        return self.mode == MODE_DEVELOPMENT

    # ---- change detection ----

    @property
    def settle_time(self) -> float:
        """Return the quiet period (seconds) before a merge starts."""
        return float(self._data.get("settle_time_seconds", DEFAULT_SETTLE_TIME))

    @settle_time.setter
    def settle_time(self, value: float) -> None:
        """Set the quiet period (minimum 0 s)."""
        self._data["settle_time_seconds"] = max(0.0, float(value))

    # ---- merge ----

    @property
    def max_merge_depth(self) -> int:
        """Return the deepest directory level a merge descends into."""
        return int(self._data.get("max_merge_depth", DEFAULT_MAX_MERGE_DEPTH))

    @max_merge_depth.setter
    def max_merge_depth(self, value: int) -> None:
        """Set the merge depth bound (minimum 1)."""
        self._data["max_merge_depth"] = max(1, int(value))

    # ---- logging ----

    @property
    def log_level(self) -> str:
        """Return the current logging level name."""
        return self._data.get("log_level", "INFO")

    @log_level.setter
    def log_level(self, value: str) -> None:
        """Set the logging level name."""
        self._data["log_level"] = value.strip().upper()

    @property
    def max_log_size_mb(self) -> int:
        """Return the maximum log file size in MB before rotation."""
        return int(self._data.get("max_log_size_mb", 10))

    @max_log_size_mb.setter
    def max_log_size_mb(self, value: int) -> None:
        """Set the maximum log file size in MB (minimum 1)."""
        self._data["max_log_size_mb"] = max(1, int(value))

    @property
    def log_backup_count(self) -> int:
        """Return the number of rotated log backups to keep."""
        return int(self._data.get("log_backup_count", 3))

    @log_backup_count.setter
    def log_backup_count(self, value: int) -> None:
        """Set the number of rotated log backups to keep."""
        self._data["log_backup_count"] = max(0, int(value))

    # ---- convenience ----

    def is_configured(self) -> bool:
        """Return True when both the documents and storage folders exist."""
        return Path(self.documents_folder).is_dir() and Path(self.storage_folder).is_dir()
