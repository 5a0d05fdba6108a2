"""
Headless runner for WebApp Updater.

Runs the updater in the foreground with no UI, just watching the
documents folder and merging dropped web app folders:

    python -m webapp_updater run     (blocks until Ctrl-C)
    python -m webapp_updater once    (single update pass, then exit)

On POSIX systems the host lifecycle can be driven from outside:
``kill -USR1 <pid>`` acts as "entered background" (stop watching) and
``kill -USR2 <pid>`` as "entering foreground" (watch again).
"""

import logging
import logging.handlers
import queue
import signal
import sys

from webapp_updater import __app_name__, __version__
from webapp_updater.config import Config, get_config_path, get_log_path
from webapp_updater.events import HostLifecycle
from webapp_updater.updater import UpdaterDisabledError, WebAppUpdater

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(config: Config, log_path=None) -> None:
    """Configure rotating file log and stderr handler."""
    log_path = log_path or get_log_path()
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    fmt = logging.Formatter(_LOG_FORMAT)

    # Rotating file handler
    max_bytes = config.max_log_size_mb * 1024 * 1024
    fh = logging.handlers.RotatingFileHandler(
        str(log_path),
        maxBytes=max_bytes,
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )
    fh.setLevel(level)
    fh.setFormatter(fmt)
    root_logger.addHandler(fh)

    # Stderr handler (for development)
    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(level)
    sh.setFormatter(fmt)
    root_logger.addHandler(sh)


def _load_config() -> Config:
    cfg = Config()
    setup_logging(cfg)
    logger.info("%s %s starting.", __app_name__, __version__)
    if not cfg.is_configured():
        logger.error(
            "Documents folder (%s) or storage folder (%s) does not exist.",
            cfg.documents_folder, cfg.storage_folder,
        )
        raise RuntimeError(f"{__app_name__} is not configured.")
    return cfg


class LifecycleEventQueue:
    """
    Hands lifecycle events from signal handlers to the main loop.

    Signal handlers only enqueue; the watcher is started and stopped
    from :meth:`dispatch_pending`, never from inside a handler.
    """

    def __init__(self, lifecycle: HostLifecycle):
        self._lifecycle = lifecycle
        self._queue: queue.SimpleQueue = queue.SimpleQueue()

    def post_background(self) -> None:
        self._queue.put(self._lifecycle.enter_background)

    def post_foreground(self) -> None:
        self._queue.put(self._lifecycle.enter_foreground)

    def dispatch_pending(self, timeout: float | None = None) -> int:
        """Wait up to *timeout* for an event, then run every queued one.  Returns the count."""
        try:
            action = self._queue.get(timeout=timeout)
        except queue.Empty:
            return 0
        count = 0
        while True:
            action()
            count += 1
            try:
                action = self._queue.get_nowait()
            except queue.Empty:
                return count


# ======================================================================
# Commands
# ======================================================================

def run_once() -> int:
    """Apply whatever is in the documents folder right now.  Returns drops merged."""
    cfg = _load_config()
    with WebAppUpdater(cfg) as updater:
        updater.stop_watcher()
        merged = updater.documents_updated()
        stats = updater.copier.stats
    print(
        f"Merged {merged} folder{'s' if merged != 1 else ''}: "
        f"{stats.total_copied} copied, {stats.total_replaced} replaced, "
        f"{stats.total_failed} failed."
    )
    return merged


def run_foreground() -> None:
    """Watch in the foreground until SIGINT/SIGTERM."""
    cfg = _load_config()
    lifecycle = HostLifecycle()
    events = LifecycleEventQueue(lifecycle)
    updater = WebAppUpdater(cfg, lifecycle=lifecycle)
    stop = False

    def _handler(sig, frame):
        nonlocal stop
        stop = True

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)
    if hasattr(signal, "SIGUSR1"):
        signal.signal(signal.SIGUSR1, lambda sig, frame: events.post_background())
        signal.signal(signal.SIGUSR2, lambda sig, frame: events.post_foreground())

    print(f"{__app_name__} watching {cfg.documents_folder} (press Ctrl-C to stop)…")
    try:
        while not stop:
            events.dispatch_pending(timeout=1)
    finally:
        updater.close()
    print(f"{__app_name__} stopped.")


# ======================================================================
# CLI entry
# ======================================================================

def main(argv: list[str] | None = None) -> None:
    """Entry point for the command line."""
    argv = sys.argv[1:] if argv is None else argv
    cmd = argv[0] if argv else "run"

    actions = {
        "run": run_foreground,
        "once": run_once,
    }
    if cmd not in actions:
        _show_help()
        return

    try:
        actions[cmd]()
    except UpdaterDisabledError as exc:
        logger.error("%s", exc)
        print(f"ERROR: {exc}")
        sys.exit(1)
    except RuntimeError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)


def _show_help() -> None:
    print(f"{__app_name__}: development-only web app updater")
    print()
    print("Usage:")
    print("  python -m webapp_updater run     Watch the documents folder (Ctrl-C to stop)")
    print("  python -m webapp_updater once    Merge current drop folders and exit")
    print("  python -m webapp_updater help    Show this message")
    print()
    print(f"Config file: {get_config_path()}")


if __name__ == "__main__":
    main()
