import json
import logging
import logging.handlers

import pytest

from webapp_updater import service
from webapp_updater.config import MODE_PRODUCTION, Config
from webapp_updater.events import HostLifecycle
from webapp_updater.paths import WEBAPPS_DIR_NAME
from webapp_updater.updater import WebAppUpdater
from webapp_updater.watcher import ChangeNotifier


@pytest.fixture
def patched_config(monkeypatch, config):
    monkeypatch.setattr(service, "Config", lambda: config)
    monkeypatch.setattr(service, "setup_logging", lambda cfg: None)
    return config


def test_help_lists_commands(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(service, "get_config_path", lambda: tmp_path / "config.json")

    service.main(["help"])

    out = capsys.readouterr().out
    assert "once" in out
    assert "run" in out


def test_once_merges_drop_folders(patched_config, documents, storage, make_tree, capsys):
    app = make_tree(storage / WEBAPPS_DIR_NAME / "sample-webapp" / "1.0.0", {"index.html": "old"})
    make_tree(documents / "sample-webapp", {"index.html": "new", "app.js": "js"})

    assert service.run_once() == 1

    assert (app / "index.html").read_text() == "new"
    assert (app / "app.js").read_text() == "js"
    assert "1 copied, 1 replaced, 0 failed" in capsys.readouterr().out


def test_production_mode_exits(patched_config, capsys):
    patched_config.mode = MODE_PRODUCTION

    with pytest.raises(SystemExit) as exc_info:
        service.main(["once"])

    assert exc_info.value.code == 1
    assert "development only" in capsys.readouterr().out


def test_unconfigured_exits(patched_config, tmp_path, capsys):
    patched_config.documents_folder = str(tmp_path / "missing")

    with pytest.raises(SystemExit):
        service.main(["once"])

    assert "not configured" in capsys.readouterr().out


def test_setup_logging_adds_rotating_file_handler(config, tmp_path):
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    log_path = tmp_path / "updater.log"
    try:
        service.setup_logging(config, log_path=log_path)
        added = [h for h in root.handlers if h not in before]
        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in added)
        logging.getLogger("webapp_updater.test").info("hello")
        for h in added:
            h.flush()
        assert "hello" in log_path.read_text()
    finally:
        for h in root.handlers[:]:
            if h not in before:
                root.removeHandler(h)
                h.close()
        root.setLevel(level)


def test_once_survives_hand_edited_config(monkeypatch, tmp_path, documents, storage, make_tree):
    path = tmp_path / "edited.json"
    path.write_text(json.dumps({
        "documents_folder": str(documents),
        "storage_folder": str(storage),
        "settle_time_seconds": "fast",
        "mode": "Development",
    }))
    monkeypatch.setattr(service, "Config", lambda: Config(path))
    monkeypatch.setattr(service, "setup_logging", lambda cfg: None)
    app = make_tree(storage / WEBAPPS_DIR_NAME / "sample-webapp" / "1.0.0", {"index.html": "old"})
    make_tree(documents / "sample-webapp", {"index.html": "new"})

    service.main(["once"])

    assert (app / "index.html").read_text() == "new"


def test_lifecycle_events_wait_for_the_main_loop():
    lifecycle = HostLifecycle()
    seen = []
    lifecycle.will_enter_foreground.connect(lambda: seen.append("fg"))
    lifecycle.did_enter_background.connect(lambda: seen.append("bg"))
    events = service.LifecycleEventQueue(lifecycle)

    events.post_background()
    events.post_foreground()
    assert seen == []

    assert events.dispatch_pending(timeout=0.1) == 2
    assert seen == ["bg", "fg"]
    assert events.dispatch_pending(timeout=0.01) == 0


def test_lifecycle_event_posted_during_close_runs_after_it(config, observer_factory, observers):
    lifecycle = HostLifecycle()
    events = service.LifecycleEventQueue(lifecycle)
    notifier = ChangeNotifier(config.documents_folder, observer_factory=observer_factory)
    updater = WebAppUpdater(config, lifecycle=lifecycle, notifier=notifier)

    # the handler fires while the updater is shutting down
    original_stop = notifier.stop

    def stop_with_signal():
        events.post_background()
        original_stop()

    notifier.stop = stop_with_signal
    updater.close()

    assert events.dispatch_pending(timeout=0.1) == 1
    assert observers[0].stop_calls == 1
