from __future__ import annotations

from pathlib import Path

import pytest

from webapp_updater.config import Config


class FakeObserver:
    """Stands in for a watchdog observer; records its lifecycle."""

    def __init__(self) -> None:
        self.handler = None
        self.path = None
        self.recursive = None
        self.started = False
        self.stop_calls = 0
        self.joined = False

    def schedule(self, handler, path, recursive=False):
        self.handler = handler
        self.path = path
        self.recursive = recursive

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stop_calls += 1

    def join(self, timeout=None) -> None:
        self.joined = True

    def is_alive(self) -> bool:
        return self.started and self.stop_calls == 0


@pytest.fixture
def observers() -> list[FakeObserver]:
    return []


@pytest.fixture
def observer_factory(observers):
    def _factory() -> FakeObserver:
        obs = FakeObserver()
        observers.append(obs)
        return obs

    return _factory


@pytest.fixture
def make_tree():
    def _make(root: Path, files: dict[str, str]) -> Path:
        root.mkdir(parents=True, exist_ok=True)
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return root

    return _make


@pytest.fixture
def read_tree():
    def _read(root: Path) -> dict[str, str]:
        return {
            p.relative_to(root).as_posix(): p.read_text()
            for p in sorted(root.rglob("*"))
            if p.is_file()
        }

    return _read


@pytest.fixture
def documents(tmp_path) -> Path:
    path = tmp_path / "Documents"
    path.mkdir()
    return path


@pytest.fixture
def storage(tmp_path) -> Path:
    path = tmp_path / "Storage"
    path.mkdir()
    return path


@pytest.fixture
def config(tmp_path, documents, storage) -> Config:
    cfg = Config(tmp_path / "config.json")
    cfg.documents_folder = str(documents)
    cfg.storage_folder = str(storage)
    cfg.settle_time = 0
    return cfg
