import json

from webapp_updater.config import (
    DEFAULT_CONFIG,
    MODE_DEVELOPMENT,
    MODE_PRODUCTION,
    Config,
)


def test_missing_file_is_created_with_defaults(tmp_path):
    path = tmp_path / "cfg" / "config.json"

    cfg = Config(path)

    assert path.exists()
    assert json.loads(path.read_text()) == DEFAULT_CONFIG
    assert cfg.mode == MODE_DEVELOPMENT
    assert cfg.is_development


def test_stored_values_override_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"settle_time_seconds": 2.5, "documents_folder": "/drop"}))

    cfg = Config(path)

    assert cfg.settle_time == 2.5
    assert cfg.documents_folder == "/drop"
    assert cfg.max_merge_depth == DEFAULT_CONFIG["max_merge_depth"]


def test_corrupt_file_falls_back_to_defaults(tmp_path, caplog):
    path = tmp_path / "config.json"
    path.write_text("{not json")

    cfg = Config(path)

    assert cfg.log_level == "INFO"
    assert "Could not read config" in caplog.text


def test_blank_folders_use_platform_defaults(tmp_path):
    cfg = Config(tmp_path / "config.json")

    assert cfg.documents_folder
    assert cfg.storage_folder


def test_setters_clamp_and_normalise(tmp_path):
    cfg = Config(tmp_path / "config.json")

    cfg.settle_time = -3
    cfg.max_merge_depth = 0
    cfg.max_log_size_mb = 0
    cfg.log_backup_count = -1
    cfg.log_level = " debug "
    cfg.mode = "staging"

    assert cfg.settle_time == 0.0
    assert cfg.max_merge_depth == 1
    assert cfg.max_log_size_mb == 1
    assert cfg.log_backup_count == 0
    assert cfg.log_level == "DEBUG"
    assert cfg.mode == MODE_PRODUCTION
    assert not cfg.is_development


def test_save_round_trip(tmp_path):
    path = tmp_path / "config.json"
    cfg = Config(path)
    cfg.storage_folder = str(tmp_path)
    cfg.save()

    assert Config(path).storage_folder == str(tmp_path)


def test_is_configured_requires_existing_folders(config, tmp_path):
    assert config.is_configured()

    config.storage_folder = str(tmp_path / "missing")
    assert not config.is_configured()


def test_wrongly_typed_values_fall_back_to_defaults(tmp_path, caplog):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "settle_time_seconds": "fast",
        "max_merge_depth": None,
        "max_log_size_mb": "20",
        "log_backup_count": -4,
        "documents_folder": 42,
    }))

    cfg = Config(path)

    assert cfg.settle_time == DEFAULT_CONFIG["settle_time_seconds"]
    assert cfg.max_merge_depth == DEFAULT_CONFIG["max_merge_depth"]
    assert cfg.max_log_size_mb == 20
    assert cfg.log_backup_count == 0
    assert isinstance(cfg.documents_folder, str)
    assert "Invalid settle_time_seconds 'fast'" in caplog.text
    assert "Invalid max_merge_depth None" in caplog.text


def test_loaded_mode_and_level_are_normalised(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"mode": " Development ", "log_level": "debug"}))

    cfg = Config(path)

    assert cfg.mode == MODE_DEVELOPMENT
    assert cfg.is_development
    assert cfg.log_level == "DEBUG"
