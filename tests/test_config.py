import json
import importlib
import logging
import pytest
from pydantic import ValidationError
from tree_optimizer.core import config

@pytest.fixture
def settings_file(tmp_path, monkeypatch):
    path = tmp_path / "data" / "settings.json"
    monkeypatch.setenv("SETTINGS_FILE", str(path))
    monkeypatch.delenv("MIN_DATA_POINTS", raising=False)
    monkeypatch.delenv("OPTIMIZATION_STRENGTH", raising=False)
    importlib.reload(config)
    yield path
    monkeypatch.undo()
    importlib.reload(config)

def test_config_env_loading(monkeypatch):
    monkeypatch.setenv("MIN_DATA_POINTS", "7")
    monkeypatch.setenv("OPTIMIZATION_STRENGTH", "conservative")
    monkeypatch.setenv("SEED_TREE_FILE", "/tmp/custom_tree.json")

    importlib.reload(config)
    try:
        assert config.MIN_DATA_POINTS == 7
        assert config.OPTIMIZATION_STRENGTH == "conservative"
        assert config.SEED_TREE_FILE == "/tmp/custom_tree.json"
    finally:
        monkeypatch.undo()
        importlib.reload(config)

def test_log_level_applies_to_package_logger(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")

    importlib.reload(config)
    try:
        assert config.LOG_LEVEL == "DEBUG"
        assert logging.getLogger("tree_optimizer").level == logging.DEBUG
    finally:
        logging.getLogger("tree_optimizer").setLevel(logging.NOTSET)
        monkeypatch.undo()
        importlib.reload(config)

def test_defaults_without_settings_file(settings_file):
    settings = config.default_settings()

    assert settings.min_data_points == 20
    assert settings.optimization_strength == "balanced"
    assert settings.preserve_nodes == []
    assert settings.target_metrics == ["pathLength", "completionTime", "successRate"]

def test_get_set_global_settings(settings_file):
    config.update_global_setting("optimization_strength", "aggressive")
    config.update_global_setting("preserve_nodes", ["root"])

    assert settings_file.exists()
    assert config.get_global_setting("optimization_strength") == "aggressive"
    assert config.get_global_setting("missing", "fallback") == "fallback"

    settings = config.default_settings()
    assert settings.optimization_strength == "aggressive"
    assert settings.preserve_nodes == ["root"]

def test_corrupt_settings_file_is_ignored(settings_file):
    settings_file.parent.mkdir(parents=True)
    settings_file.write_text("{not json")

    assert config.get_all_global_settings() == {}
    assert config.default_settings().min_data_points == 20

def test_invalid_settings_raise(settings_file):
    settings_file.parent.mkdir(parents=True)
    settings_file.write_text(json.dumps({"optimization_strength": "reckless"}))

    with pytest.raises(ValidationError):
        config.default_settings()

def test_settings_fall_back_to_environment(settings_file):
    assert config.get_global_setting("min_data_points") == 20
    assert config.get_global_setting("optimization_strength") == "balanced"
    assert config.get_global_setting("unrelated") is None

def test_invalid_optimization_setting_is_not_saved(settings_file):
    with pytest.raises(ValidationError):
        config.update_global_setting("min_data_points", -5)
    assert not settings_file.exists()

    assert config.update_global_setting("min_data_points", 8) is True
    assert config.update_global_setting("dashboard_theme", "dark") is True
    assert config.default_settings().min_data_points == 8

def test_non_object_settings_file_is_ignored(settings_file):
    settings_file.parent.mkdir(parents=True)
    settings_file.write_text(json.dumps(["not", "a", "mapping"]))

    assert config.get_all_global_settings() == {}
