import json

import pytest

from cue_pos.core import config_store, paths


@pytest.fixture
def settings_file(tmp_path, monkeypatch):
    target = tmp_path / "config" / "settings.json"
    monkeypatch.setattr(paths, "SETTINGS_FILE", target)
    return target


def test_defaults_written_on_first_load(settings_file):
    config = config_store.load_config()
    assert config["store_backend"] == "json"
    assert config["sync_debounce_ms"] == 500
    assert json.loads(settings_file.read_text(encoding="utf-8"))["currency"] == "₱"


def test_set_and_get_value(settings_file):
    config_store.set_config_value("low_stock_threshold", 3)
    assert config_store.get_config_value("low_stock_threshold") == 3


def test_unknown_backend_falls_back(settings_file):
    settings_file.parent.mkdir(parents=True, exist_ok=True)
    settings_file.write_text(json.dumps({"store_backend": "ftp"}), encoding="utf-8")
    assert config_store.load_config()["store_backend"] == "json"


def test_corrupt_file_uses_defaults(settings_file):
    settings_file.parent.mkdir(parents=True, exist_ok=True)
    settings_file.write_text("{oops", encoding="utf-8")
    assert config_store.load_config()["sync_quiet_ms"] == 300
