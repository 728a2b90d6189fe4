from __future__ import annotations

import json

import pytest

from spellpop import config_paths

pytestmark = pytest.mark.core_headless


def test_get_config_dir_creates_expected_structure(isolated_config):
    config_dir = config_paths.get_config_dir()
    assert config_dir == isolated_config
    assert (config_dir / config_paths.LOG_DIR_NAME).is_dir()
    assert config_paths.get_config_file_path() == config_dir / "settings.json"


def test_missing_file_yields_defaults():
    config = config_paths.load_settings()
    assert config == config_paths.AppConfig()
    assert config.to_dict() == config_paths.DEFAULT_SETTINGS


@pytest.mark.parametrize("content", ["", "   \n", "{not json", "[1, 2, 3]", '"hotkey"'])
def test_unusable_file_yields_defaults(content):
    config_paths.get_config_file_path().write_text(content, encoding="utf-8")
    assert config_paths.load_settings() == config_paths.AppConfig()


def test_invalid_fields_fall_back_individually():
    config_paths.get_config_file_path().write_text(
        json.dumps({"hotkey": "O", "soundEnabled": False}), encoding="utf-8"
    )
    config = config_paths.load_settings()
    assert config.hotkey == config_paths.DEFAULT_HOTKEY
    assert config.sound_enabled is False


def test_non_boolean_sound_flag_is_ignored():
    config_paths.get_config_file_path().write_text(
        json.dumps({"hotkey": "Shift+Command+K", "soundEnabled": "no"}), encoding="utf-8"
    )
    config = config_paths.load_settings()
    assert config.hotkey == "Shift+Command+K"
    assert config.sound_enabled is True


def test_settings_round_trip():
    config = config_paths.AppConfig(hotkey="Control+Option+S", sound_enabled=False)
    assert config_paths.save_settings(config) is True

    settings_file = config_paths.get_config_file_path()
    assert json.loads(settings_file.read_text(encoding="utf-8")) == {
        "hotkey": "Control+Option+S",
        "soundEnabled": False,
    }
    assert config_paths.load_settings() == config


def test_save_settings_async_writes_file():
    config = config_paths.AppConfig(hotkey="Shift+Command+K")
    thread = config_paths.save_settings_async(config)
    thread.join(timeout=5)
    assert not thread.is_alive()
    assert config_paths.load_settings().hotkey == "Shift+Command+K"


def test_save_failure_returns_false(isolated_config):
    config_paths.get_config_file_path().mkdir()
    assert config_paths.save_settings(config_paths.AppConfig()) is False
    assert not (isolated_config / "settings.json.tmp").exists()


def test_rapid_async_updates_leave_latest_valid_file():
    threads = []
    store = config_paths.SettingsStore(
        config_paths.AppConfig(),
        saver=lambda config: threads.append(config_paths.save_settings_async(config)),
    )
    hotkeys = ["Shift+Command+K", "Control+Option+Space", "Shift+Control+Option+Command+F12"]

    for round_number in range(20):
        for index in range(6):
            store.update(hotkey=hotkeys[index % len(hotkeys)], sound_enabled=bool(index % 2))
        for thread in threads:
            thread.join(timeout=5)
        threads.clear()

        text = config_paths.get_config_file_path().read_text(encoding="utf-8")
        assert json.loads(text) == store.config.to_dict(), f"round {round_number}"


def test_older_snapshot_does_not_overwrite_newer_one():
    older = next(config_paths._save_sequence)
    newer = next(config_paths._save_sequence)
    latest = config_paths.AppConfig(hotkey="Shift+Command+K", sound_enabled=False)

    assert config_paths.save_settings(latest, newer) is True
    assert config_paths.save_settings(config_paths.AppConfig(), older) is True

    assert config_paths.load_settings() == latest


def test_settings_store_update_saves_snapshot():
    saved = []
    store = config_paths.SettingsStore(config_paths.AppConfig(), saver=saved.append)

    updated = store.update(sound_enabled=False)

    assert updated.sound_enabled is False
    assert store.config is updated
    assert saved == [updated]


def test_settings_store_loads_from_disk_by_default():
    config_paths.save_settings(config_paths.AppConfig(hotkey="Shift+Command+K"))
    store = config_paths.SettingsStore(saver=lambda _config: None)
    assert store.config.hotkey == "Shift+Command+K"


def test_settings_store_survives_saver_errors():
    def saver(_config):
        raise OSError("disk full")

    store = config_paths.SettingsStore(config_paths.AppConfig(), saver=saver)
    assert store.update(hotkey="Shift+Command+K").hotkey == "Shift+Command+K"


def test_asset_path_points_into_assets_dir():
    path = config_paths.asset_path("icon.png")
    assert path.parent.name == config_paths.ASSETS_DIR_NAME
    assert path.name == "icon.png"
