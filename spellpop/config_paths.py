# -*- coding: utf-8 -*-
from __future__ import annotations

import itertools
import json
import logging
import os
import sys
import threading
from dataclasses import dataclass, replace
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Callable, Dict, Optional

APP_NAME = "SpellPop"
CONFIG_FILENAME = "settings.json"
LOG_DIR_NAME = "logs"
ASSETS_DIR_NAME = "assets"

DEFAULT_HOTKEY = "Shift+Control+Option+Command+O"

DEFAULT_SETTINGS: Dict[str, object] = {
    "hotkey": DEFAULT_HOTKEY,
    "soundEnabled": True,
}


@dataclass(frozen=True)
class AppConfig:
    hotkey: str = DEFAULT_HOTKEY
    sound_enabled: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "AppConfig":
        """Build a config from parsed JSON, replacing invalid fields with defaults."""
        from spellpop.hotkeys import is_valid_binding

        hotkey = data.get("hotkey")
        if not isinstance(hotkey, str) or not is_valid_binding(hotkey):
            if hotkey is not None:
                get_logger().warning("Ignoring invalid stored hotkey %r", hotkey)
            hotkey = DEFAULT_HOTKEY
        sound_enabled = data.get("soundEnabled")
        if not isinstance(sound_enabled, bool):
            sound_enabled = bool(DEFAULT_SETTINGS["soundEnabled"])
        return cls(hotkey=hotkey, sound_enabled=sound_enabled)

    def to_dict(self) -> Dict[str, object]:
        return {"hotkey": self.hotkey, "soundEnabled": self.sound_enabled}


def get_config_dir() -> Path:
    """
    All persistent data goes here:
      $XDG_CONFIG_HOME/SpellPop (when set)
      ~/Library/Application Support/SpellPop (macOS)
      ~/.config/SpellPop (others)
    Subfolders used:
      logs/  (plus settings.json + the instance lock)
    """
    xdg_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_home:
        base_dir = Path(xdg_home)
    elif sys.platform == "darwin":
        base_dir = Path.home() / "Library" / "Application Support"
    else:
        base_dir = Path.home() / ".config"
    config_dir = base_dir / APP_NAME
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / LOG_DIR_NAME).mkdir(parents=True, exist_ok=True)
    return config_dir


def get_logs_dir() -> Path:
    logs_dir = get_config_dir() / LOG_DIR_NAME
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def get_config_file_path() -> Path:
    return get_config_dir() / CONFIG_FILENAME


def load_settings() -> AppConfig:
    """Read settings.json; any problem yields the defaults."""
    path = get_config_file_path()
    loaded: Dict[str, object] = {}
    try:
        if path.exists():
            text = path.read_text("utf-8-sig")
            if text.strip():
                data = json.loads(text)
                if isinstance(data, dict):
                    loaded = data
                else:
                    get_logger().warning("Settings file %s does not hold an object; using defaults", path)
    except Exception:
        get_logger().exception("Unable to read settings from %s", path)
        loaded = {}
    return AppConfig.from_dict(loaded)


_SAVE_LOCK = threading.Lock()
_save_sequence = itertools.count(1)
_last_saved_sequence = 0


def save_settings(config: AppConfig, sequence: Optional[int] = None) -> bool:
    """Write *config* atomically; a *sequence* older than the last write is skipped."""
    global _last_saved_sequence

    path = get_config_file_path()
    payload = json.dumps(config.to_dict(), indent=2)
    with _SAVE_LOCK:
        if sequence is not None and sequence <= _last_saved_sequence:
            get_logger().debug("Skipping stale settings snapshot %s", sequence)
            return True
        temp_path = path.with_name(path.name + ".tmp")
        try:
            temp_path.write_text(payload, encoding="utf-8")
            os.replace(temp_path, path)
        except Exception:
            get_logger().exception("Unable to save settings to %s", path)
            try:
                temp_path.unlink()
            except OSError:
                get_logger().debug("Could not remove %s", temp_path)
            return False
        if sequence is not None:
            _last_saved_sequence = sequence
    return True


def save_settings_async(config: AppConfig) -> threading.Thread:
    """Persist *config* on a background thread; failures are only logged."""
    thread = threading.Thread(
        target=save_settings,
        args=(config, next(_save_sequence)),
        name="SpellPopSaveSettings",
        daemon=True,
    )
    thread.start()
    return thread


class SettingsStore:
    """Holds the live AppConfig and persists every change wholesale."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        saver: Callable[[AppConfig], object] = save_settings_async,
    ):
        self._config = config if config is not None else load_settings()
        self._saver = saver
        self._lock = threading.Lock()

    @property
    def config(self) -> AppConfig:
        return self._config

    def update(self, **changes) -> AppConfig:
        with self._lock:
            self._config = replace(self._config, **changes)
            snapshot = self._config
            # scheduled under the lock so saves are queued in update order
            try:
                self._saver(snapshot)
            except Exception:
                get_logger().exception("Unable to schedule settings save")
        return snapshot


def get_app_base_dir() -> Path:
    if getattr(sys, "frozen", False):
        # Running from a bundled app (PyInstaller / py2app)
        base_path = getattr(sys, "_MEIPASS", Path(sys.executable).resolve().parent)
        return Path(base_path)
    return Path(__file__).resolve().parent.parent


def asset_path(relative_name: str) -> Path:
    return get_app_base_dir() / ASSETS_DIR_NAME / relative_name


LOGGER_NAME = "spellpop"
_LOG_HANDLER: Optional[RotatingFileHandler] = None
_CONSOLE_HANDLER: Optional[logging.Handler] = None
_LOG_CONFIG_LOCK = threading.Lock()


def _configure_logging() -> logging.Logger:
    global _LOG_HANDLER, _CONSOLE_HANDLER

    with _LOG_CONFIG_LOCK:
        app_logger = logging.getLogger(LOGGER_NAME)
        if _LOG_HANDLER is None:
            logs_dir = get_logs_dir()
            handler = RotatingFileHandler(
                logs_dir / "spellpop.log",
                maxBytes=1_048_576,
                backupCount=5,
                encoding="utf-8",
            )
            formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
            handler.setFormatter(formatter)
            handler.setLevel(logging.DEBUG)
            _LOG_HANDLER = handler

            root_logger = logging.getLogger()
            root_logger.addHandler(handler)
            if root_logger.level == logging.NOTSET or root_logger.level > logging.INFO:
                root_logger.setLevel(logging.INFO)

            if _CONSOLE_HANDLER is None:
                console_handler = logging.StreamHandler()
                console_handler.setLevel(logging.WARNING)
                console_handler.setFormatter(formatter)
                root_logger.addHandler(console_handler)
                _CONSOLE_HANDLER = console_handler

            logging.captureWarnings(True)

        app_logger.setLevel(logging.INFO)
        app_logger.propagate = True
        return app_logger


_CONFIGURED_LOGGER = _configure_logging()


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    logger = _CONFIGURED_LOGGER if name == LOGGER_NAME else logging.getLogger(name)
    if logger is not _CONFIGURED_LOGGER:
        _configure_logging()
    return logger
