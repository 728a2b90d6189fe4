# -*- coding: utf-8 -*-
"""Request/response channels between the popup UI and the backend services."""
from __future__ import annotations

from typing import Callable, Dict, Optional

from spellpop.config_paths import SettingsStore, get_logger
from spellpop.hotkeys import HotkeyManager, format_for_display
from spellpop.session import AppSession, HideReason
from spellpop.sounds import SoundEffects
from spellpop.spelling import DictionaryService, SpellCheckResult, validate_word

logger = get_logger(__name__)

CHANNELS = (
    "spell-check",
    "get-clipboard",
    "set-clipboard",
    "hide-window",
    "get-settings",
    "update-hotkey",
    "update-sound-setting",
    "open-settings",
    "close-settings",
    "settings-closed",
)


class RequestBridge:
    """Dispatches named requests; every response is JSON-compatible."""

    def __init__(
        self,
        session: AppSession,
        dictionary: DictionaryService,
        hotkeys: HotkeyManager,
        sounds: SoundEffects,
        store: SettingsStore,
        read_clipboard: Callable[[], str],
        write_clipboard: Callable[[str], bool],
    ):
        self._session = session
        self._dictionary = dictionary
        self._hotkeys = hotkeys
        self._sounds = sounds
        self._store = store
        self._read_clipboard = read_clipboard
        self._write_clipboard = write_clipboard
        self._handlers: Dict[str, Callable[..., object]] = {
            "spell-check": self.spell_check,
            "get-clipboard": self.get_clipboard,
            "set-clipboard": self.set_clipboard,
            "hide-window": self.hide_window,
            "get-settings": self.get_settings,
            "update-hotkey": self.update_hotkey,
            "update-sound-setting": self.update_sound_setting,
            "open-settings": self.open_settings,
            "close-settings": self.close_settings,
            "settings-closed": self.settings_closed,
        }

    def invoke(self, channel: str, *args):
        handler = self._handlers.get(channel)
        if handler is None:
            logger.warning("Request on unknown channel %s", channel)
            return {"error": f"Unknown request: {channel}"}
        try:
            return handler(*args)
        except Exception as exc:
            logger.exception("Request %s failed", channel)
            return {"error": f"Request {channel} failed: {exc}"}

    # ---- spelling ----
    def spell_check(self, text: str) -> Dict[str, object]:
        word, error = validate_word(text)
        if error:
            return SpellCheckResult(word=word, is_correct=False, error=error).to_dict()

        result = self._dictionary.check_word(word)
        if not result.loading and not result.error:
            self._sounds.play("correct" if result.is_correct else "incorrect")
        elif result.error and not result.loading:
            self._sounds.play("error")
        return result.to_dict()

    # ---- clipboard ----
    def get_clipboard(self) -> str:
        try:
            return (self._read_clipboard() or "").strip()
        except Exception:
            logger.exception("Clipboard read failed")
            return ""

    def set_clipboard(self, text: str) -> bool:
        try:
            ok = bool(self._write_clipboard(text))
        except Exception:
            logger.exception("Clipboard write failed")
            return False
        if ok:
            self._sounds.play("copy")
        return ok

    # ---- windows ----
    def hide_window(self, reason: Optional[HideReason] = None) -> bool:
        self._session.hide_popup(reason or HideReason.REQUEST)
        return True

    def open_settings(self) -> bool:
        self._session.open_settings()
        return True

    def close_settings(self) -> bool:
        self._session.close_settings()
        return True

    def settings_closed(self) -> bool:
        self._session.settings_closed()
        return True

    # ---- settings ----
    def get_settings(self) -> Dict[str, object]:
        config = self._store.config
        hotkey = self._hotkeys.current or config.hotkey
        payload = config.to_dict()
        payload["hotkey"] = hotkey
        payload["hotkeyDisplay"] = format_for_display(hotkey)
        return payload

    def update_hotkey(self, binding: str) -> bool:
        # HotkeyManager persists the new binding through the store on success
        return self._hotkeys.update(binding)

    def update_sound_setting(self, enabled: bool) -> bool:
        config = self._store.update(sound_enabled=bool(enabled))
        self._sounds.enabled = config.sound_enabled
        return True
