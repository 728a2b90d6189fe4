from __future__ import annotations

import json

import pytest

from spellpop import bridge as bridge_mod
from spellpop.config_paths import DEFAULT_HOTKEY, AppConfig, SettingsStore
from spellpop.hotkeys import HotkeyManager
from spellpop.session import HideReason
from spellpop.sounds import SoundEffects
from spellpop.spelling import DictionaryService, MULTIPLE_WORDS_MESSAGE

pytestmark = pytest.mark.core_headless


class RecordingPlayer:
    def __init__(self):
        self.played = []

    def play(self, cue):
        self.played.append(cue)


class RecordingSession:
    def __init__(self):
        self.calls = []

    def hide_popup(self, reason):
        self.calls.append(("hide", reason))

    def open_settings(self):
        self.calls.append(("open_settings",))

    def close_settings(self):
        self.calls.append(("close_settings",))

    def settings_closed(self):
        self.calls.append(("settings_closed",))


class CountingDictionary:
    def __init__(self):
        self.lookups = 0

    def check(self, word):
        self.lookups += 1
        return word == "the"

    def suggest(self, word):
        return ["the", "he"]


class Clipboard:
    def __init__(self, text="", fail_read=False, fail_write=False):
        self.text = text
        self.fail_read = fail_read
        self.fail_write = fail_write

    def read(self):
        if self.fail_read:
            raise RuntimeError("pasteboard unavailable")
        return self.text

    def write(self, text):
        if self.fail_write:
            raise RuntimeError("pasteboard unavailable")
        self.text = text
        return True


@pytest.fixture
def parts(listener_factory):
    saved = []
    store = SettingsStore(AppConfig(), saver=saved.append)
    dictionary_impl = CountingDictionary()
    dictionary = DictionaryService(factory=lambda: dictionary_impl)
    dictionary.load()
    player = RecordingPlayer()
    sounds = SoundEffects(player=player, enabled=True)
    hotkeys = HotkeyManager(
        lambda: None,
        listener_factory=listener_factory,
        on_persist=lambda binding: store.update(hotkey=binding),
    )
    hotkeys.register(DEFAULT_HOTKEY)
    session = RecordingSession()
    clipboard = Clipboard()
    request_bridge = bridge_mod.RequestBridge(
        session, dictionary, hotkeys, sounds, store, clipboard.read, clipboard.write
    )
    return {
        "bridge": request_bridge,
        "dictionary": dictionary_impl,
        "player": player,
        "sounds": sounds,
        "store": store,
        "saved": saved,
        "session": session,
        "clipboard": clipboard,
        "listeners": listener_factory,
        "hotkeys": hotkeys,
    }


def test_every_channel_has_a_handler(parts):
    for channel in bridge_mod.CHANNELS:
        assert channel in parts["bridge"]._handlers


def test_unknown_channel_returns_error(parts):
    assert parts["bridge"].invoke("reboot") == {"error": "Unknown request: reboot"}


def test_spell_check_correct_word_plays_sound(parts):
    response = parts["bridge"].invoke("spell-check", "  the ")
    assert response == {"word": "the", "isCorrect": True, "suggestions": []}
    assert parts["player"].played == ["correct"]
    json.dumps(response)


def test_spell_check_incorrect_word(parts):
    response = parts["bridge"].invoke("spell-check", "hte")
    assert response["isCorrect"] is False
    assert response["suggestions"] == ["the", "he"]
    assert parts["player"].played == ["incorrect"]


def test_multiple_words_never_reach_dictionary(parts):
    response = parts["bridge"].invoke("spell-check", "two words")
    assert response["error"] == MULTIPLE_WORDS_MESSAGE
    assert parts["dictionary"].lookups == 0
    assert parts["player"].played == []


def test_loading_dictionary_is_silent(parts):
    request_bridge = bridge_mod.RequestBridge(
        parts["session"],
        DictionaryService(factory=CountingDictionary),
        parts["hotkeys"],
        parts["sounds"],
        parts["store"],
        parts["clipboard"].read,
        parts["clipboard"].write,
    )
    response = request_bridge.invoke("spell-check", "the")
    assert response["loading"] is True
    assert parts["player"].played == []


def test_muted_sounds(parts):
    parts["bridge"].invoke("update-sound-setting", False)
    parts["bridge"].invoke("spell-check", "the")
    assert parts["player"].played == []
    assert parts["store"].config.sound_enabled is False
    assert parts["saved"][-1].sound_enabled is False


def test_get_clipboard_trims_and_survives_failures(parts):
    parts["clipboard"].text = "  spelling\n"
    assert parts["bridge"].invoke("get-clipboard") == "spelling"

    parts["clipboard"].fail_read = True
    assert parts["bridge"].invoke("get-clipboard") == ""


def test_set_clipboard(parts):
    assert parts["bridge"].invoke("set-clipboard", "the") is True
    assert parts["clipboard"].text == "the"
    assert parts["player"].played == ["copy"]

    parts["clipboard"].fail_write = True
    assert parts["bridge"].invoke("set-clipboard", "he") is False
    assert parts["player"].played == ["copy"]


def test_window_channels_forward_to_session(parts):
    parts["bridge"].invoke("hide-window")
    parts["bridge"].invoke("hide-window", HideReason.SUGGESTION)
    parts["bridge"].invoke("open-settings")
    parts["bridge"].invoke("close-settings")
    assert parts["bridge"].invoke("settings-closed") is True
    assert parts["session"].calls == [
        ("hide", HideReason.REQUEST),
        ("hide", HideReason.SUGGESTION),
        ("open_settings",),
        ("close_settings",),
        ("settings_closed",),
    ]


def test_get_settings(parts):
    assert parts["bridge"].invoke("get-settings") == {
        "hotkey": DEFAULT_HOTKEY,
        "soundEnabled": True,
        "hotkeyDisplay": "⇧⌃⌥⌘O",
    }


def test_update_hotkey_persists_on_success(parts):
    assert parts["bridge"].invoke("update-hotkey", "Control+Option+S") is True
    assert parts["store"].config.hotkey == "Control+Option+S"
    assert parts["saved"][-1].hotkey == "Control+Option+S"
    assert parts["bridge"].invoke("get-settings")["hotkey"] == "Control+Option+S"


def test_update_hotkey_failure_keeps_previous(parts):
    parts["listeners"].failing.add("<ctrl>+<alt>+s")
    assert parts["bridge"].invoke("update-hotkey", "Control+Option+S") is False
    assert parts["hotkeys"].current == DEFAULT_HOTKEY
    assert parts["store"].config.hotkey == DEFAULT_HOTKEY
    assert parts["saved"] == []


def test_handler_exception_becomes_error_response(parts):
    class BrokenSession(RecordingSession):
        def open_settings(self):
            raise RuntimeError("window server gone")

    parts["bridge"]._session = BrokenSession()
    response = parts["bridge"].invoke("open-settings")
    assert "window server gone" in response["error"]
