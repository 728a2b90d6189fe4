from __future__ import annotations

import wave

import pytest

from spellpop import sounds

pytestmark = pytest.mark.core_headless


class RecordingPlayer:
    def __init__(self, fail=False):
        self.played = []
        self.fail = fail

    def play(self, cue):
        self.played.append(cue)
        if self.fail:
            raise RuntimeError("no audio device")


def test_sound_effects_respects_enabled_flag():
    player = RecordingPlayer()
    effects = sounds.SoundEffects(player=player, enabled=False)
    effects.play("correct")
    assert player.played == []

    effects.enabled = True
    effects.play("correct")
    assert player.played == ["correct"]


def test_unknown_cue_is_ignored():
    player = RecordingPlayer()
    sounds.SoundEffects(player=player).play("fanfare")
    assert player.played == []


def test_player_errors_are_contained():
    player = RecordingPlayer(fail=True)
    sounds.SoundEffects(player=player).play("error")
    assert player.played == ["error"]


def test_generated_tone_shape():
    pytest.importorskip("numpy")
    data, settings_audio = sounds.generate_tone("copy")
    frequency, duration = sounds._CUE_TONES["copy"]
    assert settings_audio == {"channels": 1, "rate": sounds.SAMPLE_RATE, "width": 2}
    assert len(data) == int(sounds.SAMPLE_RATE * duration) * 2


def test_pyaudio_player_prefers_bundled_wav(monkeypatch, tmp_path):
    wav_path = tmp_path / "sounds" / "correct.wav"
    wav_path.parent.mkdir()
    with wave.open(str(wav_path), "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(2)
        wav_file.setframerate(22050)
        wav_file.writeframes(b"\x00\x00" * 10)
    monkeypatch.setattr(sounds, "asset_path", lambda name: tmp_path / name)

    player = sounds.PyAudioSoundPlayer()
    data, settings_audio = player.load("correct")

    assert data == b"\x00\x00" * 10
    assert settings_audio == {"channels": 1, "rate": 22050, "width": 2}
    assert player.load("correct") is player.load("correct")


def test_pyaudio_player_falls_back_to_generated_tone(monkeypatch, tmp_path):
    pytest.importorskip("numpy")
    monkeypatch.setattr(sounds, "asset_path", lambda name: tmp_path / name)
    data, settings_audio = sounds.PyAudioSoundPlayer().load("incorrect")
    assert data
    assert settings_audio["rate"] == sounds.SAMPLE_RATE


def test_afplay_player_uses_system_sound(monkeypatch):
    launched = []
    monkeypatch.setattr(sounds.subprocess, "Popen", lambda args, **kwargs: launched.append(args))
    sounds.AfplaySoundPlayer().play("copy")
    assert launched == [["afplay", "/System/Library/Sounds/Pop.aiff"]]
