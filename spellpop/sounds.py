# -*- coding: utf-8 -*-
from __future__ import annotations

import subprocess
import threading
import wave
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable

from spellpop.config_paths import asset_path, get_logger

logger = get_logger(__name__)

SAMPLE_RATE = 44100

CUES = ("correct", "incorrect", "copy", "error")

# (frequency Hz, duration s) for the generated fallback tones
_CUE_TONES: Dict[str, Tuple[float, float]] = {
    "correct": (880.0, 0.18),
    "incorrect": (330.0, 0.28),
    "copy": (660.0, 0.12),
    "error": (220.0, 0.35),
}

# macOS system sounds used by the afplay player
_SYSTEM_SOUNDS = {
    "correct": "Glass",
    "incorrect": "Basso",
    "copy": "Pop",
    "error": "Funk",
}


@runtime_checkable
class SoundPlayer(Protocol):
    def play(self, cue: str) -> None:
        """Start playing *cue* without blocking the caller."""


def generate_tone(cue: str):
    import numpy as np

    frequency, duration = _CUE_TONES.get(cue, _CUE_TONES["error"])
    t = np.linspace(0.0, duration, int(SAMPLE_RATE * duration), endpoint=False)
    envelope = np.exp(-6 * t)
    wave_data = 0.2 * np.sin(2 * np.pi * frequency * t) * envelope
    int_data = np.clip(wave_data * 32767, -32767, 32767).astype(np.int16)
    settings_audio = {"channels": 1, "rate": SAMPLE_RATE, "width": 2}
    return int_data.tobytes(), settings_audio


class PyAudioSoundPlayer:
    """Plays bundled wav cues (or generated tones) through PyAudio."""

    def __init__(self):
        self._cache: Dict[str, Tuple[bytes, Dict[str, int]]] = {}
        self._cache_lock = threading.Lock()

    def load(self, cue: str) -> Tuple[bytes, Dict[str, int]]:
        with self._cache_lock:
            cached = self._cache.get(cue)
            if cached is not None:
                return cached
        sound_path = asset_path(f"sounds/{cue}.wav")
        try:
            with wave.open(str(sound_path), "rb") as wav_file:
                frames = wav_file.readframes(wav_file.getnframes())
                settings_audio = {
                    "channels": wav_file.getnchannels(),
                    "rate": wav_file.getframerate(),
                    "width": wav_file.getsampwidth(),
                }
        except FileNotFoundError:
            frames, settings_audio = generate_tone(cue)
        except Exception:
            logger.exception("Failed to load sound %s; using generated tone", sound_path)
            frames, settings_audio = generate_tone(cue)
        with self._cache_lock:
            self._cache[cue] = (frames, settings_audio)
        return frames, settings_audio

    def play(self, cue: str) -> None:
        threading.Thread(target=self._play_blocking, args=(cue,), name="SpellPopSound", daemon=True).start()

    def _play_blocking(self, cue: str) -> None:
        pa_instance = None
        stream = None
        try:
            import pyaudio

            data, settings_audio = self.load(cue)
            pa_instance = pyaudio.PyAudio()
            stream = pa_instance.open(
                format=pyaudio.get_format_from_width(settings_audio["width"]),
                channels=settings_audio["channels"],
                rate=settings_audio["rate"],
                output=True,
            )
            stream.write(data)
        except Exception:
            logger.exception("Failed to play sound cue %s", cue)
        finally:
            try:
                if stream is not None:
                    stream.stop_stream(); stream.close()
            except Exception:
                logger.exception("Failed to close sound stream cleanly")
            if pa_instance is not None:
                try:
                    pa_instance.terminate()
                except Exception:
                    logger.exception("Failed to terminate PyAudio after sound cue")


class AfplaySoundPlayer:
    """Plays macOS system sounds with the afplay command."""

    def __init__(self, sounds_dir: str = "/System/Library/Sounds"):
        self._sounds_dir = sounds_dir

    def play(self, cue: str) -> None:
        name = _SYSTEM_SOUNDS.get(cue, _SYSTEM_SOUNDS["error"])
        try:
            subprocess.Popen(
                ["afplay", f"{self._sounds_dir}/{name}.aiff"],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except Exception:
            logger.exception("Failed to start afplay for cue %s", cue)


class SoundEffects:
    """Gates cue playback on the user's sound setting."""

    def __init__(self, player: Optional[SoundPlayer] = None, enabled: bool = True):
        self._player = player if player is not None else PyAudioSoundPlayer()
        self.enabled = enabled

    def play(self, cue: str) -> None:
        if not self.enabled:
            return
        if cue not in CUES:
            logger.warning("Unknown sound cue %s", cue)
            return
        try:
            self._player.play(cue)
        except Exception:
            logger.exception("Sound player failed for cue %s", cue)
