"""Shared pytest fixtures for SpellPop tests."""
from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest

# Keep configuration paths inside a temporary directory so importing
# config_paths (which configures file logging) never touches the real
# Application Support folder.
_TEST_CONFIG_ROOT = Path(tempfile.mkdtemp(prefix="spellpop-tests-"))
os.environ.setdefault("XDG_CONFIG_HOME", str(_TEST_CONFIG_ROOT))


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config directory at a fresh folder for every test."""
    config_home = tmp_path / "config"
    config_home.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))

    # get_config_dir() reads the environment on every call, so only the
    # module-level state of system needs resetting.
    from spellpop import system

    monkeypatch.setattr(system, "instance_lock_handle", None)
    yield config_home / "SpellPop"
    system.release_single_instance_lock()
    while not system.ui_queue.empty():
        system.ui_queue.get_nowait()


class FakeListener:
    def __init__(self, combo, callback):
        self.combo = combo
        self.callback = callback
        self.stopped = False

    def stop(self):
        self.stopped = True


class FakeListenerFactory:
    """Records every registration; combos in *failing* raise like pynput would."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []
        self.listeners = []

    def __call__(self, combo, callback):
        self.calls.append(combo)
        if combo in self.failing:
            raise RuntimeError(f"cannot bind {combo}")
        listener = FakeListener(combo, callback)
        self.listeners.append(listener)
        return listener

    @property
    def active(self):
        return [listener for listener in self.listeners if not listener.stopped]


@pytest.fixture
def listener_factory():
    return FakeListenerFactory()
