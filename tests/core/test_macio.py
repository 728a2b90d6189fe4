from __future__ import annotations

import subprocess

import pytest

from spellpop import macio
from spellpop.session import Display

pytestmark = pytest.mark.core_headless


def _completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(["osascript"], returncode, stdout=stdout, stderr=stderr)


def test_frontmost_app_name(monkeypatch):
    calls = []

    def fake_run(args, **kwargs):
        calls.append((args, kwargs))
        return _completed("Safari\n")

    monkeypatch.setattr(macio.subprocess, "run", fake_run)
    assert macio.get_frontmost_app_name() == "Safari"
    assert calls[0][0][0] == "osascript"
    assert calls[0][1]["timeout"] == macio.FRONTMOST_QUERY_TIMEOUT


@pytest.mark.parametrize("result", [_completed("Python\n"), _completed("", 0), _completed("Safari", 1)])
def test_frontmost_app_name_ignores_unusable_answers(monkeypatch, result):
    monkeypatch.setattr(macio.subprocess, "run", lambda *a, **k: result)
    assert macio.get_frontmost_app_name() is None


def test_frontmost_app_name_timeout(monkeypatch):
    def fake_run(args, **kwargs):
        raise subprocess.TimeoutExpired(args, kwargs["timeout"])

    monkeypatch.setattr(macio.subprocess, "run", fake_run)
    assert macio.get_frontmost_app_name() is None


def test_activate_app_escapes_name(monkeypatch):
    scripts = []

    def fake_run(args, **kwargs):
        scripts.append(args[2])
        return _completed()

    monkeypatch.setattr(macio.subprocess, "run", fake_run)
    assert macio.activate_app('Say "Hi"') is True
    assert scripts == ['tell application "Say \\"Hi\\"" to activate']


def test_activate_app_failure(monkeypatch):
    monkeypatch.setattr(macio.subprocess, "run", lambda *a, **k: _completed(returncode=1, stderr="not found"))
    assert macio.activate_app("Ghost") is False


def test_tracker_capture_swallows_errors():
    def query():
        raise RuntimeError("System Events denied")

    assert macio.FrontmostAppTracker(query=query).capture() is None


def test_tracker_restore_runs_after_delay():
    activated = []
    tracker = macio.FrontmostAppTracker(query=lambda: "Notes", activate=lambda name: activated.append(name) or True)

    timer = tracker.restore("Notes", 0.01)
    timer.join(timeout=5)

    assert activated == ["Notes"]
    assert timer.daemon is True


def test_tracker_restore_survives_activation_errors():
    def activate(name):
        raise RuntimeError("gone")

    timer = macio.FrontmostAppTracker(activate=activate).restore("Notes", 0)
    timer.join(timeout=5)
    assert not timer.is_alive()


class FakeRoot:
    def winfo_screenwidth(self):
        return 1280

    def winfo_screenheight(self):
        return 800

    def winfo_pointerxy(self):
        return (10, 20)


def test_screen_layout_tk_fallback(monkeypatch):
    monkeypatch.setattr(macio.sys, "platform", "linux")
    layout = macio.ScreenLayout(FakeRoot())
    assert layout.displays() == [Display(0, 0, 1280, 800)]
    assert layout.primary() == Display(0, 0, 1280, 800)


def test_screen_layout_without_any_backend(monkeypatch):
    monkeypatch.setattr(macio.sys, "platform", "linux")
    layout = macio.ScreenLayout()
    assert layout.displays() == []
    assert layout.primary() is None


def test_hide_dock_icon_sets_accessory_policy(monkeypatch):
    policies = []

    class FakeApplication:
        def setActivationPolicy_(self, policy):
            policies.append(policy)
            return True

    monkeypatch.setattr(macio.sys, "platform", "darwin")
    monkeypatch.setattr(macio, "_shared_application", FakeApplication)
    assert macio.hide_dock_icon() is True
    assert policies == [macio.ACCESSORY_ACTIVATION_POLICY]


def test_hide_dock_icon_reports_appkit_failure(monkeypatch):
    def broken():
        raise RuntimeError("no window server")

    monkeypatch.setattr(macio.sys, "platform", "darwin")
    monkeypatch.setattr(macio, "_shared_application", broken)
    assert macio.hide_dock_icon() is False


def test_hide_dock_icon_is_a_no_op_elsewhere(monkeypatch):
    def unexpected():
        raise AssertionError("AppKit must not be touched off macOS")

    monkeypatch.setattr(macio.sys, "platform", "linux")
    monkeypatch.setattr(macio, "_shared_application", unexpected)
    assert macio.hide_dock_icon() is False
