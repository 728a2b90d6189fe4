# -*- coding: utf-8 -*-
from __future__ import annotations

import sys
import subprocess
import threading
from typing import Callable, List, Optional, Tuple

from spellpop.config_paths import get_logger
from spellpop.session import Display

logger = get_logger(__name__)

FRONTMOST_QUERY_TIMEOUT = 2.0
ACTIVATE_TIMEOUT = 2.0

_FRONTMOST_SCRIPT = (
    'tell application "System Events" to get name of first application process whose frontmost is true'
)

# Names the frontmost query reports for this process itself
_SELF_PROCESS_NAMES = {"Python", "python", "python3", "SpellPop"}


def _run_osascript(script: str, timeout: float) -> Optional[subprocess.CompletedProcess[str]]:
    try:
        return subprocess.run(
            ["osascript", "-e", script],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning("osascript timed out after %.1fs", timeout)
    except Exception:
        logger.exception("Failed to run osascript")
    return None


def _escape_applescript(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def get_frontmost_app_name(timeout: float = FRONTMOST_QUERY_TIMEOUT) -> Optional[str]:
    result = _run_osascript(_FRONTMOST_SCRIPT, timeout)
    if result is None or result.returncode != 0:
        return None
    name = (result.stdout or "").strip()
    if not name or name in _SELF_PROCESS_NAMES:
        return None
    return name


def activate_app(app_name: str) -> bool:
    result = _run_osascript(f'tell application "{_escape_applescript(app_name)}" to activate', ACTIVATE_TIMEOUT)
    if result is None:
        return False
    if result.returncode != 0:
        logger.warning("Failed to activate %s: %s", app_name, (result.stderr or "").strip())
        return False
    return True


class FrontmostAppTracker:
    """Captures the frontmost app before the popup shows and re-activates it afterwards."""

    def __init__(
        self,
        query: Callable[[], Optional[str]] = get_frontmost_app_name,
        activate: Callable[[str], bool] = activate_app,
    ):
        self._query = query
        self._activate = activate

    def capture(self) -> Optional[str]:
        try:
            return self._query()
        except Exception:
            logger.exception("Failed to capture frontmost application")
            return None

    def restore(self, app_name: str, delay: float) -> threading.Timer:
        def _worker() -> None:
            try:
                if not self._activate(app_name):
                    logger.info("Could not restore focus to %s", app_name)
            except Exception:
                logger.exception("Focus restore to %s failed", app_name)

        timer = threading.Timer(delay, _worker)
        timer.daemon = True
        timer.name = "SpellPopFocusRestore"
        timer.start()
        return timer


# ---------------- Clipboard ----------------
def read_clipboard() -> str:
    try:
        import pyperclip

        text = pyperclip.paste()
    except Exception:
        logger.exception("Failed to read clipboard")
        return ""
    return (text or "").strip()


def write_clipboard(text: str) -> bool:
    try:
        import pyperclip

        pyperclip.copy(text)
    except Exception:
        logger.exception("Failed to write clipboard")
        return False
    return True


# ---------------- Activation policy ----------------
ACCESSORY_ACTIVATION_POLICY = 1  # NSApplicationActivationPolicyAccessory


def _shared_application():
    from AppKit import NSApplication

    return NSApplication.sharedApplication()


def hide_dock_icon() -> bool:
    """Run as a menu-bar accessory: no Dock tile and no app menu."""
    if sys.platform != "darwin":
        return False
    try:
        _shared_application().setActivationPolicy_(ACCESSORY_ACTIVATION_POLICY)
    except Exception:
        logger.exception("Failed to switch to the accessory activation policy")
        return False
    logger.info("Running as a menu-bar accessory app")
    return True


# ---------------- Displays / pointer ----------------
def _appkit_displays() -> List[Display]:
    from AppKit import NSScreen

    screens = list(NSScreen.screens() or [])
    if not screens:
        return []
    # Cocoa frames are bottom-left based relative to the primary screen
    primary_height = screens[0].frame().size.height
    displays: List[Display] = []
    for screen in screens:
        frame = screen.frame()
        top = primary_height - (frame.origin.y + frame.size.height)
        displays.append(
            Display(
                x=int(frame.origin.x),
                y=int(top),
                width=int(frame.size.width),
                height=int(frame.size.height),
            )
        )
    return displays


class ScreenLayout:
    """Display geometry and pointer position for window placement."""

    def __init__(self, tk_root=None):
        self._tk_root = tk_root

    def displays(self) -> List[Display]:
        if sys.platform == "darwin":
            try:
                displays = _appkit_displays()
                if displays:
                    return displays
            except Exception:
                logger.exception("Failed to query displays through AppKit")
        root = self._tk_root
        if root is not None:
            try:
                return [Display(x=0, y=0, width=int(root.winfo_screenwidth()), height=int(root.winfo_screenheight()))]
            except Exception:
                logger.exception("Failed to query screen size from Tk")
        return []

    def primary(self) -> Optional[Display]:
        displays = self.displays()
        return displays[0] if displays else None

    def pointer(self) -> Optional[Tuple[int, int]]:
        try:
            import pyautogui

            pos = pyautogui.position()
            return int(pos[0]), int(pos[1])
        except Exception:
            logger.debug("pyautogui pointer query failed", exc_info=True)
        root = self._tk_root
        if root is not None:
            try:
                x, y = root.winfo_pointerxy()
                return int(x), int(y)
            except Exception:
                logger.exception("Failed to query pointer position from Tk")
        return None
