"""Popup and settings window lifecycle for one running SpellPop session.

The session owns at most one popup and one settings window. Visibility is
tracked by explicit state machines so that the blur, hotkey and Escape paths
all go through the same transition function.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from spellpop.config_paths import get_logger

logger = get_logger(__name__)

POPUP_WIDTH = 460
POPUP_HEIGHT = 340
DEFAULT_POPUP_POSITION = (200, 150)
FOCUS_RESTORE_DELAY = 0.1


class WindowState(Enum):
    HIDDEN = auto()
    VISIBLE = auto()


class WindowEvent(Enum):
    SHOW = auto()
    HIDE = auto()


class SettingsState(Enum):
    CLOSED = auto()
    OPEN = auto()


class SettingsEvent(Enum):
    OPEN = auto()
    CLOSE = auto()


class HideReason(Enum):
    HOTKEY = auto()
    BLUR = auto()
    ESCAPE = auto()
    SUGGESTION = auto()
    OUTSIDE_CLICK = auto()
    REQUEST = auto()
    SETTINGS = auto()


_WINDOW_TRANSITIONS = {
    WindowState.HIDDEN: {WindowEvent.SHOW: WindowState.VISIBLE},
    WindowState.VISIBLE: {WindowEvent.HIDE: WindowState.HIDDEN},
}

_SETTINGS_TRANSITIONS = {
    SettingsState.CLOSED: {SettingsEvent.OPEN: SettingsState.OPEN},
    SettingsState.OPEN: {SettingsEvent.CLOSE: SettingsState.CLOSED},
}


class TransitionTable:
    def __init__(self, table: dict, initial):
        self._table = table
        self.state = initial

    def can(self, event) -> bool:
        return event in self._table.get(self.state, {})

    def transition(self, event):
        next_state = self._table.get(self.state, {}).get(event)
        if next_state is None:
            logger.warning("Invalid state transition: %s --%s--> (ignored)", self.state, event)
            return self.state
        self.state = next_state
        return self.state


@dataclass(frozen=True)
class Display:
    x: int
    y: int
    width: int
    height: int

    def contains(self, px: int, py: int) -> bool:
        return self.x <= px < self.x + self.width and self.y <= py < self.y + self.height

    def distance_to(self, px: int, py: int) -> float:
        dx = max(self.x - px, 0, px - (self.x + self.width - 1))
        dy = max(self.y - py, 0, py - (self.y + self.height - 1))
        return (dx * dx + dy * dy) ** 0.5


@dataclass(frozen=True)
class WindowBounds:
    x: int
    y: int
    width: int
    height: int


def nearest_display(displays: Sequence[Display], pointer: Optional[Tuple[int, int]]) -> Optional[Display]:
    if not displays:
        return None
    if pointer is None:
        return displays[0]
    px, py = pointer
    for display in displays:
        if display.contains(px, py):
            return display
    return min(displays, key=lambda d: d.distance_to(px, py))


def compute_popup_bounds(
    displays: Sequence[Display],
    pointer: Optional[Tuple[int, int]],
    width: int = POPUP_WIDTH,
    height: int = POPUP_HEIGHT,
) -> WindowBounds:
    """Center horizontally, one-sixth down, on the display under the pointer."""
    display = nearest_display(displays, pointer)
    if display is None:
        x, y = DEFAULT_POPUP_POSITION
        return WindowBounds(x, y, width, height)
    x = display.x + (display.width - width) // 2
    y = display.y + display.height // 6
    return WindowBounds(x, y, width, height)


def compute_centered_bounds(display: Optional[Display], width: int, height: int) -> WindowBounds:
    if display is None:
        x, y = DEFAULT_POPUP_POSITION
        return WindowBounds(x, y, width, height)
    return WindowBounds(
        display.x + (display.width - width) // 2,
        display.y + (display.height - height) // 2,
        width,
        height,
    )


@runtime_checkable
class WindowHost(Protocol):
    """Creates and drives the actual toolkit windows."""

    def show_popup(self, bounds: WindowBounds) -> None:
        """Create the popup if needed, show it, focus it and reset its input."""

    def focus_popup(self) -> None:
        """Bring the visible popup back to the front."""

    def hide_popup(self) -> None:
        """Withdraw the popup without destroying it."""

    def show_settings(self, bounds: WindowBounds) -> None:
        """Create the settings window."""

    def focus_settings(self) -> bool:
        """Refocus the existing settings window; False when it no longer exists."""

    def close_settings(self) -> None:
        """Destroy the settings window."""

    def destroy(self) -> None:
        """Tear down all windows."""


@runtime_checkable
class FocusTracker(Protocol):
    def capture(self) -> Optional[str]:
        """Name of the frontmost application, or None."""

    def restore(self, app_name: str, delay: float):
        """Re-activate *app_name* after *delay* seconds, asynchronously."""


@runtime_checkable
class DisplayProvider(Protocol):
    def displays(self) -> List[Display]:
        """Connected displays in top-left screen coordinates."""

    def primary(self) -> Optional[Display]:
        """The primary display."""

    def pointer(self) -> Optional[Tuple[int, int]]:
        """Current pointer position."""


SETTINGS_WIDTH = 440
SETTINGS_HEIGHT = 320


class AppSession:
    """Owns the popup/settings windows and their visibility state."""

    def __init__(
        self,
        host: WindowHost,
        focus: FocusTracker,
        screens: DisplayProvider,
        on_shutdown: Optional[Callable[[], None]] = None,
    ):
        self._host = host
        self._focus = focus
        self._screens = screens
        self._on_shutdown = on_shutdown
        self._popup = TransitionTable(_WINDOW_TRANSITIONS, WindowState.HIDDEN)
        self._settings = TransitionTable(_SETTINGS_TRANSITIONS, SettingsState.CLOSED)
        self._previous_app: Optional[str] = None
        self._lock = threading.RLock()

    @property
    def popup_state(self) -> WindowState:
        return self._popup.state

    @property
    def settings_state(self) -> SettingsState:
        return self._settings.state

    @property
    def previous_app(self) -> Optional[str]:
        return self._previous_app

    # ---- popup ----
    def show_popup(self) -> None:
        with self._lock:
            if not self._popup.can(WindowEvent.SHOW):
                self._host.focus_popup()
                return

            self._previous_app = self._focus.capture()
            try:
                bounds = compute_popup_bounds(self._screens.displays(), self._screens.pointer())
            except Exception:
                logger.exception("Failed to compute popup position; using default")
                bounds = compute_popup_bounds([], None)
            self._popup.transition(WindowEvent.SHOW)
            try:
                self._host.show_popup(bounds)
            except Exception:
                logger.exception("Failed to show popup; staying hidden")
                self._popup.transition(WindowEvent.HIDE)
                self._previous_app = None
                return
            logger.debug("Popup shown at %s (previous app: %s)", bounds, self._previous_app)

    def hide_popup(self, reason: HideReason = HideReason.REQUEST) -> None:
        with self._lock:
            if not self._popup.can(WindowEvent.HIDE):
                return

            self._popup.transition(WindowEvent.HIDE)
            self._host.hide_popup()
            previous = self._previous_app
            self._previous_app = None
            logger.debug("Popup hidden (%s)", reason.name)

            if previous and reason is not HideReason.SETTINGS:
                try:
                    self._focus.restore(previous, FOCUS_RESTORE_DELAY)
                except Exception:
                    logger.exception("Failed to schedule focus restore to %s", previous)

    def toggle_popup(self) -> None:
        with self._lock:
            if self._popup.state is WindowState.VISIBLE:
                self.hide_popup(HideReason.HOTKEY)
            else:
                self.show_popup()

    # ---- settings ----
    def open_settings(self) -> None:
        with self._lock:
            self.hide_popup(HideReason.SETTINGS)
            if not self._settings.can(SettingsEvent.OPEN):
                if self._host.focus_settings():
                    return
                # window vanished without telling us; rebuild it
                self._settings.transition(SettingsEvent.CLOSE)

            bounds = compute_centered_bounds(self._screens.primary(), SETTINGS_WIDTH, SETTINGS_HEIGHT)
            self._settings.transition(SettingsEvent.OPEN)
            self._host.show_settings(bounds)

    def close_settings(self) -> None:
        with self._lock:
            if not self._settings.can(SettingsEvent.CLOSE):
                return
            self._settings.transition(SettingsEvent.CLOSE)
            self._host.close_settings()

    def settings_closed(self) -> None:
        """The user closed the settings window directly."""
        with self._lock:
            if self._settings.can(SettingsEvent.CLOSE):
                self._settings.transition(SettingsEvent.CLOSE)

    def shutdown(self) -> None:
        with self._lock:
            if self._on_shutdown is not None:
                try:
                    self._on_shutdown()
                except Exception:
                    logger.exception("Session shutdown hook failed")
            try:
                self._host.destroy()
            except Exception:
                logger.exception("Failed to destroy windows during shutdown")
            self._popup = TransitionTable(_WINDOW_TRANSITIONS, WindowState.HIDDEN)
            self._settings = TransitionTable(_SETTINGS_TRANSITIONS, SettingsState.CLOSED)
            self._previous_app = None
