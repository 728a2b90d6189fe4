"""Keyboard shortcuts the popup lets through.

The popup is a frameless always-on-top window, so any Command/Control chord
that is not an editing shortcut is swallowed rather than reaching Tk's
default bindings (close, quit, hide, minimize, ...).
"""

from __future__ import annotations

from typing import FrozenSet, Iterable

# Tk event.state bits on macOS
_STATE_SHIFT = 0x0001
_STATE_CONTROL = 0x0004
_STATE_COMMAND = 0x0008
_STATE_OPTION = 0x0010

ALLOWED_SHORTCUTS: FrozenSet[FrozenSet[str]] = frozenset(
    frozenset(combo)
    for combo in (
        ("Command", "a"),
        ("Command", "c"),
        ("Command", "v"),
        ("Command", "x"),
        ("Command", "z"),
        ("Shift", "Command", "z"),
        ("Command", "Left"),
        ("Command", "Right"),
        ("Shift", "Command", "Left"),
        ("Shift", "Command", "Right"),
        ("Command", "BackSpace"),
    )
)

# Option alone stays free so accented characters can be typed
CHORD_MODIFIERS = frozenset({"Command", "Control"})


def modifiers_from_state(state: int) -> FrozenSet[str]:
    names = set()
    if state & _STATE_SHIFT:
        names.add("Shift")
    if state & _STATE_CONTROL:
        names.add("Control")
    if state & _STATE_COMMAND:
        names.add("Command")
    if state & _STATE_OPTION:
        names.add("Option")
    return frozenset(names)


def _normalize_key(keysym: str) -> str:
    if len(keysym) == 1:
        return keysym.lower()
    return keysym


def is_shortcut_allowed(modifiers: Iterable[str], keysym: str) -> bool:
    """Return True when the popup should handle this key press normally."""
    mods = frozenset(modifiers)
    if not mods & CHORD_MODIFIERS:
        return True
    combo = frozenset(mods | {_normalize_key(keysym)})
    return combo in ALLOWED_SHORTCUTS
