# -*- coding: utf-8 -*-
"""Global hotkey bindings: parsing, display formatting and OS registration."""
from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Protocol, Tuple

from spellpop.config_paths import DEFAULT_HOTKEY, get_logger

logger = get_logger(__name__)

MODIFIER_ORDER: Tuple[str, ...] = ("Shift", "Control", "Option", "Command")

_MODIFIER_ALIASES = {
    "shift": "Shift",
    "control": "Control",
    "ctrl": "Control",
    "option": "Option",
    "opt": "Option",
    "alt": "Option",
    "command": "Command",
    "cmd": "Command",
    "meta": "Command",
    "super": "Command",
}

_NAMED_KEYS = {
    "space": "Space",
    "tab": "Tab",
    "enter": "Enter",
    "return": "Enter",
    "escape": "Escape",
    "esc": "Escape",
    "up": "Up",
    "down": "Down",
    "left": "Left",
    "right": "Right",
}

_PYNPUT_MODIFIERS = {
    "Shift": "<shift>",
    "Control": "<ctrl>",
    "Option": "<alt>",
    "Command": "<cmd>",
}

_PYNPUT_NAMED_KEYS = {
    "Space": "<space>",
    "Tab": "<tab>",
    "Enter": "<enter>",
    "Escape": "<esc>",
    "Up": "<up>",
    "Down": "<down>",
    "Left": "<left>",
    "Right": "<right>",
}

_DISPLAY_SYMBOLS = {
    "Shift": "⇧",
    "Control": "⌃",
    "Option": "⌥",
    "Command": "⌘",
}

# Tk keysyms reported while recording a new combination in the settings form
_RECORDED_MODIFIERS = {
    "Shift_L": "Shift",
    "Shift_R": "Shift",
    "Control_L": "Control",
    "Control_R": "Control",
    "Alt_L": "Option",
    "Alt_R": "Option",
    "Option_L": "Option",
    "Option_R": "Option",
    "Meta_L": "Command",
    "Meta_R": "Command",
    "Super_L": "Command",
    "Super_R": "Command",
    "Command": "Command",
}


class InvalidBindingError(ValueError):
    pass


@dataclass(frozen=True)
class HotkeyBinding:
    modifiers: Tuple[str, ...]
    key: Optional[str] = None

    def __str__(self) -> str:
        parts = list(self.modifiers)
        if self.key:
            parts.append(self.key)
        return "+".join(parts)


def _normalize_key(token: str) -> Optional[str]:
    if len(token) == 1 and token.isprintable() and not token.isspace() and token != "+":
        return token.upper()
    lowered = token.lower()
    if lowered in _NAMED_KEYS:
        return _NAMED_KEYS[lowered]
    if lowered.startswith("f") and lowered[1:].isdigit():
        number = int(lowered[1:])
        if 1 <= number <= 24:
            return f"F{number}"
    return None


def parse_binding(text: str) -> HotkeyBinding:
    """Parse ``"Shift+Control+O"`` style text into a canonical binding."""
    if not isinstance(text, str) or not text.strip():
        raise InvalidBindingError("Hotkey is empty")

    modifiers = set()
    key: Optional[str] = None
    for raw in text.split("+"):
        token = raw.strip()
        if not token:
            raise InvalidBindingError(f"Malformed hotkey {text!r}")
        modifier = _MODIFIER_ALIASES.get(token.lower())
        if modifier:
            modifiers.add(modifier)
            continue
        normalized = _normalize_key(token)
        if normalized is None:
            raise InvalidBindingError(f"Unknown key {token!r} in hotkey {text!r}")
        if key is not None:
            raise InvalidBindingError(f"Hotkey {text!r} has more than one non-modifier key")
        key = normalized

    if not modifiers:
        raise InvalidBindingError("Hotkey needs at least one modifier key")
    if key is None and len(modifiers) < 2:
        raise InvalidBindingError("Modifier-only hotkeys need at least two modifiers")

    ordered = tuple(name for name in MODIFIER_ORDER if name in modifiers)
    return HotkeyBinding(modifiers=ordered, key=key)


def is_valid_binding(text: str) -> bool:
    try:
        parse_binding(text)
    except InvalidBindingError:
        return False
    return True


def to_pynput(binding: HotkeyBinding | str) -> str:
    """Convert a binding to pynput ``GlobalHotKeys`` syntax."""
    if isinstance(binding, str):
        binding = parse_binding(binding)
    parts = [_PYNPUT_MODIFIERS[name] for name in binding.modifiers]
    if binding.key:
        if binding.key in _PYNPUT_NAMED_KEYS:
            parts.append(_PYNPUT_NAMED_KEYS[binding.key])
        elif len(binding.key) > 1:
            parts.append(f"<{binding.key.lower()}>")
        else:
            parts.append(binding.key.lower())
    return "+".join(parts)


def format_for_display(binding: HotkeyBinding | str) -> str:
    """Render a binding with Mac modifier symbols, e.g. ``⇧⌃⌥⌘O``."""
    if isinstance(binding, str):
        try:
            binding = parse_binding(binding)
        except InvalidBindingError:
            return binding
    symbols = "".join(_DISPLAY_SYMBOLS[name] for name in binding.modifiers)
    return symbols + (binding.key or "")


def _recorded_modifier(name: str) -> Optional[str]:
    return _RECORDED_MODIFIERS.get(name) or _MODIFIER_ALIASES.get(name.lower())


def unsupported_recorded_keys(keys: Iterable[str]) -> List[str]:
    """Non-modifier key names that cannot be part of a binding (e.g. ``exclam``, ``oslash``)."""
    return [name for name in keys if not _recorded_modifier(name) and _normalize_key(name) is None]


def format_recorded_keys(keys: Iterable[str]) -> Optional[str]:
    """Turn key names captured while recording into a binding string, or None.

    Any unrecognised non-modifier key rejects the whole combination, so a
    chord like Shift+Command+1 (reported as ``exclam``) never degrades into a
    modifier-only binding.
    """
    modifiers = set()
    key: Optional[str] = None
    for name in keys:
        modifier = _recorded_modifier(name)
        if modifier:
            modifiers.add(modifier)
            continue
        normalized = _normalize_key(name)
        if normalized is None:
            return None
        key = normalized
    if not modifiers:
        return None
    ordered = [name for name in MODIFIER_ORDER if name in modifiers]
    if key:
        return "+".join(ordered + [key])
    if len(ordered) >= 2:
        return "+".join(ordered)
    return None


class HotkeyListener(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


ListenerFactory = Callable[[str, Callable[[], None]], HotkeyListener]


def _pynput_listener_factory(combo: str, callback: Callable[[], None]) -> HotkeyListener:
    from pynput import keyboard

    listener = keyboard.GlobalHotKeys({combo: callback})
    listener.start()
    listener.wait()
    if not listener.is_alive():
        raise RuntimeError(f"Hotkey listener for {combo} exited during startup")
    return listener


class HotkeyManager:
    """Owns the single process-wide shortcut that toggles the popup."""

    def __init__(
        self,
        on_activate: Callable[[], None],
        listener_factory: Optional[ListenerFactory] = None,
        on_persist: Optional[Callable[[str], None]] = None,
    ):
        self._on_activate = on_activate
        self._listener_factory = listener_factory or _pynput_listener_factory
        self._on_persist = on_persist
        self._listener: Optional[HotkeyListener] = None
        self._current: Optional[str] = None
        self._lock = threading.RLock()

    @property
    def current(self) -> Optional[str]:
        return self._current

    def _release_listener(self) -> None:
        listener = self._listener
        self._listener = None
        if listener is None:
            return
        try:
            listener.stop()
        except Exception:
            logger.exception("Failed to stop hotkey listener")

    def register(self, binding: str) -> bool:
        """Bind *binding* to the toggle action; returns False instead of raising."""
        with self._lock:
            try:
                parsed = parse_binding(binding)
            except InvalidBindingError as exc:
                logger.warning("Refusing to register hotkey %r: %s", binding, exc)
                return False

            self._release_listener()
            self._current = None
            try:
                self._listener = self._listener_factory(to_pynput(parsed), self._on_activate)
            except Exception:
                logger.exception("Failed to register global hotkey %s", parsed)
                self._listener = None
                return False

            self._current = str(parsed)
            logger.info("Registered global hotkey %s", self._current)
            return True

    def update(self, binding: str) -> bool:
        """Switch to *binding*, restoring the previous one if registration fails."""
        with self._lock:
            if not is_valid_binding(binding):
                logger.warning("Rejected hotkey update to %r", binding)
                return False

            previous = self._current
            if self.register(binding):
                if self._on_persist is not None:
                    try:
                        self._on_persist(self._current)
                    except Exception:
                        logger.exception("Failed to persist hotkey %s", self._current)
                return True

            rollback = previous or DEFAULT_HOTKEY
            logger.warning("Hotkey update to %r failed; restoring %s", binding, rollback)
            if not self.register(rollback):
                logger.error("Unable to restore previous hotkey %s", rollback)
            return False

    def unregister_all(self) -> None:
        with self._lock:
            self._release_listener()
            if self._current:
                logger.info("Released global hotkey %s", self._current)
            self._current = None
