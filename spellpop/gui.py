# -*- coding: utf-8 -*-
from __future__ import annotations

import sys
import threading
from queue import Empty
from typing import TYPE_CHECKING, Callable, List, Optional

import tkinter as tk
from tkinter import messagebox, ttk

from spellpop import system as sysmod
from spellpop.config_paths import APP_NAME, asset_path, get_logger
from spellpop.hotkeys import format_for_display, format_recorded_keys, unsupported_recorded_keys
from spellpop.keymap import is_shortcut_allowed, modifiers_from_state
from spellpop.session import HideReason, WindowBounds
from spellpop.spelling import MAX_SUGGESTIONS
from spellpop.ui_theme import BACKGROUND, SELECTION, SURFACE, TEXT_PRIMARY, apply_modern_theme

if TYPE_CHECKING:
    from spellpop.bridge import RequestBridge

# Shared UI root; every window below is a Toplevel of it
tk_root: Optional[tk.Tk] = None
_ui_thread_ident: Optional[int] = None
_ui_thread_lock = threading.Lock()
_ui_queue_job: Optional[str] = None

logger = get_logger(__name__)

BLUR_CHECK_DELAY_MS = 80
LOADING_RETRY_MS = 400
SAVED_FEEDBACK_MS = 1500


def show_notification_popup(title: str, message: str) -> None:
    """Display a simple informational dialog."""
    if tk_root is None or not tk_root.winfo_exists():
        return
    try:
        messagebox.showinfo(title, message, parent=tk_root)
    except Exception:
        logger.exception("Failed to display notification popup: %s", title)


def _call_on_ui(callback: Callable[[], None], *, log_message: str) -> None:
    """Execute *callback* on the UI thread."""

    root = tk_root
    if root is None or not root.winfo_exists():
        return

    try:
        if is_ui_thread():
            callback()
        else:
            root.after(0, callback)
    except Exception:
        logger.exception(log_message)


# ---------------- UI loop pump ----------------
def _process_ui_queue() -> None:
    """Run pending UI tasks queued by the tray and hotkey threads."""

    global _ui_queue_job

    while True:
        try:
            func, args, kwargs = sysmod.ui_queue.get_nowait()
        except Empty:
            break
        try:
            func(*args, **kwargs)
        except Exception:
            logger.exception("UI task failed")

    root = tk_root
    if root is None or not root.winfo_exists():
        _ui_queue_job = None
        return

    try:
        _ui_queue_job = root.after(120, _process_ui_queue)
    except Exception:
        logger.exception("Failed to reschedule UI queue processing")
        _ui_queue_job = None


def ensure_ui_root() -> Optional[tk.Tk]:
    """Create the hidden Tk root on the main thread."""

    global tk_root, _ui_thread_ident, _ui_queue_job

    with _ui_thread_lock:
        if tk_root is not None and tk_root.winfo_exists():
            return tk_root

        if threading.current_thread() is not threading.main_thread():
            logger.error("UI root must be created on the main thread")
            return None

        try:
            root = tk.Tk()
        except Exception:
            logger.exception("Failed to initialize UI root")
            return None

        tk_root = root
        apply_modern_theme(root)
        try:
            root.withdraw()
        except Exception:
            logger.exception("Failed to withdraw UI root window")

        _ui_thread_ident = threading.get_ident()
        try:
            _ui_queue_job = root.after(80, _process_ui_queue)
        except Exception:
            logger.exception("Failed to schedule initial UI queue processing")
            _ui_queue_job = None
        return root


def run_ui_loop() -> None:
    """Run the Tk mainloop on the main thread."""

    root = ensure_ui_root()
    if root is None or not root.winfo_exists():
        return

    try:
        root.mainloop()
    finally:
        _teardown_ui()


def _teardown_ui() -> None:
    global tk_root, _ui_thread_ident, _ui_queue_job

    root = tk_root
    if root is not None and _ui_queue_job is not None:
        try:
            root.after_cancel(_ui_queue_job)
        except Exception:
            logger.exception("Failed to cancel UI queue job during teardown")
    _ui_queue_job = None

    if root is not None:
        try:
            root.destroy()
        except Exception:
            logger.exception("Failed to destroy UI root during teardown")

    tk_root = None
    _ui_thread_ident = None


def request_ui_shutdown() -> None:
    """Request the Tk mainloop to exit."""

    root = tk_root
    if root is None or not root.winfo_exists():
        return

    def _quit() -> None:
        try:
            root.quit()
        except Exception:
            logger.exception("Failed to quit UI mainloop")

    _call_on_ui(_quit, log_message="Failed to schedule UI shutdown")


def is_ui_thread() -> bool:
    return _ui_thread_ident == threading.get_ident()


def _make_borderless(window: tk.Toplevel) -> None:
    if sys.platform == "darwin":
        # overrideredirect windows cannot take keyboard focus on macOS
        try:
            window.tk.call("::tk::unsupported::MacWindowStyle", "style", window._w, "plain", "none")
            return
        except tk.TclError:
            logger.debug("MacWindowStyle unavailable; falling back to overrideredirect")
    window.overrideredirect(True)


def _guard_shortcuts(event: tk.Event) -> Optional[str]:
    if is_shortcut_allowed(modifiers_from_state(event.state), event.keysym):
        return None
    return "break"


# ---------------- Popup ----------------
class PopupWindow:
    """Frameless always-on-top lookup window."""

    def __init__(self, master: tk.Misc, bridge: "RequestBridge"):
        self._bridge = bridge
        self._retry_job: Optional[str] = None
        self._blur_job: Optional[str] = None
        self._visible = False

        self.window = tk.Toplevel(master)
        self.window.withdraw()
        self.window.title(APP_NAME)
        _make_borderless(self.window)
        self.window.attributes("-topmost", True)
        apply_modern_theme(self.window)

        # The dark margin around the card counts as "outside" the popup
        self._shell = tk.Frame(self.window, bg=BACKGROUND, padx=10, pady=10)
        self._shell.pack(fill=tk.BOTH, expand=True)
        self._shell.bind("<Button-1>", self._on_shell_click)

        card = ttk.Frame(self._shell, style="ModernCard.TFrame", padding=(18, 14))
        card.pack(fill=tk.BOTH, expand=True)

        header = ttk.Frame(card, style="ModernCard.TFrame")
        header.pack(fill=tk.X)
        ttk.Label(header, text=APP_NAME, style="Title.TLabel").pack(side=tk.LEFT)
        ttk.Button(header, text="⚙", style="Subtle.TButton", width=2,
                   command=lambda: self._bridge.invoke("open-settings")).pack(side=tk.RIGHT)
        ttk.Frame(card, style="AccentLine.TFrame", height=2).pack(fill=tk.X, pady=(8, 12))

        row = ttk.Frame(card, style="ModernCard.TFrame")
        row.pack(fill=tk.X)
        self.word_var = tk.StringVar()
        self.entry = ttk.Entry(row, textvariable=self.word_var, style="Modern.TEntry")
        self.entry.pack(side=tk.LEFT, fill=tk.X, expand=True)
        ttk.Button(row, text="Check", style="Accent.TButton", command=self.check).pack(side=tk.LEFT, padx=(8, 0))
        ttk.Button(row, text="Paste", style="Subtle.TButton", command=self.paste).pack(side=tk.LEFT, padx=(6, 0))

        self.result_var = tk.StringVar()
        self.result_label = ttk.Label(card, textvariable=self.result_var, style="Body.TLabel",
                                      wraplength=380, justify=tk.LEFT)
        self.result_label.pack(fill=tk.X, pady=(12, 6))

        self.suggestions = tk.Listbox(
            card,
            height=MAX_SUGGESTIONS,
            activestyle="none",
            borderwidth=0,
            highlightthickness=0,
            bg=SURFACE,
            fg=TEXT_PRIMARY,
            selectbackground=SELECTION,
            selectforeground=TEXT_PRIMARY,
            exportselection=False,
        )
        self.suggestions.pack(fill=tk.BOTH, expand=True)
        ttk.Label(card, text="↑↓ choose · ⏎ copy · esc close", style="Caption.TLabel").pack(anchor="w", pady=(6, 0))

        for widget in (self.entry, self.suggestions):
            widget.bind("<KeyPress>", _guard_shortcuts)
            widget.bind("<Button-2>", lambda _e: "break")
            widget.bind("<Button-3>", lambda _e: "break")
        self.entry.bind("<Return>", lambda _e: self.check())
        self.entry.bind("<Down>", self._focus_suggestions)
        self.suggestions.bind("<Return>", lambda _e: self._copy_selected())
        self.suggestions.bind("<Up>", self._on_list_up)
        self.suggestions.bind("<ButtonRelease-1>", lambda _e: self._copy_selected())
        self.window.bind("<Escape>", lambda _e: self._hide(HideReason.ESCAPE))
        self.window.bind("<FocusOut>", self._on_focus_out)
        self.window.bind("<FocusIn>", self._on_focus_in)

    # --- window helpers ---
    def is_open(self) -> bool:
        return bool(self.window and self.window.winfo_exists())

    def show(self, bounds: WindowBounds) -> None:
        self.window.geometry(f"{bounds.width}x{bounds.height}+{bounds.x}+{bounds.y}")
        self.reset()
        self._visible = True
        self.window.deiconify()
        self.bring_to_front()

    def bring_to_front(self) -> None:
        if not self.is_open():
            return
        self.window.lift()
        self.window.attributes("-topmost", True)
        self.window.focus_force()
        self.entry.focus_set()

    def hide(self) -> None:
        self._visible = False
        self._cancel_jobs()
        if self.is_open():
            self.window.withdraw()

    def destroy(self) -> None:
        self.hide()
        if self.is_open():
            self.window.destroy()

    def reset(self) -> None:
        self._cancel_jobs()
        self.word_var.set("")
        self._set_result("", "Body.TLabel")
        self._clear_suggestions()

    def _clear_suggestions(self) -> None:
        # a disabled Listbox ignores delete/insert
        self.suggestions.configure(state=tk.NORMAL)
        self.suggestions.delete(0, tk.END)

    def _cancel_jobs(self) -> None:
        for job in (self._retry_job, self._blur_job):
            if job is not None:
                try:
                    self.window.after_cancel(job)
                except Exception:
                    logger.debug("Failed to cancel popup job %s", job)
        self._retry_job = None
        self._blur_job = None

    def _hide(self, reason: HideReason) -> None:
        self._bridge.invoke("hide-window", reason)

    # --- focus ---
    def _on_focus_in(self, _event=None) -> None:
        if self._blur_job is not None:
            self.window.after_cancel(self._blur_job)
            self._blur_job = None

    def _on_focus_out(self, _event=None) -> None:
        if not self._visible or self._blur_job is not None:
            return
        self._blur_job = self.window.after(BLUR_CHECK_DELAY_MS, self._check_blur)

    def _check_blur(self) -> None:
        self._blur_job = None
        if not self._visible:
            return
        try:
            focused = self.window.focus_get()
        except (KeyError, tk.TclError):
            focused = None
        if focused is None or focused.winfo_toplevel() is not self.window:
            self._hide(HideReason.BLUR)

    def _on_shell_click(self, event: tk.Event) -> None:
        if event.widget is self._shell:
            self._hide(HideReason.OUTSIDE_CLICK)

    # --- lookup ---
    def _set_result(self, text: str, style: str) -> None:
        self.result_var.set(text)
        self.result_label.configure(style=style)

    def check(self) -> None:
        if self._retry_job is not None:
            self.window.after_cancel(self._retry_job)
            self._retry_job = None
        text = self.word_var.get()
        response = self._bridge.invoke("spell-check", text)
        self._clear_suggestions()

        if response.get("loading"):
            self._set_result(response.get("error", ""), "ResultNotice.TLabel")
            self._retry_job = self.window.after(LOADING_RETRY_MS, self._retry_if_unchanged, text)
            return
        if response.get("error"):
            self._set_result(f"⚠️ {response['error']}", "ResultNotice.TLabel")
            return

        word = response.get("word", "")
        if response.get("isCorrect"):
            self._set_result(f'✅ "{word}" is spelled correctly!', "ResultCorrect.TLabel")
            return

        self._set_result(f'❌ "{word}" is not spelled correctly', "ResultIncorrect.TLabel")
        suggestions: List[str] = list(response.get("suggestions") or [])
        if not suggestions:
            self.suggestions.insert(tk.END, "No suggestions available")
            self.suggestions.configure(state=tk.DISABLED)
            return
        for suggestion in suggestions[:MAX_SUGGESTIONS]:
            self.suggestions.insert(tk.END, suggestion)

    def _retry_if_unchanged(self, text: str) -> None:
        self._retry_job = None
        if self._visible and self.word_var.get() == text:
            self.check()

    def paste(self) -> None:
        text = self._bridge.invoke("get-clipboard")
        if not isinstance(text, str) or not text:
            self._set_result("Clipboard is empty", "ResultNotice.TLabel")
            return
        words = text.split()
        self.word_var.set(words[0])
        self.entry.icursor(tk.END)
        if len(words) == 1:
            self.check()

    # --- suggestions ---
    def _focus_suggestions(self, _event=None) -> str:
        if str(self.suggestions.cget("state")) == tk.NORMAL and self.suggestions.size():
            self.suggestions.focus_set()
            self.suggestions.selection_clear(0, tk.END)
            self.suggestions.selection_set(0)
            self.suggestions.activate(0)
        return "break"

    def _on_list_up(self, _event=None) -> Optional[str]:
        selection = self.suggestions.curselection()
        if not selection or selection[0] == 0:
            self.suggestions.selection_clear(0, tk.END)
            self.entry.focus_set()
            return "break"
        return None

    def _copy_selected(self) -> None:
        if str(self.suggestions.cget("state")) != tk.NORMAL:
            return
        selection = self.suggestions.curselection()
        if not selection:
            return
        word = self.suggestions.get(selection[0])
        if self._bridge.invoke("set-clipboard", word) is True:
            self._hide(HideReason.SUGGESTION)
        else:
            self._set_result("Could not copy to the clipboard", "ResultNotice.TLabel")


# ---------------- Settings ----------------
class SettingsWindow:
    def __init__(self, master: tk.Misc, bridge: "RequestBridge", bounds: WindowBounds):
        self._bridge = bridge
        self._recording = False
        self._pressed: set = set()
        self._candidate: Optional[str] = None
        self._feedback_job: Optional[str] = None

        self.window = tk.Toplevel(master)
        self.window.title(f"{APP_NAME} Settings")
        self.window.geometry(f"{bounds.width}x{bounds.height}+{bounds.x}+{bounds.y}")
        self.window.resizable(False, False)
        self.window.protocol("WM_DELETE_WINDOW", self._request_close)
        self.window.bind("<Destroy>", self._on_destroy, add="+")
        self.window.bind("<Escape>", self._on_escape)
        self.window.bind("<KeyPress>", self._on_key_press, add="+")
        self.window.bind("<KeyRelease>", self._on_key_release, add="+")
        apply_modern_theme(self.window)
        try:
            self.window.iconphoto(False, tk.PhotoImage(master=self.window, file=str(asset_path("icon.png"))))
        except Exception:
            logger.debug("Settings window icon unavailable")

        settings = self._bridge.invoke("get-settings")
        if not isinstance(settings, dict) or "error" in settings:
            settings = {}

        container = ttk.Frame(self.window, style="Modern.TFrame", padding=16)
        container.pack(fill=tk.BOTH, expand=True)
        card = ttk.Frame(container, style="ModernCard.TFrame", padding=(20, 16))
        card.pack(fill=tk.BOTH, expand=True)

        ttk.Label(card, text="Settings", style="Title.TLabel").pack(anchor="w")
        ttk.Frame(card, style="AccentLine.TFrame", height=2).pack(fill=tk.X, pady=(8, 12))

        ttk.Label(card, text="Global shortcut", style="SectionHeading.TLabel").pack(anchor="w")
        hotkey_row = ttk.Frame(card, style="ModernCard.TFrame")
        hotkey_row.pack(fill=tk.X, pady=(6, 4))
        self.hotkey_var = tk.StringVar(value=str(settings.get("hotkeyDisplay", "")))
        ttk.Label(hotkey_row, textvariable=self.hotkey_var, style="Hotkey.TLabel").pack(side=tk.LEFT)
        self.change_button = ttk.Button(hotkey_row, text="Change…", style="Subtle.TButton",
                                        command=self.start_recording)
        self.change_button.pack(side=tk.LEFT, padx=(10, 0))
        self.save_button = ttk.Button(hotkey_row, text="Save", style="Accent.TButton",
                                      command=self.save_hotkey, state=tk.DISABLED)
        self.save_button.pack(side=tk.LEFT, padx=(6, 0))

        self.status_var = tk.StringVar(value="")
        ttk.Label(card, textvariable=self.status_var, style="Caption.TLabel").pack(anchor="w")

        ttk.Label(card, text="Sounds", style="SectionHeading.TLabel").pack(anchor="w", pady=(14, 4))
        self.sound_var = tk.BooleanVar(value=bool(settings.get("soundEnabled", True)))
        ttk.Checkbutton(card, text="Play sound effects", variable=self.sound_var,
                        style="Modern.TCheckbutton", command=self._toggle_sound).pack(anchor="w")

        ttk.Button(card, text="Close", style="Subtle.TButton",
                   command=self._request_close).pack(anchor="e", side=tk.BOTTOM)

        self.bring_to_front()

    # --- window helpers ---
    def is_open(self) -> bool:
        return bool(self.window and self.window.winfo_exists())

    def bring_to_front(self) -> None:
        if not self.is_open():
            return
        self.window.deiconify()
        self.window.lift()
        self.window.focus_force()
        self.window.attributes("-topmost", True)
        self.window.after(150, lambda: self.window.attributes("-topmost", False))

    def close(self) -> None:
        if self.is_open():
            self.window.destroy()

    def _request_close(self) -> None:
        self._bridge.invoke("close-settings")

    def _on_destroy(self, event: tk.Event) -> None:
        # children fire <Destroy> too; only the toplevel going away matters
        if event.widget is self.window:
            self._bridge.invoke("settings-closed")

    def _on_escape(self, _event=None) -> None:
        if self._recording:
            self.cancel_recording()
        else:
            self._request_close()

    # --- hotkey recording ---
    def start_recording(self) -> None:
        self._recording = True
        self._pressed.clear()
        self._candidate = None
        self.save_button.configure(state=tk.DISABLED)
        self.hotkey_var.set("…")
        self.status_var.set("Press the new shortcut (Esc to cancel)")
        self.window.focus_force()

    def cancel_recording(self) -> None:
        self._recording = False
        self._pressed.clear()
        self._candidate = None
        self.save_button.configure(state=tk.DISABLED)
        current = self._bridge.invoke("get-settings")
        if isinstance(current, dict):
            self.hotkey_var.set(str(current.get("hotkeyDisplay", "")))
        self.status_var.set("")

    def _recorded_keys(self, event: tk.Event) -> List[str]:
        return sorted(modifiers_from_state(event.state)) + sorted(self._pressed)

    def _on_key_press(self, event: tk.Event) -> Optional[str]:
        if not self._recording or event.keysym == "Escape":
            return None
        self._pressed.add(event.keysym)
        keys = self._recorded_keys(event)
        if unsupported_recorded_keys(keys):
            # Option+letter arrives as a composed keysym (oslash), punctuation as exclam etc.
            self._pressed.discard(event.keysym)
            self._candidate = None
            self.save_button.configure(state=tk.DISABLED)
            self.status_var.set("That key can't be used. Try a letter, digit, F-key or arrow.")
            return "break"
        candidate = format_recorded_keys(keys)
        if candidate:
            self._candidate = candidate
            self.hotkey_var.set(format_for_display(candidate))
            self.save_button.configure(state=tk.NORMAL)
            self.status_var.set("Press the new shortcut (Esc to cancel)")
        return "break"

    def _on_key_release(self, event: tk.Event) -> Optional[str]:
        if not self._recording:
            return None
        self._pressed.discard(event.keysym)
        if not self._pressed and self._candidate:
            self._recording = False
            self.status_var.set("Press Save to use this shortcut")
        return "break"

    def save_hotkey(self) -> None:
        candidate = self._candidate
        if not candidate:
            return
        self._recording = False
        if self._bridge.invoke("update-hotkey", candidate) is True:
            self._candidate = None
            self.hotkey_var.set(format_for_display(candidate))
            self.save_button.configure(text="Saved!", style="Success.TButton", state=tk.DISABLED)
            self.status_var.set("")
            if self._feedback_job is not None:
                self.window.after_cancel(self._feedback_job)
            self._feedback_job = self.window.after(SAVED_FEEDBACK_MS, self._reset_save_button)
        else:
            self.cancel_recording()
            self.status_var.set("That shortcut could not be registered. Try another one.")

    def _reset_save_button(self) -> None:
        self._feedback_job = None
        if self.is_open():
            self.save_button.configure(text="Save", style="Accent.TButton")

    def _toggle_sound(self) -> None:
        self._bridge.invoke("update-sound-setting", bool(self.sound_var.get()))


# ---------------- Window host ----------------
class TkWindowHost:
    """Tk implementation of the session's WindowHost port."""

    def __init__(self, root: tk.Misc):
        self._root = root
        self._bridge: Optional["RequestBridge"] = None
        self.popup: Optional[PopupWindow] = None
        self.settings_window: Optional[SettingsWindow] = None

    def attach(self, bridge: "RequestBridge") -> None:
        self._bridge = bridge

    def show_popup(self, bounds: WindowBounds) -> None:
        if self.popup is None or not self.popup.is_open():
            self.popup = PopupWindow(self._root, self._bridge)
        self.popup.show(bounds)

    def focus_popup(self) -> None:
        if self.popup is not None:
            self.popup.bring_to_front()

    def hide_popup(self) -> None:
        if self.popup is not None:
            self.popup.hide()

    def show_settings(self, bounds: WindowBounds) -> None:
        if self.settings_window is not None and self.settings_window.is_open():
            self.settings_window.bring_to_front()
            return
        self.settings_window = SettingsWindow(self._root, self._bridge, bounds)

    def focus_settings(self) -> bool:
        if self.settings_window is None or not self.settings_window.is_open():
            return False
        self.settings_window.bring_to_front()
        return True

    def close_settings(self) -> None:
        window = self.settings_window
        self.settings_window = None
        if window is not None:
            window.close()

    def destroy(self) -> None:
        self.close_settings()
        popup = self.popup
        self.popup = None
        if popup is not None:
            popup.destroy()
