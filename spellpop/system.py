# -*- coding: utf-8 -*-
from __future__ import annotations

import os
import sys
import threading
from queue import Queue
from typing import TYPE_CHECKING, Callable, Optional

from spellpop import __version__
from spellpop.config_paths import APP_NAME, asset_path, get_config_dir, get_logger

if TYPE_CHECKING:
    from spellpop.session import AppSession

logger = get_logger(__name__)

# ---------------- Public constants ----------------
APP_VERSION = __version__
LOCK_FILENAME = "SpellPop.lock"
ICON_SIZE = 64

# ---------------- Globals ----------------
instance_lock_handle: Optional[object] = None

# Tk owns the windows on the main thread; other threads only queue work
ui_queue: "Queue[tuple[Callable[..., None], tuple, dict]]" = Queue()


# ---------------- UI task queue ----------------
def enqueue_ui_task(func: Callable[..., None], *args, **kwargs) -> None:
    try:
        ui_queue.put_nowait((func, args, kwargs))
    except Exception:
        logger.exception("Failed to enqueue UI task %s", getattr(func, "__name__", str(func)))


# ---------------- Notifications ----------------
def notify(message: str, title: str = APP_NAME) -> None:
    """Display a user-facing notification window (falls back to stdout)."""
    try:
        from spellpop.gui import show_notification_popup

        enqueue_ui_task(show_notification_popup, title, message)
    except Exception:
        logger.exception("Failed to display notification '%s': %s", title, message)
        try:
            print(f"{title}: {message}")
        except Exception:
            logger.exception("Failed to print fallback notification '%s'", title)


# ---------------- Tray ----------------
def create_icon_image():
    from PIL import Image, ImageDraw

    icon_path = asset_path("icon.png")
    try:
        return Image.open(icon_path)
    except FileNotFoundError:
        pass
    except Exception:
        logger.exception("Failed to load tray icon from %s; drawing fallback", icon_path)

    image = Image.new("RGBA", (ICON_SIZE, ICON_SIZE), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    draw.rounded_rectangle((4, 4, ICON_SIZE - 4, ICON_SIZE - 4), radius=12, outline=(0, 0, 0, 255), width=5)
    draw.line((18, 34, 28, 44, 46, 20), fill=(0, 0, 0, 255), width=6)
    return image


class TrayController:
    """Menu-bar icon; menu callbacks are forwarded to the UI thread."""

    def __init__(self, session: "AppSession", on_quit: Callable[[], None]):
        self._session = session
        self._on_quit = on_quit
        self._icon = None
        self._thread: Optional[threading.Thread] = None

    def _toggle(self, icon, item) -> None:
        enqueue_ui_task(self._session.toggle_popup)

    def _open_settings(self, icon, item) -> None:
        enqueue_ui_task(self._session.open_settings)

    def _quit(self, icon, item) -> None:
        enqueue_ui_task(self._on_quit)

    def build_menu(self):
        import pystray

        return pystray.Menu(
            pystray.MenuItem(f"Show {APP_NAME}", self._toggle, default=True),
            pystray.MenuItem("Settings…", self._open_settings),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem(f"Quit {APP_NAME}", self._quit),
        )

    def start(self) -> None:
        import pystray

        if self._icon is not None:
            return
        self._icon = pystray.Icon(APP_NAME, create_icon_image(), f"{APP_NAME} {APP_VERSION}", menu=self.build_menu())
        if sys.platform == "darwin":
            # AppKit needs the main thread; Tk's mainloop drives the run loop
            self._icon.run_detached()
            return

        def _run_icon() -> None:
            try:
                self._icon.run()
            except Exception:
                logger.exception("Tray icon loop crashed")

        self._thread = threading.Thread(target=_run_icon, name="SpellPopTray", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        icon = self._icon
        self._icon = None
        if icon is None:
            return
        try:
            icon.stop()
        except Exception:
            logger.exception("Failed to stop tray icon")
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None


# ---------------- Startup / single-instance ----------------
def acquire_single_instance_lock() -> bool:
    global instance_lock_handle
    lock_path = get_config_dir() / LOCK_FILENAME
    logger.debug("Attempting to acquire instance lock at %s", lock_path)
    if instance_lock_handle is not None:
        return True
    try:
        handle = open(lock_path, "a+")
    except OSError as exc:
        logger.warning("Unable to open lock file at %s: %s", lock_path, exc)
        return False
    try:
        import fcntl

        try:
            fcntl.lockf(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            logger.info("Instance lock already held by another process")
            handle.close()
            return False
        handle.seek(0)
        handle.truncate(0)
        handle.write(str(os.getpid()))
        handle.flush()
        logger.info("Acquired instance lock with PID %s", os.getpid())
        instance_lock_handle = handle
        return True
    except Exception as exc:
        logger.error("Unable to acquire single-instance lock: %s", exc)
        try:
            handle.close()
        except Exception:
            logger.exception("Failed to close lock file handle after acquisition error")
        return False


def release_single_instance_lock() -> None:
    global instance_lock_handle
    handle = instance_lock_handle
    if handle is None:
        logger.debug("Release instance lock requested but no lock handle is present")
        return
    instance_lock_handle = None
    try:
        import fcntl

        try:
            fcntl.lockf(handle.fileno(), fcntl.LOCK_UN)
        except Exception:
            logger.exception("Failed to release file lock for SpellPop instance")
    finally:
        try:
            handle.close()
        except Exception:
            logger.exception("Failed to close instance lock file handle")
        try:
            (get_config_dir() / LOCK_FILENAME).unlink(missing_ok=True)
        except Exception:
            logger.exception("Failed to remove instance lock file")
        logger.info("Released instance lock")


# ---------------- Shutdown ----------------
_shutdown_callbacks: list[Callable[[], None]] = []
_shutdown_lock = threading.Lock()
_shutdown_done = False


def register_shutdown(callback: Callable[[], None]) -> None:
    with _shutdown_lock:
        _shutdown_callbacks.append(callback)


def shutdown_all() -> None:
    """Run registered cleanups once, newest first, then stop the UI loop."""
    global _shutdown_done
    with _shutdown_lock:
        if _shutdown_done:
            return
        _shutdown_done = True
        callbacks = list(reversed(_shutdown_callbacks))
        _shutdown_callbacks.clear()

    logger.info("Shutting down all SpellPop services")
    for callback in callbacks:
        try:
            callback()
        except Exception:
            logger.exception("Shutdown step %s failed", getattr(callback, "__name__", callback))
    try:
        from spellpop.gui import request_ui_shutdown

        request_ui_shutdown()
    except Exception:
        logger.exception("Failed to shut down UI during shutdown")
