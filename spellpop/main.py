# -*- coding: utf-8 -*-
from __future__ import annotations

import atexit
import sys

from spellpop.config_paths import DEFAULT_HOTKEY, SettingsStore, get_logger
from spellpop.platform_utils import IS_MACOS, describe_platform
from spellpop.system import (
    APP_VERSION,
    TrayController,
    acquire_single_instance_lock,
    enqueue_ui_task,
    notify,
    register_shutdown,
    release_single_instance_lock,
    shutdown_all,
)

logger = get_logger(__name__)


def main(argv: list[str]) -> int:
    logger.info("SpellPop starting up (version %s) on %s", APP_VERSION, describe_platform())

    if not IS_MACOS:
        logger.error("SpellPop only runs on macOS; refusing to start on %s", sys.platform)
        try:
            print("SpellPop requires macOS.", file=sys.stderr)
        except Exception:
            logger.debug("Failed to write platform warning to stderr", exc_info=True)
        return 1

    # Single instance
    if not acquire_single_instance_lock():
        logger.warning("Another SpellPop instance appears to be running; exiting")
        return 0
    atexit.register(release_single_instance_lock)

    # GUI backends are only imported once the platform is known to be usable
    from spellpop.bridge import RequestBridge
    from spellpop.gui import TkWindowHost, ensure_ui_root, run_ui_loop
    from spellpop.hotkeys import HotkeyManager
    from spellpop.macio import FrontmostAppTracker, ScreenLayout, hide_dock_icon, read_clipboard, write_clipboard
    from spellpop.session import AppSession
    from spellpop.sounds import SoundEffects
    from spellpop.spelling import DictionaryService

    logger.info("Loading configuration settings")
    store = SettingsStore()

    # Dictionary loads in the background; checks answer "still loading" until ready
    dictionary = DictionaryService()
    dictionary.start_loading()

    root = ensure_ui_root()
    if root is None:
        logger.error("Unable to create the UI root; exiting")
        return 1
    hide_dock_icon()

    hotkeys = HotkeyManager(
        on_activate=lambda: enqueue_ui_task(session.toggle_popup),
        on_persist=lambda binding: store.update(hotkey=binding),
    )
    host = TkWindowHost(root)
    session = AppSession(host, FrontmostAppTracker(), ScreenLayout(root), on_shutdown=hotkeys.unregister_all)
    sounds = SoundEffects(enabled=store.config.sound_enabled)
    bridge = RequestBridge(session, dictionary, hotkeys, sounds, store, read_clipboard, write_clipboard)
    host.attach(bridge)

    hotkey = store.config.hotkey
    if not hotkeys.register(hotkey):
        logger.error("Failed to register hotkey %s", hotkey)
        if hotkey == DEFAULT_HOTKEY or not hotkeys.register(DEFAULT_HOTKEY):
            notify("SpellPop could not register its keyboard shortcut. Use the menu-bar icon or pick another shortcut in Settings.")
    atexit.register(hotkeys.unregister_all)

    tray = TrayController(session, on_quit=shutdown_all)
    register_shutdown(tray.stop)
    register_shutdown(session.shutdown)

    logger.info("Launching menu-bar icon")
    tray.start()
    try:
        run_ui_loop()
    finally:
        shutdown_all()
    logger.info("SpellPop shutting down cleanly")
    return 0


def cli() -> None:
    sys.exit(main(sys.argv))


if __name__ == "__main__":
    cli()
