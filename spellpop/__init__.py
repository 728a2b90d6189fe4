"""SpellPop - menu-bar spell checker popup for macOS"""

__version__ = "1.2.0"
__description__ = "Menu-bar spell checker popup for macOS"

__all__ = ["run", "__version__"]


def __getattr__(name: str):
    """Lazy import so headless callers can use the core modules.

    The entry point wires up tkinter, the tray and the hotkey backends,
    which need a display.
    """
    if name == "run":
        from .main import main

        return main
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
