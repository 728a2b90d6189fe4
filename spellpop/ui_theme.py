from __future__ import annotations

import tkinter as tk
from tkinter import ttk

# NOTE ABOUT FONTS
# -----------------
# Tk parses font descriptors token-by-token, so multi-word families such as
# "Helvetica Neue" must be wrapped in braces when passed as a string to
# option_add. Tuples passed to style.configure are safe as-is.

UI_FONT = "Helvetica Neue"

# Core palette
BACKGROUND = "#1c1c1e"
SURFACE = "#2c2c2e"
ELEVATED_SURFACE = "#323236"
ACCENT = "#0a84ff"
ACCENT_HOVER = "#409cff"
ACCENT_PRESSED = "#0060df"
TEXT_PRIMARY = "#f2f2f7"
TEXT_SECONDARY = "#98989f"
OUTLINE = "#3a3a3c"
SUCCESS = "#30d158"
DANGER = "#ff453a"
WARNING = "#ffd60a"
MUTED_BUTTON = "#3a3a3c"
MUTED_BUTTON_HOVER = "#48484a"
MUTED_BUTTON_DISABLED = "#2a2a2c"
SELECTION = "#0a84ff"


def apply_modern_theme(root: tk.Misc) -> ttk.Style:
    """Apply the dark popup style to the provided Tk widget tree."""
    style = ttk.Style(master=root)
    try:
        style.theme_use("clam")
    except Exception:
        # Fall back silently if the theme isn't available
        pass

    if isinstance(root, tk.Tk) or isinstance(root, tk.Toplevel):
        root.configure(bg=BACKGROUND)
    try:
        root.option_add("*Font", f"{{{UI_FONT}}} 13")
        root.option_add("*Background", BACKGROUND)
        root.option_add("*Foreground", TEXT_PRIMARY)
        root.option_add("*Entry*Foreground", TEXT_PRIMARY)
        root.option_add("*Entry*Background", ELEVATED_SURFACE)
        root.option_add("*Entry*InsertBackground", ACCENT)
        root.option_add("*Listbox*Background", SURFACE)
        root.option_add("*Listbox*Foreground", TEXT_PRIMARY)
    except Exception:
        pass

    style.configure("Modern.TFrame", background=BACKGROUND)
    style.configure("ModernCard.TFrame", background=SURFACE, relief="flat")
    style.configure("Body.TLabel", background=SURFACE, foreground=TEXT_PRIMARY,
                    font=(UI_FONT, 13))
    style.configure("Title.TLabel", background=SURFACE, foreground=TEXT_PRIMARY,
                    font=(UI_FONT, 17, "bold"))
    style.configure("SectionHeading.TLabel", background=SURFACE, foreground=ACCENT,
                    font=(UI_FONT, 13, "bold"))
    style.configure("Caption.TLabel", background=SURFACE, foreground=TEXT_SECONDARY,
                    font=(UI_FONT, 11))
    style.configure("Hotkey.TLabel", background=ELEVATED_SURFACE, foreground=TEXT_PRIMARY,
                    font=(UI_FONT, 18), padding=(12, 6))

    # Result line variants
    style.configure("ResultCorrect.TLabel", background=SURFACE, foreground=SUCCESS,
                    font=(UI_FONT, 14, "bold"))
    style.configure("ResultIncorrect.TLabel", background=SURFACE, foreground=DANGER,
                    font=(UI_FONT, 14, "bold"))
    style.configure("ResultNotice.TLabel", background=SURFACE, foreground=WARNING,
                    font=(UI_FONT, 13))

    # Buttons
    style.configure("Accent.TButton", background=ACCENT, foreground=TEXT_PRIMARY,
                    borderwidth=0, focusthickness=1, focuscolor=ACCENT,
                    padding=(14, 6))
    style.map(
        "Accent.TButton",
        background=[("disabled", MUTED_BUTTON_DISABLED), ("pressed", ACCENT_PRESSED), ("active", ACCENT_HOVER)],
        foreground=[("disabled", TEXT_SECONDARY)],
    )

    style.configure("Subtle.TButton", background=MUTED_BUTTON, foreground=TEXT_PRIMARY,
                    borderwidth=0, focusthickness=1, focuscolor=OUTLINE,
                    padding=(14, 6))
    style.map(
        "Subtle.TButton",
        background=[("disabled", MUTED_BUTTON_DISABLED), ("pressed", MUTED_BUTTON), ("active", MUTED_BUTTON_HOVER)],
        foreground=[("disabled", TEXT_SECONDARY)],
    )

    style.configure("Success.TButton", background=SUCCESS, foreground=BACKGROUND,
                    borderwidth=0, padding=(14, 6))

    style.configure("Modern.TCheckbutton", background=SURFACE, foreground=TEXT_PRIMARY,
                    focuscolor=ACCENT)
    style.map(
        "Modern.TCheckbutton",
        foreground=[("disabled", TEXT_SECONDARY)],
        indicatorcolor=[("selected", ACCENT), ("!selected", OUTLINE)],
    )

    style.configure("Modern.TEntry", fieldbackground=ELEVATED_SURFACE, foreground=TEXT_PRIMARY,
                    bordercolor=OUTLINE, lightcolor=ELEVATED_SURFACE, darkcolor=ELEVATED_SURFACE,
                    insertcolor=ACCENT, padding=(8, 6))

    style.configure("AccentLine.TFrame", background=ACCENT)

    return style
