from __future__ import annotations

import logging
import tkinter as tk
from collections.abc import Callable, Iterable, Mapping
from tkinter import messagebox, ttk
from typing import Any

from ..colors import rgb_to_hex
from ..host import HostAdapter

logger = logging.getLogger(__name__)

NOTICE_TITLE = "Bufferline"

# guifg/guibg map onto ttk options; ttk labels have no special color or
# per-style underline so guisp is not carried over
_STYLE_OPTIONS = {"guifg": "foreground", "guibg": "background"}


def style_name(group: str) -> str:
    return f"{group}.TLabel"


def theme_from_editor_colors(cfg: Mapping[str, Any]) -> dict[str, dict[str, str]]:
    """Map a Tk editor's color settings onto the theme groups bufferline reads.

    ``fg``/``bg`` are the text colors, ``highlight1`` the accent used for the
    caret and misspellings, ``highlight2`` the muted color.
    """

    fg = cfg.get("fg")
    bg = cfg.get("bg")
    accent = cfg.get("highlight1")
    muted = cfg.get("highlight2")
    theme = {
        "Normal": {"fg": fg, "bg": bg},
        "Comment": {"fg": muted},
        "String": {"fg": accent},
        "Error": {"fg": accent},
        "WarningMsg": {"fg": accent},
        "TabLineSel": {"bg": accent},
    }
    return {
        name: {key: value for key, value in attrs.items() if value}
        for name, attrs in theme.items()
    }


def style_options(attributes: Mapping[str, str]) -> dict[str, str]:
    return {
        option: attributes[key] for key, option in _STYLE_OPTIONS.items() if attributes.get(key)
    }


def resolve_color(root: tk.Misc, value: Any) -> Any:
    """Turn a Tk color name such as ``"white"`` into ``#rrggbb``.

    Hex strings and values Tk does not know are returned unchanged.
    """

    if not isinstance(value, str) or not value or value.startswith("#"):
        return value
    try:
        red, green, blue = root.winfo_rgb(value)
    except tk.TclError:
        logger.debug("unknown Tk color %r", value)
        return value
    # winfo_rgb reports 16-bit channels
    return rgb_to_hex(red >> 8, green >> 8, blue >> 8)


def make_tk_host(
    root: tk.Misc,
    theme: Mapping[str, Mapping[str, str]],
    style: ttk.Style | None = None,
    list_buffers: Callable[[], Iterable[Any]] | None = None,
) -> HostAdapter:
    """Build a :class:`HostAdapter` backed by a Tk application.

    Highlights become ``<group>.TLabel`` styles, warnings are shown in a
    message box and deferred work runs from ``after_idle``.
    """

    tk_style = style or ttk.Style(root)

    def get_highlight(name: str) -> Mapping[str, str] | None:
        attributes = theme.get(name)
        if attributes is None:
            return None
        return {key: resolve_color(root, value) for key, value in attributes.items()}

    def add_highlight(group: str, attributes: Mapping[str, str]) -> None:
        options = style_options(attributes)
        if options:
            tk_style.configure(style_name(group), **options)

    def notify(message: str, level: int) -> None:
        if level < logging.WARNING:
            return
        if level >= logging.ERROR:
            messagebox.showerror(NOTICE_TITLE, message, parent=root)
        else:
            messagebox.showwarning(NOTICE_TITLE, message, parent=root)

    def schedule(callback: Callable[[], None]) -> None:
        root.after_idle(callback)

    return HostAdapter(
        get_highlight=get_highlight,
        add_highlight=add_highlight,
        notify=notify,
        schedule=schedule,
        list_buffers=list_buffers,
    )
