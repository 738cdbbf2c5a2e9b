# bufferline/config.py
"""User configuration, derived defaults and the highlight palette.

The current configuration is process-wide: :func:`apply` and
:func:`update_highlights` build a complete new configuration and swap it in,
so :func:`get` only ever returns a fully merged result.
"""
from __future__ import annotations

import copy
import functools
import json
import logging
import os
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any

from . import groups, highlights
from .colors import (
    ColorRef,
    HighlightReferenceError,
    color_is_bright,
    get_hex,
    hex_to_rgb,
    resolve_reference,
    shade_color,
)
from .host import HostAdapter
from .utils import deep_merge, echomsg

logger = logging.getLogger(__name__)

APP_DIR = os.path.expanduser("~/.bufferline")
CONFIG_PATH = os.path.join(APP_DIR, "config.json")

DEFAULT_OPTIONS: dict[str, Any] = {
    "view": "default",
    "numbers": "none",
    "number_style": "superscript",
    "buffer_close_icon": "\uf655",
    "modified_icon": "●",
    "close_icon": "\uf00d",
    "close_command": "bdelete! %d",
    "left_mouse_command": "buffer %d",
    "right_mouse_command": "bdelete! %d",
    "middle_mouse_command": None,
    # U+258E left one quarter block, sits flush against the tab edge
    "indicator_icon": "▎",
    "left_trunc_marker": "\uf0a8",
    "right_trunc_marker": "\uf0a9",
    "separator_style": "thin",
    "name_formatter": None,
    "tab_size": 18,
    "max_name_length": 18,
    "mappings": False,
    "show_buffer_icons": True,
    "show_buffer_close_icons": True,
    "show_close_icon": True,
    "show_tab_indicators": True,
    "enforce_regular_tabs": False,
    "always_show_bufferline": True,
    "persist_buffer_sort": True,
    "max_prefix_length": 15,
    "sort_by": "id",
    "diagnostics": False,
    "diagnostics_indicator": None,
    "diagnostics_update_in_insert": True,
    "offsets": [],
}

# Bright color schemes get lighter shading so they stay readable.
BRIGHT_SHADING = {"separator": -20, "background": -12, "diagnostic": -12}
DARK_SHADING = {"separator": -45, "background": -25, "diagnostic": -25}
VISIBLE_SHADING = -8
DUPLICATE_SHADING = -5

SELECTED_STYLE = "bold,italic"

COMMENT_FG = ColorRef("Comment", "fg", fallback=ColorRef("Normal", "fg"))
NORMAL_FG = ColorRef("Normal", "fg")
NORMAL_BG = ColorRef("Normal", "bg")
STRING_FG = ColorRef("String", "fg")
ERROR_FG = ColorRef("LspDiagnosticsDefaultError", "fg", fallback=ColorRef("Error", "fg"))
WARNING_FG = ColorRef(
    "LspDiagnosticsDefaultWarning", "fg", fallback=ColorRef("WarningMsg", "fg")
)
INFO_FG = ColorRef(
    "LspDiagnosticsDefaultInformation", "fg", fallback=ColorRef("Normal", "fg")
)


@dataclass(frozen=True)
class Deprecation:
    message: str
    pending: bool  # still accepted, removal scheduled


DEPRECATIONS: dict[str, Deprecation] = {
    "mappings": Deprecation(
        message="please refer to the BufferLineGoToBuffer section of the README",
        pending=False,
    ),
    "number_style": Deprecation(
        message=(
            "please specify 'numbers' as a function instead. "
            "See :h bufferline-numbers for details"
        ),
        pending=True,
    ),
}

_host: HostAdapter | None = None
_config: dict[str, Any] = {}
_user_config: dict[str, Any] = {}


def _tabline_sel_bg(normal_bg: str | None) -> ColorRef:
    return ColorRef(
        "TabLineSel",
        "bg",
        not_match=normal_bg,
        fallback=ColorRef(
            "TabLineSel",
            "fg",
            not_match=normal_bg,
            fallback=ColorRef("WildMenu", "fg"),
        ),
    )


def derive_colors(host: HostAdapter) -> dict[str, dict[str, str]]:
    """Build the default palette from the host's current theme."""

    hex_ = functools.partial(get_hex, host)
    shade = shade_color

    comment_fg = hex_(COMMENT_FG)
    normal_fg = hex_(NORMAL_FG)
    normal_bg = hex_(NORMAL_BG)
    string_fg = hex_(STRING_FG)
    error_fg = hex_(ERROR_FG)
    warning_fg = hex_(WARNING_FG)
    info_fg = hex_(INFO_FG)
    tabline_sel_bg = hex_(_tabline_sel_bg(normal_bg))

    if normal_bg and hex_to_rgb(normal_bg) is None:
        logger.debug("cannot parse Normal background %r; shaded colors are unset", normal_bg)
    shading = BRIGHT_SHADING if color_is_bright(normal_bg) else DARK_SHADING

    visible_bg = shade(normal_bg, VISIBLE_SHADING)
    duplicate_color = shade(comment_fg, DUPLICATE_SHADING)
    separator_background_color = shade(normal_bg, shading["separator"])
    background_color = shade(normal_bg, shading["background"])

    # diagnostic colors by default are a few shades darker
    normal_diagnostic_fg = shade(normal_fg, shading["diagnostic"])
    comment_diagnostic_fg = shade(comment_fg, shading["diagnostic"])
    info_diagnostic_fg = shade(info_fg, shading["diagnostic"])
    warning_diagnostic_fg = shade(warning_fg, shading["diagnostic"])
    error_diagnostic_fg = shade(error_fg, shading["diagnostic"])

    palette: dict[str, dict[str, str | None]] = {
        "fill": {"guifg": comment_fg, "guibg": separator_background_color},
        "group_separator": {"guifg": comment_fg, "guibg": separator_background_color},
        "group_label": {"guibg": comment_fg, "guifg": separator_background_color},
        "tab": {"guifg": comment_fg, "guibg": background_color},
        "tab_selected": {"guifg": tabline_sel_bg, "guibg": normal_bg},
        "tab_close": {"guifg": comment_fg, "guibg": background_color},
        "close_button": {"guifg": comment_fg, "guibg": background_color},
        "close_button_visible": {"guifg": comment_fg, "guibg": visible_bg},
        "close_button_selected": {"guifg": normal_fg, "guibg": normal_bg},
        "background": {"guifg": comment_fg, "guibg": background_color},
        "buffer": {"guifg": comment_fg, "guibg": background_color},
        "buffer_visible": {"guifg": comment_fg, "guibg": visible_bg},
        "buffer_selected": {"guifg": normal_fg, "guibg": normal_bg, "gui": SELECTED_STYLE},
        "diagnostic": {"guifg": comment_diagnostic_fg, "guibg": background_color},
        "diagnostic_visible": {"guifg": comment_diagnostic_fg, "guibg": visible_bg},
        "diagnostic_selected": {
            "guifg": normal_diagnostic_fg,
            "guibg": normal_bg,
            "gui": SELECTED_STYLE,
        },
        "modified": {"guifg": string_fg, "guibg": background_color},
        "modified_visible": {"guifg": string_fg, "guibg": visible_bg},
        "modified_selected": {"guifg": string_fg, "guibg": normal_bg},
        "duplicate_selected": {"guifg": duplicate_color, "gui": "italic", "guibg": normal_bg},
        "duplicate_visible": {"guifg": duplicate_color, "gui": "italic", "guibg": visible_bg},
        "duplicate": {"guifg": duplicate_color, "gui": "italic", "guibg": background_color},
        "separator_selected": {"guifg": separator_background_color, "guibg": normal_bg},
        "separator_visible": {"guifg": separator_background_color, "guibg": visible_bg},
        "separator": {"guifg": separator_background_color, "guibg": background_color},
        "indicator_selected": {"guifg": tabline_sel_bg, "guibg": normal_bg},
        "pick_selected": {"guifg": error_fg, "guibg": normal_bg, "gui": SELECTED_STYLE},
        "pick_visible": {"guifg": error_fg, "guibg": visible_bg, "gui": SELECTED_STYLE},
        "pick": {"guifg": error_fg, "guibg": background_color, "gui": SELECTED_STYLE},
    }

    for severity, fg, diagnostic_fg in (
        ("info", info_fg, info_diagnostic_fg),
        ("warning", warning_fg, warning_diagnostic_fg),
        ("error", error_fg, error_diagnostic_fg),
    ):
        palette[severity] = {"guifg": comment_fg, "guisp": fg, "guibg": background_color}
        palette[f"{severity}_visible"] = {"guifg": comment_fg, "guibg": visible_bg}
        palette[f"{severity}_selected"] = {
            "guifg": fg,
            "guibg": normal_bg,
            "gui": SELECTED_STYLE,
            "guisp": fg,
        }
        palette[f"{severity}_diagnostic"] = {
            "guifg": comment_diagnostic_fg,
            "guisp": diagnostic_fg,
            "guibg": background_color,
        }
        palette[f"{severity}_diagnostic_visible"] = {
            "guifg": comment_diagnostic_fg,
            "guibg": visible_bg,
        }
        palette[f"{severity}_diagnostic_selected"] = {
            "guifg": diagnostic_fg,
            "guibg": normal_bg,
            "gui": SELECTED_STYLE,
            "guisp": diagnostic_fg,
        }

    logger.debug(
        "derived %d highlight groups (bright background: %s)",
        len(palette),
        shading is BRIGHT_SHADING,
    )
    # unset colors are left out so they never override anything
    return {
        name: {key: value for key, value in attributes.items() if value is not None}
        for name, attributes in palette.items()
    }


def get_defaults(host: HostAdapter) -> dict[str, Any]:
    return {
        "options": copy.deepcopy(DEFAULT_OPTIONS),
        "highlights": derive_colors(host),
    }


def handle_deprecations(options: Mapping[str, Any] | None, host: HostAdapter) -> None:
    if not options:
        return
    for key in options:
        deprecation = DEPRECATIONS.get(key)
        if deprecation is None:
            continue
        timeframe = "will be" if deprecation.pending else "has been"
        msg = f"'{key}' {timeframe} deprecated: {deprecation.message}"
        host.schedule(functools.partial(echomsg, host, msg, logging.WARNING))


def invalid_highlights(prefs: Mapping[str, Any], defaults: Mapping[str, Any]) -> list[str]:
    user_highlights = prefs.get("highlights")
    if not isinstance(user_highlights, Mapping):
        return []
    valid = defaults.get("highlights") or {}
    return [name for name in user_highlights if name not in valid]


def validate_config(
    prefs: Mapping[str, Any] | None, defaults: Mapping[str, Any], host: HostAdapter
) -> None:
    """Warn about deprecated options and unknown highlight groups."""

    if not prefs:
        return
    handle_deprecations(prefs.get("options"), host)
    incorrect = invalid_highlights(prefs, defaults)
    if not incorrect:
        return
    is_plural = len(incorrect) > 1
    verb = " are " if is_plural else " is "
    article = " " if is_plural else " a "
    obj = " groups. " if is_plural else " group. "
    msg = "".join(
        [
            ", ".join(incorrect),
            verb,
            "not",
            article,
            "valid highlight",
            obj,
            "Please check the README for all valid highlights",
        ]
    )
    echomsg(host, msg, logging.WARNING)


def drop_malformed_highlights(prefs: MutableMapping[str, Any] | None, host: HostAdapter) -> None:
    """Remove highlight overrides that are not tables, warning for each, in place."""

    if not prefs or "highlights" not in prefs:
        return
    user_highlights = prefs["highlights"]
    if not isinstance(user_highlights, MutableMapping):
        del prefs["highlights"]
        if user_highlights:
            echomsg(
                host, "highlights must be a table of highlight groups; ignoring it", logging.WARNING
            )
        return
    for name, attributes in list(user_highlights.items()):
        if isinstance(attributes, Mapping):
            continue
        del user_highlights[name]
        echomsg(
            host,
            f"ignoring {name}: highlight groups must be tables of attributes",
            logging.WARNING,
        )


def convert_hl_tables(prefs: MutableMapping[str, Any] | None, host: HostAdapter) -> None:
    """Resolve highlight references in ``prefs`` to concrete colors, in place.

    A malformed reference drops only the attribute it was given for.
    """

    if not prefs or not isinstance(prefs.get("highlights"), Mapping):
        return
    for name, attributes in prefs["highlights"].items():
        if not isinstance(attributes, MutableMapping):
            continue
        for attribute, value in list(attributes.items()):
            if not isinstance(value, (Mapping, ColorRef, list, tuple)):
                continue
            try:
                color = resolve_reference(host, value)
            except HighlightReferenceError as exc:
                del attributes[attribute]
                logger.debug("bad reference for %s.%s: %s", name, attribute, exc)
                echomsg(
                    host,
                    f"removing {attribute} from {name} as it is not formatted correctly",
                    logging.WARNING,
                )
                continue
            if color is None:
                # the theme has no such color; keep the default
                del attributes[attribute]
            else:
                attributes[attribute] = color


def merge(defaults: Mapping[str, Any], preferences: Mapping[str, Any] | None) -> dict[str, Any]:
    """Combine user preferences with defaults, preferring the user's settings."""

    return deep_merge(defaults, preferences)


def _known_highlights(
    user_highlights: Mapping[str, Any] | None, palette: Mapping[str, Any]
) -> dict[str, Any]:
    if not isinstance(user_highlights, Mapping):
        return {}
    return {
        name: value
        for name, value in user_highlights.items()
        if name in palette and isinstance(value, Mapping)
    }


def _finish(config: dict[str, Any], host: HostAdapter) -> dict[str, Any]:
    options = config["options"]
    if options.get("groups"):
        options["groups"] = [groups.as_group(group) for group in options["groups"]]
        groups.set_hls(config)
    highlights.add_groups(host, config["highlights"])
    return config


def _require_host() -> HostAdapter:
    if _host is None:
        raise RuntimeError("no host adapter installed; call set_host() first")
    return _host


def set_host(host: HostAdapter) -> None:
    global _host
    _host = host


def set_user_config(conf: Mapping[str, Any] | None) -> None:
    """Keep track of the user's config so it can be re-applied on theme changes."""

    global _user_config
    _user_config = copy.deepcopy(dict(conf)) if conf else {}


def apply() -> dict[str, Any]:
    """Merge the user config with defaults and make it the current config."""

    global _config
    host = _require_host()
    defaults = get_defaults(host)
    drop_malformed_highlights(_user_config, host)
    validate_config(_user_config, defaults, host)
    convert_hl_tables(_user_config, host)
    prefs = dict(_user_config)
    if "highlights" in prefs:
        prefs["highlights"] = _known_highlights(prefs["highlights"], defaults["highlights"])
    config = _finish(merge(defaults, prefs), host)
    _config = config
    return config


def update_highlights() -> dict[str, Any]:
    """Re-derive the palette after a theme change and re-apply user overrides."""

    global _config
    if not _config:
        return apply()
    host = _require_host()
    drop_malformed_highlights(_user_config, host)
    convert_hl_tables(_user_config, host)
    palette = derive_colors(host)
    user_highlights = _known_highlights(_user_config.get("highlights"), palette)
    config = {**_config, "options": dict(_config["options"])}
    config["highlights"] = merge(palette, user_highlights)
    config = _finish(config, host)
    _config = config
    return config


def get(key: str | None = None) -> Any:
    if key is not None:
        return _config.get(key)
    return _config


def setup(host: HostAdapter, conf: Mapping[str, Any] | None = None) -> dict[str, Any]:
    set_host(host)
    set_user_config(conf)
    return apply()


def reset() -> None:
    """Forget all state. Only intended for tests."""

    global _config, _user_config, _host
    _config = {}
    _user_config = {}
    _host = None


def load_user_config(path: str | os.PathLike[str] | None = None) -> dict[str, Any]:
    """Read static options and highlights from a JSON file.

    Returns an empty config when the file is missing or unusable.
    """

    path = os.fspath(path) if path is not None else CONFIG_PATH
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("ignoring unreadable config %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("ignoring config %s: expected a JSON object", path)
        return {}
    return data
