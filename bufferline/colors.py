"""Color helpers used to derive the bufferline palette from a theme.

These utilities are pure functions apart from :func:`get_hex`, which reads the
active theme through the :class:`~bufferline.host.HostAdapter`, so they can be
unit-tested without an editor.
"""
from __future__ import annotations

import colorsys
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .host import HostAdapter

HEX_RE = re.compile(r"^#(?P<value>[0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")

# luminance above which a background counts as "bright"
BRIGHTNESS_THRESHOLD = 0.5

THEME_ATTRIBUTES = ("fg", "bg", "sp")


class HighlightReferenceError(ValueError):
    """Raised when a highlight reference cannot be resolved to a color."""


@dataclass(frozen=True)
class ColorRef:
    """A theme color lookup: ``attribute`` of highlight ``name``.

    ``not_match`` rejects a color equal to it, and ``fallback`` is tried when
    the color is missing or rejected.
    """

    name: str
    attribute: str
    fallback: ColorRef | None = None
    not_match: str | None = None


def _expand(digits: str) -> str:
    # "#rgb" is shorthand for "#rrggbb"
    if len(digits) == 3:
        return "".join(c * 2 for c in digits)
    return digits


def normalize_color(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return f"#{value & 0xFFFFFF:06x}"
    if isinstance(value, str):
        value = value.strip()
        if not value or value.upper() == "NONE":
            return None
        match = HEX_RE.match(value)
        if match:
            return "#" + _expand(match.group("value")).lower()
        return value
    return None


def hex_to_rgb(color: str | None) -> tuple[int, int, int] | None:
    if not color:
        return None
    match = HEX_RE.match(color)
    if not match:
        return None
    value = _expand(match.group("value"))
    return tuple(int(value[i : i + 2], 16) for i in (0, 2, 4))  # type: ignore[return-value]


def rgb_to_hex(r: int, g: int, b: int) -> str:
    r, g, b = (max(0, min(255, int(c))) for c in (r, g, b))
    return f"#{r:02x}{g:02x}{b:02x}"


def shade_color(color: str | None, percent: float) -> str | None:
    """Lighten (positive) or darken (negative) ``color`` by ``percent``.

    The percentage is applied to the HLS lightness: +100 moves all the way to
    white, -100 all the way to black. Hue and saturation are kept.
    """

    if percent == 0:
        return color
    rgb = hex_to_rgb(color)
    if rgb is None:
        return None

    amount = max(-100.0, min(100.0, float(percent))) / 100
    h, lightness, s = colorsys.rgb_to_hls(*(c / 255 for c in rgb))
    if amount > 0:
        lightness += (1 - lightness) * amount
    else:
        lightness *= 1 + amount
    lightness = max(0.0, min(1.0, lightness))

    r, g, b = colorsys.hls_to_rgb(h, lightness, s)
    return rgb_to_hex(round(r * 255), round(g * 255), round(b * 255))


def luminance(color: str | None) -> float | None:
    rgb = hex_to_rgb(color)
    if rgb is None:
        return None
    r, g, b = rgb
    return (0.299 * r + 0.587 * g + 0.114 * b) / 255


def color_is_bright(color: str | None) -> bool:
    value = luminance(color)
    return value is not None and value > BRIGHTNESS_THRESHOLD


def get_hex(host: HostAdapter, ref: ColorRef) -> str | None:
    """Look up ``ref`` in the host theme, following its fallback chain."""

    attributes = host.get_highlight(ref.name) or {}
    color = normalize_color(attributes.get(ref.attribute))
    rejected = ref.not_match is not None and color == normalize_color(ref.not_match)
    if color is None or rejected:
        if ref.fallback is not None:
            return get_hex(host, ref.fallback)
        return None
    return color


def resolve_reference(host: HostAdapter, value: Any) -> str | None:
    """Resolve a ``{"highlight": ..., "attribute": ...}`` reference to a color."""

    if isinstance(value, ColorRef):
        return get_hex(host, value)
    if not isinstance(value, Mapping):
        raise HighlightReferenceError(f"expected a highlight reference, got {value!r}")
    name = value.get("highlight")
    attribute = value.get("attribute")
    if not name or not attribute:
        raise HighlightReferenceError(
            "highlight references need both 'highlight' and 'attribute'"
        )
    if attribute not in THEME_ATTRIBUTES:
        raise HighlightReferenceError(f"unknown highlight attribute {attribute!r}")
    return get_hex(host, ColorRef(name=str(name), attribute=str(attribute)))
