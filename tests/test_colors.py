import pytest

from bufferline.colors import (
    ColorRef,
    HighlightReferenceError,
    color_is_bright,
    get_hex,
    hex_to_rgb,
    luminance,
    normalize_color,
    resolve_reference,
    shade_color,
)
from bufferline.host import HostAdapter


def _host(theme: dict) -> HostAdapter:
    return HostAdapter(
        get_highlight=theme.get,
        add_highlight=lambda name, attrs: None,
        notify=lambda msg, level: None,
        schedule=lambda callback: callback(),
    )


@pytest.mark.parametrize(
    "color, expected",
    [
        ("#ff8000", (255, 128, 0)),
        ("#FFFFFF", (255, 255, 255)),
        ("#fff", (255, 255, 255)),
        ("#ffff", None),
        ("red", None),
        (None, None),
    ],
)
def test_hex_to_rgb(color, expected):
    assert hex_to_rgb(color) == expected


@pytest.mark.parametrize("color", ["#336699", "#ABCDEF", "#000000", None])
def test_shade_by_zero_returns_input_unchanged(color):
    assert shade_color(color, 0) == color


@pytest.mark.parametrize("color", ["#336699", "#d8d8d8", "#1e1e1e"])
def test_shade_extremes_reach_white_and_black(color):
    assert shade_color(color, 100) == "#ffffff"
    assert shade_color(color, -100) == "#000000"
    assert shade_color(color, 250) == "#ffffff"


def test_shade_direction_follows_sign():
    base = "#336699"
    assert luminance(shade_color(base, -25)) < luminance(base)
    assert luminance(shade_color(base, 25)) > luminance(base)


def test_shade_unknown_color_stays_unset():
    assert shade_color(None, -20) is None
    assert shade_color("NONE", -20) is None


def test_color_is_bright_uses_luminance():
    assert color_is_bright("#ffffff")
    assert color_is_bright("#d8d8d8")
    assert not color_is_bright("#1e1e1e")
    assert not color_is_bright(None)


def test_normalize_color_accepts_ints_and_drops_none():
    assert normalize_color(0xFF0000) == "#ff0000"
    assert normalize_color("#ABCDEF") == "#abcdef"
    assert normalize_color("#FA0") == "#ffaa00"
    assert normalize_color("NONE") is None
    assert normalize_color("") is None


def test_get_hex_follows_fallback_when_missing():
    host = _host({"Normal": {"fg": "#c0c0c0", "bg": "#1e1e1e"}})
    ref = ColorRef("Comment", "fg", fallback=ColorRef("Normal", "fg"))

    assert get_hex(host, ref) == "#c0c0c0"


def test_get_hex_rejects_not_match_color():
    host = _host({"TabLineSel": {"bg": "#1e1e1e", "fg": "#569cd6"}})
    ref = ColorRef(
        "TabLineSel",
        "bg",
        not_match="#1E1E1E",
        fallback=ColorRef("TabLineSel", "fg", not_match="#1e1e1e"),
    )

    assert get_hex(host, ref) == "#569cd6"


def test_get_hex_without_fallback_is_none():
    assert get_hex(_host({}), ColorRef("String", "fg")) is None


def test_resolve_reference_reads_theme():
    host = _host({"String": {"fg": "#ce9178"}})

    assert resolve_reference(host, {"highlight": "String", "attribute": "fg"}) == "#ce9178"


@pytest.mark.parametrize(
    "value",
    [
        {"highlight": "String"},
        {"attribute": "fg"},
        {"highlight": "String", "attribute": "foreground"},
        ["String", "fg"],
    ],
)
def test_resolve_reference_rejects_malformed(value):
    with pytest.raises(HighlightReferenceError):
        resolve_reference(_host({}), value)
