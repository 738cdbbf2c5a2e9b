from __future__ import annotations

import pytest

from bufferline import config, groups
from bufferline.buffers import Buffer, BufferContext, collect
from bufferline.groups import Group, Marker
from bufferline.host import HostAdapter


def _is_test(buf: Buffer) -> bool:
    return "test" in buf.name


def _always(buf: Buffer) -> bool:
    return True


def _bufs(*names: str) -> list[Buffer]:
    return [Buffer(index, name) for index, name in enumerate(names, start=1)]


def _grouped(buffers: list[Buffer], declared: list[Group]) -> list[Buffer]:
    for buf in buffers:
        buf.group = groups.find(buf, declared)
    return buffers


HIGHLIGHTS = {
    "fill": {"hl": "%#BufferLineFill#"},
    "group_separator": {"hl": "%#BufferLineGroupSeparator#"},
    "group_label": {"hl": "%#BufferLineGroupLabel#"},
    "buffer": {"hl": "%#BufferLineBuffer#"},
    "buffer_visible": {"hl": "%#BufferLineBufferVisible#"},
    "buffer_selected": {"hl": "%#BufferLineBufferSelected#"},
    "tests": {"hl": "%#BufferLineTests#"},
    "tests_visible": {"hl": "%#BufferLineTestsVisible#"},
    "tests_selected": {"hl": "%#BufferLineTestsSelected#"},
}


def test_first_matching_group_wins():
    declared = [Group("A", fn=_is_test), Group("B", fn=_always)]

    assert groups.find(Buffer(1, "test.go"), declared).name == "A"
    assert groups.find(Buffer(2, "main.go"), declared).name == "B"


def test_find_assigns_declaration_index_as_priority():
    declared = [Group("A", fn=_is_test), Group("B", fn=_always), Group("C", fn=_always, priority=7)]

    groups.find(Buffer(1, "main.go"), declared)
    groups.find(Buffer(2, "test.go"), declared)

    assert [g.priority for g in declared] == [1, 2, 7]


def test_find_without_match_or_groups_is_none():
    assert groups.find(Buffer(1, "main.go"), [Group("A", fn=_is_test)]) is None
    assert groups.find(Buffer(1, "main.go"), []) is None
    assert groups.find(Buffer(1, "main.go"), None) is None
    assert groups.find(Buffer(1, "main.go"), [Group("no-fn")]) is None


def test_find_accepts_mappings():
    found = groups.find(Buffer(1, "test.go"), [{"name": "A", "fn": _is_test, "icon": "T"}])

    assert found == Group("A", fn=_is_test, priority=1, icon="T")


def test_as_group_requires_name():
    with pytest.raises(ValueError):
        groups.as_group({"fn": _always})


def test_group_buffers_is_an_ordered_partition():
    declared = [Group("tests", fn=_is_test)]
    buffers = _grouped(_bufs("a_test.py", "main.py", "b_test.py", "util.py"), declared)

    grouped = groups.group_buffers(buffers)

    assert {name: [b.id for b in members] for name, members in grouped.items()} == {
        "tests": [1, 3],
        "ungrouped": [2, 4],
    }
    assert sorted(b.id for members in grouped.values() for b in members) == [1, 2, 3, 4]


def test_collect_tags_host_buffers_with_groups():
    host = HostAdapter(
        get_highlight=lambda name: None,
        add_highlight=lambda name, attrs: None,
        notify=lambda msg, level: None,
        schedule=lambda callback: callback(),
        list_buffers=lambda: [
            {"id": 1, "name": "x_test.go", "path": "/src/x_test.go", "filetype": "go"},
            Buffer(2, "x.go", current=True),
        ],
    )

    buffers = collect(host, [Group("tests", fn=_is_test)])

    assert [b.id for b in buffers] == [1, 2]
    assert buffers[0].path == "/src/x_test.go"
    assert buffers[0].group.name == "tests"
    assert buffers[1].group is None


def test_collect_without_buffer_list_is_empty():
    host = HostAdapter(
        get_highlight=lambda name: None,
        add_highlight=lambda name, attrs: None,
        notify=lambda msg, level: None,
        schedule=lambda callback: callback(),
    )

    assert collect(host, []) == []


def test_set_hls_requires_options():
    with pytest.raises(ValueError):
        groups.set_hls({"highlights": {}})


def test_set_hls_lets_group_attributes_win():
    cfg = {
        "options": {
            "groups": [
                Group("docs", fn=_always, highlight={"guifg": "#00ff00", "guibg": "#000000"})
            ]
        },
        "highlights": {
            "buffer": {"guibg": "#111111"},
            "buffer_visible": {"guibg": "#222222"},
            "buffer_selected": {"guibg": "#333333"},
        },
    }

    groups.set_hls(cfg)

    assert cfg["highlights"]["docs"] == {"guibg": "#000000", "guifg": "#00ff00"}
    assert cfg["highlights"]["docs_selected"] == {"guibg": "#000000", "guifg": "#00ff00"}


@pytest.mark.parametrize(
    "current, visible, expected",
    [
        (True, False, "%#BufferLineTestsSelected#"),
        (False, True, "%#BufferLineTestsVisible#"),
        (False, False, "%#BufferLineTests#"),
    ],
)
def test_set_current_hl_picks_state_variant(current, visible, expected):
    buf = Buffer(1, "a_test.py", current=current, visible=visible, group=Group("tests"))
    current_hl: dict[str, str] = {}

    groups.set_current_hl(buf, HIGHLIGHTS, current_hl)

    assert current_hl == {"tests": expected}


def test_set_current_hl_defaults_for_ungrouped_and_plain_groups():
    current_hl: dict[str, str] = {}

    groups.set_current_hl(Buffer(1, "main.py", visible=True), HIGHLIGHTS, current_hl)
    docs = Buffer(2, "a.md", current=True, group=Group("docs"))
    groups.set_current_hl(docs, HIGHLIGHTS, current_hl)

    assert current_hl == {
        "buffer": "%#BufferLineBufferVisible#",
        "docs": "%#BufferLineBufferSelected#",
    }


def test_component_prefixes_group_icon():
    buf = Buffer(1, "a_test.py", group=Group("tests", icon="漢"))
    ctx = BufferContext(
        buffer=buf, component="a_test.py", length=9, current_highlights={"tests": "%#X#"}
    )

    result = groups.component(ctx)

    assert result.component == "%#X#漢 a_test.py"
    assert result.length == 12
    assert ctx.length == 9


def test_component_ignores_ungrouped():
    ctx = BufferContext(buffer=Buffer(1, "main.py"), component="main.py", length=7)

    assert groups.component(ctx) is ctx


def test_markers_only_surround_named_groups():
    declared = [Group("tests", fn=_is_test)]
    buffers = _grouped(_bufs("a_test.py", "main.py", "b_test.py"), declared)
    grouped = groups.group_buffers(buffers)

    result = groups.add_markers(buffers, grouped, HIGHLIGHTS)

    assert [type(item) for item in result] == [Marker, Buffer, Buffer, Marker, Buffer]
    start, end = result[0], result[3]
    assert start.length == 9
    assert start.component() == (
        "%#BufferLineFill# %#BufferLineGroupSeparator#█%#BufferLineGroupLabel#tests"
        "%#BufferLineGroupSeparator#█ "
    )
    assert end.length == 1
    assert end.component() == "%#BufferLineFill# "
    assert grouped["tests"] == [buffers[0], buffers[2]]


def test_all_ungrouped_buffers_get_no_markers():
    buffers = [Buffer(1, "main.py"), Buffer(2, "util.py")]

    result = groups.add_markers(buffers, groups.group_buffers(buffers), HIGHLIGHTS)

    assert result == buffers
    assert not any(isinstance(item, Marker) for item in result)


def test_markers_follow_group_priority():
    declared = [
        Group("tests", fn=_is_test, priority=2),
        Group("docs", fn=lambda b: b.name.endswith(".md"), priority=1),
    ]
    buffers = _grouped(_bufs("main.py", "a_test.py", "README.md"), declared)

    result = groups.add_markers(buffers, groups.group_buffers(buffers), HIGHLIGHTS)

    assert [item.id for item in result if isinstance(item, Buffer)] == [3, 2, 1]


def test_add_markers_reads_current_config_highlights():
    registered = {}
    host = HostAdapter(
        get_highlight={"Normal": {"fg": "#c0c0c0", "bg": "#1e1e1e"}}.get,
        add_highlight=registered.__setitem__,
        notify=lambda msg, level: None,
        schedule=lambda callback: callback(),
    )
    buffers = _grouped([Buffer(1, "a_test.py")], [Group("tests", fn=_is_test)])
    try:
        config.setup(host)
        result = groups.add_markers(buffers, groups.group_buffers(buffers))
    finally:
        config.reset()

    assert result[0].component().startswith("%#BufferLineFill# %#BufferLineGroupSeparator#")


def test_command_runs_in_order_without_rollback():
    declared = [Group("tests", fn=_is_test)]
    buffers = _grouped(_bufs("a_test.py", "main.py", "b_test.py", "c_test.py"), declared)
    closed: list[int] = []

    def close(buf: Buffer) -> None:
        if buf.id == 3:
            raise RuntimeError("cannot close")
        closed.append(buf.id)

    with pytest.raises(RuntimeError):
        groups.command(buffers, "tests", close)

    assert closed == [1]


def test_names_lists_configured_groups():
    assert groups.names({"groups": [Group("tests"), {"name": "docs"}]}) == ["tests", "docs"]
    assert groups.names({}) == []
