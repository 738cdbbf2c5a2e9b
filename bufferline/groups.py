"""Group buffers by user-defined predicates and decorate the grouped tabs."""
from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping, MutableMapping, Sequence
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

from .utils import join, measure

if TYPE_CHECKING:
    from .buffers import Buffer, BufferContext

UNGROUPED = "ungrouped"

GROUP_LEFT = "█"
GROUP_RIGHT = "█"

Grouper = Callable[["Buffer"], bool]


@dataclass
class Group:
    name: str
    fn: Grouper | None = None
    priority: int | None = None
    highlight: dict[str, str] | None = None
    icon: str | None = None


@dataclass(frozen=True)
class Marker:
    """A synthetic tab placed around a group's buffers."""

    length: int
    component: Callable[[], str]


_GROUP_FIELDS = frozenset(f.name for f in fields(Group))


def as_group(value: Group | Mapping[str, Any]) -> Group:
    if isinstance(value, Group):
        return value
    if not isinstance(value, Mapping) or not value.get("name"):
        raise ValueError(f"a group needs at least a name, got {value!r}")
    return Group(**{key: item for key, item in value.items() if key in _GROUP_FIELDS})


def find(buffer: Buffer, groups: Sequence[Group | Mapping[str, Any]] | None) -> Group | None:
    """Return the first group whose predicate accepts ``buffer``.

    A matched group without an explicit priority takes its 1-based position in
    ``groups``.
    """

    if not groups:
        return None
    for index, candidate in enumerate(groups, start=1):
        group = as_group(candidate)
        if callable(group.fn) and group.fn(buffer):
            if group.priority is None:
                group.priority = index
            return group
    return None


def group_buffers(buffers: Iterable[Buffer]) -> dict[str, list[Buffer]]:
    grouped: dict[str, list[Buffer]] = {}
    for buf in buffers:
        name = buf.group.name if buf.group is not None else UNGROUPED
        grouped.setdefault(name, []).append(buf)
    return grouped


def component(ctx: BufferContext) -> BufferContext:
    """Prefix a buffer's component with its group highlight and icon."""

    group = ctx.buffer.group
    if group is None:
        return ctx
    icon = f"{group.icon} " if group.icon else ""
    prefix = ctx.current_highlights.get(group.name, "")
    return ctx.update(
        component=join(prefix, icon, ctx.component),
        length=ctx.length + measure(icon),
    )


def set_hls(config: MutableMapping[str, Any]) -> None:
    """Add selected/visible/normal highlights for every group that sets one.

    Each variant keeps the background of the matching buffer state unless the
    group's own highlight overrides it. Mutates ``config["highlights"]``.
    """

    if not config or not config.get("options"):
        raise ValueError("A configuration with options must be passed in to set group highlights")
    groups = config["options"].get("groups")
    if not groups:
        return
    hls = config.setdefault("highlights", {})
    for candidate in groups:
        group = as_group(candidate)
        if not isinstance(group.highlight, Mapping) or not group.highlight:
            continue
        for suffix, base in (
            ("_selected", "buffer_selected"),
            ("_visible", "buffer_visible"),
            ("", "buffer"),
        ):
            hls[f"{group.name}{suffix}"] = {
                "guibg": hls.get(base, {}).get("guibg"),
                **group.highlight,
            }


def _state_key(name: str, buffer: Buffer) -> str:
    if buffer.current:
        return f"{name}_selected"
    if buffer.visible:
        return f"{name}_visible"
    return name


def set_current_hl(
    buffer: Buffer,
    highlights: Mapping[str, Mapping[str, Any]],
    current_hl: MutableMapping[str, str],
) -> str | None:
    """Record the highlight matching the buffer's state in ``current_hl``.

    Grouped buffers are keyed by group name; ungrouped buffers, and groups
    without a highlight of their own, use the plain ``buffer`` variants.
    """

    default = _state_key("buffer", buffer)
    if buffer.group is None:
        name, key = "buffer", default
    else:
        name = buffer.group.name
        key = _state_key(name, buffer)
        if key not in highlights:
            key = default
    value = highlights.get(key, {}).get("hl")
    if value is None:
        return None
    current_hl[name] = value
    return value


def command(buffers: Iterable[Buffer], group_name: str, callback: Callable[[Buffer], Any]) -> None:
    """Run ``callback`` on each buffer of ``group_name`` in list order."""

    for buf in buffers:
        if buf.group is not None and group_name and buf.group.name == group_name:
            callback(buf)


def names(options: Mapping[str, Any] | None = None) -> list[str]:
    if options is None:
        from .config import get

        options = get("options") or {}
    groups = options.get("groups")
    if not groups:
        return []
    return [as_group(group).name for group in groups]


def _group_markers(
    name: str, highlights: Mapping[str, Mapping[str, Any]]
) -> tuple[Marker, Marker] | None:
    if name == UNGROUPED:
        return None

    def _hl(key: str) -> str:
        return highlights.get(key, {}).get("hl", "")

    fill, sep_hl, label_hl = _hl("fill"), _hl("group_separator"), _hl("group_label")
    indicator = join(" ", sep_hl, GROUP_LEFT, label_hl, name, sep_hl, GROUP_RIGHT, " ")
    start = Marker(
        length=measure(GROUP_LEFT, GROUP_RIGHT, name, " ", " "),
        component=lambda: join(fill, indicator),
    )
    end = Marker(length=measure(" "), component=lambda: join(fill, " "))
    return start, end


def _bucket_priority(members: Sequence[Buffer]) -> float:
    for buf in members:
        if buf.group is not None and buf.group.priority is not None:
            return buf.group.priority
    return math.inf


def add_markers(
    buffers: Sequence[Buffer],
    groups: Mapping[str, Sequence[Buffer]],
    highlights: Mapping[str, Mapping[str, Any]] | None = None,
) -> list[Buffer | Marker]:
    """Lay out grouped buffers with a start and end marker around each named group.

    Named groups come first in priority order; ungrouped buffers follow
    without markers.
    """

    if not groups:
        return list(buffers)
    if highlights is None:
        from .config import get

        highlights = get("highlights") or {}

    ordered = sorted(
        groups.items(),
        key=lambda item: (item[0] == UNGROUPED, _bucket_priority(item[1])),
    )
    result: list[Buffer | Marker] = []
    for name, members in ordered:
        markers = _group_markers(name, highlights)
        if markers is None:
            result.extend(members)
            continue
        start, end = markers
        result.append(start)
        result.extend(members)
        result.append(end)
    return result
