from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields, replace
from typing import Any

from .groups import Group, find
from .host import HostAdapter


@dataclass
class Buffer:
    """An open document as shown in the bufferline, one tab per buffer."""

    id: int
    name: str
    path: str = ""
    modified: bool = False
    current: bool = False  # focused
    visible: bool = False  # shown in a window but not focused
    group: Group | None = None


@dataclass(frozen=True)
class BufferContext:
    """A buffer's rendered component while the tab is being built."""

    buffer: Buffer
    component: str = ""
    length: int = 0
    current_highlights: Mapping[str, str] = field(default_factory=dict)

    def update(self, **changes: Any) -> BufferContext:
        return replace(self, **changes)


_BUFFER_FIELDS = frozenset(f.name for f in fields(Buffer))


def _as_buffer(item: Buffer | Mapping[str, Any]) -> Buffer:
    if isinstance(item, Buffer):
        return item
    return Buffer(**{key: value for key, value in item.items() if key in _BUFFER_FIELDS})


def collect(
    host: HostAdapter, groups: Sequence[Group | Mapping[str, Any]] | None = None
) -> list[Buffer]:
    """Return the host's buffers in order, each tagged with its group."""

    if host.list_buffers is None:
        return []
    buffers = [_as_buffer(item) for item in host.list_buffers()]
    for buf in buffers:
        buf.group = find(buf, groups)
    return buffers
