from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass
class HostAdapter:
    """Bridges bufferline to the editor that embeds it.

    Nothing in the package touches editor globals directly; the adapter
    provides theme lookups, highlight registration, user notices and the
    editor's idle scheduler.
    """

    get_highlight: Callable[[str], Mapping[str, str] | None]
    add_highlight: Callable[[str, Mapping[str, str]], None]
    notify: Callable[[str, int], None]
    schedule: Callable[[Callable[[], None]], None]
    list_buffers: Callable[[], Iterable[Any]] | None = None
