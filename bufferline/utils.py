from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from wcwidth import wcswidth

from .host import HostAdapter

logger = logging.getLogger(__name__)


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``, preferring ``override``.

    Only mappings are merged recursively; lists and scalars from ``override``
    replace the value in ``base`` outright.
    """

    merged: dict[str, Any] = dict(base)
    if not override:
        return merged
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        elif isinstance(value, Mapping):
            merged[key] = deep_merge({}, value)
        else:
            merged[key] = value
    return merged


def measure(*strings: str) -> int:
    """Return the number of terminal cells the given strings occupy."""

    total = 0
    for text in strings:
        width = wcswidth(text)
        # unprintable text: fall back to one cell per code point
        total += width if width >= 0 else len(text)
    return total


def join(*parts: str | None) -> str:
    return "".join(part for part in parts if part)


def echomsg(host: HostAdapter | None, msg: str, level: int = logging.WARNING) -> None:
    logger.log(level, msg)
    if host is not None:
        host.notify(msg, level)
