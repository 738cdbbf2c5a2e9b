from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from typing import Any

from .host import HostAdapter

logger = logging.getLogger(__name__)

PREFIX = "BufferLine"

GUI_ATTRIBUTES = ("guifg", "guibg", "guisp", "gui")


def group_name(name: str) -> str:
    """``buffer_selected`` -> ``BufferLineBufferSelected``."""

    return PREFIX + "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


def hl(name: str) -> str:
    return f"%#{group_name(name)}#"


def registrable(attributes: Mapping[str, Any]) -> dict[str, str]:
    return {key: attributes[key] for key in GUI_ATTRIBUTES if attributes.get(key)}


def add_group(host: HostAdapter, name: str, attributes: MutableMapping[str, Any]) -> None:
    """Register ``attributes`` with the host and record the inline marker under ``hl``."""

    attributes["hl"] = hl(name)
    host.add_highlight(group_name(name), registrable(attributes))


def add_groups(host: HostAdapter, highlights: Mapping[str, MutableMapping[str, Any]]) -> None:
    for name, attributes in highlights.items():
        add_group(host, name, attributes)
    logger.debug("registered %d highlight groups", len(highlights))
