"""Resolve raw Discord mention tokens (<@id>, <@!id>, <#id>) to readable names."""

from __future__ import annotations

import re
from typing import Protocol

from loguru import logger

_MENTION_PATTERN = re.compile(r"<(@!?|#)(\d+)>")


class Roster(Protocol):
    def member_name(self, user_id: str) -> str | None: ...

    def channel_name(self, channel_id: str) -> str | None: ...


def resolve_mentions(content: str, roster: Roster | None) -> str:
    """Replace mention tokens with ``@Name`` / ``#channel``.

    Tokens whose id is not in the roster are left verbatim and logged.
    """
    if not content or roster is None:
        return content

    def _sub(m: re.Match[str]) -> str:
        kind, ident = m.group(1), m.group(2)
        if kind == "#":
            name = roster.channel_name(ident)
            prefix = "#"
        else:
            name = roster.member_name(ident)
            prefix = "@"
        if name is None:
            logger.warning("Could not resolve mention {} (id {} not in roster)", m.group(0), ident)
            return m.group(0)
        return f"{prefix}{name}"

    return _MENTION_PATTERN.sub(_sub, content)
