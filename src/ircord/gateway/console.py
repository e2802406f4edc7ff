"""Verbose console observer: logs every processed message in ``S,user: text`` form."""

from __future__ import annotations

from loguru import logger

from ircord.events import Joined, Left, Relayed, Rename, SendFailed
from ircord.formatting.render import format_for_console


class ConsoleObserver:
    def accept_event(self, source: str, evt: object) -> bool:
        return isinstance(evt, (Relayed, Joined, Left, Rename, SendFailed))

    def push_event(self, source: str, evt: object) -> None:
        if isinstance(evt, SendFailed):
            logger.warning("[{}] {}", source, format_for_console(evt.message))
            return
        logger.info("[{}] {}", source, format_for_console(evt.message))  # type: ignore[attr-defined]
