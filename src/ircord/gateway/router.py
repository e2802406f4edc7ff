"""Event router: filter and normalize raw network events, then relay them.

Each network gets its own inbound queue drained by a single consumer, so
events from one network are handled in arrival order even while a handler
waits on a WHOIS reply. The two networks interleave freely.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from loguru import logger

from ircord.events import (
    DiscordMessageIn,
    IrcJoin,
    IrcMessageIn,
    IrcNickChange,
    IrcPart,
    IrcQuit,
    PresenceChange,
    join_event,
    leave_event,
    message_event,
    rename_event,
)
from ircord.formatting.mentions import resolve_mentions
from ircord.models import Message, SourceTag, message, status_message

if TYPE_CHECKING:
    from ircord.adapters.base import DiscordNetwork, IrcNetwork
    from ircord.config import Config
    from ircord.gateway.bus import Bus
    from ircord.gateway.relay import Relay
    from ircord.identity import IdentityCache

OFFLINE = "offline"


class EventRouter:
    """Turns raw Discord/IRC events into Messages for the Relay and observers."""

    def __init__(
        self,
        config: Config,
        discord: DiscordNetwork,
        irc: IrcNetwork,
        identity: IdentityCache,
        relay: Relay,
        bus: Bus,
    ) -> None:
        self._discord = discord
        self._irc = irc
        self._identity = identity
        self._relay = relay
        self._bus = bus
        self._automation_nick = config.automation_nick.lower()
        self._marker = config.automation_marker
        self._discord_name = config.discord_name
        self._irc_name = config.irc_name
        self._queues: dict[str, asyncio.Queue[object]] = {}
        self._consumers: list[asyncio.Task] = []

    # -- inbound plumbing -----------------------------------------------------

    def accept_event(self, source: str, evt: object) -> bool:
        return source in ("discord", "irc")

    def push_event(self, source: str, evt: object) -> None:
        """Queue a raw event; handled in arrival order per source."""
        queue = self._queues.get(source)
        if queue is None:
            logger.debug("Router not running; dropping {} event {}", source, type(evt).__name__)
            return
        queue.put_nowait(evt)

    def start(self) -> None:
        if self._consumers:
            return
        for source in ("discord", "irc"):
            queue: asyncio.Queue[object] = asyncio.Queue()
            self._queues[source] = queue
            self._consumers.append(asyncio.create_task(self._consume(source, queue)))

    async def stop(self) -> None:
        self._queues.clear()
        for task in self._consumers:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._consumers.clear()

    async def _consume(self, source: str, queue: asyncio.Queue[object]) -> None:
        while True:
            evt = await queue.get()
            try:
                await self.handle(source, evt)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("Failed to handle {} event {}: {}", source, type(evt).__name__, exc)

    async def handle(self, source: str, evt: object) -> None:
        """Route one raw event to its handler."""
        if isinstance(evt, DiscordMessageIn):
            await self.on_discord_message(evt)
        elif isinstance(evt, PresenceChange):
            await self.on_presence_change(evt)
        elif isinstance(evt, IrcMessageIn):
            await self.on_irc_message(evt)
        elif isinstance(evt, IrcJoin):
            await self.on_irc_join(evt)
        elif isinstance(evt, IrcPart):
            await self.on_irc_part(evt)
        elif isinstance(evt, IrcQuit):
            await self.on_irc_quit(evt)
        elif isinstance(evt, IrcNickChange):
            await self.on_irc_nick_change(evt)
        else:
            logger.debug("Unhandled {} event {}", source, type(evt).__name__)

    # -- policy helpers -------------------------------------------------------

    def _is_self_irc(self, nick: str) -> bool:
        return nick.lower() == self._irc.nickname.lower()

    def _in_irc_channel(self, target: str) -> bool:
        return target.lower() == self._irc.channel.lower()

    def _is_automation(self, name: str) -> bool:
        return name.lower() == self._automation_nick

    def _dispatch(self, msg: Message, factory=message_event) -> None:
        """Relay first, then tell observers."""
        self._relay.relay(msg)
        _, evt = factory(msg)
        self._bus.publish(msg.source.network or "bridge", evt)

    def _suppress_automation(self, msg: Message) -> None:
        """Automation output: observers only, never relayed."""
        text = msg.text
        marked = bool(self._marker) and text.startswith(self._marker)
        if marked:
            msg = message(text[len(self._marker) :], msg.user or "", msg.source, msg.auth)
        _, evt = message_event(msg, relayed=False, marked=marked)
        self._bus.publish(msg.source.network or "bridge", evt)

    # -- Discord --------------------------------------------------------------

    async def on_discord_message(self, evt: DiscordMessageIn) -> None:
        if evt.author_id == self._discord.user_id:
            return
        if evt.is_private:
            return
        if evt.channel_id != self._discord.channel_id:
            return

        text = resolve_mentions(evt.content, self._discord)
        msg = message(text, evt.author_display, SourceTag.DISCORD, auth=True)
        if self._is_automation(evt.author_display):
            self._suppress_automation(msg)
            return
        self._dispatch(msg)

    async def on_presence_change(self, evt: PresenceChange) -> None:
        if evt.user_id == self._discord.user_id:
            return
        guild_id = self._discord.guild_id
        if evt.guild_id is None or guild_id is None or evt.guild_id != guild_id:
            return

        if evt.before == OFFLINE and evt.after != OFFLINE:
            msg = status_message(f"{evt.display} joined {self._discord_name}", SourceTag.DISCORD)
            self._dispatch(msg, join_event)
        elif evt.before != OFFLINE and evt.after == OFFLINE:
            msg = status_message(f"{evt.display} left {self._discord_name}", SourceTag.DISCORD)
            self._dispatch(msg, leave_event)

    # -- IRC ------------------------------------------------------------------

    async def on_irc_message(self, evt: IrcMessageIn) -> None:
        if self._is_self_irc(evt.nick):
            return
        if not self._in_irc_channel(evt.target):
            return

        if self._is_automation(evt.nick):
            auth = bool(self._identity.cached(evt.nick))
            self._suppress_automation(message(evt.content, evt.nick, SourceTag.IRC, auth))
            return

        auth = await self._identity.is_registered(evt.nick)
        self._dispatch(message(evt.content, evt.nick, SourceTag.IRC, auth))

    async def on_irc_join(self, evt: IrcJoin) -> None:
        if self._is_self_irc(evt.nick):
            return
        if not self._in_irc_channel(evt.channel):
            return

        self._identity.invalidate(evt.nick)
        registered = await self._identity.is_registered(evt.nick)
        logger.debug("{} joined {} (registered={})", evt.nick, evt.channel, registered)
        msg = status_message(f"{evt.nick} joined {self._irc_name}", SourceTag.IRC)
        self._dispatch(msg, join_event)

    async def on_irc_part(self, evt: IrcPart) -> None:
        if self._is_self_irc(evt.nick):
            return
        if not self._in_irc_channel(evt.channel):
            return

        msg = status_message(f"{evt.nick} left {self._irc_name}", SourceTag.IRC)
        self._identity.invalidate(evt.nick)
        self._dispatch(msg, leave_event)

    async def on_irc_quit(self, evt: IrcQuit) -> None:
        if self._is_self_irc(evt.nick):
            return

        msg = status_message(f"{evt.nick} left {self._irc_name}", SourceTag.IRC)
        self._identity.invalidate(evt.nick)
        self._dispatch(msg, leave_event)

    async def on_irc_nick_change(self, evt: IrcNickChange) -> None:
        if self._is_self_irc(evt.old) or self._is_self_irc(evt.new):
            return

        msg = status_message(f"{evt.old} is now known as {evt.new}", SourceTag.IRC)
        self._identity.invalidate(evt.old)
        self._identity.invalidate(evt.new)
        self._relay.relay(msg)
        _, rename = rename_event("irc", evt.old, evt.new, msg)
        self._bus.publish("irc", rename)
