"""IRC adapter: pydle client with NickServ identify handshake."""

from __future__ import annotations

import asyncio
from typing import Any

import pydle
from loguru import logger

from ircord.adapters.base import IrcNetwork
from ircord.config import Config
from ircord.errors import SendError
from ircord.events import IrcJoin, IrcMessageIn, IrcNickChange, IrcPart, IrcQuit
from ircord.login import HandshakeEvent, HandshakeSession, classify_notice

NICKSERV = "NickServ"


class IRCClient(pydle.Client):
    """Pydle client forwarding connection, notice and channel events to its adapter."""

    def __init__(self, adapter: IRCAdapter, nick: str, **kwargs: Any) -> None:
        super().__init__(nick, **kwargs)
        self._adapter = adapter

    async def on_connect(self) -> None:
        await super().on_connect()
        await self._adapter._on_connect()

    async def on_notice(self, target, by, message) -> None:
        await super().on_notice(target, by, message)
        await self._adapter._on_notice(by, message)

    async def on_channel_message(self, target, by, message) -> None:
        await super().on_channel_message(target, by, message)
        self._adapter.publish(IrcMessageIn(nick=by, target=target, content=message))

    async def on_join(self, channel, user) -> None:
        await super().on_join(channel, user)
        self._adapter.publish(IrcJoin(nick=user, channel=channel))

    async def on_part(self, channel, user, message=None) -> None:
        await super().on_part(channel, user, message)
        self._adapter.publish(IrcPart(nick=user, channel=channel, reason=message))

    async def on_quit(self, user, message=None) -> None:
        await super().on_quit(user, message)
        self._adapter.publish(IrcQuit(nick=user, reason=message))

    async def on_nick_change(self, old, new) -> None:
        await super().on_nick_change(old, new)
        self._adapter.publish(IrcNickChange(old=old, new=new))


class IRCAdapter(IrcNetwork):
    """One IRC connection bound to one channel."""

    def __init__(self, config: Config) -> None:
        self._config = config
        self._channel = config.irc_channel
        self._client: IRCClient | None = None
        self._session: HandshakeSession | None = None

    @property
    def name(self) -> str:
        return "irc"

    @property
    def nickname(self) -> str:
        if self._client:
            return self._client.nickname
        return self._config.irc_nick

    @property
    def channel(self) -> str:
        return self._channel

    async def connect(self, session: HandshakeSession) -> None:
        """Open the connection. Raises if the server cannot be reached."""
        self._session = session
        self._client = IRCClient(
            self,
            self._config.irc_nick,
            username=self._config.irc_nick,
            realname=self._config.irc_realname,
        )
        logger.info(
            "Connecting to IRC {}:{} as {}",
            self._config.irc_server,
            self._config.irc_port,
            self._config.irc_nick,
        )
        await self._client.connect(
            hostname=self._config.irc_server,
            port=self._config.irc_port,
            tls=self._config.irc_tls,
        )

    async def _on_connect(self) -> None:
        session = self._session
        if not session or session.ready:
            return
        session.fire(HandshakeEvent.CONNECTED)
        if not self._config.irc_password:
            logger.info("No IRC password configured; skipping NickServ identify")
            await self._join_and_finish(HandshakeEvent.READY_SIGNAL)

    async def _on_notice(self, by: str | None, text: str) -> None:
        logger.debug("IRC NOTICE {}: {}", by, text)
        session = self._session
        if not session or session.ready:
            return

        evt = classify_notice(
            by,
            text,
            prompt=self._config.irc_identify_prompt,
            accepted=self._config.irc_identify_accepted,
            service=NICKSERV,
        )
        if evt is None:
            return
        if evt is HandshakeEvent.IDENTITY_CHALLENGE:
            if not self._config.irc_password:
                # Registration completes in _on_connect, which joins directly
                logger.warning("NickServ asked {} to identify but no IRC password is configured", self.nickname)
                return
            if session.fire(evt) and self._client:
                await self._client.message(NICKSERV, f"identify {self._config.irc_password}")
        elif evt is HandshakeEvent.IDENTITY_ACCEPTED:
            await self._join_and_finish(evt)

    async def _join_and_finish(self, evt: HandshakeEvent) -> None:
        session = self._session
        if not session or not self._client or not session.accepts(evt):
            return
        await self._client.join(self._channel)
        session.fire(evt)

    async def whois(self, nick: str) -> dict[str, Any] | None:
        """WHOIS nick; returns host and related fields, or None if unknown."""
        if not self._client or not self._client.connected:
            raise ConnectionError("IRC not connected")
        info = await asyncio.wait_for(
            self._client.whois(nick),
            timeout=self._config.irc_whois_timeout_seconds,
        )
        if not info:
            return None
        return {
            "host": info.get("hostname"),
            "username": info.get("username"),
            "realname": info.get("realname"),
            "account": info.get("account"),
        }

    async def send(self, text: str) -> None:
        """Say text in the bound channel."""
        if not self._client or not self._client.connected:
            raise SendError("irc", "IRC not connected")
        await self._client.message(self._channel, text)

    async def disconnect(self) -> None:
        if self._client and self._client.connected:
            await self._client.disconnect(expected=True)
        self._client = None
