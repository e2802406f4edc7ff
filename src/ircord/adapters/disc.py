"""Discord adapter: discord.py client bound to one text channel."""

from __future__ import annotations

import asyncio
import contextlib

import discord
from discord import AllowedMentions, DMChannel, GroupChannel, Intents, Member, TextChannel
from loguru import logger

from ircord.adapters.base import DiscordNetwork
from ircord.errors import BridgeConfigurationError, SendError
from ircord.events import DiscordMessageIn, PresenceChange
from ircord.login import HandshakeEvent, HandshakeSession

# Discord rejects longer messages
MAX_MESSAGE_LEN = 2000


def _to_int(value: str) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class DiscordAdapter(DiscordNetwork):
    """Logs in with a bot token, relays one channel, resolves the guild roster."""

    def __init__(self, token: str, channel_id: str) -> None:
        self._token = token
        self._channel_id = str(channel_id)
        self._client: discord.Client | None = None
        self._channel: TextChannel | None = None
        self._session: HandshakeSession | None = None
        self._task: asyncio.Task | None = None

    @property
    def name(self) -> str:
        return "discord"

    @property
    def user_id(self) -> str | None:
        if self._client and self._client.user:
            return str(self._client.user.id)
        return None

    @property
    def channel_id(self) -> str:
        return self._channel_id

    @property
    def guild_id(self) -> str | None:
        if self._channel and self._channel.guild:
            return str(self._channel.guild.id)
        return None

    def member_name(self, user_id: str) -> str | None:
        uid = _to_int(user_id)
        if uid is None or not self._channel or not self._channel.guild:
            return None
        member = self._channel.guild.get_member(uid)
        return member.display_name if member else None

    def channel_name(self, channel_id: str) -> str | None:
        cid = _to_int(channel_id)
        if cid is None or not self._client:
            return None
        channel = self._client.get_channel(cid)
        return getattr(channel, "name", None) if channel else None

    async def connect(self, session: HandshakeSession) -> None:
        """Start the client; the session becomes READY from on_ready."""
        self._session = session

        intents = Intents.default()
        intents.message_content = True
        intents.guilds = True
        intents.members = True
        intents.presences = True

        client = discord.Client(intents=intents)

        @client.event
        async def on_ready() -> None:
            await self._on_ready()

        @client.event
        async def on_message(message: discord.Message) -> None:
            self._on_message(message)

        @client.event
        async def on_presence_update(before: Member, after: Member) -> None:
            self._on_presence_update(before, after)

        self._client = client
        self._task = asyncio.create_task(client.start(self._token))
        self._task.add_done_callback(self._on_client_done)

    async def _on_ready(self) -> None:
        session = self._session
        if not self._client or not session:
            return
        logger.info("Discord bot ready: {}", self._client.user)
        if session.ready:
            # Gateway resumed; login already completed
            return

        cid = _to_int(self._channel_id)
        channel = self._client.get_channel(cid) if cid is not None else None
        if not isinstance(channel, TextChannel):
            session.fail(
                BridgeConfigurationError(
                    f"Discord channel {self._channel_id} not found or not a text channel",
                    code="discord_channel_not_found",
                    details={"channel_id": self._channel_id},
                )
            )
            return
        self._channel = channel
        session.fire(HandshakeEvent.READY_SIGNAL)

    def _on_client_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            logger.info("Discord client stopped")
            return
        logger.error("Discord client failed: {}", exc)
        if self._session:
            self._session.fail(exc)

    def _on_message(self, message: discord.Message) -> None:
        self.publish(
            DiscordMessageIn(
                author_id=str(message.author.id),
                author_display=message.author.display_name or message.author.name,
                channel_id=str(message.channel.id),
                content=message.content or "",
                is_private=isinstance(message.channel, (DMChannel, GroupChannel)),
                raw={"message_id": str(message.id)},
            )
        )

    def _on_presence_update(self, before: Member, after: Member) -> None:
        self.publish(
            PresenceChange(
                user_id=str(after.id),
                display=after.display_name or after.name,
                guild_id=str(after.guild.id) if after.guild else None,
                before=str(before.status),
                after=str(after.status),
            )
        )

    async def send(self, text: str) -> None:
        """Post text to the bound channel."""
        if not self._channel:
            raise SendError("discord", "Discord channel not available")
        await self._channel.send(
            text[:MAX_MESSAGE_LEN],
            allowed_mentions=AllowedMentions(everyone=False, roles=False),
        )

    async def disconnect(self) -> None:
        """Close the client and its task."""
        if self._client:
            await self._client.close()
        if self._task and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._client = None
        self._task = None
        self._channel = None
