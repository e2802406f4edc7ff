"""Bridge: log into both networks, then install routing exactly once."""

from __future__ import annotations

from loguru import logger

from ircord.adapters.base import DiscordNetwork, IrcNetwork, NetworkAdapter
from ircord.config import Config
from ircord.errors import BridgeError
from ircord.events import bridged_event
from ircord.gateway.bus import Bus
from ircord.gateway.relay import Relay
from ircord.gateway.router import EventRouter
from ircord.identity import IdentityCache
from ircord.login import (
    DISCORD_TRANSITIONS,
    IRC_TRANSITIONS,
    HandshakeEvent,
    HandshakeSession,
    login_all,
)

# Seconds burn() waits for in-flight sends before disconnecting
DRAIN_TIMEOUT = 5.0


class Bridge:
    """Owns the sessions, identity cache, relay and router for one channel pair."""

    def __init__(
        self,
        config: Config,
        discord: DiscordNetwork,
        irc: IrcNetwork,
        *,
        bus: Bus | None = None,
    ) -> None:
        self.config = config
        self.discord = discord
        self.irc = irc
        self.bus = bus or Bus()
        self.identity = IdentityCache(
            irc,
            maxsize=config.identity_cache_maxsize,
            ttl=config.identity_cache_ttl_seconds,
        )
        self.sessions = {
            "discord": HandshakeSession("discord", DISCORD_TRANSITIONS),
            "irc": HandshakeSession("irc", IRC_TRANSITIONS),
        }
        self.relay = Relay({"discord": discord, "irc": irc}, self.bus)
        self.router = EventRouter(config, discord, irc, self.identity, self.relay, self.bus)
        self._bridged = False
        self._building = False

    @property
    def bridged(self) -> bool:
        """True once both logins completed and routing is installed."""
        return self._bridged

    @property
    def _adapters(self) -> dict[str, NetworkAdapter]:
        return {"discord": self.discord, "irc": self.irc}

    async def build(self) -> None:
        """Log into both networks; install routing once both are READY.

        Raises LoginError if either network fails to connect or handshake.
        """
        if self._bridged or self._building:
            raise BridgeError("bridge already built", code="already_built")
        self._building = True
        try:
            for name, adapter in self._adapters.items():
                session = self.sessions[name]
                session.fire(HandshakeEvent.CONNECT)
                try:
                    await adapter.connect(session)
                except Exception as exc:
                    logger.error("Failed to start {} connection: {}", name, exc)
                    session.fail(exc)

            await login_all(*self.sessions.values(), timeout=self.config.login_timeout_seconds)
            self._install_routing()
        finally:
            self._building = False

    def _install_routing(self) -> None:
        self.router.start()
        for adapter in self._adapters.values():
            adapter.attach(self.router)
        self._bridged = True
        logger.info(
            "Bridged Discord channel {} <-> IRC {}",
            self.discord.channel_id,
            self.irc.channel,
        )
        _, evt = bridged_event(("discord", "irc"))
        self.bus.publish("bridge", evt)

    async def burn(self) -> None:
        """Tear down: stop routing, then disconnect both networks unconditionally."""
        self._bridged = False
        for adapter in self._adapters.values():
            adapter.detach()
        await self.router.stop()
        await self.relay.drain(timeout=DRAIN_TIMEOUT)
        self.identity.close()

        for name, adapter in self._adapters.items():
            try:
                await adapter.disconnect()
            except Exception as exc:
                logger.exception("Error disconnecting {}: {}", name, exc)
            self.sessions[name].fire(HandshakeEvent.DISCONNECT)
        logger.info("Bridge burned")
