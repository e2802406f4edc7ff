"""Network collaborator interfaces the bridge core depends on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ircord.gateway.router import EventRouter
    from ircord.login import HandshakeSession


class NetworkAdapter(ABC):
    """One chat network: connect with a handshake session, send text, feed the router."""

    _router: EventRouter | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Adapter identifier ('discord' or 'irc')."""
        ...

    @abstractmethod
    async def connect(self, session: HandshakeSession) -> None:
        """Start connecting. Drive session to READY, or session.fail() on error."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect regardless of current state."""
        ...

    @abstractmethod
    async def send(self, text: str) -> None:
        """Send ready-to-send text to the bound channel."""
        ...

    def attach(self, router: EventRouter) -> None:
        """Start delivering inbound events to router. Called once, after login."""
        self._router = router

    def detach(self) -> None:
        self._router = None

    def publish(self, evt: object) -> None:
        """Hand a raw inbound event to the router, if routing is installed."""
        if self._router is not None:
            self._router.push_event(self.name, evt)


class DiscordNetwork(NetworkAdapter):
    """Discord side: own identity, bound channel, roster lookups."""

    @property
    @abstractmethod
    def user_id(self) -> str | None:
        """The bridge's own Discord user id once logged in."""
        ...

    @property
    @abstractmethod
    def channel_id(self) -> str:
        ...

    @property
    @abstractmethod
    def guild_id(self) -> str | None:
        """Guild owning the bound channel."""
        ...

    @abstractmethod
    def member_name(self, user_id: str) -> str | None:
        ...

    @abstractmethod
    def channel_name(self, channel_id: str) -> str | None:
        ...


class IrcNetwork(NetworkAdapter):
    """IRC side: own nickname, bound channel, WHOIS."""

    @property
    @abstractmethod
    def nickname(self) -> str:
        ...

    @property
    @abstractmethod
    def channel(self) -> str:
        ...

    @abstractmethod
    async def whois(self, nick: str) -> dict[str, Any] | None:
        """WHOIS reply as a dict with at least ``host``, or None."""
        ...
