"""Event types and dispatcher.

Two families live here: raw inbound events that adapters hand to the
router, and observer events the core publishes outward (logging,
diagnostics) once a message has been dispatched.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Any, Protocol

from ircord.models import Message, Network

# -- inbound (adapter -> router) ------------------------------------------------


@dataclass
class DiscordMessageIn:
    """Message posted on Discord."""

    author_id: str
    author_display: str
    channel_id: str
    content: str
    is_private: bool = False
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class PresenceChange:
    """Discord member status transition (e.g. offline -> online)."""

    user_id: str
    display: str
    guild_id: str | None
    before: str
    after: str


@dataclass
class IrcMessageIn:
    """PRIVMSG seen on IRC."""

    nick: str
    target: str
    content: str


@dataclass
class IrcJoin:
    nick: str
    channel: str


@dataclass
class IrcPart:
    nick: str
    channel: str
    reason: str | None = None


@dataclass
class IrcQuit:
    """User disconnected from the IRC network."""

    nick: str
    reason: str | None = None


@dataclass
class IrcNickChange:
    old: str
    new: str


# -- observer (core -> listeners) -----------------------------------------------


@dataclass
class Relayed:
    """A normalized message or status has been processed."""

    message: Message
    relayed: bool = True
    marked: bool = False


@dataclass
class Joined:
    """Someone joined the conversation on one network."""

    message: Message


@dataclass
class Left:
    """Someone left the conversation on one network."""

    message: Message


@dataclass
class Rename:
    """A user changed nickname on a network."""

    network: Network
    old: str
    new: str
    message: Message


@dataclass
class SendFailed:
    """Outbound send to a network raised."""

    network: Network
    error: BaseException
    message: Message


@dataclass
class Bridged:
    """Both handshakes completed and routing is installed."""

    networks: tuple[Network, ...]


class EventTarget(Protocol):
    """Observer interface: accept_event + push_event."""

    def accept_event(self, source: str, evt: object) -> bool:
        """Return True if this target wants the event."""
        ...

    def push_event(self, source: str, evt: object) -> None:
        """Handle the event. Must not block."""
        ...


def event(type_name: str):
    """Decorator to mark a factory as producing an event with a given type."""

    def decorator(f: Any) -> Any:
        @functools.wraps(f)
        def wrapper(*args: Any, **kwargs: Any) -> tuple[str, object]:
            evt = f(*args, **kwargs)
            return (type_name, evt)

        wrapper.TYPE = type_name
        return wrapper

    return decorator


@event("message")
def message_event(msg: Message, *, relayed: bool = True, marked: bool = False) -> Relayed:
    return Relayed(message=msg, relayed=relayed, marked=marked)


@event("join")
def join_event(msg: Message) -> Joined:
    return Joined(message=msg)


@event("leave")
def leave_event(msg: Message) -> Left:
    return Left(message=msg)


@event("rename")
def rename_event(network: Network, old: str, new: str, msg: Message) -> Rename:
    return Rename(network=network, old=old, new=new, message=msg)


@event("error")
def error_event(network: Network, error: BaseException, msg: Message) -> SendFailed:
    return SendFailed(network=network, error=error, message=msg)


@event("bridged")
def bridged_event(networks: tuple[Network, ...]) -> Bridged:
    return Bridged(networks=networks)


class Dispatcher:
    """Central event dispatcher; targets filter by type and receive events."""

    def __init__(self) -> None:
        self._targets: list[EventTarget] = []

    def register(self, target: EventTarget) -> None:
        """Register an event target."""
        self._targets.append(target)

    def unregister(self, target: EventTarget) -> None:
        """Unregister an event target."""
        if target in self._targets:
            self._targets.remove(target)

    def dispatch(self, source: str, evt: object) -> None:
        """Dispatch event to all targets that accept it."""
        from loguru import logger

        for target in self._targets:
            try:
                if target.accept_event(source, evt):
                    target.push_event(source, evt)
            except Exception as exc:
                logger.exception("Failed to pass event to target {}: {}", target, exc)
