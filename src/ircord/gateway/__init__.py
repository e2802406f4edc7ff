"""Gateway: observer bus, event router, relay, bridge orchestration."""

from ircord.gateway.bridge import Bridge
from ircord.gateway.bus import Bus
from ircord.gateway.relay import Relay
from ircord.gateway.router import EventRouter

__all__ = ["Bridge", "Bus", "EventRouter", "Relay"]
