"""Network adapters. Each implements adapters.base.NetworkAdapter."""

from ircord.adapters.base import DiscordNetwork, IrcNetwork, NetworkAdapter

__all__ = ["DiscordNetwork", "IrcNetwork", "NetworkAdapter"]
