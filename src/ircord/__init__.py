"""IRCord: relay one Discord channel and one IRC channel into a single conversation."""

__version__ = "0.1.0"
