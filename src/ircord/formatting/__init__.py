"""Rendering of normalized messages for each network."""

from ircord.formatting.mentions import resolve_mentions
from ircord.formatting.render import format_for_console, format_for_discord, format_for_irc

__all__ = ["format_for_console", "format_for_discord", "format_for_irc", "resolve_mentions"]
