"""Render a Message as Discord markdown, IRC control codes, or a console line."""

from __future__ import annotations

from ircord.models import Message, MessageKind

# IRC control codes
BOLD = "\x02"
COLOR = "\x03"
ITALIC = "\x1d"
RESET = "\x0f"

# mIRC color indices for the bracketed source tag
COLOR_MESSAGE = "02"  # blue
COLOR_STATUS = "03"  # green
COLOR_ERROR = "04"  # red

_IRC_COLORS = {
    MessageKind.ORDINARY: COLOR_MESSAGE,
    MessageKind.STATUS: COLOR_STATUS,
    MessageKind.ERROR: COLOR_ERROR,
}


def format_for_discord(msg: Message) -> str:
    """``**[S]** <user> text``, or ``**[S]** *text*`` for status/error."""
    if msg.kind is MessageKind.ORDINARY:
        return f"**[{msg.source}]** <{msg.user}> {msg.text}"
    return f"**[{msg.source}]** *{msg.text}*"


def format_for_irc(msg: Message) -> str:
    """Bold, colored ``[S]`` prefix then content; status/error italicized."""
    tag = f"{RESET}{BOLD}[{COLOR}{_IRC_COLORS[msg.kind]}{msg.source}{RESET}{BOLD}]{RESET}"
    if msg.kind is MessageKind.ORDINARY:
        return f"{tag} <{msg.user}> {msg.text}"
    return f"{tag} {ITALIC}{msg.text}{ITALIC}"


def format_for_console(msg: Message) -> str:
    return f"{msg.source},{msg.user}: {msg.text}"
