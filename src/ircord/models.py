"""Normalized message envelope shared by every network.

A single ``Message`` type with an explicit ``kind`` discriminant covers
ordinary user messages, status notifications (joins, parts, renames,
presence) and error diagnostics. Formatting and routing branch on ``kind``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

Network = Literal["discord", "irc"]


class MessageKind(Enum):
    ORDINARY = "ordinary"
    STATUS = "status"
    ERROR = "error"


class SourceTag(str, Enum):
    """Single-character origin marker shown in the bracketed prefix."""

    DISCORD = "D"
    IRC = "I"
    ERROR = "E"

    @property
    def network(self) -> Network | None:
        """Concrete network for this tag, None for system/error."""
        return _TAG_NETWORKS.get(self)

    def __str__(self) -> str:
        return self.value


_TAG_NETWORKS: dict[SourceTag, Network] = {
    SourceTag.DISCORD: "discord",
    SourceTag.IRC: "irc",
}


@dataclass(frozen=True)
class Message:
    """Immutable relay envelope.

    ``user`` is set only for ORDINARY messages. ``auth`` is a best-effort
    registration hint and must not be used for authorization.
    """

    kind: MessageKind
    text: str
    source: SourceTag
    user: str | None = None
    auth: bool = False
    failed_on: Network | None = None  # ERROR only: network whose send failed

    @property
    def origin(self) -> Network | None:
        """Network this message must not be relayed back to."""
        if self.kind is MessageKind.ERROR:
            return self.failed_on
        return self.source.network

    @property
    def is_status(self) -> bool:
        return self.kind is MessageKind.STATUS

    @property
    def is_error(self) -> bool:
        return self.kind is MessageKind.ERROR


def message(text: str, user: str, source: SourceTag, auth: bool = False) -> Message:
    """Ordinary user utterance."""
    return Message(MessageKind.ORDINARY, text, source, user=user, auth=bool(auth))


def status_message(text: str, source: SourceTag) -> Message:
    """User-less join/leave/rename/presence notification."""
    return Message(MessageKind.STATUS, text, source)


def error_message(err: BaseException | str, *, failed_on: Network | None = None) -> Message:
    """Diagnostic wrapping a failure description."""
    if isinstance(err, BaseException):
        text = str(err) or type(err).__name__
    else:
        text = err
    return Message(MessageKind.ERROR, text, SourceTag.ERROR, failed_on=failed_on)
