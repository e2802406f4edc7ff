"""Per-network login handshakes as explicit state machines.

Discord is ready after a single ready signal. IRC connects, waits for
NickServ to challenge the nick, identifies, and is ready once the password
is accepted and the bound channel joined. ``login_all`` awaits every
session jointly; partial readiness never counts.
"""

from __future__ import annotations

import asyncio
import re
from enum import Enum

from loguru import logger

from ircord.errors import LoginError


class SessionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    HANDSHAKE_PENDING = "handshake_pending"
    AWAITING_IDENTITY_CHALLENGE = "awaiting_identity_challenge"
    AWAITING_IDENTITY_ACCEPT = "awaiting_identity_accept"
    READY = "ready"


class HandshakeEvent(Enum):
    CONNECT = "connect"
    CONNECTED = "connected"
    READY_SIGNAL = "ready_signal"
    IDENTITY_CHALLENGE = "identity_challenge"
    IDENTITY_ACCEPTED = "identity_accepted"
    DISCONNECT = "disconnect"


Transitions = dict[tuple[SessionState, HandshakeEvent], SessionState]

S = SessionState
E = HandshakeEvent

DISCORD_TRANSITIONS: Transitions = {
    (S.DISCONNECTED, E.CONNECT): S.CONNECTING,
    (S.CONNECTING, E.CONNECTED): S.HANDSHAKE_PENDING,
    (S.CONNECTING, E.READY_SIGNAL): S.READY,
    (S.HANDSHAKE_PENDING, E.READY_SIGNAL): S.READY,
}

IRC_TRANSITIONS: Transitions = {
    (S.DISCONNECTED, E.CONNECT): S.CONNECTING,
    (S.CONNECTING, E.CONNECTED): S.AWAITING_IDENTITY_CHALLENGE,
    # Services may challenge before the client sees end of registration
    (S.CONNECTING, E.IDENTITY_CHALLENGE): S.AWAITING_IDENTITY_ACCEPT,
    (S.AWAITING_IDENTITY_CHALLENGE, E.IDENTITY_CHALLENGE): S.AWAITING_IDENTITY_ACCEPT,
    (S.AWAITING_IDENTITY_CHALLENGE, E.IDENTITY_ACCEPTED): S.READY,
    (S.AWAITING_IDENTITY_ACCEPT, E.IDENTITY_ACCEPTED): S.READY,
    # No services password configured: join straight after registration
    (S.AWAITING_IDENTITY_CHALLENGE, E.READY_SIGNAL): S.READY,
}


def advance(table: Transitions, state: SessionState, evt: HandshakeEvent) -> SessionState | None:
    """Next state, or None if evt is not valid in state. DISCONNECT always applies."""
    if evt is HandshakeEvent.DISCONNECT:
        return SessionState.DISCONNECTED
    return table.get((state, evt))


DEFAULT_IDENTIFY_PROMPT = "This nickname is registered and protected"
DEFAULT_IDENTIFY_ACCEPTED = "Password accepted"


def classify_notice(
    sender: str | None,
    text: str,
    *,
    prompt: str = DEFAULT_IDENTIFY_PROMPT,
    accepted: str = DEFAULT_IDENTIFY_ACCEPTED,
    service: str = "NickServ",
) -> HandshakeEvent | None:
    """Map a NOTICE to the handshake event it signals, if any."""
    if not sender or sender.lower() != service.lower():
        return None
    if re.search(re.escape(prompt), text, re.IGNORECASE):
        return HandshakeEvent.IDENTITY_CHALLENGE
    if re.search(re.escape(accepted), text, re.IGNORECASE):
        return HandshakeEvent.IDENTITY_ACCEPTED
    return None


class HandshakeSession:
    """State of one network's login attempt, with a completion to await."""

    def __init__(self, network: str, transitions: Transitions) -> None:
        self.network = network
        self._transitions = transitions
        self.state = SessionState.DISCONNECTED
        self._done: asyncio.Future[None] | None = None

    def __repr__(self) -> str:
        return f"<HandshakeSession {self.network} {self.state.name}>"

    @property
    def done(self) -> asyncio.Future[None]:
        if self._done is None:
            self._done = asyncio.get_running_loop().create_future()
        return self._done

    @property
    def ready(self) -> bool:
        return self.state is SessionState.READY

    def accepts(self, evt: HandshakeEvent) -> bool:
        """Whether evt would advance the current state."""
        return advance(self._transitions, self.state, evt) is not None

    def fire(self, evt: HandshakeEvent) -> bool:
        """Apply evt. Returns False (state unchanged) when evt is not valid now."""
        new = advance(self._transitions, self.state, evt)
        if new is None:
            logger.debug("{} handshake: ignoring {} in state {}", self.network, evt.name, self.state.name)
            return False
        logger.debug("{} handshake: {} -> {}", self.network, self.state.name, new.name)
        self.state = new
        if new is SessionState.READY and not self.done.done():
            logger.info("Logged into {}", self.network)
            self.done.set_result(None)
        return True

    def fail(self, exc: BaseException) -> None:
        """Resolve the attempt as a fatal failure."""
        if self.done.done():
            logger.warning("{} failure after login resolved: {}", self.network, exc)
            return
        if not isinstance(exc, LoginError):
            exc = LoginError(self.network, f"failed to login to {self.network}: {exc}", original_error=exc)
        self.state = SessionState.DISCONNECTED
        self.done.set_exception(exc)

    async def wait(self) -> None:
        await asyncio.shield(self.done)


async def login_all(*sessions: HandshakeSession, timeout: float | None = None) -> None:
    """Await every session reaching READY. First failure cancels the rest."""
    waits = [asyncio.ensure_future(s.wait()) for s in sessions]
    try:
        await asyncio.wait_for(asyncio.gather(*waits), timeout)
    except asyncio.TimeoutError as exc:
        stalled = [s.network for s in sessions if not s.ready]
        raise LoginError(
            ",".join(stalled),
            f"login timed out after {timeout}s waiting for {', '.join(stalled)}",
            code="login_timeout",
            original_error=exc,
        ) from exc
    except Exception as exc:
        logger.error("failed to login: {}", exc)
        raise
    finally:
        for w in waits:
            w.cancel()
