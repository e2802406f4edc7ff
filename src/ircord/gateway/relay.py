"""Relay: render a Message for every network except its origin and send it."""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable, Mapping

from loguru import logger

from ircord.adapters.base import NetworkAdapter
from ircord.errors import SendError
from ircord.events import error_event
from ircord.formatting.render import format_for_discord, format_for_irc
from ircord.gateway.bus import Bus
from ircord.models import Message, Network, error_message

RENDERERS: dict[Network, Callable[[Message], str]] = {
    "discord": format_for_discord,
    "irc": format_for_irc,
}


class Relay:
    """Sends to the other network(s). Never echoes back to the origin.

    Sends are fire-and-forget tasks; a failed send becomes an ErrorMessage
    relayed to the networks that did not fail.
    """

    def __init__(self, networks: Mapping[Network, NetworkAdapter], bus: Bus) -> None:
        self._networks = dict(networks)
        self._bus = bus
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def relay(self, msg: Message | str) -> None:
        """Send msg onward. A plain string goes unformatted to every network."""
        if isinstance(msg, str):
            for network in self._networks:
                self._send(network, msg, None)
            return

        for network in self._networks:
            if network == msg.origin:
                continue
            self._send(network, RENDERERS[network](msg), msg)

    def _send(self, network: Network, text: str, msg: Message | None) -> None:
        task = asyncio.create_task(self._networks[network].send(text))
        self._tasks.add(task)
        task.add_done_callback(functools.partial(self._on_sent, network, msg))

    def _on_sent(self, network: Network, msg: Message | None, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return

        logger.opt(exception=exc).error("Send to {} failed: {}", network, exc)
        if msg is not None and msg.is_error:
            # Diagnostics about diagnostics would loop
            return

        err = SendError(network, f"failed to send to {network}: {exc}", original_error=exc)
        err_msg = error_message(err, failed_on=network)
        _, evt = error_event(network, err, err_msg)
        self._bus.publish("relay", evt)
        self.relay(err_msg)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight sends (including error relays they trigger)."""
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._tasks:
            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            _, pending = await asyncio.wait(set(self._tasks), timeout=remaining)
            if pending and deadline is not None and loop.time() >= deadline:
                logger.warning("{} sends still pending after {}s", len(pending), timeout)
                return
            # Let done callbacks run (they may schedule error relays)
            await asyncio.sleep(0)
