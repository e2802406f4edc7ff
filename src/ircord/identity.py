"""IRC nickname registration cache (best-effort trust hint).

Registration is approximated from WHOIS: a nick whose host is a cloak or
vhost is assumed registered, one showing a raw numeric IPv4 address is not.
Cloak formats differ between networks, so this is unreliable and must never
gate anything security-relevant.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Protocol

from cachetools import TTLCache
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

# Matches anywhere in the host, e.g. "10.0.0.5" or "user/10.0.0.5"
_NUMERIC_HOST = re.compile(r"\d+\.\d+\.\d+\.\d+")

# Retry only transport hiccups; a malformed reply is not retried
WHOIS_RETRY = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    retry=retry_if_exception_type((asyncio.TimeoutError, ConnectionError)),
    reraise=True,
)


class WhoisClient(Protocol):
    async def whois(self, nick: str) -> dict[str, Any] | None: ...


def host_looks_registered(host: str) -> bool:
    """True when host is not a raw numeric IP."""
    return _NUMERIC_HOST.search(host) is None


class IdentityCache:
    """Nick -> registered flag, populated lazily from WHOIS.

    Entries are dropped on join/part/quit/rename because registration status
    only holds for the connection instance that was queried.
    """

    def __init__(
        self,
        client: WhoisClient,
        *,
        maxsize: int = 1024,
        ttl: int = 3600,
    ) -> None:
        self._client = client
        self._cache: TTLCache[str, bool] = TTLCache(maxsize=maxsize, ttl=float(ttl))
        self._pending: dict[str, asyncio.Future[bool]] = {}
        self._closed = False
        self.query_count = 0

    @staticmethod
    def _key(nick: str) -> str:
        return nick.lower()

    def __contains__(self, nick: str) -> bool:
        return self._key(nick) in self._cache

    def cached(self, nick: str) -> bool | None:
        """Cached value or None when unknown. Never queries."""
        return self._cache.get(self._key(nick))

    async def is_registered(self, nick: str) -> bool:
        """Registered flag for nick, querying WHOIS on a cache miss."""
        key = self._key(nick)
        try:
            return self._cache[key]
        except KeyError:
            pass

        pending = self._pending.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._lookup(nick, key))
            self._pending[key] = pending
            pending.add_done_callback(lambda f, key=key: self._forget(key, f))
        return await asyncio.shield(pending)

    def _forget(self, key: str, fut: asyncio.Future[bool]) -> None:
        if self._pending.get(key) is fut:
            del self._pending[key]

    async def _lookup(self, nick: str, key: str) -> bool:
        self.query_count += 1
        try:
            info = await self._whois(nick)
        except Exception as exc:
            logger.warning("WHOIS for {} failed: {}; treating as unregistered", nick, exc)
            return False

        host = info.get("host") if isinstance(info, dict) else None
        if not isinstance(host, str) or not host:
            logger.warning("Malformed WHOIS reply for {}: {!r}; treating as unregistered", nick, info)
            return False

        registered = host_looks_registered(host)
        if self._closed:
            logger.debug("WHOIS for {} completed after teardown; not cached", nick)
        elif self._pending.get(key) is asyncio.current_task():
            self._cache[key] = registered
        else:
            # Invalidated while in flight; a newer query owns the entry
            logger.debug("WHOIS for {} superseded; not cached", nick)
        return registered

    @WHOIS_RETRY
    async def _whois(self, nick: str) -> dict[str, Any] | None:
        return await self._client.whois(nick)

    def invalidate(self, nick: str) -> None:
        """Drop any cached or in-flight result for nick."""
        key = self._key(nick)
        self._cache.pop(key, None)
        self._pending.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()
        self._pending.clear()

    def close(self) -> None:
        """Stop caching; late WHOIS completions become no-ops."""
        self._closed = True
        self.clear()
