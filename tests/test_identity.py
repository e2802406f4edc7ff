"""Test the WHOIS-backed registration cache."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from ircord.identity import IdentityCache, host_looks_registered


def make_cache(return_value=None, **kwargs):
    """Cache over a mock WHOIS client."""
    client = AsyncMock()
    client.whois.return_value = return_value
    return client, IdentityCache(client, **kwargs)


class TestHostHeuristic:
    @pytest.mark.parametrize(
        "host,registered",
        [
            ("10.0.0.5", False),
            ("192.168.1.20", False),
            ("user/10.0.0.5", False),
            ("unaffiliated/alice", True),
            ("user/alice", True),
            ("2001:db8::1", True),
            ("host-1-2-3.example.net", True),
        ],
    )
    def test_numeric_ip_means_unregistered(self, host, registered):
        assert host_looks_registered(host) is registered


class TestIsRegistered:
    @pytest.mark.asyncio
    async def test_numeric_host_is_unregistered(self):
        _, cache = make_cache({"host": "10.0.0.5"})
        assert await cache.is_registered("alice") is False

    @pytest.mark.asyncio
    async def test_cloaked_host_is_registered(self):
        _, cache = make_cache({"host": "user/alice"})
        assert await cache.is_registered("alice") is True

    @pytest.mark.asyncio
    async def test_two_calls_one_query(self):
        client, cache = make_cache({"host": "user/alice"})
        assert await cache.is_registered("alice") is True
        assert await cache.is_registered("alice") is True
        client.whois.assert_called_once_with("alice")
        assert cache.query_count == 1

    @pytest.mark.asyncio
    async def test_cache_key_ignores_case(self):
        client, cache = make_cache({"host": "user/alice"})
        await cache.is_registered("Alice")
        await cache.is_registered("alice")
        client.whois.assert_called_once()
        assert "ALICE" in cache

    @pytest.mark.asyncio
    async def test_invalidate_forces_fresh_query(self):
        client, cache = make_cache({"host": "user/alice"})
        await cache.is_registered("alice")
        cache.invalidate("alice")
        client.whois.return_value = {"host": "10.0.0.5"}
        assert await cache.is_registered("alice") is False
        assert client.whois.call_count == 2

    @pytest.mark.asyncio
    async def test_invalidate_unknown_nick_is_safe(self):
        _, cache = make_cache()
        cache.invalidate("nobody")

    @pytest.mark.asyncio
    async def test_cache_expiry(self):
        client, cache = make_cache({"host": "user/alice"}, ttl=0)
        await cache.is_registered("alice")
        await cache.is_registered("alice")
        assert client.whois.call_count == 2

    @pytest.mark.asyncio
    async def test_cached_never_queries(self):
        client, cache = make_cache({"host": "user/alice"})
        assert cache.cached("alice") is None
        await cache.is_registered("alice")
        assert cache.cached("alice") is True
        client.whois.assert_called_once()


class TestWhoisAnomalies:
    @pytest.mark.asyncio
    async def test_no_reply_is_unregistered_and_not_cached(self, log_records):
        client, cache = make_cache(None)
        assert await cache.is_registered("ghost") is False
        assert "ghost" not in cache
        await cache.is_registered("ghost")
        assert client.whois.call_count == 2
        assert any(r["level"].name == "WARNING" for r in log_records)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", [{}, {"host": None}, {"host": ""}, {"host": 42}, ["10.0.0.5"]])
    async def test_malformed_reply_is_unregistered(self, reply):
        _, cache = make_cache(reply)
        assert await cache.is_registered("bob") is False

    @pytest.mark.asyncio
    async def test_query_error_is_unregistered(self):
        client, cache = make_cache()
        client.whois.side_effect = ValueError("bad reply")
        assert await cache.is_registered("bob") is False
        client.whois.assert_called_once()

    @pytest.mark.asyncio
    async def test_timeout_is_retried(self):
        client, cache = make_cache()
        client.whois.side_effect = [asyncio.TimeoutError(), {"host": "user/bob"}]
        assert await cache.is_registered("bob") is True
        assert client.whois.call_count == 2
        assert cache.query_count == 1


class GatedClient:
    """WHOIS client that blocks until released."""

    def __init__(self, host: str) -> None:
        self.host = host
        self.calls = 0
        self.release = asyncio.Event()

    async def whois(self, nick):
        self.calls += 1
        await self.release.wait()
        return {"host": self.host}


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_lookups_share_one_query(self):
        client = GatedClient("user/alice")
        cache = IdentityCache(client)
        first = asyncio.create_task(cache.is_registered("alice"))
        second = asyncio.create_task(cache.is_registered("alice"))
        await asyncio.sleep(0)
        client.release.set()
        assert await first is True
        assert await second is True
        assert client.calls == 1

    @pytest.mark.asyncio
    async def test_invalidate_during_query_discards_result(self):
        client = GatedClient("user/alice")
        cache = IdentityCache(client)
        lookup = asyncio.create_task(cache.is_registered("alice"))
        await asyncio.sleep(0)
        cache.invalidate("alice")
        client.release.set()
        assert await lookup is True
        assert "alice" not in cache

    @pytest.mark.asyncio
    async def test_completion_after_close_is_noop(self):
        client = GatedClient("user/alice")
        cache = IdentityCache(client)
        lookup = asyncio.create_task(cache.is_registered("alice"))
        await asyncio.sleep(0)
        cache.close()
        client.release.set()
        assert await lookup is True
        assert "alice" not in cache
