"""Tests for the Redis backend."""

from unittest.mock import AsyncMock, MagicMock, patch

import orjson
import pytest
import redis.asyncio as redis

from stellar_wrap.storage import cache


@pytest.fixture
def fake_client():
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    with patch.object(cache, "_client", client):
        yield client


class TestCacheDisabled:
    """Tests for graceful degradation without Redis."""

    @pytest.mark.asyncio
    async def test_operations_are_noops(self):
        """Test reads return None and writes return False."""
        with patch.object(cache, "_client", None):
            assert not cache.is_cache_available()
            assert await cache.get_json("k") is None
            assert await cache.set_json("k", {"a": 1}) is False

    @pytest.mark.asyncio
    async def test_init_unreachable(self):
        """Test an unreachable server leaves the cache disabled."""
        client = MagicMock()
        client.ping = AsyncMock(side_effect=redis.ConnectionError("refused"))
        client.aclose = AsyncMock()

        with patch.object(cache, "_client", None), \
             patch.object(cache.redis.Redis, "from_url", return_value=client):
            await cache.init_cache("redis://nowhere:6379/0")
            assert not cache.is_cache_available()

        client.aclose.assert_awaited_once()


class TestCacheJson:
    """Tests for JSON reads and writes."""

    @pytest.mark.asyncio
    async def test_set_json(self, fake_client):
        """Test values are orjson-encoded."""
        assert await cache.set_json("k", {"state": "confirmed"}) is True

        fake_client.set.assert_awaited_once_with("k", orjson.dumps({"state": "confirmed"}), ex=None)

    @pytest.mark.asyncio
    async def test_get_json(self, fake_client):
        """Test stored documents are decoded."""
        fake_client.get.return_value = b'{"state":"submitted"}'

        assert await cache.get_json("k") == {"state": "submitted"}

    @pytest.mark.asyncio
    async def test_get_corrupt_json(self, fake_client):
        """Test undecodable documents read as missing."""
        fake_client.get.return_value = b"{not json"

        assert await cache.get_json("k") is None

    @pytest.mark.asyncio
    async def test_redis_errors_degrade(self, fake_client):
        """Test Redis command errors never raise."""
        fake_client.get.side_effect = redis.RedisError("boom")
        fake_client.set.side_effect = redis.RedisError("boom")

        assert await cache.get_json("k") is None
        assert await cache.set_json("k", 1) is False
