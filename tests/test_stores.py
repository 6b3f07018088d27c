from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError
from tenacity import wait_none

from cachestats.capabilities import BatchConvention, resolve_capability
from cachestats.config import CacheStatsConfig
from cachestats.manager import CacheStatsManager
from cachestats.stores import LocalStore, RedisStorage


def mock_redis_client(keys=None, values=None):
    client = MagicMock()
    client.keys = AsyncMock(return_value=keys or [])
    client.mget = AsyncMock(return_value=values or [])
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock()
    client.delete = AsyncMock(return_value=len(keys or []))
    client.aclose = AsyncMock()
    return client


@pytest.mark.redis
class TestRedisStorage:
    """Tests for the RedisStorage handle.

    These tests use mocks to avoid requiring a Redis server.
    """

    @patch("cachestats.stores.Redis.from_url")
    def test_init(self, mock_from_url):
        """The client is built from the url with decoded responses by default."""
        storage = RedisStorage(url="redis://cache.example.com:6380/2", socket_timeout=2.0)

        mock_from_url.assert_called_once_with(
            "redis://cache.example.com:6380/2", decode_responses=True, socket_timeout=2.0
        )
        assert storage.client is mock_from_url.return_value
        assert storage.scan_prefix == "cache:"
        assert storage.retry_attempts == 3

    def test_from_config(self):
        config = CacheStatsConfig(storage_type="kvrocks", scan_prefix="tv:", retry_attempts=5)
        storage = RedisStorage.from_config(config, client=mock_redis_client())

        assert storage.scan_prefix == "tv:"
        assert storage.retry_attempts == 5

    def test_detected_as_clustered(self):
        storage = RedisStorage(client=mock_redis_client())
        convention = resolve_capability(storage, CacheStatsConfig(storage_type="redis"))
        assert isinstance(convention, BatchConvention)

    @pytest.mark.asyncio
    async def test_with_retry_recovers(self):
        storage = RedisStorage(client=mock_redis_client(), retry_wait=wait_none())
        operation = AsyncMock(side_effect=[RedisConnectionError("reset"), "ok"])

        assert await storage.with_retry(operation) == "ok"
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_with_retry_gives_up(self):
        storage = RedisStorage(client=mock_redis_client(), retry_attempts=2, retry_wait=wait_none())
        operation = AsyncMock(side_effect=RedisConnectionError("down"))

        with pytest.raises(RedisConnectionError):
            await storage.with_retry(operation)
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_with_retry_does_not_retry_command_errors(self):
        storage = RedisStorage(client=mock_redis_client(), retry_wait=wait_none())
        operation = AsyncMock(side_effect=ResponseError("WRONGTYPE"))

        with pytest.raises(ResponseError):
            await storage.with_retry(operation)
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_get_and_set(self):
        client = mock_redis_client()
        client.get.return_value = "payload"
        storage = RedisStorage(client=client)

        await storage.set("cache:douban-movie-1", "payload", ttl=60)
        client.set.assert_awaited_once_with("cache:douban-movie-1", "payload", ex=60)
        assert await storage.get("cache:douban-movie-1") == "payload"

    @pytest.mark.asyncio
    async def test_clear_expired_cache_with_prefix(self):
        client = mock_redis_client(keys=["cache:netdisk-search-a", "cache:netdisk-search-b"])
        storage = RedisStorage(client=client)

        await storage.clear_expired_cache("netdisk-search")

        client.keys.assert_awaited_once_with("cache:netdisk-search*")
        client.delete.assert_awaited_once_with("cache:netdisk-search-a", "cache:netdisk-search-b")

    @pytest.mark.asyncio
    async def test_clear_expired_cache_whole_namespace(self):
        client = mock_redis_client()
        storage = RedisStorage(client=client)

        await storage.clear_expired_cache()

        client.keys.assert_awaited_once_with("cache:*")
        client.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close(self):
        client = mock_redis_client()
        await RedisStorage(client=client).close()
        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stats_end_to_end(self):
        keys = ["cache:douban-movie-1", "cache:danmu-cache-x", "cache:unrelated"]
        client = mock_redis_client(keys=keys, values=["a" * 10, "b" * 5, "c" * 100])
        manager = CacheStatsManager(RedisStorage(client=client), config=CacheStatsConfig(storage_type="redis"))

        report = await manager.get_stats()

        client.keys.assert_awaited_once_with("cache:*")
        client.mget.assert_awaited_once_with(keys)
        assert (report.total.count, report.total.size) == (2, 15)

    @pytest.mark.asyncio
    async def test_evict_danmu_end_to_end(self):
        client = mock_redis_client(keys=["cache:danmu-cache-1"])
        manager = CacheStatsManager(RedisStorage(client=client), config=CacheStatsConfig(storage_type="kvrocks"))

        assert await manager.evict_category("danmu") is True
        assert [c.args[0] for c in client.keys.await_args_list] == ["cache:danmu-cache*", "cache:lunatv_danmu_cache*"]


class TestLocalStore:
    def test_get_missing_returns_none(self):
        assert LocalStore().get("douban-movie-1") is None

    def test_set_remove(self):
        store = LocalStore()
        store.set("netdisk-search-a", "x")
        assert "netdisk-search-a" in store
        assert len(store) == 1

        store.remove("netdisk-search-a")
        store.remove("never-there")
        assert len(store) == 0

    def test_list_keys_is_a_copy(self):
        store = LocalStore({"a": 1, "b": 2})
        keys = store.list_keys()
        store.remove("a")
        assert keys == ["a", "b"]

    def test_clear(self):
        store = LocalStore({"a": 1})
        store.clear()
        assert store.list_keys() == []
