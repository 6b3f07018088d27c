"""
Example of collecting cache statistics and evicting a category.

No Redis server is needed: the primary backend here is an in-process store that only
supports single-key reads, so the statistics come from the local fallback store. Point
``RedisStorage`` at a real server and pass ``storage_type="redis"`` to read from Redis instead.
"""

import asyncio
import logging

from cachestats import CacheStatsConfig, CacheStatsManager, LocalStore
from cachestats.logging import add_stream_handler, remove_all_handlers, set_log_level


def build_local_store():
    store = LocalStore()
    store.set("douban-movie-1292052", '{"title": "The Shawshank Redemption", "rate": "9.7"}')
    store.set("douban-tv-26794435", '{"title": "Reply 1988", "rate": "9.7"}')
    store.set("douban-movie-1291546", '{"title": "Farewell My Concubine", "rate": "9.6"}')
    store.set("danmu-cache-ep01", "[" + ",".join(['{"t": 1.5, "text": "hi"}'] * 40) + "]")
    store.set("lunatv_danmu_cache", '{"version": 1}')
    store.set("netdisk-search-interstellar", '{"results": []}')
    store.set("search-history", '["interstellar", "reply 1988"]')
    return store


async def demonstrate_cache_stats():
    print("Cache Statistics Demo")
    print("=" * 40)

    local_store = build_local_store()
    config = CacheStatsConfig(storage_type="localstorage")
    manager = CacheStatsManager(local_store, local_store=local_store, config=config)

    report = await manager.get_stats_with_fallback()
    print(f"Source: {report.source}")
    print(f"Note:   {report.note}")
    print()
    print(report.to_dataframe())
    print()
    print(f"Douban sub-types: {dict(report.douban.types)}")
    print()

    print("Evicting netdisk search cache...")
    executed = await manager.evict_category("netdisk")
    print(f"  Backend delete executed: {executed}")

    report = await manager.get_stats_with_fallback()
    print(f"  Netdisk entries left in local store: {report.netdisk.count}")


if __name__ == "__main__":
    set_log_level(logging.INFO)
    add_stream_handler(level=logging.WARNING)
    try:
        asyncio.run(demonstrate_cache_stats())
    finally:
        remove_all_handlers()
