"""
.. module:: manager
   :synopsis: Cache statistics and eviction over a pluggable key-value backend

"""

from cachestats.capabilities import fetch_each, maybe_await, resolve_capability
from cachestats.config import CacheStatsConfig
from cachestats.exceptions import CacheStatsError
from cachestats.logging import get_logger
from cachestats.stats import (
    FALLBACK_SOURCE,
    PRIMARY_SOURCE,
    AggregateStats,
    StatsReport,
    aggregate,
    classify,
    get_category,
)

logger = get_logger("manager")


class CacheStatsManager:
    """Reports and evicts cache entries held in a key-value store.

    Args:
        storage: Storage handle from the application's storage façade. Any object exposing
            one of the conventions in :mod:`cachestats.capabilities`.
        local_store (Optional[object]): Secondary in-process store with ``list_keys``, ``get``
            and ``remove``. Used when the primary backend cannot be enumerated.
        config (Optional[CacheStatsConfig]): Backend kind and scan prefix. When None, the
            configuration is read from the environment on every call.

    The manager holds no state between calls, so one instance can serve concurrent callers.

    Examples:
        >>> manager = CacheStatsManager(RedisStorage(), local_store=LocalStore(),
        ...                             config=CacheStatsConfig(storage_type='redis'))
        >>> report = await manager.get_stats_with_fallback()
        >>> report.to_dataframe()
    """

    def __init__(self, storage, local_store=None, config=None):
        self.storage = storage
        self.local_store = local_store
        self.config = config

    def _resolve_config(self):
        return self.config if self.config is not None else CacheStatsConfig.from_env()

    async def get_stats(self):
        """Collect statistics from the primary backend.

        Returns:
            Optional[StatsReport]: None when the backend cannot be enumerated or the scan fails.
            None means "use another source", never "no cache entries".
        """
        config = self._resolve_config()
        convention = resolve_capability(self.storage, config)
        if not convention.can_enumerate:
            logger.warning(
                f"Cache statistics unavailable: {convention.kind} storage cannot list keys "
                f"(configured storage type '{config.storage_type}')"
            )
            return None

        try:
            keys = await convention.list_keys(config.scan_pattern)
            logger.info(f"Found {len(keys)} cache keys matching {config.scan_pattern}")
            if not keys:
                return StatsReport.empty(PRIMARY_SOURCE, note=f"No cache keys in {convention.kind} backend")

            values = await convention.get_values(keys)
            if len(values) != len(keys):
                raise CacheStatsError(f"Backend returned {len(values)} values for {len(keys)} keys")

            stats = aggregate(zip(keys, values), strip_prefix=config.scan_prefix)
        except Exception as e:
            logger.error(f"Cache statistics failed on {convention.kind} backend: {e}", exc_info=True)
            return None

        logger.info(f"Cache statistics complete: {stats.total.count} entries, {stats.total.size} bytes")
        return StatsReport(stats, PRIMARY_SOURCE, note=f"Primary source: {convention.kind} key-value backend")

    async def get_stats_with_fallback(self):
        """Statistics from the primary backend, or from the local store when that is unavailable.

        Returns:
            StatsReport: Never None. Labelled ``fallback-local-store`` when the local store was used.
        """
        report = await self.get_stats()
        if report is not None:
            return report

        logger.info("Primary backend unavailable, collecting cache statistics from local store")
        return await self._local_stats()

    async def _local_stats(self):
        if self.local_store is None:
            return StatsReport.empty(FALLBACK_SOURCE, note="No backend available, reporting empty statistics")

        try:
            keys = [k for k in await maybe_await(self.local_store.list_keys()) if classify(k) is not None]
            logger.info(f"Found {len(keys)} cache keys in local store")
            values = await fetch_each(keys, self.local_store.get)
            stats = aggregate(zip(keys, values))
        except Exception as e:
            logger.error(f"Cache statistics failed on local store: {e}", exc_info=True)
            stats = AggregateStats()

        return StatsReport(stats, FALLBACK_SOURCE, note="Primary backend unavailable, using local store")

    async def evict_category(self, category):
        """Delete every cache entry of one category.

        Args:
            category (str): ``douban``, ``danmu`` or ``netdisk``.

        Returns:
            bool: True if the backend's prefix delete ran without error. This says nothing
            about how many keys were removed.

        Raises:
            ValueError: If ``category`` is not a known category name.
        """
        target = get_category(category)
        convention = resolve_capability(self.storage, self._resolve_config())

        executed = True
        try:
            for prefix in target.eviction_prefixes:
                await convention.delete_by_prefix(prefix)
            logger.info(f"Cleared {target.name} cache")
        except Exception as e:
            logger.error(f"Failed to clear {target.name} cache: {e}")
            executed = False

        if target.mirror_local:
            await self._evict_local(target)

        return executed

    async def _evict_local(self, target):
        if self.local_store is None:
            return
        try:
            keys = [k for k in await maybe_await(self.local_store.list_keys()) if k.startswith(target.prefixes)]
            for key in keys:
                await maybe_await(self.local_store.remove(key))
            logger.info(f"Removed {len(keys)} {target.name} entries from local store")
        except Exception as e:
            logger.warning(f"Failed to clear {target.name} entries from local store: {e}")

    async def evict_all_expired(self):
        """Sweep expired entries across the whole store.

        Returns:
            bool: True if the sweep ran without error.
        """
        convention = resolve_capability(self.storage, self._resolve_config())
        try:
            await convention.delete_by_prefix()
        except Exception as e:
            logger.error(f"Failed to clear expired cache: {e}")
            return False

        logger.info("Cleared all expired cache entries")
        return True
