from cachestats.capabilities import resolve_capability, strategy_order
from cachestats.config import CacheStatsConfig
from cachestats.manager import CacheStatsManager
from cachestats.stats import StatsReport
from cachestats.stores import LocalStore, RedisStorage

from importlib.metadata import version

__version__ = version("cache-stats")

__all__ = [
    "CacheStatsManager",
    "CacheStatsConfig",
    "StatsReport",
    "RedisStorage",
    "LocalStore",
    "resolve_capability",
    "strategy_order",
]
