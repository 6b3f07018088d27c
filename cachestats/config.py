"""
.. module:: config
   :synopsis: Settings that steer backend detection and the reference Redis handle

"""

import os

from cachestats.logging import get_logger

logger = get_logger("config")

STORAGE_TYPE_ENV_VARS = ("STORAGE_TYPE", "NEXT_PUBLIC_STORAGE_TYPE")

REDIS = "redis"
KVROCKS = "kvrocks"
UPSTASH = "upstash"
LOCALSTORAGE = "localstorage"

KNOWN_STORAGE_TYPES = (REDIS, KVROCKS, UPSTASH, LOCALSTORAGE)

DEFAULT_SCAN_PREFIX = "cache:"


class CacheStatsConfig:
    """Explicit settings for a statistics or eviction call.

    Args:
        storage_type (Optional[str]): Backend kind the deployment is configured for. One of
            ``redis``, ``kvrocks``, ``upstash`` or ``localstorage``. Unknown or missing values
            fall back to ``localstorage``.
        scan_prefix (str): Literal prefix shared by every cache key. Defaults to ``cache:``.
        retry_attempts (int): Attempts made by :class:`cachestats.stores.RedisStorage` before a
            connection error is raised. Defaults to 3.
    """

    def __init__(self, storage_type=None, scan_prefix=DEFAULT_SCAN_PREFIX, retry_attempts=3):
        normalized = (storage_type or LOCALSTORAGE).strip().lower()
        if normalized not in KNOWN_STORAGE_TYPES:
            logger.warning(f"Unknown storage type '{storage_type}', treating it as '{LOCALSTORAGE}'")
            normalized = LOCALSTORAGE
        if retry_attempts < 1:
            raise ValueError(f"retry_attempts must be at least 1, got {retry_attempts}")

        self.storage_type = normalized
        self.scan_prefix = scan_prefix
        self.retry_attempts = retry_attempts

    @classmethod
    def from_env(cls, environ=None, **overrides):
        """Build a config from process environment variables.

        ``STORAGE_TYPE`` wins over ``NEXT_PUBLIC_STORAGE_TYPE``. Keyword overrides are passed
        straight to the constructor.
        """
        environ = os.environ if environ is None else environ
        storage_type = None
        for var in STORAGE_TYPE_ENV_VARS:
            if environ.get(var):
                storage_type = environ[var]
                logger.debug(f"Storage type '{storage_type}' read from {var}")
                break
        overrides.setdefault("storage_type", storage_type)
        return cls(**overrides)

    @property
    def scan_pattern(self):
        return f"{self.scan_prefix}*"

    def __repr__(self):
        return (
            f"CacheStatsConfig(storage_type={self.storage_type!r}, scan_prefix={self.scan_prefix!r}, "
            f"retry_attempts={self.retry_attempts})"
        )

    def __eq__(self, other):
        if not isinstance(other, CacheStatsConfig):
            return NotImplemented
        return (self.storage_type, self.scan_prefix, self.retry_attempts) == (
            other.storage_type,
            other.scan_prefix,
            other.retry_attempts,
        )
