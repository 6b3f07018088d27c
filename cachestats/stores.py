"""
.. module:: stores
   :synopsis: Reference storage handles: a retrying Redis wrapper and an in-process key store

Neither class is required; any object exposing one of the conventions in
:mod:`cachestats.capabilities` works. These exist so the library can be used without a
separate storage façade.

"""

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from cachestats.config import DEFAULT_SCAN_PREFIX
from cachestats.logging import get_logger

logger = get_logger("stores")

RETRYABLE_ERRORS = (RedisConnectionError, RedisTimeoutError)


class RedisStorage:
    """
    A Redis or KVRocks backed store, using redis-py's asyncio client under the hood.

    Exposes the underlying client as ``client`` and a ``with_retry`` helper, which is the
    clustered convention detected by :class:`cachestats.capabilities.BatchConvention`.

    :param client: an existing ``redis.asyncio.Redis``; built from ``url`` when omitted
    :param url: connection url, default redis://localhost:6379/0
    :param scan_prefix: namespace shared by cache keys, default ``cache:``
    :param retry_attempts: attempts per operation on connection or timeout errors, default 3
    :param retry_wait: tenacity wait strategy between attempts
    :param kwargs: additional options available to ``redis.asyncio.Redis.from_url``
    """

    def __init__(
        self,
        client=None,
        url="redis://localhost:6379/0",
        scan_prefix=DEFAULT_SCAN_PREFIX,
        retry_attempts=3,
        retry_wait=None,
        **kwargs,
    ):
        if client is None:
            kwargs.setdefault("decode_responses", True)
            client = Redis.from_url(url, **kwargs)
        self.client = client
        self.scan_prefix = scan_prefix
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait if retry_wait is not None else wait_exponential(multiplier=0.1, max=2)

    @classmethod
    def from_config(cls, config, **kwargs):
        kwargs.setdefault("scan_prefix", config.scan_prefix)
        kwargs.setdefault("retry_attempts", config.retry_attempts)
        return cls(**kwargs)

    async def with_retry(self, operation):
        """Run ``operation`` (a zero-argument coroutine factory), retrying transient Redis errors."""
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            stop=stop_after_attempt(self.retry_attempts),
            wait=self.retry_wait,
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(f"Retrying Redis operation (attempt {attempt.retry_state.attempt_number})")
                return await operation()

    async def get(self, key):
        return await self.with_retry(lambda: self.client.get(key))

    async def set(self, key, value, ttl=None):
        await self.with_retry(lambda: self.client.set(key, value, ex=ttl))

    async def clear_expired_cache(self, prefix=None):
        """Delete cache keys under ``scan_prefix + prefix``.

        Redis already drops entries whose TTL ran out, so this removes the whole matching
        range. The number of deleted keys is not reported.
        """
        pattern = f"{self.scan_prefix}{prefix or ''}*"
        keys = await self.with_retry(lambda: self.client.keys(pattern))
        if keys:
            await self.with_retry(lambda: self.client.delete(*keys))
        logger.debug(f"Cleared keys matching {pattern}")

    async def close(self):
        await self.client.aclose()


class LocalStore:
    """
    A simple in-process key store, the last-resort source for cache statistics.

    Values are kept as given. ``get`` returns None for missing keys rather than raising.
    """

    def __init__(self, initial=None):
        self._items = dict(initial or {})

    def get(self, key):
        return self._items.get(key)

    def set(self, key, value):
        self._items[key] = value

    def remove(self, key):
        self._items.pop(key, None)

    def list_keys(self):
        return list(self._items)

    def clear(self):
        self._items.clear()

    def __len__(self):
        return len(self._items)

    def __contains__(self, key):
        return key in self._items
