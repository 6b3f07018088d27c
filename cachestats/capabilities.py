"""
.. module:: capabilities
   :synopsis: Detect which calling convention a storage handle supports

Storage handles come from an external façade and are never a closed type. Detection
only looks for callable attributes; it does not call or await anything. The result is
one of three conventions (or the :class:`Unsupported` sentinel), all sharing the
``list_keys`` / ``get_values`` / ``delete_by_prefix`` interface.

"""

import inspect

from cachestats.config import KVROCKS, LOCALSTORAGE, REDIS, UPSTASH, CacheStatsConfig
from cachestats.exceptions import UnsupportedOperationError
from cachestats.logging import get_logger

logger = get_logger("capabilities")


def _method(obj, name):
    """Return ``obj.name`` if it is callable, else None."""
    if obj is None:
        return None
    attr = getattr(obj, name, None)
    return attr if callable(attr) else None


async def maybe_await(result):
    """Await ``result`` if a client handed back an awaitable, otherwise return it as is."""
    if inspect.isawaitable(result):
        return await result
    return result


def _decode_keys(keys):
    return [k.decode("utf-8") if isinstance(k, bytes | bytearray) else k for k in keys or []]


async def fetch_each(keys, fetch):
    """Fetch values one key at a time, substituting None for keys whose fetch fails.

    Requests are issued sequentially so a backend without a documented concurrency
    limit only ever sees one in-flight read from this loop.
    """
    values = []
    for key in keys:
        try:
            values.append(await maybe_await(fetch(key)))
        except Exception as e:
            logger.warning(f"Failed to fetch cache key {key}: {e}")
            values.append(None)
    return values


class Convention:
    """Shared interface of every calling convention.

    Subclasses override :meth:`supports` and whichever primitives the handle exposes.
    Deletion always goes through the façade's ``clear_expired_cache`` primitive.
    """

    kind = None
    can_enumerate = False

    def __init__(self, storage):
        self.storage = storage

    @classmethod
    def supports(cls, storage):
        raise NotImplementedError

    async def list_keys(self, pattern):
        raise UnsupportedOperationError("list_keys", self.storage)

    async def get_values(self, keys):
        raise UnsupportedOperationError("get_values", self.storage)

    async def delete_by_prefix(self, prefix=None):
        clear = _method(self.storage, "clear_expired_cache")
        if clear is None:
            raise UnsupportedOperationError("clear_expired_cache", self.storage)
        if prefix is None:
            await maybe_await(clear())
        else:
            await maybe_await(clear(prefix))

    def __repr__(self):
        return f"{type(self).__name__}(storage={type(self.storage).__name__})"


class BatchConvention(Convention):
    """Clustered engine behind a retrying wrapper: ``storage.client`` plus ``storage.with_retry``."""

    kind = "clustered-retrying"
    can_enumerate = True

    @classmethod
    def supports(cls, storage):
        return _method(getattr(storage, "client", None), "keys") is not None

    @property
    def client(self):
        return self.storage.client

    async def _call(self, operation):
        with_retry = _method(self.storage, "with_retry")
        if with_retry is None:
            return await maybe_await(operation())
        return await maybe_await(with_retry(operation))

    async def list_keys(self, pattern):
        return _decode_keys(await self._call(lambda: self.client.keys(pattern)))

    async def get_values(self, keys):
        mget = _method(self.client, "mget") or _method(self.client, "mGet")
        if mget is not None:
            return list(await self._call(lambda: mget(keys)))

        get = _method(self.client, "get")
        if get is None:
            raise UnsupportedOperationError("get_values", self.storage)
        logger.warning("Client has no mget, fetching cache keys one at a time")
        return await fetch_each(keys, lambda key: self._call(lambda: get(key)))


class ListConvention(Convention):
    """Serverless HTTP client (or a bare Redis client) with ``keys`` at top level."""

    kind = "serverless-http"
    can_enumerate = True

    @classmethod
    def supports(cls, storage):
        return _method(storage, "keys") is not None

    async def list_keys(self, pattern):
        return _decode_keys(await maybe_await(self.storage.keys(pattern)))

    async def get_values(self, keys):
        mget = _method(self.storage, "mget")
        if mget is not None:
            return list(await maybe_await(mget(keys)))

        get = _method(self.storage, "get")
        if get is None:
            raise UnsupportedOperationError("get_values", self.storage)
        logger.warning("Storage has no mget, fetching cache keys one at a time")
        return await fetch_each(keys, get)


class BareGetConvention(Convention):
    """Single-item ``get`` only. Values can be read but the namespace cannot be enumerated."""

    kind = "bare-get"
    can_enumerate = False

    @classmethod
    def supports(cls, storage):
        return _method(storage, "get") is not None

    async def get_values(self, keys):
        return await fetch_each(keys, self.storage.get)


class Unsupported(Convention):
    """Sentinel for handles that expose none of the recognised conventions."""

    kind = "unsupported"
    can_enumerate = False

    @classmethod
    def supports(cls, storage):
        return True


DEFAULT_STRATEGIES = (BatchConvention, ListConvention, BareGetConvention)

PREFERRED_CONVENTION = {
    REDIS: BatchConvention,
    KVROCKS: BatchConvention,
    UPSTASH: ListConvention,
    LOCALSTORAGE: BareGetConvention,
}


def strategy_order(config=None):
    """Order in which conventions are probed.

    The convention matching ``config.storage_type`` goes first, the rest keep the default
    batch, list, bare-get order.
    """
    config = config if config is not None else CacheStatsConfig()
    preferred = PREFERRED_CONVENTION[config.storage_type]
    return (preferred,) + tuple(s for s in DEFAULT_STRATEGIES if s is not preferred)


def resolve_capability(storage, config=None):
    """Pick the first convention in :func:`strategy_order` that ``storage`` supports.

    Args:
        storage: Opaque storage handle, borrowed for this call only.
        config (Optional[CacheStatsConfig]): Supplies the preferred backend kind.

    Returns:
        Convention: A convention bound to ``storage``, or :class:`Unsupported` when no
        convention matches. Never raises for an unrecognised handle.
    """
    if storage is None:
        logger.warning("No storage handle available")
        return Unsupported(storage)

    for strategy in strategy_order(config):
        try:
            supported = strategy.supports(storage)
        except Exception as e:
            logger.warning(f"Cannot inspect storage {type(storage).__name__}: {e}")
            return Unsupported(storage)
        if supported:
            logger.debug(f"Storage {type(storage).__name__} resolved to {strategy.__name__}")
            return strategy(storage)

    logger.warning(f"Storage {type(storage).__name__} exposes no supported key-value API")
    return Unsupported(storage)
