class CacheStatsError(Exception):
    """Base class for errors raised inside cachestats."""

    pass


class UnsupportedOperationError(CacheStatsError):
    """The storage handle does not expose the primitive an operation needs."""

    def __init__(self, operation, storage=None):
        self.operation = operation
        self.storage_type = type(storage).__name__ if storage is not None else None
        detail = f" on {self.storage_type}" if self.storage_type else ""
        super().__init__(f"{operation} is not supported{detail}")
