"""
.. module:: stats
   :synopsis: Cache key classification and per-category aggregation

"""

from collections import namedtuple
from datetime import datetime, timezone
from types import MappingProxyType

from pandas import DataFrame

PRIMARY_SOURCE = "primary-backend"
FALLBACK_SOURCE = "fallback-local-store"


class Category:
    """A kind of cache entry recognised by its key suffix.

    Args:
        name (str): Category label used in reports.
        prefixes (tuple[str]): Suffix prefixes that select this category.
        exact (tuple[str]): Legacy key names matched literally.
        track_types (bool): Whether the second ``-`` segment is tallied as a sub-type.
        mirror_local (bool): Whether eviction also clears matching keys from the local store.
    """

    def __init__(self, name, prefixes, exact=(), track_types=False, mirror_local=False):
        self.name = name
        self.prefixes = tuple(prefixes)
        self.exact = tuple(exact)
        self.track_types = track_types
        self.mirror_local = mirror_local

    def matches(self, key):
        return key in self.exact or key.startswith(self.prefixes)

    @property
    def eviction_prefixes(self):
        return self.prefixes + self.exact

    def __repr__(self):
        return f"Category({self.name!r})"


DOUBAN = Category("douban", ("douban-",), track_types=True)
DANMU = Category("danmu", ("danmu-cache",), exact=("lunatv_danmu_cache",))
NETDISK = Category("netdisk", ("netdisk-search",), mirror_local=True)

# evaluation order matters: first match wins
CATEGORIES = (DOUBAN, DANMU, NETDISK)
CATEGORY_NAMES = tuple(c.name for c in CATEGORIES)


def get_category(name):
    for category in CATEGORIES:
        if category.name == name:
            return category
    raise ValueError(f"Unknown cache category '{name}', expected one of {', '.join(CATEGORY_NAMES)}")


def classify(key):
    """Return the :class:`Category` for a key suffix, or None if no rule matches."""
    for category in CATEGORIES:
        if category.matches(key):
            return category
    return None


def sub_type(key):
    parts = key.split("-")
    return parts[1] if len(parts) > 1 else ""


def value_size(value):
    """Size of a cached value in bytes (UTF-8 for text)."""
    if isinstance(value, bytes | bytearray | memoryview):
        return len(value)
    if not isinstance(value, str):
        value = str(value)
    return len(value.encode("utf-8"))


class CategoryStats:
    """Running count and byte total for one category."""

    def __init__(self, track_types=False):
        self.count = 0
        self.size = 0
        self.types = {} if track_types else None

    def add(self, size, type_label=None):
        self.count += 1
        self.size += size
        if self.types is not None and type_label is not None:
            self.types[type_label] = self.types.get(type_label, 0) + 1

    def to_dict(self):
        d = {"count": self.count, "size": self.size}
        if self.types is not None:
            d["types"] = dict(self.types)
        return d


class AggregateStats:
    """Per-category accumulators plus the element-wise total.

    Every call to :func:`aggregate` builds a fresh instance; nothing is shared between calls.
    """

    def __init__(self):
        self.categories = {c.name: CategoryStats(track_types=c.track_types) for c in CATEGORIES}
        self.total = CategoryStats()

    def __getitem__(self, name):
        if name == "total":
            return self.total
        return self.categories[name]

    def record(self, key, value):
        """Count ``value`` under the category of ``key``.

        Returns:
            bool: False when the value is missing or the key matches no category.
        """
        if not value:
            return False
        category = classify(key)
        if category is None:
            return False

        size = value_size(value)
        type_label = sub_type(key) if category.track_types else None
        self.categories[category.name].add(size, type_label)
        self.total.add(size)
        return True

    def to_dict(self):
        d = {name: stats.to_dict() for name, stats in self.categories.items()}
        d["total"] = self.total.to_dict()
        return d


def aggregate(pairs, strip_prefix=""):
    """Classify ``(key, value)`` pairs and sum them per category.

    Args:
        pairs: Iterable of ``(key, value)``. ``value`` is None for keys that could not be read.
        strip_prefix (str): Namespace prefix removed before classification. Keys without it
            are ignored.

    Returns:
        AggregateStats
    """
    stats = AggregateStats()
    for key, value in pairs:
        if strip_prefix:
            if not key.startswith(strip_prefix):
                continue
            key = key[len(strip_prefix) :]
        stats.record(key, value)
    return stats


CategorySummary = namedtuple("CategorySummary", ["count", "size", "types"])


def _summary(stats):
    types = MappingProxyType(dict(stats.types)) if stats.types is not None else None
    return CategorySummary(stats.count, stats.size, types)


class StatsReport:
    """Immutable snapshot of cache statistics and where they came from.

    Attributes:
        douban, danmu, netdisk, total (CategorySummary): ``count``, ``size`` and, for douban,
            a read-only ``types`` mapping.
        timestamp (datetime): UTC time the report was built.
        source (str): ``primary-backend`` or ``fallback-local-store``.
        note (str): Human-readable provenance.
    """

    __slots__ = ("_categories", "_total", "_timestamp", "_source", "_note")

    def __init__(self, stats, source, note="", timestamp=None):
        object.__setattr__(self, "_categories", {name: _summary(s) for name, s in stats.categories.items()})
        object.__setattr__(self, "_total", _summary(stats.total))
        object.__setattr__(self, "_timestamp", timestamp or datetime.now(timezone.utc))
        object.__setattr__(self, "_source", source)
        object.__setattr__(self, "_note", note)

    def __setattr__(self, name, value):
        raise AttributeError("StatsReport is immutable")

    def __delattr__(self, name):
        raise AttributeError("StatsReport is immutable")

    @classmethod
    def empty(cls, source, note=""):
        return cls(AggregateStats(), source, note=note)

    @property
    def douban(self):
        return self._categories["douban"]

    @property
    def danmu(self):
        return self._categories["danmu"]

    @property
    def netdisk(self):
        return self._categories["netdisk"]

    @property
    def total(self):
        return self._total

    @property
    def timestamp(self):
        return self._timestamp

    @property
    def source(self):
        return self._source

    @property
    def note(self):
        return self._note

    @property
    def categories(self):
        return MappingProxyType(self._categories)

    def to_dict(self):
        """Plain-dict form, suitable for JSON responses."""
        d = {}
        for name, summary in self._categories.items():
            d[name] = {"count": summary.count, "size": summary.size}
            if summary.types is not None:
                d[name]["types"] = dict(summary.types)
        d["total"] = {"count": self._total.count, "size": self._total.size}
        d["timestamp"] = self._timestamp.isoformat()
        d["source"] = self._source
        d["note"] = self._note
        return d

    def to_dataframe(self):
        """Counts and sizes as a DataFrame indexed by category, with a trailing ``total`` row."""
        rows = [(name, s.count, s.size) for name, s in self._categories.items()]
        rows.append(("total", self._total.count, self._total.size))
        df = DataFrame(rows, columns=["category", "count", "size"])
        df = df.set_index("category")
        df.attrs["source"] = self._source
        return df

    def __repr__(self):
        return (
            f"StatsReport(source={self._source!r}, total_count={self._total.count}, "
            f"total_size={self._total.size}, timestamp={self._timestamp.isoformat()!r})"
        )
