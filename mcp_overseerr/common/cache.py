"""In-memory TTL cache for Overseerr API responses."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from .validation import require_positive

logger = logging.getLogger(__name__)

_ValueT = TypeVar("_ValueT")


class CacheCategory(str, Enum):
    """Logical operation a cached value belongs to."""

    SEARCH = "search"
    MEDIA_DETAILS = "mediaDetails"
    REQUESTS = "requests"


DEFAULT_TTLS: dict[CacheCategory, float] = {
    CacheCategory.SEARCH: 300.0,
    CacheCategory.MEDIA_DETAILS: 1800.0,
    CacheCategory.REQUESTS: 60.0,
}


@dataclass(frozen=True)
class CacheSettings:
    """Cache configuration built once at startup."""

    enabled: bool = True
    ttl: Mapping[CacheCategory, float] = field(
        default_factory=lambda: dict(DEFAULT_TTLS)
    )
    max_size: int = 1000

    def __post_init__(self) -> None:
        require_positive(self.max_size, name="max_size")
        for category in CacheCategory:
            require_positive(self.ttl_for(category), name=f"{category.value} ttl")

    def ttl_for(self, category: CacheCategory) -> float:
        return self.ttl.get(category, DEFAULT_TTLS[category])


@dataclass
class CacheEntry(Generic[_ValueT]):
    value: _ValueT
    stored_at: float
    access_count: int = 0


class ResponseCache:
    """Bounded key/value store with per-category TTLs.

    Keys combine the category with a stable JSON serialisation of the
    lookup parameters. When full, the entry read the fewest times is
    evicted; this is frequency based, not recency based. Lookups never
    raise: internal failures are logged and reported as misses.
    """

    def __init__(
        self,
        settings: CacheSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or CacheSettings()
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._hits: dict[CacheCategory, int] = {c: 0 for c in CacheCategory}
        self._misses: dict[CacheCategory, int] = {c: 0 for c in CacheCategory}

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def make_key(category: CacheCategory, params: Any) -> str:
        serialized = json.dumps(
            params, sort_keys=True, separators=(",", ":"), default=str
        )
        return f"{CacheCategory(category).value}:{serialized}"

    def _is_expired(self, category: CacheCategory, entry: CacheEntry[Any]) -> bool:
        return self._clock() - entry.stored_at > self.settings.ttl_for(category)

    def get(self, category: CacheCategory, params: Any) -> Any | None:
        """Return the cached value or ``None`` on a miss."""

        if not self.settings.enabled:
            return None
        try:
            category = CacheCategory(category)
            key = self.make_key(category, params)
            entry = self._entries.get(key)
            if entry is None:
                self._misses[category] += 1
                return None
            if self._is_expired(category, entry):
                del self._entries[key]
                self._misses[category] += 1
                return None
            entry.access_count += 1
            self._hits[category] += 1
            return entry.value
        except Exception as exc:  # noqa: BLE001 - cache failures degrade to a miss
            logger.debug("Cache lookup failed for %s: %s", category, exc, exc_info=exc)
            return None

    def set(self, category: CacheCategory, params: Any, value: Any) -> None:
        """Store *value*, evicting the least used entry when at capacity."""

        if not self.settings.enabled:
            return
        try:
            key = self.make_key(CacheCategory(category), params)
            if key not in self._entries:
                while len(self._entries) >= self.settings.max_size:
                    self._evict_least_used()
            self._entries[key] = CacheEntry(value=value, stored_at=self._clock())
        except Exception as exc:  # noqa: BLE001 - cache failures never propagate
            logger.debug("Cache store failed for %s: %s", category, exc, exc_info=exc)

    def _evict_least_used(self) -> None:
        victim = min(
            self._entries,
            key=lambda key: self._entries[key].access_count,
        )
        del self._entries[victim]
        logger.debug("Evicted cache entry %s", victim)

    def invalidate(self, category: CacheCategory | None = None) -> int:
        """Drop every entry of *category*, or the whole cache when omitted."""

        if category is None:
            removed = len(self._entries)
            self._entries.clear()
            logger.debug("Cleared %d cache entries", removed)
            return removed
        prefix = f"{CacheCategory(category).value}:"
        stale = [key for key in self._entries if key.startswith(prefix)]
        for key in stale:
            del self._entries[key]
        logger.debug("Invalidated %d %s cache entries", len(stale), prefix[:-1])
        return len(stale)

    def purge_expired(self) -> int:
        """Remove expired entries without waiting for them to be read."""

        expired = [
            key
            for key, entry in self._entries.items()
            if self._is_expired(CacheCategory(key.split(":", 1)[0]), entry)
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> dict[str, Any]:
        """Return hit/miss counters per category."""

        categories: dict[str, dict[str, Any]] = {}
        for category in CacheCategory:
            hits = self._hits[category]
            misses = self._misses[category]
            total = hits + misses
            categories[category.value] = {
                "hits": hits,
                "misses": misses,
                "hitRate": f"{hits / total * 100:.1f}%" if total else "0%",
            }
        return {
            "enabled": self.settings.enabled,
            "size": len(self._entries),
            "maxSize": self.settings.max_size,
            "categories": categories,
        }


__all__ = [
    "CacheCategory",
    "CacheEntry",
    "CacheSettings",
    "DEFAULT_TTLS",
    "ResponseCache",
]
