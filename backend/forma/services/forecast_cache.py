"""Forecast cache: memoizes CompleteForecast per (workspace, account).

Entries never expire on their own. Whoever mutates transactions or settings
must invalidate. Each ForecastService owns its cache instance, so tests can
build isolated ones.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone

from forma.services.forecast_types import CacheStats, CompleteForecast, ForecastOptions

logger = logging.getLogger("forma.forecast.cache")

CacheKey = tuple[uuid.UUID, uuid.UUID]


@dataclass(frozen=True)
class ForecastCacheEntry:
    forecast: CompleteForecast
    stored_at: datetime


class ForecastCache(ABC):
    """Abstract forecast cache keyed by (workspace_id, account_id)."""

    @abstractmethod
    def get(
        self,
        workspace_id: uuid.UUID,
        account_id: uuid.UUID,
        options: ForecastOptions | None = None,
    ) -> CompleteForecast | None:
        """Return the cached forecast, or None on a miss.

        With options given, an entry computed for other options is a miss.
        """
        ...

    @abstractmethod
    def set(self, workspace_id: uuid.UUID, account_id: uuid.UUID, forecast: CompleteForecast) -> None:
        ...

    @abstractmethod
    def invalidate(self, workspace_id: uuid.UUID, account_id: uuid.UUID) -> bool:
        """Drop one entry. Returns True if something was removed."""
        ...

    @abstractmethod
    def invalidate_workspace(self, workspace_id: uuid.UUID) -> int:
        """Drop every entry of a workspace. Returns the number removed."""
        ...

    @abstractmethod
    def clear(self) -> int:
        ...

    @abstractmethod
    def stats(self) -> CacheStats:
        ...


class InMemoryForecastCache(ForecastCache):
    """Process-local dict guarded by a lock.

    Every read and write takes the lock, so a reader sees either the old or
    the new entry for a key.
    """

    def __init__(self):
        self._entries: dict[CacheKey, ForecastCacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, workspace_id, account_id, options=None):
        with self._lock:
            entry = self._entries.get((workspace_id, account_id))
            stale = (
                entry is not None
                and options is not None
                and entry.forecast.options != options
            )
            if entry is None or stale:
                self._misses += 1
            else:
                self._hits += 1
        if entry is None:
            logger.debug("cache miss workspace=%s account=%s", workspace_id, account_id)
            return None
        if stale:
            logger.debug(
                "cache miss, entry has different options workspace=%s account=%s",
                workspace_id, account_id,
            )
            return None
        logger.debug("cache hit workspace=%s account=%s", workspace_id, account_id)
        return entry.forecast

    def get_entry(self, workspace_id: uuid.UUID, account_id: uuid.UUID) -> ForecastCacheEntry | None:
        """Peek at an entry without touching hit/miss counters."""
        with self._lock:
            return self._entries.get((workspace_id, account_id))

    def set(self, workspace_id, account_id, forecast):
        entry = ForecastCacheEntry(forecast=forecast, stored_at=datetime.now(timezone.utc))
        with self._lock:
            self._entries[(workspace_id, account_id)] = entry
            size = len(self._entries)
        logger.debug(
            "forecast cached workspace=%s account=%s size=%d",
            workspace_id, account_id, size,
        )

    def invalidate(self, workspace_id, account_id):
        with self._lock:
            removed = self._entries.pop((workspace_id, account_id), None) is not None
        if removed:
            logger.info("cache invalidated workspace=%s account=%s", workspace_id, account_id)
        return removed

    def invalidate_workspace(self, workspace_id):
        with self._lock:
            keys = [key for key in self._entries if key[0] == workspace_id]
            for key in keys:
                del self._entries[key]
        if keys:
            logger.info(
                "workspace cache invalidated workspace=%s entries=%d",
                workspace_id, len(keys),
            )
        return len(keys)

    def clear(self):
        with self._lock:
            size = len(self._entries)
            self._entries.clear()
        if size:
            logger.info("forecast cache cleared entries=%d", size)
        return size

    def stats(self):
        with self._lock:
            total = self._hits + self._misses
            hit_rate = round(self._hits / total * 100) if total else 0
            return CacheStats(
                size=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                hit_rate=hit_rate,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
