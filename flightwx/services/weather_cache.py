"""In-process TTL cache for normalised weather readings."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from flightwx.domain.models import Coordinate, WeatherReading

logger = logging.getLogger(__name__)

CacheKey = tuple[float, float, str, Optional[str]]


@dataclass(frozen=True)
class _CacheEntry:
    reading: WeatherReading
    stored_at: float


def _forecast_bucket(at: Optional[datetime]) -> Optional[str]:
    if at is None:
        return None
    return at.strftime("%Y-%m-%dT%H")


def make_key(coordinate: Coordinate, provider: str, at: Optional[datetime] = None) -> CacheKey:
    """Coordinates are rounded to 0.01 degrees (roughly 1 km)."""

    return (
        round(coordinate.latitude, 2),
        round(coordinate.longitude, 2),
        provider,
        _forecast_bucket(at),
    )


class WeatherCache:
    """Thread-safe cache bounded by TTL and entry count.

    When the bound is exceeded the entry with the oldest timestamp is
    evicted first.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[CacheKey, _CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_fresh(self, entry: _CacheEntry, now: float) -> bool:
        return now - entry.stored_at < self.ttl_seconds

    def get(
        self,
        coordinate: Coordinate,
        provider: str,
        at: Optional[datetime] = None,
    ) -> Optional[WeatherReading]:
        key = make_key(coordinate, provider, at)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not self._is_fresh(entry, self._clock()):
                del self._entries[key]
                return None
            return entry.reading

    def get_any(
        self,
        coordinate: Coordinate,
        providers: Sequence[str],
        at: Optional[datetime] = None,
    ) -> Optional[WeatherReading]:
        """First fresh reading for the coordinate, in provider priority order."""

        for provider in providers:
            reading = self.get(coordinate, provider, at)
            if reading is not None:
                return reading
        return None

    def set(
        self,
        coordinate: Coordinate,
        provider: str,
        reading: WeatherReading,
        at: Optional[datetime] = None,
    ) -> None:
        key = make_key(coordinate, provider, at)
        with self._lock:
            self._entries[key] = _CacheEntry(reading=reading, stored_at=self._clock())
            while len(self._entries) > self.max_entries:
                oldest_key = min(self._entries, key=lambda k: self._entries[k].stored_at)
                del self._entries[oldest_key]

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""

        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if not self._is_fresh(entry, now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Purged %d expired weather cache entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


__all__ = ["CacheKey", "WeatherCache", "make_key"]
