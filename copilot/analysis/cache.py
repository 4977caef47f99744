"""Content-addressed cache for analysis results.

Entries are keyed by a fingerprint of the analyzed data and expire lazily:
an entry older than twice the refresh interval reads as a miss. Nothing is
evicted actively, which is acceptable for a session-lived cache.

Concurrent misses for one fingerprint may both compute; the later write wins.
"""

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)


def hash_code(text: str) -> int:
    """32-bit rolling hash: ``h = h * 31 + ord(ch)`` wrapped to signed 32 bits."""
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    if value & 0x80000000:
        value -= 0x100000000
    return value


def canonical_json(data: Any) -> str:
    """Stable serialization used as hash input."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    elif isinstance(data, list):
        data = [item.model_dump(mode="json") if isinstance(item, BaseModel) else item for item in data]
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def fingerprint(data: Any) -> str:
    """Fingerprint a flow (or list of flows) for use as a cache key."""
    return str(hash_code(canonical_json(data)))


@dataclass(frozen=True)
class CacheEntry:
    fingerprint: str
    data: Any
    timestamp: float


class AnalysisCache:
    """Fingerprint-keyed memo with lazy time-to-live expiry."""

    def __init__(
        self,
        refresh_interval: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            refresh_interval: analysis cadence in seconds; entries live twice as long
            clock: monotonic time source, replaceable in tests
        """
        self.refresh_interval = refresh_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @property
    def ttl(self) -> float:
        return self.refresh_interval * 2

    def get(self, key: str) -> Any | None:
        """Return cached data, or None when absent or stale."""
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("cache miss for %s", key)
            return None
        if self._clock() - entry.timestamp > self.ttl:
            logger.debug("cache entry for %s expired", key)
            return None
        logger.debug("cache hit for %s", key)
        return entry.data

    def put(self, key: str, data: Any) -> None:
        self._entries[key] = CacheEntry(fingerprint=key, data=data, timestamp=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
