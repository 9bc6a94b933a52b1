"""
CacheEngine - In-process async cache engine with named segments and TTL.

Features:
- Named segments, each provisioned at most once per engine
- TTL (Time To Live) per entry, enforced by the engine
- Values deep-copied in and out so callers cannot mutate cached data
- Thread-safe async operations
"""

import asyncio
import copy
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from loguru import logger

from portal.services.errors import SegmentAlreadyProvisionedError


@dataclass
class CacheEntry:
    """A single cache entry with metadata."""

    value: Any
    stored: datetime
    ttl: timedelta

    def is_expired(self) -> bool:
        """Check if entry is past its TTL."""
        return datetime.now() > self.stored + self.ttl

    def remaining(self) -> timedelta:
        return max(self.stored + self.ttl - datetime.now(), timedelta(0))


@dataclass
class CachedItem:
    """Envelope returned by CacheSegment.get()."""

    item: Any
    stored: datetime
    ttl: timedelta


class CacheSegment:
    """
    A named partition of the engine with a default expiry.

    Usage:
        segment = engine.provision("areas", expires_in=timedelta(hours=1))

        cached = await segment.get("areas")
        if cached is None:
            await segment.set("areas", data)
    """

    def __init__(self, engine: "CacheEngine", name: str, expires_in: timedelta):
        self._engine = engine
        self.name = name
        self.expires_in = expires_in
        self._memory: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> CachedItem | None:
        """Get a value. Returns None on miss or expiry."""
        async with self._engine._lock:
            entry = self._memory.get(key)
            if entry is None:
                self._engine._stats.misses += 1
                self._log(f"MISS: {key}")
                return None

            if entry.is_expired():
                del self._memory[key]
                self._engine._stats.misses += 1
                self._engine._stats.evictions += 1
                self._log(f"EXPIRED: {key}")
                return None

            self._engine._stats.hits += 1
            self._log(f"HIT: {key}")
            return CachedItem(
                item=copy.deepcopy(entry.value),
                stored=entry.stored,
                ttl=entry.remaining(),
            )

    async def set(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        """
        Set value in the segment.

        Args:
            key: Cache key
            value: Data to cache
            ttl: Time to live (uses the segment expiry if not specified)
        """
        ttl = ttl or self.expires_in
        entry = CacheEntry(value=copy.deepcopy(value), stored=datetime.now(), ttl=ttl)

        async with self._engine._lock:
            self._memory[key] = entry
            self._engine._stats.sets += 1
            self._log(f"SET: {key} (TTL: {ttl.total_seconds()}s)")

    async def drop(self, key: str) -> bool:
        """Delete a specific key from the segment."""
        async with self._engine._lock:
            if key in self._memory:
                del self._memory[key]
                self._log(f"DROP: {key}")
                return True
            return False

    async def drop_prefix(self, prefix: str) -> int:
        """
        Delete every key starting with prefix.

        Returns:
            Number of entries dropped
        """
        async with self._engine._lock:
            keys = [k for k in self._memory if k.startswith(prefix)]
            for key in keys:
                del self._memory[key]
            if keys:
                self._log(f"DROP: {len(keys)} entries matching '{prefix}*'")
            return len(keys)

    async def clear(self) -> int:
        """Clear all entries of the segment. Returns count of removed entries."""
        async with self._engine._lock:
            count = len(self._memory)
            self._memory.clear()
            self._log(f"CLEAR: {count} entries removed")
            return count

    def _purge_expired(self) -> int:
        expired_keys = [k for k, v in self._memory.items() if v.is_expired()]
        for key in expired_keys:
            del self._memory[key]
        return len(expired_keys)

    def __len__(self) -> int:
        return len(self._memory)

    def _log(self, message: str) -> None:
        self._engine._log(f"[{self.name}] {message}")


class CacheEngine:
    """
    Async cache engine hosting named segments.

    A segment can only be provisioned once; a second attempt raises
    SegmentAlreadyProvisionedError.
    """

    def __init__(self, name: str = "memory", debug: bool = False):
        self.name = name
        self._segments: dict[str, CacheSegment] = {}
        self._debug = debug
        self._lock = asyncio.Lock()
        self._stats = CacheStats()

    def provision(self, segment: str, expires_in: timedelta) -> CacheSegment:
        """Create a named segment with a default expiry."""
        if segment in self._segments:
            raise SegmentAlreadyProvisionedError(segment)

        cache_segment = CacheSegment(self, segment, expires_in)
        self._segments[segment] = cache_segment
        self._log(
            f"PROVISION: {segment} (expires in {expires_in.total_seconds()}s)"
        )
        return cache_segment

    def has_segment(self, segment: str) -> bool:
        return segment in self._segments

    async def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        async with self._lock:
            removed = sum(s._purge_expired() for s in self._segments.values())
            if removed:
                self._stats.evictions += removed
                self._log(f"CLEANUP: {removed} expired entries removed")
            return removed

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = sum(len(s) for s in self._segments.values())
        self._stats.segments = len(self._segments)
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[CacheEngine:{self.name}] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    evictions: int = 0
    size: int = 0
    segments: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "evictions": self.evictions,
            "size": self.size,
            "segments": self.segments,
            "hit_rate": f"{self.hit_rate:.2%}",
        }


def extract_payload(raw: Any) -> Any:
    """
    Unwrap whatever an engine returned into the stored value.

    Handles an envelope (CachedItem or a mapping with an "item" field), a
    plain value, and array-like mappings keyed "0".."n-1" which become lists.
    """
    if raw is None:
        return None

    if isinstance(raw, CachedItem):
        raw = raw.item
    elif isinstance(raw, dict) and "item" in raw:
        raw = raw["item"]

    if isinstance(raw, dict) and raw and _is_array_like(raw):
        return [raw[str(i)] if str(i) in raw else raw[i] for i in range(len(raw))]

    return raw


def _is_array_like(value: dict) -> bool:
    indexes = set()
    for key in value:
        if isinstance(key, bool):
            return False
        if isinstance(key, int):
            indexes.add(key)
        elif isinstance(key, str) and key.isdigit():
            indexes.add(int(key))
        else:
            return False
    return indexes == set(range(len(value)))
