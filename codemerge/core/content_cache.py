"""
Content cache for file reads, validated by age and source modification time
"""

import asyncio
import os
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional, Tuple, Union

from codemerge.utils import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]
Loader = Callable[[str], Awaitable[Tuple[str, float]]]


@dataclass
class CacheEntry:
    """One cached file body"""
    content: str
    stored_at: float
    source_mtime: float
    size_bytes: int


def make_key(path: PathLike) -> str:
    """Derive the cache key from the absolute, normalized path"""
    return os.path.abspath(os.fspath(path)).replace('\\', '/')


class ContentCache:
    """
    Bounded cache mapping absolute path -> file content.

    Eviction is by insertion order: when full, the oldest inserted entry goes,
    regardless of how recently it was read. An entry is served only while it
    is younger than ``ttl`` and its file has not been modified since it was
    stored. If the file cannot be stat'ed during validation the cached
    content is served anyway.

    Not a singleton: create one per tool or invocation and reuse it across
    calls within that lifetime.
    """

    def __init__(self,
                 max_entries: int = 500,
                 ttl: float = 600.0,
                 clock: Callable[[], float] = time.time):
        """
        Args:
            max_entries: Maximum number of cached files
            ttl: Maximum entry age in seconds
            clock: Wall-clock source (injectable for tests)
        """
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")

        self.max_entries = max_entries
        self.ttl = ttl
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._bytes_stored = 0
        self.reset_stats()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: PathLike) -> bool:
        return make_key(path) in self._entries

    async def get(self, path: PathLike) -> Optional[str]:
        """
        Get cached content for a file.

        Args:
            path: File path (made absolute for the key)

        Returns:
            Cached content, or None on a miss
        """
        key = make_key(path)
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if self._clock() - entry.stored_at >= self.ttl:
            logger.trace(f"Cache entry expired: {key}")
            self._drop(key, entry)
            self._misses += 1
            return None

        try:
            stat_result = await asyncio.to_thread(os.stat, key)
        except OSError as e:
            # File cannot be stat'ed: serve the cached content
            logger.debug(f"Cache validation stat failed for {key}, serving cached content: {e}")
            self._hits += 1
            return entry.content

        if self._entries.get(key) is not entry:
            # Replaced or invalidated while we were waiting on stat
            self._misses += 1
            return None

        if stat_result.st_mtime <= entry.source_mtime:
            self._hits += 1
            return entry.content

        logger.trace(f"Cache entry stale (file modified): {key}")
        self._drop(key, entry)
        self._misses += 1
        return None

    def set(self,
            path: PathLike,
            content: str,
            source_mtime: float,
            size_bytes: Optional[int] = None):
        """
        Store content read from a file.

        Args:
            path: File path the content was read from
            content: Decoded file content
            source_mtime: File modification time observed with the read
            size_bytes: Size accounted for this entry (defaults to len(content))
        """
        entry = CacheEntry(
            content=content,
            stored_at=self._clock(),
            source_mtime=source_mtime,
            size_bytes=len(content) if size_bytes is None else size_bytes,
        )
        self.set_entry(path, entry)

    def set_entry(self, path: PathLike, entry: CacheEntry):
        """Store a prepared entry, evicting the oldest insertion if full"""
        key = make_key(path)

        existing = self._entries.pop(key, None)
        if existing is not None:
            self._bytes_stored -= existing.size_bytes
        elif len(self._entries) >= self.max_entries:
            oldest_key, oldest = next(iter(self._entries.items()))
            self._drop(oldest_key, oldest)

        self._entries[key] = entry
        self._bytes_stored += entry.size_bytes

    async def get_or_load(self, path: PathLike, loader: Loader) -> str:
        """
        Return cached content, or load it and store the result.

        Args:
            path: File path
            loader: Coroutine function returning (content, mtime) for a key

        Returns:
            File content
        """
        content = await self.get(path)
        if content is not None:
            return content

        key = make_key(path)
        content, mtime = await loader(key)
        self.set(key, content, mtime)
        return content

    def invalidate(self, path: Optional[PathLike] = None):
        """
        Remove one entry, or everything when no path is given.

        Hit/miss/eviction counters are left untouched; use reset_stats().
        """
        if path is None:
            self._entries.clear()
            self._bytes_stored = 0
            return

        entry = self._entries.pop(make_key(path), None)
        if entry is not None:
            self._bytes_stored -= entry.size_bytes

    def get_stats(self) -> Dict[str, Union[int, float]]:
        """Get cache statistics"""
        total = self._hits + self._misses
        return {
            'size': len(self._entries),
            'max_entries': self.max_entries,
            'hits': self._hits,
            'misses': self._misses,
            'evictions': self._evictions,
            'hit_rate': self._hits / total if total else 0.0,
            'bytes_stored': self._bytes_stored,
            'bytes_stored_mb': round(self._bytes_stored / 1024 / 1024, 2),
        }

    def reset_stats(self):
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def _drop(self, key: str, entry: CacheEntry):
        del self._entries[key]
        self._bytes_stored -= entry.size_bytes
        self._evictions += 1
