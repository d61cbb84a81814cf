"""
Cache for directory listings produced by list_files()
"""

import asyncio
import os
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from .config import FilterOptions
from .traverser import list_files
from codemerge.utils import get_logger

logger = get_logger(__name__)


@dataclass
class TreeCacheEntry:
    files: List[str]
    stored_at: float
    root_mtime: float


class TreeCache:
    """
    Caches file listings keyed by (absolute root, filter options).

    Entries expire after ``ttl`` seconds or when the root directory's
    modification time advances. Only the root's own mtime is tracked, so a
    change deep in the tree is picked up when the entry expires.
    """

    def __init__(self,
                 max_entries: int = 50,
                 ttl: float = 60.0,
                 clock: Callable[[], float] = time.time):
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self.max_entries = max_entries
        self.ttl = ttl
        self._clock = clock
        self._entries: "OrderedDict[Tuple[str, str], TreeCacheEntry]" = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def make_key(root: Union[str, Path], options: Optional[FilterOptions]) -> Tuple[str, str]:
        options = options or FilterOptions()
        return os.path.abspath(os.fspath(root)), options.cache_key()

    async def get(self, root: Union[str, Path], options: Optional[FilterOptions] = None) -> Optional[List[str]]:
        """
        Get a cached listing.

        Returns:
            A copy of the cached file list, or None on a miss
        """
        key = self.make_key(root, options)
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if self._clock() - entry.stored_at < self.ttl:
            try:
                stat_result = await asyncio.to_thread(os.stat, key[0])
            except OSError:
                self._hits += 1
                return list(entry.files)
            if stat_result.st_mtime <= entry.root_mtime and self._entries.get(key) is entry:
                self._hits += 1
                return list(entry.files)

        if self._entries.get(key) is entry:
            del self._entries[key]
            self._evictions += 1
        self._misses += 1
        return None

    async def set(self, root: Union[str, Path], options: Optional[FilterOptions], files: List[str]):
        """Store a listing, stamping it with the root directory's mtime"""
        key = self.make_key(root, options)
        try:
            root_mtime = (await asyncio.to_thread(os.stat, key[0])).st_mtime
        except OSError:
            root_mtime = self._clock()

        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_entries:
            self._entries.popitem(last=False)
            self._evictions += 1

        self._entries[key] = TreeCacheEntry(list(files), self._clock(), root_mtime)

    def invalidate(self, root: Optional[Union[str, Path]] = None, options: Optional[FilterOptions] = None):
        """
        Remove cached listings.

        With root and options, drops that one entry; with root only, every
        entry for that root; with neither, everything.
        """
        if root is None:
            self._entries.clear()
            return

        if options is not None:
            self._entries.pop(self.make_key(root, options), None)
            return

        root_key = os.path.abspath(os.fspath(root))
        for key in [k for k in self._entries if k[0] == root_key]:
            del self._entries[key]

    def get_stats(self) -> Dict[str, Union[int, float]]:
        total = self._hits + self._misses
        return {
            'size': len(self._entries),
            'max_entries': self.max_entries,
            'hits': self._hits,
            'misses': self._misses,
            'evictions': self._evictions,
            'hit_rate': self._hits / total if total else 0.0,
        }


async def cached_list_files(root: Union[str, Path],
                            options: Optional[FilterOptions] = None,
                            cache: Optional[TreeCache] = None) -> List[str]:
    """list_files() through an optional TreeCache"""
    if cache is None:
        return await list_files(root, options)

    files = await cache.get(root, options)
    if files is not None:
        logger.debug(f"Tree cache hit for {root}")
        return files

    files = await list_files(root, options)
    await cache.set(root, options, files)
    return files
