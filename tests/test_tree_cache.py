#!/usr/bin/env python3
"""
Tests for cached directory listings
"""

import os

import pytest

from codemerge.core.config import FilterOptions
from codemerge.core.tree_cache import TreeCache, cached_list_files


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_cached_listing_hit(tmp_path):
    (tmp_path / 'a.py').write_text('a')
    cache = TreeCache()

    first = await cached_list_files(tmp_path, None, cache)
    second = await cached_list_files(tmp_path, None, cache)

    assert first == second == ['a.py']
    stats = cache.get_stats()
    assert stats['hits'] == 1
    assert stats['misses'] == 1


@pytest.mark.asyncio
async def test_options_are_part_of_the_key(tmp_path):
    (tmp_path / '.git').mkdir()
    (tmp_path / '.git' / 'HEAD').write_text('ref')
    cache = TreeCache()

    default = await cached_list_files(tmp_path, FilterOptions(), cache)
    with_git = await cached_list_files(tmp_path, FilterOptions(exclude_vcs_dir=False), cache)

    assert default == []
    assert with_git == ['.git/HEAD']
    assert cache.get_stats()['size'] == 2


@pytest.mark.asyncio
async def test_root_mtime_change_invalidates(tmp_path):
    (tmp_path / 'a.py').write_text('a')
    os.utime(tmp_path, (1_000_000, 1_000_000))
    cache = TreeCache()
    await cached_list_files(tmp_path, None, cache)

    (tmp_path / 'b.py').write_text('b')
    os.utime(tmp_path, (1_000_100, 1_000_100))

    files = await cached_list_files(tmp_path, None, cache)
    assert sorted(files) == ['a.py', 'b.py']
    assert cache.get_stats()['evictions'] == 1


@pytest.mark.asyncio
async def test_ttl_expiry(tmp_path):
    clock = FakeClock()
    cache = TreeCache(ttl=5, clock=clock)
    await cache.set(tmp_path, None, ['x.py'])

    assert await cache.get(tmp_path) == ['x.py']
    clock.now += 5
    assert await cache.get(tmp_path) is None


@pytest.mark.asyncio
async def test_capacity_eviction(tmp_path):
    cache = TreeCache(max_entries=2)
    roots = []
    for name in ('r1', 'r2', 'r3'):
        root = tmp_path / name
        root.mkdir()
        roots.append(root)
        await cache.set(root, None, [])

    assert cache.get_stats()['size'] == 2
    assert await cache.get(roots[0]) is None
    assert await cache.get(roots[2]) == []


@pytest.mark.asyncio
async def test_invalidate_by_root(tmp_path):
    cache = TreeCache()
    await cache.set(tmp_path, FilterOptions(), ['a'])
    await cache.set(tmp_path, FilterOptions(use_ignore_file=False), ['a', 'b'])

    cache.invalidate(tmp_path, FilterOptions())
    assert cache.get_stats()['size'] == 1

    cache.invalidate(tmp_path)
    assert cache.get_stats()['size'] == 0


@pytest.mark.asyncio
async def test_returned_list_is_a_copy(tmp_path):
    cache = TreeCache()
    await cache.set(tmp_path, None, ['a'])

    files = await cache.get(tmp_path)
    files.append('b')

    assert await cache.get(tmp_path) == ['a']


@pytest.mark.asyncio
async def test_without_cache(tmp_path):
    (tmp_path / 'a.py').write_text('a')
    assert await cached_list_files(tmp_path) == ['a.py']


@pytest.mark.parametrize("kwargs", [{'max_entries': 0}, {'ttl': 0}, {'ttl': -5.0}])
def test_invalid_arguments(kwargs):
    with pytest.raises(ValueError):
        TreeCache(**kwargs)
