#!/usr/bin/env python3
"""
Tests for ReadPipeline and the read helpers
"""

import logging
import os

import pytest

from codemerge.core.concurrency import ConcurrencyLimiter
from codemerge.core.config import PipelineConfig, ReadOptions
from codemerge.core.content_cache import ContentCache
from codemerge.core.errors import (
    InvalidArgumentError,
    PathNotDirectoryError,
    PathNotFileError,
    PathNotFoundError,
)
from codemerge.core.read_pipeline import (
    ReadPipeline,
    resolve_under_root,
    read_file_chunked,
    read_many,
    read_small_file,
    smart_read_file,
)
from codemerge.core.traverser import list_files


@pytest.mark.asyncio
async def test_missing_file_yields_empty_mapping(tmp_path):
    assert await read_many(["missing.txt"], tmp_path, ReadOptions()) == {}


@pytest.mark.asyncio
async def test_reads_listed_files(tmp_path):
    (tmp_path / 'src').mkdir()
    (tmp_path / 'src' / 'main.js').write_text('console.log(1);\n')
    (tmp_path / 'README.md').write_text('# readme\n')

    files = sorted(await list_files(tmp_path))
    contents = await read_many(files, tmp_path)

    assert contents == {
        'README.md': '# readme\n',
        'src/main.js': 'console.log(1);\n',
    }


@pytest.mark.asyncio
async def test_failures_are_omitted_and_logged(tmp_path, caplog):
    for i in range(5):
        (tmp_path / f'f{i}.txt').write_text(str(i))
    (tmp_path / 'bad.txt').write_bytes(b'\xff\xfe invalid utf-8')
    (tmp_path / 'subdir').mkdir()

    paths = [f'f{i}.txt' for i in range(5)] + ['bad.txt', 'subdir', 'missing.txt']
    with caplog.at_level(logging.WARNING):
        contents = await read_many(paths, tmp_path)

    assert list(contents) == [f'f{i}.txt' for i in range(5)]
    warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 3


@pytest.mark.asyncio
async def test_keys_are_normalized(tmp_path):
    (tmp_path / 'a').mkdir()
    (tmp_path / 'a' / 'b.txt').write_text('b')

    contents = await read_many(['./a/b.txt'], tmp_path)

    assert contents == {'a/b.txt': 'b'}


@pytest.mark.asyncio
async def test_paths_outside_root_are_skipped(tmp_path, caplog):
    root = tmp_path / 'project'
    (root / 'src').mkdir(parents=True)
    (root / 'src' / 'main.js').write_text('main')
    (tmp_path / 'secret.txt').write_text('secret')

    paths = ['../secret.txt', 'src/../../secret.txt', 'src/../src/main.js']
    with caplog.at_level(logging.WARNING):
        contents = await read_many(paths, root)

    assert list(contents.values()) == ['main']
    assert 'secret' not in contents.values()
    warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 2
    assert all(': outside ' in message for message in warnings)


@pytest.mark.asyncio
async def test_invalid_root(tmp_path):
    with pytest.raises(PathNotFoundError):
        await read_many(['a.txt'], tmp_path / 'nope')

    target = tmp_path / 'file.txt'
    target.write_text('x')
    with pytest.raises(PathNotDirectoryError):
        await read_many(['a.txt'], target)


@pytest.mark.asyncio
async def test_invalid_paths_argument(tmp_path):
    with pytest.raises(InvalidArgumentError):
        await read_many('a.txt', tmp_path)
    with pytest.raises(InvalidArgumentError):
        await read_many([1, 2], tmp_path)


@pytest.mark.asyncio
async def test_large_file_is_read_in_chunks(tmp_path):
    """Multi-byte characters straddling chunk boundaries decode intact"""
    text = 'héllo wörld ✓ ' * 50
    (tmp_path / 'big.txt').write_text(text, encoding='utf-8')
    config = PipelineConfig(large_file_threshold=64, chunk_size=7)

    pipeline = ReadPipeline(config=config)
    contents = await pipeline.read_all(['big.txt'], tmp_path)

    assert contents['big.txt'] == text


@pytest.mark.asyncio
async def test_cache_is_used_across_calls(tmp_path):
    (tmp_path / 'a.txt').write_text('a')
    cache = ContentCache()
    pipeline = ReadPipeline(cache=cache)

    await pipeline.read_all(['a.txt'], tmp_path)
    await pipeline.read_all(['a.txt'], tmp_path)

    stats = cache.get_stats()
    assert stats['hits'] == 1
    assert stats['misses'] == 1


@pytest.mark.asyncio
async def test_cache_can_be_disabled(tmp_path):
    (tmp_path / 'a.txt').write_text('a')
    cache = ContentCache()
    pipeline = ReadPipeline(cache=cache)

    await pipeline.read_all(['a.txt'], tmp_path, ReadOptions(use_cache=False))

    assert len(cache) == 0


@pytest.mark.asyncio
async def test_modified_file_is_reread(tmp_path):
    target = tmp_path / 'a.txt'
    target.write_text('v1')
    os.utime(target, (1_000_000, 1_000_000))
    pipeline = ReadPipeline()
    assert await pipeline.read_all(['a.txt'], tmp_path) == {'a.txt': 'v1'}

    target.write_text('v2')
    os.utime(target, (1_000_100, 1_000_100))

    assert await pipeline.read_all(['a.txt'], tmp_path) == {'a.txt': 'v2'}


@pytest.mark.asyncio
async def test_progress_and_injected_limiter(tmp_path):
    for i in range(6):
        (tmp_path / f'{i}.txt').write_text(str(i))
    events = []
    limiter = ConcurrencyLimiter(concurrency=2)
    pipeline = ReadPipeline(limiter=limiter)

    contents = await pipeline.read_all(
        [f'{i}.txt' for i in range(6)],
        tmp_path,
        ReadOptions(progress_callback=events.append),
    )

    assert len(contents) == 6
    assert [e.completed for e in events] == list(range(1, 7))
    assert limiter.get_stats()['total'] == 6


def test_read_helpers(tmp_path):
    target = tmp_path / 'crlf.txt'
    target.write_bytes(b'line1\r\nline2\r\n')

    assert read_small_file(target) == 'line1\r\nline2\r\n'
    assert read_file_chunked(target, chunk_size=3) == 'line1\r\nline2\r\n'

    content, mtime = smart_read_file(target, large_file_threshold=4, chunk_size=2)
    assert content == 'line1\r\nline2\r\n'
    assert mtime == target.stat().st_mtime


def test_smart_read_rejects_directories(tmp_path):
    with pytest.raises(PathNotFileError):
        smart_read_file(tmp_path)


def test_resolve_under_root(tmp_path):
    assert resolve_under_root(tmp_path, 'a/b.txt') == tmp_path / 'a' / 'b.txt'
    assert resolve_under_root(tmp_path, 'a/../b.txt') == tmp_path / 'b.txt'
    assert resolve_under_root(tmp_path, '../b.txt') is None
    assert resolve_under_root(tmp_path, '/etc/passwd') is None
