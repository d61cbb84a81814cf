#!/usr/bin/env python3
"""
Concurrent, cached reading of many files under one root.

Each path becomes one task in a ConcurrencyLimiter. Small files are read in
a single call; files at or above the large-file threshold are read in fixed
size chunks through an incremental decoder so a single file never needs its
raw bytes and decoded text in memory at once. A file that cannot be read is
left out of the result and logged; only invalid arguments fail the call.
"""

import asyncio
import codecs
import logging
import os
import stat
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .concurrency import ConcurrencyLimiter
from .config import CHUNK_SIZE, LARGE_FILE_THRESHOLD, PipelineConfig, ReadOptions
from .content_cache import ContentCache, make_key
from .errors import InvalidArgumentError, PathNotFileError, ReadFailureError
from .ignore import normalize_relative_path
from .traverser import validate_root
from codemerge.utils import get_logger, log_with_context

logger = get_logger("read-pipeline")


def read_small_file(path: Union[str, Path], encoding: str = "utf-8") -> str:
    """Read a whole file in one operation"""
    with open(path, 'r', encoding=encoding, newline='') as f:
        return f.read()


def read_file_chunked(path: Union[str, Path],
                      chunk_size: int = CHUNK_SIZE,
                      encoding: str = "utf-8") -> str:
    """
    Read a file sequentially in chunks.

    Multi-byte characters split across a chunk boundary are carried over by
    the incremental decoder.
    """
    decoder = codecs.getincrementaldecoder(encoding)()
    parts: List[str] = []
    with open(path, 'rb') as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            parts.append(decoder.decode(chunk))
    parts.append(decoder.decode(b'', final=True))
    return ''.join(parts)


def smart_read_file(path: Union[str, Path],
                    large_file_threshold: int = LARGE_FILE_THRESHOLD,
                    chunk_size: int = CHUNK_SIZE,
                    encoding: str = "utf-8") -> Tuple[str, float]:
    """
    Read a regular file choosing the strategy by its size.

    The file is stat'ed before it is read, so the returned mtime is never
    newer than the content.

    Returns:
        Tuple of (content, modification time)

    Raises:
        PathNotFileError: Path is not a regular file
        OSError, UnicodeDecodeError: Read failures
    """
    stat_result = os.stat(path)
    if not stat.S_ISREG(stat_result.st_mode):
        raise PathNotFileError(f"Path '{path}' is not a file.")

    if stat_result.st_size < large_file_threshold:
        content = read_small_file(path, encoding)
    else:
        logger.debug(f"Reading large file {path} ({stat_result.st_size} bytes) in {chunk_size} byte chunks")
        content = read_file_chunked(path, chunk_size, encoding)

    return content, stat_result.st_mtime


def resolve_under_root(root: Path, relative_path: str) -> Optional[Path]:
    """Join a relative path onto the root; None when the result lies outside it"""
    candidate = Path(os.path.normpath(root / relative_path))
    if candidate != root and root not in candidate.parents:
        return None
    return candidate

class ReadPipeline:
    """
    Reads batches of files through a shared ContentCache and ConcurrencyLimiter.

    A pipeline belongs to one logical caller (a tool, a request); its cache
    is reused across read_all() calls on the same instance.
    """

    def __init__(self,
                 cache: Optional[ContentCache] = None,
                 limiter: Optional[ConcurrencyLimiter] = None,
                 config: Optional[PipelineConfig] = None):
        """
        Args:
            cache: Content cache; one is created from ``config`` when omitted
            limiter: Limiter shared by every read_all() call; when omitted a
                limiter is created per call with the requested concurrency
            config: Pipeline tuning (defaults to PipelineConfig())
        """
        self.config = config or PipelineConfig()
        self.cache = cache if cache is not None else ContentCache(
            max_entries=self.config.cache_max_entries,
            ttl=self.config.cache_ttl,
        )
        self.limiter = limiter

    async def read_file(self, path: Union[str, Path], use_cache: bool = True) -> str:
        """
        Read one file, through the cache when enabled.

        Raises:
            ReadFailureError: The file could not be read or decoded
        """
        if use_cache:
            return await self.cache.get_or_load(path, self._load)
        content, _ = await self._load(make_key(path))
        return content

    async def read_all(self,
                       paths: Sequence[str],
                       root: Union[str, Path],
                       options: Optional[ReadOptions] = None) -> Dict[str, str]:
        """
        Read many files relative to a root.

        Args:
            paths: Relative paths (as returned by list_files)
            root: Directory the paths are relative to
            options: Read options (defaults to ReadOptions())

        Returns:
            Mapping of normalized relative path to content, in input order.
            Paths that failed to read are absent.

        Raises:
            InvalidArgumentError: ``paths`` is not a sequence of strings
            PathNotFoundError, PathNotDirectoryError, AccessDeniedError: Invalid root
        """
        if isinstance(paths, (str, bytes)) or not isinstance(paths, (list, tuple)):
            raise InvalidArgumentError("paths must be a list of strings")
        for path in paths:
            if not isinstance(path, str):
                raise InvalidArgumentError(f"paths must be a list of strings, got {type(path).__name__}")

        options = options or ReadOptions()
        root_path = await validate_root(root)

        if not paths:
            return {}

        limiter = self.limiter
        if limiter is None:
            limiter = ConcurrencyLimiter(
                concurrency=options.concurrency or self.config.concurrency,
                task_timeout=self.config.read_timeout,
            )

        keys: List[str] = []
        targets: List[Path] = []
        failed = 0
        for path in paths:
            key = normalize_relative_path(path)
            target = resolve_under_root(root_path, key)
            if target is None:
                failed += 1
                logger.warning(f"Skipping {key}: outside {root_path}")
                continue
            keys.append(key)
            targets.append(target)

        actions = [
            (lambda p=target: self.read_file(p, use_cache=options.use_cache))
            for target in targets
        ]

        start_time = time.monotonic()
        results = await limiter.run(actions, progress_callback=options.progress_callback)

        contents: Dict[str, str] = {}
        for key, result in zip(keys, results):
            if result.ok:
                contents[key] = result.value
            else:
                failed += 1
                logger.warning(f"Skipping {key}: {result.error}")

        duration = time.monotonic() - start_time
        log_with_context(
            logger, logging.INFO,
            f"Read {len(contents)}/{len(paths)} files from {root_path} in {duration:.2f}s",
            read=len(contents), failed=failed, duration=round(duration, 3),
        )
        if options.use_cache:
            logger.debug(f"Content cache stats: {self.cache.get_stats()}")

        return contents

    async def _load(self, key: str) -> Tuple[str, float]:
        try:
            return await asyncio.to_thread(
                smart_read_file,
                key,
                self.config.large_file_threshold,
                self.config.chunk_size,
                self.config.encoding,
            )
        except (OSError, UnicodeDecodeError, PathNotFileError) as e:
            raise ReadFailureError(key, e) from e


async def read_many(paths: Sequence[str],
                    root: Union[str, Path],
                    options: Optional[ReadOptions] = None,
                    config: Optional[PipelineConfig] = None) -> Dict[str, str]:
    """
    Read files with a fresh pipeline that shares no state with other callers.

    Example:
        contents = await read_many(sorted(await list_files(root)), root)
    """
    pipeline = ReadPipeline(config=config)
    return await pipeline.read_all(paths, root, options)
