#!/usr/bin/env python3
"""
Configuration for listing and reading files.

Option objects are plain dataclasses with documented defaults. Pipeline-wide
tuning can be overridden through CODEMERGE_* environment variables.
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Callable, List, Optional, TypeVar

from .concurrency import ProgressCallback
from codemerge.utils import get_logger

logger = get_logger("pipeline-config")

# Files below this size are read in one operation
LARGE_FILE_THRESHOLD = 1024 * 1024  # 1 MiB
CHUNK_SIZE = 64 * 1024  # 64 KiB
DEFAULT_CONCURRENCY = 8
DEFAULT_CACHE_MAX_ENTRIES = 500
DEFAULT_CACHE_TTL = 10 * 60.0  # seconds
DEFAULT_TREE_CACHE_MAX_ENTRIES = 50
DEFAULT_TREE_CACHE_TTL = 60.0  # seconds

T = TypeVar('T')


@dataclass
class FilterOptions:
    """Options controlling which files list_files() returns"""
    use_ignore_file: bool = True
    exclude_vcs_dir: bool = True
    custom_blacklist: List[str] = field(default_factory=list)

    def cache_key(self) -> str:
        """Stable string form used to key cached listings"""
        blacklist = ','.join(sorted(self.custom_blacklist))
        return f"ignore_file={self.use_ignore_file};vcs={self.exclude_vcs_dir};custom={blacklist}"


@dataclass
class ReadOptions:
    """
    Options for ReadPipeline.read_all()

    ``concurrency`` of None uses the pipeline's configured bound
    (DEFAULT_CONCURRENCY unless overridden).
    """
    use_cache: bool = True
    concurrency: Optional[int] = None
    progress_callback: Optional[ProgressCallback] = None

    def __post_init__(self):
        if self.concurrency is not None and self.concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {self.concurrency}")


@dataclass
class PipelineConfig:
    """Tuning for the content cache, the read strategy and the worker pool"""
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    cache_ttl: float = DEFAULT_CACHE_TTL
    concurrency: int = DEFAULT_CONCURRENCY
    large_file_threshold: int = LARGE_FILE_THRESHOLD
    chunk_size: int = CHUNK_SIZE
    read_timeout: Optional[float] = None
    encoding: str = "utf-8"
    tree_cache_max_entries: int = DEFAULT_TREE_CACHE_MAX_ENTRIES
    tree_cache_ttl: float = DEFAULT_TREE_CACHE_TTL

    def __post_init__(self):
        """Validate configuration values"""
        if self.cache_max_entries < 1:
            raise ValueError(f"cache_max_entries must be positive, got {self.cache_max_entries}")
        if self.cache_ttl <= 0:
            raise ValueError(f"cache_ttl must be positive, got {self.cache_ttl}")
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {self.concurrency}")
        if self.large_file_threshold < 0:
            raise ValueError(f"large_file_threshold must not be negative, got {self.large_file_threshold}")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ValueError(f"read_timeout must be positive, got {self.read_timeout}")
        if self.tree_cache_max_entries < 1:
            raise ValueError(f"tree_cache_max_entries must be positive, got {self.tree_cache_max_entries}")
        if self.tree_cache_ttl <= 0:
            raise ValueError(f"tree_cache_ttl must be positive, got {self.tree_cache_ttl}")

    @classmethod
    def from_env(cls) -> 'PipelineConfig':
        """
        Load configuration from CODEMERGE_* environment variables.

        Unparseable or out-of-range values are logged and the default is kept.
        """
        defaults = cls()
        values = {
            'cache_max_entries': _env_value('CODEMERGE_CACHE_MAX_ENTRIES', int, defaults.cache_max_entries),
            'cache_ttl': _env_value('CODEMERGE_CACHE_TTL', float, defaults.cache_ttl),
            'concurrency': _env_value('CODEMERGE_CONCURRENCY', int, defaults.concurrency),
            'large_file_threshold': _env_value('CODEMERGE_LARGE_FILE_THRESHOLD', int, defaults.large_file_threshold),
            'chunk_size': _env_value('CODEMERGE_CHUNK_SIZE', int, defaults.chunk_size),
            'read_timeout': _env_value('CODEMERGE_READ_TIMEOUT', float, defaults.read_timeout),
            'encoding': os.environ.get('CODEMERGE_ENCODING', defaults.encoding),
            'tree_cache_max_entries': _env_value('CODEMERGE_TREE_CACHE_MAX_ENTRIES', int,
                                                 defaults.tree_cache_max_entries),
            'tree_cache_ttl': _env_value('CODEMERGE_TREE_CACHE_TTL', float, defaults.tree_cache_ttl),
        }

        try:
            config = cls(**values)
        except ValueError as e:
            logger.warning(f"Invalid pipeline configuration from environment ({e}), using defaults")
            return defaults

        if config != defaults:
            logger.info(f"Loaded pipeline configuration from environment: {config.to_dict()}")
        return config

    def to_dict(self) -> dict:
        return asdict(self)


def _env_value(name: str, convert: Callable[[str], T], default: T) -> T:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return convert(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid value for {name}: {raw!r}")
        return default
