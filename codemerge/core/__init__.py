"""
Core listing and reading pipeline for code-merge

- ignore: layered ignore rules (VCS dir, blacklists, .gitignore, binary files)
- traverser: recursive listing with subtree pruning
- content_cache / tree_cache: validated in-memory caches
- concurrency: bounded task pool
- read_pipeline: cached, size-aware concurrent file reads
"""

from .concurrency import ConcurrencyLimiter, ProgressCallback, ProgressEvent, TaskResult
from .config import FilterOptions, PipelineConfig, ReadOptions
from .content_cache import CacheEntry, ContentCache
from .errors import (
    AccessDeniedError,
    CodeMergeError,
    InvalidArgumentError,
    PathNotDirectoryError,
    PathNotFileError,
    PathNotFoundError,
    QueueClearedError,
    ReadFailureError,
)
from .read_pipeline import ReadPipeline, read_many
from .traverser import list_files
from .tree_cache import TreeCache, cached_list_files

__all__ = [
    'ConcurrencyLimiter',
    'ProgressCallback',
    'ProgressEvent',
    'TaskResult',
    'FilterOptions',
    'PipelineConfig',
    'ReadOptions',
    'CacheEntry',
    'ContentCache',
    'AccessDeniedError',
    'CodeMergeError',
    'InvalidArgumentError',
    'PathNotDirectoryError',
    'PathNotFileError',
    'PathNotFoundError',
    'QueueClearedError',
    'ReadFailureError',
    'ReadPipeline',
    'read_many',
    'list_files',
    'TreeCache',
    'cached_list_files',
]
