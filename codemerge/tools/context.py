"""
Per-tool state shared across requests to the same tool
"""

import asyncio
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from codemerge.core.concurrency import ConcurrencyLimiter
from codemerge.core.config import FilterOptions, PipelineConfig
from codemerge.core.content_cache import ContentCache
from codemerge.core.errors import AccessDeniedError, InvalidArgumentError, PathNotFoundError
from codemerge.core.read_pipeline import ReadPipeline
from codemerge.core.tree_cache import TreeCache


@dataclass
class ToolContext:
    """
    Caches and worker pool owned by one tool.

    Each tool gets its own context so one tool's reads never evict or mask
    another's entries.
    """
    config: PipelineConfig = field(default_factory=PipelineConfig)
    content_cache: Optional[ContentCache] = None
    tree_cache: Optional[TreeCache] = None
    limiter: Optional[ConcurrencyLimiter] = None

    def __post_init__(self):
        if self.content_cache is None:
            self.content_cache = ContentCache(
                max_entries=self.config.cache_max_entries,
                ttl=self.config.cache_ttl,
            )
        if self.tree_cache is None:
            self.tree_cache = TreeCache(
                max_entries=self.config.tree_cache_max_entries,
                ttl=self.config.tree_cache_ttl,
            )
        if self.limiter is None:
            self.limiter = ConcurrencyLimiter(
                concurrency=self.config.concurrency,
                task_timeout=self.config.read_timeout,
            )

    @classmethod
    def from_env(cls) -> 'ToolContext':
        return cls(config=PipelineConfig.from_env())

    def pipeline(self) -> ReadPipeline:
        return ReadPipeline(cache=self.content_cache, limiter=self.limiter, config=self.config)


def filter_options_from_params(params: dict) -> FilterOptions:
    """Translate tool parameters into FilterOptions"""
    custom = params.get('custom_blacklist') or []
    if isinstance(custom, str):
        custom = [custom]
    return FilterOptions(
        use_ignore_file=bool(params.get('use_gitignore', True)),
        exclude_vcs_dir=bool(params.get('ignore_git', True)),
        custom_blacklist=[str(name) for name in custom],
    )


async def resolve_target(params: dict) -> Tuple[Path, os.stat_result]:
    """
    Resolve the 'path' parameter and stat it.

    Raises:
        InvalidArgumentError: 'path' is missing
        PathNotFoundError: Target does not exist
        AccessDeniedError: Target cannot be stat'ed
    """
    target = params.get('path')
    if not target:
        raise InvalidArgumentError("Missing required parameter: 'path'.")

    target_path = Path(target).expanduser().resolve()
    try:
        stat_result = await asyncio.to_thread(target_path.stat)
    except FileNotFoundError:
        raise PathNotFoundError(f"Path '{target}' not found.") from None
    except PermissionError as e:
        raise AccessDeniedError(f"Error accessing path '{target}': {e}") from e

    return target_path, stat_result
