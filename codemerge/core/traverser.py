#!/usr/bin/env python3
"""
Recursive directory traversal producing the relative paths of eligible files.

Every entry is checked against the ignore rules before anything else happens
to it. An ignored directory is pruned: its children are never visited, so
excluded files cannot leak through a non-matching descendant path.
"""

import asyncio
import os
import stat
from pathlib import Path
from typing import List, NamedTuple, Optional, Union

from .config import FilterOptions
from .errors import AccessDeniedError, PathNotDirectoryError, PathNotFoundError
from .ignore import IgnoreRuleSet, build_rule_set
from codemerge.utils import get_logger

logger = get_logger("traverser")


class DirEntry(NamedTuple):
    name: str
    is_dir: bool
    is_file: bool


def _scan_directory(path: str) -> List[DirEntry]:
    """Blocking directory read, run in a worker thread"""
    entries = []
    with os.scandir(path) as it:
        for entry in it:
            # Symlinked directories are not followed; symlinks to files are listed
            is_dir = entry.is_dir(follow_symlinks=False)
            is_file = not is_dir and entry.is_file()
            entries.append(DirEntry(entry.name, is_dir, is_file))
    return entries


async def validate_root(root: Union[str, Path]) -> Path:
    """
    Resolve a traversal root and check that it is a readable directory.

    Raises:
        PathNotFoundError: Root does not exist
        PathNotDirectoryError: Root is not a directory
        AccessDeniedError: Root cannot be listed
    """
    root_path = Path(root).expanduser().resolve()

    try:
        stat_result = await asyncio.to_thread(root_path.stat)
    except FileNotFoundError:
        raise PathNotFoundError(f"Path '{root}' not found.") from None
    except PermissionError as e:
        raise AccessDeniedError(f"Access denied to '{root}': {e}") from e

    if not stat.S_ISDIR(stat_result.st_mode):
        raise PathNotDirectoryError(f"Path '{root}' is not a directory.")

    return root_path


async def _walk(directory: Path, root: Path, rule_set: IgnoreRuleSet, files: List[str]):
    try:
        entries = await asyncio.to_thread(_scan_directory, str(directory))
    except PermissionError as e:
        if directory == root:
            raise AccessDeniedError(f"Access denied to '{root}': {e}") from e
        logger.warning(f"Permission denied reading {directory}, skipping subtree")
        return

    for entry in entries:
        child = directory / entry.name
        relative_path = child.relative_to(root).as_posix()

        if rule_set.should_ignore(relative_path, is_dir=entry.is_dir):
            logger.trace(f"Ignoring {relative_path}")
            continue

        if entry.is_dir:
            await _walk(child, root, rule_set, files)
        elif entry.is_file:
            files.append(relative_path)


async def list_files(root: Union[str, Path],
                     options: Optional[FilterOptions] = None,
                     rule_set: Optional[IgnoreRuleSet] = None) -> List[str]:
    """
    List all non-ignored files under a directory.

    The order is deterministic for a fixed filesystem state but carries no
    contract; callers sort before display.

    Args:
        root: Directory to traverse
        options: Filter options (defaults to FilterOptions())
        rule_set: Pre-built rule set; built from ``options`` when omitted

    Returns:
        Relative, forward-slash file paths

    Raises:
        PathNotFoundError, PathNotDirectoryError, AccessDeniedError: Invalid root
        OSError: Unexpected I/O failure below the root
    """
    options = options or FilterOptions()
    root_path = await validate_root(root)

    if rule_set is None:
        rule_set = await asyncio.to_thread(
            build_rule_set,
            root_path,
            options.use_ignore_file,
            options.exclude_vcs_dir,
            options.custom_blacklist,
        )

    files: List[str] = []
    await _walk(root_path, root_path, rule_set, files)

    logger.debug(f"Listed {len(files)} files under {root_path}")
    return files
