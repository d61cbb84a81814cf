"""
get_file_tree: render the non-ignored files under a directory as an ASCII tree
"""

import stat
import time
from typing import Dict, Iterable, List, Optional

from codemerge.core.errors import PathNotDirectoryError
from codemerge.core.ignore import normalize_relative_path
from codemerge.core.tree_cache import cached_list_files
from codemerge.tools.context import ToolContext, filter_options_from_params, resolve_target
from codemerge.utils import get_logger

logger = get_logger("get-file-tree")

TOOL_NAME = "get_file_tree"

BRANCH = '├── '
LAST_BRANCH = '└── '
PIPE_PREFIX = '│   '
SPACE_PREFIX = '    '


class TreeNode:
    """Directory node: child directories by name plus file names"""

    def __init__(self):
        self.dirs: Dict[str, 'TreeNode'] = {}
        self.files: List[str] = []


def build_tree(file_paths: Iterable[str]) -> TreeNode:
    """Build a nested TreeNode structure from relative file paths"""
    root = TreeNode()
    for file_path in sorted(file_paths):
        parts = normalize_relative_path(file_path).split('/')
        if not parts or not parts[-1]:
            continue

        node = root
        for part in parts[:-1]:
            node = node.dirs.setdefault(part, TreeNode())

        if parts[-1] not in node.files:
            node.files.append(parts[-1])
    return root


def render_tree(node: TreeNode, prefix: str = '') -> str:
    """Render a TreeNode, directories first, each group sorted by name"""
    folders = sorted(node.dirs)
    files = sorted(node.files)
    total = len(folders) + len(files)
    lines = []

    for index, folder in enumerate(folders, start=1):
        is_last = index == total
        lines.append(f"{prefix}{LAST_BRANCH if is_last else BRANCH}{folder}/\n")
        lines.append(render_tree(node.dirs[folder], prefix + (SPACE_PREFIX if is_last else PIPE_PREFIX)))

    for index, name in enumerate(files, start=len(folders) + 1):
        is_last = index == total
        lines.append(f"{prefix}{LAST_BRANCH if is_last else BRANCH}{name}\n")

    return ''.join(lines)


async def handle_request(params: dict, context: Optional[ToolContext] = None) -> dict:
    """
    Handle a get_file_tree request.

    Args:
        params: ``path`` (required), ``use_gitignore``, ``ignore_git``,
            ``custom_blacklist``
        context: Tool state; a throwaway context is used when omitted

    Returns:
        {"file_tree": str}
    """
    start_time = time.time()
    context = context or ToolContext()

    target_path, stat_result = await resolve_target(params)
    if not stat.S_ISDIR(stat_result.st_mode):
        raise PathNotDirectoryError(f"Path '{params['path']}' is not a directory.")

    options = filter_options_from_params(params)
    files = await cached_list_files(target_path, options, context.tree_cache)
    logger.info(f"Found {len(files)} files under {target_path}")

    tree = f"{target_path.name}/\n" + render_tree(build_tree(files))

    logger.debug(f"{TOOL_NAME} completed in {time.time() - start_time:.3f}s")
    return {'file_tree': tree}
