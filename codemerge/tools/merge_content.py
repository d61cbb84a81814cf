"""
merge_content: concatenate the text of every eligible file under a path
"""

import stat
import time
from typing import Dict, Optional

from codemerge.core.config import ReadOptions
from codemerge.core.errors import PathNotFileError
from codemerge.core.ignore import BINARY_EXTENSIONS
from codemerge.core.tree_cache import cached_list_files
from codemerge.tools.compressor import compress_content
from codemerge.tools.context import ToolContext, filter_options_from_params, resolve_target
from codemerge.utils import get_logger

logger = get_logger("merge-content")

TOOL_NAME = "merge_content"
SEPARATOR = '=' * 50


def format_merged(contents: Dict[str, str]) -> str:
    """Join file contents in path order, each under a header"""
    sections = []
    for relative_path in sorted(contents):
        sections.append(
            f"=== File Path: {relative_path} ===\n\n"
            f"{contents[relative_path]}\n\n{SEPARATOR}\n\n"
        )
    return ''.join(sections).strip()


async def handle_request(params: dict, context: Optional[ToolContext] = None) -> dict:
    """
    Handle a merge_content request.

    A directory is listed through the ignore rules; a single file is merged
    on its own unless it has a binary extension.

    Returns:
        {"merged_content": str}
    """
    start_time = time.time()
    context = context or ToolContext()

    target_path, stat_result = await resolve_target(params)

    if stat.S_ISDIR(stat_result.st_mode):
        root = target_path
        options = filter_options_from_params(params)
        files = await cached_list_files(root, options, context.tree_cache)
        logger.info(f"Found {len(files)} files in {root}")
    elif stat.S_ISREG(stat_result.st_mode):
        root = target_path.parent
        files = [target_path.name]
        if target_path.suffix.lower() in BINARY_EXTENSIONS:
            logger.info(f"Skipping binary file: {target_path.name}")
            files = []
    else:
        raise PathNotFileError(f"Path '{params['path']}' is not a file or directory.")

    if not files:
        return {'merged_content': ''}

    contents = await context.pipeline().read_all(sorted(files), root, ReadOptions())
    merged = format_merged(contents)

    if params.get('compress', False):
        merged = compress_content(merged)

    logger.info(f"Merged {len(contents)} files in {time.time() - start_time:.3f}s")
    return {'merged_content': merged}
